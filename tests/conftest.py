"""
Pytest fixtures shared by the layout engine, editor and interpreter tests.
"""

import pytest

from formgrid.schemas.form import (
    FieldDefinition,
    FormDefinition,
    FormSettings,
    PageDefinition,
    RepeaterConfig,
    SectionDefinition,
)
from formgrid.services.layout_engine import GridLayoutEngine


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_field():
    """Factory for positioned fields."""
    def _make(name, row=1, col=1, span=4, **kwargs):
        kwargs.setdefault("label", name.replace("_", " ").title())
        return FieldDefinition(name=name, column_span=span, grid_row=row, grid_column=col, **kwargs)
    return _make


@pytest.fixture
def full_row_form(make_field):
    """One section holding first[1-4] second[5-8] third[9-12] on row 1."""
    section = SectionDefinition(
        id="main",
        title="Main",
        fields=[
            make_field("first", col=1),
            make_field("second", col=5),
            make_field("third", col=9),
        ],
    )
    other = SectionDefinition(
        id="other",
        title="Other",
        fields=[make_field("first", col=1)],
    )
    return FormDefinition(title="Layout", pages=[PageDefinition(id="p1", title="Page 1", sections=[section, other])])


@pytest.fixture
def engine(full_row_form, clock):
    return GridLayoutEngine(full_row_form, clock=clock)


@pytest.fixture
def by_name():
    """Look a field up by name inside a section."""
    def _find(section, name):
        return next(f for f in section.fields if f.name == name)
    return _find


@pytest.fixture
def two_page_form(make_field):
    return FormDefinition(
        title="Registration",
        settings=FormSettings(multi_page=True),
        pages=[
            PageDefinition(id="p1", title="About you", sections=[
                SectionDefinition(id="s1", title="Identity", fields=[
                    make_field("name", required=True),
                ]),
            ]),
            PageDefinition(id="p2", title="Contact", sections=[
                SectionDefinition(id="s2", title="Reach", fields=[
                    make_field("email", type="email", required=True),
                ]),
            ]),
        ],
    )


@pytest.fixture
def repeater_form(make_field):
    return FormDefinition(
        title="Contacts",
        pages=[
            PageDefinition(id="p1", title="Page 1", sections=[
                SectionDefinition(
                    id="contacts",
                    title="Contacts",
                    kind="repeater",
                    repeater_config=RepeaterConfig(min_rows=1, max_rows=3),
                    fields=[make_field("phone", required=True)],
                ),
            ]),
        ],
    )
