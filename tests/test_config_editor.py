"""Tests for the staged node configuration editor."""

import pytest

from formgrid.schemas.form import (
    FieldType,
    FormDefinition,
    OptionItem,
    PageDefinition,
    SectionDefinition,
    SectionKind,
)
from formgrid.services.config_editor import UNSAVED_CHANGES_PROMPT, NodeConfigEditor
from formgrid.services.grid import validate_grid_positions


class Confirm:
    def __init__(self, answer):
        self.answer = answer
        self.prompts = []

    def __call__(self, message):
        self.prompts.append(message)
        return self.answer


@pytest.fixture
def form(make_field):
    return FormDefinition(title="F", pages=[PageDefinition(id="p1", title="Page 1", sections=[
        SectionDefinition(id="s1", title="Main", fields=[
            make_field("first", col=1),
            make_field("second", col=5),
            make_field("city", col=9, type="select", options=["Paris", {"value": "ny", "label": "New York"}]),
            make_field("age", row=2, type="number"),
            make_field("tabs", row=3, span=12, type="tab"),
        ]),
    ])])


def field_id(form, name):
    return next(f.id for f in form.pages[0].sections[0].fields if f.name == name)


class TestStaging:
    def test_edits_stay_staged_until_save(self, form):
        editor = NodeConfigEditor(form)
        first_id = field_id(form, "first")
        editor.open(first_id)

        editor.update(label="Given name", placeholder="Jane")

        assert editor.dirty
        assert editor.index.field(first_id).label == "First"

        saved = editor.save()

        assert saved.label == "Given name"
        assert editor.index.field(first_id).label == "Given name"
        assert form.pages[0].sections[0].fields[0].label == "Given name"
        assert not editor.is_open

    def test_save_keeps_position(self, form):
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "second"))
        editor.update(label="Other")
        editor.save()

        assert [f.name for f in form.pages[0].sections[0].fields][:2] == ["first", "second"]

    def test_switch_declined_keeps_staging(self, form):
        confirm = Confirm(False)
        editor = NodeConfigEditor(form, confirm=confirm)
        first_id = field_id(form, "first")
        editor.open(first_id)
        editor.update(label="Changed")

        assert editor.open(field_id(form, "second")) is False

        assert confirm.prompts == [UNSAVED_CHANGES_PROMPT]
        assert editor.target_id == first_id
        assert editor.staged.label == "Changed"

    def test_switch_confirmed_discards(self, form):
        editor = NodeConfigEditor(form, confirm=Confirm(True))
        first_id = field_id(form, "first")
        editor.open(first_id)
        editor.update(label="Changed")

        assert editor.open(field_id(form, "second")) is True

        assert editor.staged.name == "second"
        assert not editor.dirty
        assert editor.index.field(first_id).label == "First"

    def test_clean_switch_needs_no_confirmation(self, form):
        confirm = Confirm(False)
        editor = NodeConfigEditor(form, confirm=confirm)
        editor.open(field_id(form, "first"))

        assert editor.open(field_id(form, "second")) is True
        assert confirm.prompts == []

    def test_close_dirty_asks_first(self, form):
        editor = NodeConfigEditor(form, confirm=Confirm(False))
        editor.open(field_id(form, "first"))
        editor.update(label="Changed")

        assert editor.close() is False
        assert editor.is_open

        editor._confirm = Confirm(True)
        assert editor.close() is True
        assert form.pages[0].sections[0].fields[0].label == "First"

    def test_unknown_property_rejected(self, form):
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "first"))
        with pytest.raises(ValueError):
            editor.update(colour="red")

    def test_edit_page_and_section(self, form):
        editor = NodeConfigEditor(form)
        editor.open("p1")
        editor.update(title="Welcome")
        editor.save()
        editor.open("s1")
        editor.update(description="Basics")
        editor.save()

        assert form.pages[0].title == "Welcome"
        assert form.pages[0].sections[0].description == "Basics"
        assert len(form.pages[0].sections[0].fields) == 5


class TestFieldProperties:
    def test_name_sanitized(self, form):
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "first"))
        editor.update(name="first name!")
        assert editor.staged.name == "first_name_"

    def test_name_clash_suffixed_on_save(self, form):
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "first"))
        editor.update(name="second")

        saved = editor.save()

        assert saved.name == "second_2"

    def test_required_kept_in_sync(self, form):
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "first"))

        editor.update(required=True)
        assert editor.staged.required is True
        assert editor.staged.validation.required is True

        editor.set_validation("required", False)
        assert editor.staged.required is False
        assert editor.staged.validation.required is False

    def test_changing_type_to_section_creates_container(self, form):
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "first"))
        editor.update(type="section")
        assert editor.staged.type == FieldType.SECTION
        assert editor.staged.section is not None


class TestGeometry:
    def test_widened_field_clamped_into_grid(self, form):
        fields = form.pages[0].sections[0].fields
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "city"))
        editor.update(column_span=12)

        saved = editor.save()

        assert (saved.grid_row, saved.grid_column, saved.column_span) == (1, 1, 12)
        assert validate_grid_positions(fields) == (True, [])
        rows = sorted({f.grid_row for f in fields})
        assert rows == list(range(1, len(rows) + 1))

    def test_column_past_the_edge_pulled_back(self, form):
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "first"))
        editor.update(grid_column=15, grid_row=0)

        saved = editor.save()

        assert (saved.grid_row, saved.grid_column) == (1, 9)
        assert validate_grid_positions(form.pages[0].sections[0].fields) == (True, [])

    def test_children_not_editable_through_update(self, form):
        editor = NodeConfigEditor(form)
        editor.open("s1")
        with pytest.raises(ValueError):
            editor.update(fields=[])
        editor.open("p1")
        with pytest.raises(ValueError):
            editor.update(sections=[])


class TestOptions:
    def test_option_editing(self, form):
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "city"))

        index = editor.add_option("Rome")
        editor.update_option(0, "Lyon")
        editor.update_option(1, "NYC")
        editor.remove_option(index)

        assert editor.options == ["Lyon", OptionItem(value="ny", label="NYC")]

    def test_options_only_for_choice_fields(self, form):
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "first"))
        with pytest.raises(ValueError):
            editor.add_option("x")

    def test_bad_index(self, form):
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "city"))
        with pytest.raises(IndexError):
            editor.remove_option(9)


class TestValidationRules:
    def test_rules_by_type(self, form):
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "first"))
        assert editor.validation_fields() == ["required", "pattern", "message", "minLength", "maxLength"]

        editor.close()
        editor.open(field_id(form, "age"))
        assert editor.validation_fields() == ["required", "pattern", "message", "min", "max"]

        editor.close()
        editor.open(field_id(form, "city"))
        assert editor.validation_fields() == ["required", "pattern", "message"]

    def test_set_exposed_rule(self, form):
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "age"))
        editor.set_validation("min", 18)
        assert editor.staged.validation.min == 18

    def test_rule_not_exposed_for_type(self, form):
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "first"))
        with pytest.raises(ValueError):
            editor.set_validation("min", 1)


class TestSectionKind:
    def test_repeater_defaults_added_and_removed(self, form):
        editor = NodeConfigEditor(form)
        editor.open("s1")

        editor.update(kind="repeater")
        config = editor.staged.repeater_config
        assert (config.min_rows, config.max_rows) == (1, 10)
        assert (config.add_label, config.remove_label) == ("Add New", "Remove")

        editor.update_repeater(max_rows=3)
        assert editor.staged.repeater_config.max_rows == 3

        editor.update(kind="normal")
        assert editor.staged.kind == SectionKind.NORMAL
        assert editor.staged.repeater_config is None

    def test_repeater_settings_need_repeater(self, form):
        editor = NodeConfigEditor(form)
        editor.open("s1")
        with pytest.raises(ValueError):
            editor.update_repeater(max_rows=3)


class TestTabs:
    def test_tab_management(self, form):
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "tabs"))

        editor.add_tab()
        editor.add_tab("Extra")
        editor.rename_tab(0, "General")
        editor.remove_tab(1)

        assert [p.title for p in editor.staged.pages] == ["General"]
        assert editor.staged.pages[0].sections[0].title == "New Section"

        saved = editor.save()
        assert saved.pages[0].sections[0].id in editor.index

    def test_tabs_only_on_tab_fields(self, form):
        editor = NodeConfigEditor(form)
        editor.open(field_id(form, "first"))
        with pytest.raises(ValueError):
            editor.add_tab()
