"""
Name and label derivation for copied or moved fields.

Duplicates are labelled "<base> (Copy)", "<base> (Copy 2)", ... and named
"<base>_copy", "<base>_copy_2", ...; the next suffix is one past the highest
suffix already used by a sibling, so gaps left by deletions are not reused.
"""

from typing import Iterable, List, Optional
import re

from formgrid.core.exceptions import NamingCollisionError

LABEL_COPY_RE = re.compile(r"^(?P<base>.*?) \(Copy(?: (?P<n>\d+))?\)$")
NAME_COPY_RE = re.compile(r"^(?P<base>.*?)_copy(?:_(?P<n>\d+))?$")
NAME_SAFE_RE = re.compile(r"[^a-zA-Z0-9_]")


def base_label(label: str) -> str:
    match = LABEL_COPY_RE.match(label)
    return match.group("base") if match else label


def base_name(name: str) -> str:
    match = NAME_COPY_RE.match(name)
    return match.group("base") if match else name


def _highest_suffix(values: Iterable[str], pattern: re.Pattern, base: str) -> int:
    highest = 0
    for value in values:
        match = pattern.match(value or "")
        if not match or match.group("base") != base:
            continue
        highest = max(highest, int(match.group("n") or 1))
    return highest


def copy_label(label: str, sibling_labels: Iterable[str]) -> str:
    base = base_label(label)
    n = _highest_suffix(sibling_labels, LABEL_COPY_RE, base) + 1
    return f"{base} (Copy)" if n == 1 else f"{base} (Copy {n})"


def copy_name(name: str, sibling_names: Iterable[str]) -> str:
    base = base_name(name)
    existing = set(sibling_names)
    n = _highest_suffix(existing, NAME_COPY_RE, base) + 1
    candidate = f"{base}_copy" if n == 1 else f"{base}_copy_{n}"
    # A hand-written name can still occupy the slot
    while candidate in existing:
        n += 1
        candidate = f"{base}_copy_{n}"
    return candidate


def sanitize_name(name: str) -> str:
    return NAME_SAFE_RE.sub("_", name or "")


def ensure_unique_name(name: str, sibling_names: List[str], section_id: Optional[str] = None) -> None:
    if name in sibling_names:
        raise NamingCollisionError(name, section_id)


def unique_name(name: str, sibling_names: Iterable[str]) -> str:
    """Return name, or name_2, name_3... when a sibling already uses it"""
    existing = set(sibling_names)
    if name not in existing:
        return name
    n = 2
    while f"{name}_{n}" in existing:
        n += 1
    return f"{name}_{n}"


def next_field_name(sibling_names: Iterable[str], prefix: str = "field") -> str:
    existing = set(sibling_names)
    n = 1
    while f"{prefix}_{n}" in existing:
        n += 1
    return f"{prefix}_{n}"
