"""
Per-type value handling for tenant fields.

Every ``FieldType`` maps to exactly one behavior variant. Variants own how a
normalized cell becomes the stored value and, for select types, how candidate
options are matched against the field's option set.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, MutableMapping

from crm_app.models.field import OPTION_TEXT_MAX_LENGTH, FieldType
from crm_app.utils.normalize import canonical_text, comparison_key

MULTISELECT_DELIMITER = ","

OptionMap = Mapping[str, str]
MutableOptionMap = MutableMapping[str, str]


def _canonical_option(
    candidate: str,
    existing: OptionMap,
    new_options: MutableOptionMap,
    rejected: List[str] | None,
) -> str | None:
    key = comparison_key(candidate)
    if key in existing:
        return existing[key]
    if key in new_options:
        return new_options[key]
    # New options must fit the option columns
    if len(candidate) > OPTION_TEXT_MAX_LENGTH or len(key) > OPTION_TEXT_MAX_LENGTH:
        if rejected is not None:
            rejected.append(candidate)
        return None
    new_options[key] = candidate
    return candidate


class FieldBehavior:
    """Plain value: the canonical cell text is stored unchanged."""

    is_select = False
    is_multi_value = False

    def resolve(
        self,
        cell: str,
        existing: OptionMap,
        new_options: MutableOptionMap,
        rejected: List[str] | None = None,
    ) -> str | None:
        value = canonical_text(cell)
        return value or None

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


class SingleSelectBehavior(FieldBehavior):
    """One option per cell, matched case-insensitively against known options."""

    is_select = True

    def resolve(
        self,
        cell: str,
        existing: OptionMap,
        new_options: MutableOptionMap,
        rejected: List[str] | None = None,
    ) -> str | None:
        candidate = canonical_text(cell)
        if not candidate:
            return None
        return _canonical_option(candidate, existing, new_options, rejected)


class MultiSelectBehavior(FieldBehavior):
    """Comma separated options; duplicates in one cell collapse, input order is kept."""

    is_select = True
    is_multi_value = True

    def split(self, cell: str) -> List[str]:
        parts = (canonical_text(part) for part in canonical_text(cell).split(MULTISELECT_DELIMITER))
        return [part for part in parts if part]

    def resolve(
        self,
        cell: str,
        existing: OptionMap,
        new_options: MutableOptionMap,
        rejected: List[str] | None = None,
    ) -> str | None:
        chosen: list[str] = []
        seen: set[str] = set()
        for candidate in self.split(cell):
            key = comparison_key(candidate)
            if key in seen:
                continue
            seen.add(key)
            option = _canonical_option(candidate, existing, new_options, rejected)
            if option is not None:
                chosen.append(option)
        if not chosen:
            return None
        return MULTISELECT_DELIMITER.join(chosen)


PLAIN_VALUE = FieldBehavior()
SINGLE_SELECT = SingleSelectBehavior()
MULTI_SELECT = MultiSelectBehavior()

FIELD_BEHAVIORS: Dict[FieldType, FieldBehavior] = {
    FieldType.TEXT: PLAIN_VALUE,
    FieldType.EMAIL: PLAIN_VALUE,
    FieldType.PHONE: PLAIN_VALUE,
    FieldType.NUMBER: PLAIN_VALUE,
    FieldType.DATE: PLAIN_VALUE,
    FieldType.LOCATION: PLAIN_VALUE,
    FieldType.ASSIGNED_USER: PLAIN_VALUE,
    FieldType.CHECKBOX: PLAIN_VALUE,
    FieldType.DROPDOWN: SINGLE_SELECT,
    FieldType.STATUS: SINGLE_SELECT,
    FieldType.MULTISELECT: MULTI_SELECT,
}


def behavior_for(field_type: FieldType) -> FieldBehavior:
    """Return the behavior registered for ``field_type``."""

    try:
        return FIELD_BEHAVIORS[field_type]
    except KeyError:
        raise ValueError(f"No import behavior registered for field type {field_type!r}") from None


__all__ = [
    "FIELD_BEHAVIORS",
    "FieldBehavior",
    "MULTISELECT_DELIMITER",
    "MultiSelectBehavior",
    "SingleSelectBehavior",
    "behavior_for",
]
