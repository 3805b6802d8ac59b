"""
Flatten the planner's new-option accumulator into creation requests.

Requests are deduplicated per field under case-insensitive comparison and
exclude options that already existed when the batch was planned. Races with
concurrent imports are absorbed by the conflict-skipping insert in
``persist.py``, so the request list is only as fresh as the schema snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from crm_app.utils.normalize import canonical_text, comparison_key

from .planner import ImportPlan


@dataclass(frozen=True)
class OptionCreateRequest:
    field_id: int
    option_text: str
    option_key: str

    def as_row(self) -> dict[str, object]:
        return {
            "field_id": self.field_id,
            "option_text": self.option_text,
            "option_key": self.option_key,
            "is_deleted": False,
        }


def reconcile_options(new_options: ImportPlan | Mapping[int, Mapping[str, str]]) -> list[OptionCreateRequest]:
    """
    Return one creation request per distinct new option, grouped by field.

    The planner only accumulates options missing from the schema snapshot, so
    no existing options are consulted here.
    """

    accumulator = new_options.new_options if isinstance(new_options, ImportPlan) else new_options

    requests: list[OptionCreateRequest] = []
    for field_id, options in accumulator.items():
        seen: set[str] = set()
        for option in options.values():
            text = canonical_text(option)
            key = comparison_key(text)
            if not key or key in seen:
                continue
            seen.add(key)
            requests.append(OptionCreateRequest(field_id=field_id, option_text=text, option_key=key))
    return requests
