"""
Header and cell normalization for spreadsheet imports.

All helpers accept arbitrary cell objects (``None``, ``str`` or scalars
produced by an upstream parser) and never raise. Each transform is
idempotent: applying it twice yields the same result as applying it once.
"""

from __future__ import annotations

import re

_LINE_BREAKS = re.compile(r"\r\n|\r|\n")
_WHITESPACE_RUN = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[\W_]+", re.UNICODE)
_PLACEHOLDER_HEADER = re.compile(r"^_+\d+$")
_MOJIBAKE_MARKERS = ("\ufffd", "\u00ef\u00bf\u00bd")
_BOM = "\ufeff"


def _as_text(value: object | None) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def canonical_text(value: object | None) -> str:
    """
    Trim and collapse whitespace while preserving the original casing.

    Line breaks embedded in spreadsheet cells are folded into single spaces.
    """

    text = _LINE_BREAKS.sub(" ", _as_text(value))
    return _WHITESPACE_RUN.sub(" ", text).strip()


def comparison_key(value: object | None) -> str:
    """Case-insensitive comparison form of ``canonical_text``."""

    return canonical_text(value).casefold()


def header_key(value: object | None) -> str:
    """
    Lookup key for matching spreadsheet headers to field display names.

    Case-folds and drops whitespace and punctuation entirely so ``"Company Name"``,
    ``"company_name"`` and ``"Company-Name"`` share one key.
    """

    return _NON_ALNUM.sub("", comparison_key(value))


def is_blank(value: object | None) -> bool:
    """Return True for ``None``, empty strings and whitespace-only strings."""

    return canonical_text(value) == ""


def sanitize_header(header: object | None) -> str:
    token = _as_text(header).strip()
    return token.lstrip(_BOM).strip()


def is_valid_header(header: object | None) -> bool:
    """
    Reject placeholder headers that spreadsheet exporters emit for unnamed columns.

    ``"_1"``/``"__2"`` style names, headers containing decoding artefacts and
    headers without a single alphanumeric character are not real columns.
    """

    token = sanitize_header(header)
    if not token:
        return False
    if _PLACEHOLDER_HEADER.match(token):
        return False
    if any(marker in token for marker in _MOJIBAKE_MARKERS):
        return False
    return header_key(token) != ""


__all__ = [
    "canonical_text",
    "comparison_key",
    "header_key",
    "is_blank",
    "is_valid_header",
    "sanitize_header",
]
