"""
Row planning for record imports.

Turns raw spreadsheet rows into per-record value plans against a tenant's
field schema. Planning is pure and in-memory: unknown or malformed columns are
skipped and reported, never raised, so one bad column cannot block the batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Sequence

from crm_app.utils.normalize import canonical_text, header_key, is_blank, is_valid_header, sanitize_header

from .schema_index import FieldSchemaIndex, SchemaAnomaly

DEFAULT_NAME_HEADERS: tuple[str, ...] = (
    "Name of Organization",
    "Company Name",
    "Organization",
    "Org Name",
    "Lead Name",
    "Name",
)
DEFAULT_FALLBACK_NAME = "Untitled Lead"
DEFAULT_PROGRESS_INTERVAL = 50
DISPLAY_NAME_MAX_LENGTH = 255

RawRow = Mapping[str, Any]


@dataclass(frozen=True)
class ImportProgress:
    """Progress snapshot handed to progress callbacks."""

    phase: str
    processed: int
    total: int


ProgressCallback = Callable[[ImportProgress], None]


@dataclass
class RowPlan:
    """Planned record for one input row; ``index`` is the row's position in the batch."""

    index: int
    display_name: str
    values: list[tuple[int, str]] = field(default_factory=list)


@dataclass
class ImportPlan:
    """Everything the persister needs, plus what the caller is told about skipped input."""

    rows: list[RowPlan]
    new_options: dict[int, dict[str, str]]
    unmatched_columns: tuple[str, ...]
    ignored_columns: tuple[str, ...]
    rows_processed: int
    rows_skipped_blank: int = 0
    anomalies: tuple[SchemaAnomaly, ...] = ()
    rejected_option_columns: tuple[str, ...] = ()
    multi_value_fields: frozenset[int] = frozenset()

    @property
    def value_count(self) -> int:
        return sum(len(row.values) for row in self.rows)

    @property
    def option_count(self) -> int:
        return sum(len(options) for options in self.new_options.values())


def _row_items(row: RawRow | None) -> Iterable[tuple[Any, Any]]:
    if not row:
        return ()
    return row.items()


def _row_is_blank(row: RawRow | None) -> bool:
    return all(is_blank(value) for _, value in _row_items(row))


def resolve_display_name(
    row: RawRow | None,
    name_headers: Sequence[str] = DEFAULT_NAME_HEADERS,
    fallback: str = DEFAULT_FALLBACK_NAME,
) -> str:
    """
    Pick the record display name from the first non-blank name-like column.

    Aliases are tried in priority order and compared by ``header_key`` so
    ``"company_name"`` matches ``"Company Name"``. Falls back to ``fallback``.
    """

    cells_by_key: dict[str, Any] = {}
    for header, cell in _row_items(row):
        key = header_key(header)
        if key and key not in cells_by_key and not is_blank(cell):
            cells_by_key[key] = cell

    for alias in name_headers:
        cell = cells_by_key.get(header_key(alias))
        if cell is not None:
            return canonical_text(cell)[:DISPLAY_NAME_MAX_LENGTH]
    return fallback


def plan_rows(
    rows: Sequence[RawRow | None],
    index: FieldSchemaIndex,
    *,
    name_headers: Sequence[str] = DEFAULT_NAME_HEADERS,
    fallback_name: str = DEFAULT_FALLBACK_NAME,
    skip_blank_rows: bool = False,
    progress_callback: ProgressCallback | None = None,
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
) -> ImportPlan:
    """
    Plan one record per row, in input order, against ``index``.

    Name-alias headers that match no field are consumed as the display name and
    are not listed in ``unmatched_columns``. Select options too long to store are
    dropped and their headers listed in ``rejected_option_columns``.
    """

    total = len(rows)
    interval = max(1, int(progress_interval))
    name_keys = {header_key(alias) for alias in name_headers}
    name_keys.discard("")

    planned: list[RowPlan] = []
    new_options: dict[int, dict[str, str]] = {}
    unmatched: dict[str, None] = {}
    ignored: dict[str, None] = {}
    rejected_columns: dict[str, None] = {}
    multi_value_fields: set[int] = set()
    rows_skipped_blank = 0

    for row_index, row in enumerate(rows):
        if skip_blank_rows and _row_is_blank(row):
            rows_skipped_blank += 1
        else:
            plan = RowPlan(
                index=row_index,
                display_name=resolve_display_name(row, name_headers, fallback_name),
            )
            seen_fields: set[int] = set()

            for raw_header, cell in _row_items(row):
                if is_blank(cell):
                    continue
                header = sanitize_header(raw_header)
                if not is_valid_header(header):
                    if header:
                        ignored.setdefault(header, None)
                    continue

                indexed = index.lookup(header)
                if indexed is None:
                    if header_key(header) not in name_keys:
                        unmatched.setdefault(header, None)
                    continue
                if indexed.id in seen_fields:
                    continue

                accumulator = new_options.get(indexed.id, {})
                rejected: list[str] = []
                value = indexed.behavior.resolve(cell, indexed.options, accumulator, rejected)
                if accumulator:
                    new_options[indexed.id] = accumulator
                if rejected:
                    rejected_columns.setdefault(header, None)
                if indexed.behavior.is_multi_value:
                    multi_value_fields.add(indexed.id)
                if value is None:
                    continue

                seen_fields.add(indexed.id)
                plan.values.append((indexed.id, value))

            planned.append(plan)

        processed = row_index + 1
        if progress_callback is not None and processed % interval == 0 and processed != total:
            progress_callback(ImportProgress(phase="planning", processed=processed, total=total))

    if progress_callback is not None:
        progress_callback(ImportProgress(phase="planning", processed=total, total=total))

    return ImportPlan(
        rows=planned,
        new_options=new_options,
        unmatched_columns=tuple(unmatched),
        ignored_columns=tuple(ignored),
        rows_processed=total,
        rows_skipped_blank=rows_skipped_blank,
        anomalies=index.anomalies,
        rejected_option_columns=tuple(rejected_columns),
        multi_value_fields=frozenset(multi_value_fields),
    )
