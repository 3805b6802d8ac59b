"""
Atomic persistence of an import plan.

Records, new field options and record values are written by set-based inserts
inside a single transaction. Record ids are generated client-side before the
insert, so row positions map to record ids without re-reading the table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AbstractSet, Mapping, Sequence

from sqlalchemy import Table, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crm_app.models import DEFAULT_MODULE_TYPE, FieldOption, Record, RecordValue, generate_record_id
from crm_app.utils.normalize import comparison_key

from .errors import ImporterError, ImportPersistenceError
from .field_types import MULTISELECT_DELIMITER
from .planner import ImportPlan
from .reconcile import OptionCreateRequest


@dataclass
class PersistResult:
    """Counts written by one committed import transaction."""

    records_created: int
    options_created: int
    values_created: int
    record_ids: tuple[str, ...] = ()
    record_ids_by_row: dict[int, str] = field(default_factory=dict)


def _insert_ignoring_conflicts(session: Session, table: Table):
    """Build an INSERT that silently skips rows violating a unique constraint."""

    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(table).on_conflict_do_nothing()
    if dialect == "sqlite":
        return sqlite_insert(table).on_conflict_do_nothing()
    if dialect in ("mysql", "mariadb"):
        return insert(table).prefix_with("IGNORE")
    raise ImporterError(f"Conflict-skipping inserts are not supported for the '{dialect}' dialect.")


def _rowcount(result: CursorResult, attempted: int) -> int:
    count = getattr(result, "rowcount", None)
    if count is None or count < 0:
        return attempted
    return count


def _insert_records(session: Session, rows: list[dict[str, object]]) -> int:
    if not rows:
        return 0
    session.execute(insert(Record.__table__), rows)
    return len(rows)


def _insert_options(session: Session, stmt, requests: Sequence[OptionCreateRequest]) -> int:
    if not requests:
        return 0
    rows = [request.as_row() for request in requests]
    result = session.execute(stmt, rows)
    return _rowcount(result, len(rows))


def _stored_option_texts(
    session: Session, requests: Sequence[OptionCreateRequest]
) -> dict[int, dict[str, str]]:
    """
    Live option text per field for every requested key whose stored spelling
    differs from the request (another writer created it first).
    """

    if not requests:
        return {}
    stmt = select(FieldOption.field_id, FieldOption.option_key, FieldOption.option_text).where(
        FieldOption.field_id.in_(sorted({request.field_id for request in requests})),
        FieldOption.option_key.in_(sorted({request.option_key for request in requests})),
        FieldOption.is_deleted.is_(False),
    )
    stored = {(field_id, key): text for field_id, key, text in session.execute(stmt)}

    renames: dict[int, dict[str, str]] = {}
    for request in requests:
        text = stored.get((request.field_id, request.option_key))
        if text is not None and text != request.option_text:
            renames.setdefault(request.field_id, {})[request.option_key] = text
    return renames


def _align_option_values(
    rows: list[dict[str, object]],
    renames: Mapping[int, Mapping[str, str]],
    multi_value_fields: AbstractSet[int],
) -> None:
    if not renames:
        return
    for row in rows:
        field_renames = renames.get(row["field_id"])
        if not field_renames:
            continue
        value = str(row["value"])
        tokens = value.split(MULTISELECT_DELIMITER) if row["field_id"] in multi_value_fields else [value]
        row["value"] = MULTISELECT_DELIMITER.join(
            field_renames.get(comparison_key(token), token) for token in tokens
        )


def _insert_values(session: Session, stmt, rows: list[dict[str, object]]) -> int:
    if not rows:
        return 0
    result = session.execute(stmt, rows)
    return _rowcount(result, len(rows))


def persist_import(
    session: Session,
    plan: ImportPlan,
    option_requests: Sequence[OptionCreateRequest],
    *,
    tenant_id: int,
    module_type: str = DEFAULT_MODULE_TYPE,
) -> PersistResult:
    """
    Write ``plan`` in one all-or-nothing transaction and commit it.

    Duplicate options and duplicate ``(record, field)`` values are absorbed by the
    storage layer. When an option already exists under another spelling, values
    are rewritten to the stored spelling before they are inserted. Any other
    database error rolls back every statement of the batch and raises
    ``ImportPersistenceError``.
    """

    now = datetime.now(timezone.utc)
    record_ids = [generate_record_id() for _ in plan.rows]
    record_rows = [
        {
            "id": record_id,
            "organization_id": tenant_id,
            "module_type": module_type,
            "display_name": row.display_name,
            "is_deleted": False,
            "created_at": now,
            "updated_at": now,
        }
        for record_id, row in zip(record_ids, plan.rows)
    ]
    value_rows = [
        {
            "record_id": record_id,
            "field_id": field_id,
            "value": value,
            "created_at": now,
            "updated_at": now,
        }
        for record_id, row in zip(record_ids, plan.rows)
        for field_id, value in row.values
    ]

    option_stmt = _insert_ignoring_conflicts(session, FieldOption.__table__)
    value_stmt = _insert_ignoring_conflicts(session, RecordValue.__table__)

    try:
        records_created = _insert_records(session, record_rows)
        options_created = _insert_options(session, option_stmt, option_requests)
        _align_option_values(value_rows, _stored_option_texts(session, option_requests), plan.multi_value_fields)
        values_created = _insert_values(session, value_stmt, value_rows)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise ImportPersistenceError(tenant_id, len(plan.rows), exc) from exc

    return PersistResult(
        records_created=records_created,
        options_created=options_created,
        values_created=values_created,
        record_ids=tuple(record_ids),
        record_ids_by_row={row.index: record_id for record_id, row in zip(record_ids, plan.rows)},
    )
