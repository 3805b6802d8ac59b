"""
Entry point for importing parsed spreadsheet rows as records.

``import_records`` plans rows against the tenant's field schema, reconciles new
select options and persists everything in one transaction. Collaborators (the
session and the schema reader) are passed in explicitly; the Flask-SQLAlchemy
session and ``SqlSchemaReader`` are used when they are omitted.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence

from flask import current_app, has_app_context
from sqlalchemy.orm import Session

from crm_app.models import Organization, db

from .errors import ImportPersistenceError, ImportTooLargeError, TenantNotFoundError
from .metrics import record_import_batch, record_import_counts
from .persist import persist_import
from .planner import ImportPlan, ImportProgress, ProgressCallback, plan_rows
from .reconcile import reconcile_options
from .schema_index import FieldDefinition, SchemaAnomaly, SqlSchemaReader, build_schema_index
from .settings import ImportSettings, get_import_settings

_module_logger = logging.getLogger(__name__)


def _get_logger() -> logging.Logger:
    if has_app_context():
        return current_app.logger
    return _module_logger


class SchemaReader(Protocol):
    def load_fields(self, tenant_id: int, module_type: str) -> Sequence[FieldDefinition]:
        ...


@dataclass
class ImportSummary:
    """Outcome of one import call, handed back to the caller for display."""

    records_created: int
    options_created: int
    values_created: int
    unmatched_columns: tuple[str, ...]
    ignored_columns: tuple[str, ...] = ()
    rows_processed: int = 0
    rows_skipped_blank: int = 0
    schema_anomalies: tuple[SchemaAnomaly, ...] = ()
    rejected_option_columns: tuple[str, ...] = ()
    dry_run: bool = False
    record_ids: tuple[str, ...] = field(default=(), repr=False)

    def as_dict(self) -> dict[str, Any]:
        return {
            "recordsCreated": self.records_created,
            "optionsCreated": self.options_created,
            "valuesCreated": self.values_created,
            "unmatchedColumns": list(self.unmatched_columns),
            "ignoredColumns": list(self.ignored_columns),
            "rowsProcessed": self.rows_processed,
            "rowsSkippedBlank": self.rows_skipped_blank,
            "schemaAnomalies": [anomaly.as_dict() for anomaly in self.schema_anomalies],
            "rejectedOptionColumns": list(self.rejected_option_columns),
            "dryRun": self.dry_run,
        }


def _summary_from_plan(plan: ImportPlan, *, options_created: int, dry_run: bool) -> ImportSummary:
    return ImportSummary(
        records_created=len(plan.rows),
        options_created=options_created,
        values_created=plan.value_count,
        unmatched_columns=plan.unmatched_columns,
        ignored_columns=plan.ignored_columns,
        rows_processed=plan.rows_processed,
        rows_skipped_blank=plan.rows_skipped_blank,
        schema_anomalies=plan.anomalies,
        rejected_option_columns=plan.rejected_option_columns,
        dry_run=dry_run,
    )


def _resolve_tenant(session: Session, tenant_id: int) -> Organization:
    organization = session.get(Organization, tenant_id)
    if organization is None or not organization.is_active:
        raise TenantNotFoundError(tenant_id)
    return organization


def _notify(progress_callback: ProgressCallback | None, phase: str, processed: int, total: int) -> None:
    if progress_callback is not None:
        progress_callback(ImportProgress(phase=phase, processed=processed, total=total))


def import_records(
    tenant_id: int,
    rows: Sequence[Mapping[str, Any] | None],
    *,
    module_type: str | None = None,
    session: Session | None = None,
    schema_reader: SchemaReader | None = None,
    settings: ImportSettings | None = None,
    dry_run: bool = False,
    progress_callback: ProgressCallback | None = None,
) -> ImportSummary:
    """
    Import ``rows`` (header → cell mappings) as new records for ``tenant_id``.

    Unknown columns are reported in ``unmatched_columns``; missing options of
    select fields are created; duplicate options and values are absorbed.
    With ``dry_run`` nothing is written and the counts describe what would be
    created. Raises ``ImportPersistenceError`` when the transaction fails, in
    which case nothing from the batch is stored.
    """

    settings = settings or get_import_settings()
    session = session if session is not None else db.session
    rows = list(rows)
    logger = _get_logger()

    if len(rows) > settings.max_rows:
        raise ImportTooLargeError(len(rows), settings.max_rows)

    _resolve_tenant(session, tenant_id)
    module = module_type or settings.default_module
    reader = schema_reader or SqlSchemaReader(session)

    started = time.perf_counter()
    index = build_schema_index(reader.load_fields(tenant_id, module))
    plan = plan_rows(
        rows,
        index,
        name_headers=settings.name_headers,
        fallback_name=settings.fallback_name,
        skip_blank_rows=settings.skip_blank_rows,
        progress_callback=progress_callback,
        progress_interval=settings.progress_interval,
    )
    option_requests = reconcile_options(plan)
    if plan.rejected_option_columns:
        logger.warning(
            "Options longer than the storage limit were skipped in columns: %s",
            ", ".join(plan.rejected_option_columns),
            extra={"importer_tenant_id": tenant_id, "importer_module": module},
        )

    if dry_run:
        summary = _summary_from_plan(plan, options_created=len(option_requests), dry_run=True)
        record_import_batch(status="dry_run", duration_seconds=time.perf_counter() - started)
        logger.info(
            "Dry-run import for organization %s planned %s records, %s options, %s values.",
            tenant_id,
            summary.records_created,
            summary.options_created,
            summary.values_created,
            extra={"importer_tenant_id": tenant_id, "importer_module": module},
        )
        _notify(progress_callback, "complete", len(rows), len(rows))
        return summary

    _notify(progress_callback, "persisting", len(rows), len(rows))
    try:
        result = persist_import(
            session,
            plan,
            option_requests,
            tenant_id=tenant_id,
            module_type=module,
        )
    except ImportPersistenceError:
        record_import_batch(status="failure", duration_seconds=time.perf_counter() - started)
        logger.exception(
            "Import for organization %s failed; %s rows rolled back.",
            tenant_id,
            len(plan.rows),
            extra={"importer_tenant_id": tenant_id, "importer_module": module},
        )
        raise

    summary = ImportSummary(
        records_created=result.records_created,
        options_created=result.options_created,
        values_created=result.values_created,
        unmatched_columns=plan.unmatched_columns,
        ignored_columns=plan.ignored_columns,
        rows_processed=plan.rows_processed,
        rows_skipped_blank=plan.rows_skipped_blank,
        schema_anomalies=plan.anomalies,
        rejected_option_columns=plan.rejected_option_columns,
        dry_run=False,
        record_ids=result.record_ids,
    )
    record_import_batch(status="success", duration_seconds=time.perf_counter() - started)
    record_import_counts(
        module_type=module,
        records_created=summary.records_created,
        options_created=summary.options_created,
        values_created=summary.values_created,
        unmatched_columns=len(summary.unmatched_columns),
    )
    logger.info(
        "Imported %s records (%s values, %s new options) for organization %s.",
        summary.records_created,
        summary.values_created,
        summary.options_created,
        tenant_id,
        extra={
            "importer_tenant_id": tenant_id,
            "importer_module": module,
            "importer_unmatched_columns": list(summary.unmatched_columns),
        },
    )
    if summary.unmatched_columns:
        logger.info(
            "Columns without a matching field: %s",
            ", ".join(summary.unmatched_columns),
            extra={"importer_tenant_id": tenant_id},
        )
    _notify(progress_callback, "complete", len(rows), len(rows))
    return summary
