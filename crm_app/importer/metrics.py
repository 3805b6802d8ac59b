"""Prometheus metrics helpers for the record importer."""

from __future__ import annotations

from typing import Literal

from prometheus_client import Counter, Histogram

_batch_counter = Counter(
    "crm_importer_batches_total",
    "Record import batches processed by outcome.",
    ["status"],
)
_batch_duration = Histogram(
    "crm_importer_batch_duration_seconds",
    "Duration of record import batches in seconds.",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60),
)
_records_counter = Counter(
    "crm_importer_records_created_total",
    "Records created by the importer.",
    ["module_type"],
)
_options_counter = Counter(
    "crm_importer_options_created_total",
    "Field options created while importing records.",
)
_values_counter = Counter(
    "crm_importer_values_created_total",
    "Record values written by the importer.",
)
_unmatched_counter = Counter(
    "crm_importer_unmatched_columns_total",
    "Spreadsheet columns that matched no tenant field.",
)


def record_import_batch(
    *,
    status: Literal["success", "failure", "dry_run"],
    duration_seconds: float,
) -> None:
    """Capture outcome and duration for one import call."""

    _batch_counter.labels(status=status).inc()
    _batch_duration.observe(duration_seconds)


def record_import_counts(
    *,
    module_type: str,
    records_created: int,
    options_created: int,
    values_created: int,
    unmatched_columns: int,
) -> None:
    """Increment the created-row counters after a committed import."""

    _records_counter.labels(module_type=module_type).inc(records_created)
    _options_counter.inc(options_created)
    _values_counter.inc(values_created)
    _unmatched_counter.inc(unmatched_columns)
