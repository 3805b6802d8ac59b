"""
Record importer package.

Maps parsed spreadsheet rows onto a tenant's field schema and persists them as
records. ``init_importer`` registers the CLI according to configuration.
"""

from __future__ import annotations

from flask import Flask

from .cli import get_disabled_importer_group, importer_cli
from .errors import ImporterError, ImportPersistenceError, ImportTooLargeError, TenantNotFoundError
from .planner import ImportPlan, ImportProgress, RowPlan, plan_rows, resolve_display_name
from .reconcile import OptionCreateRequest, reconcile_options
from .schema_index import FieldDefinition, FieldSchemaIndex, SchemaAnomaly, SqlSchemaReader, build_schema_index
from .service import ImportSummary, import_records
from .settings import ImportSettings, get_import_settings, is_importer_enabled

IMPORTER_EXTENSION_KEY = "importer"

__all__ = [
    "init_importer",
    "IMPORTER_EXTENSION_KEY",
    "FieldDefinition",
    "FieldSchemaIndex",
    "ImportPersistenceError",
    "ImportPlan",
    "ImportProgress",
    "ImportSettings",
    "ImportSummary",
    "ImportTooLargeError",
    "ImporterError",
    "OptionCreateRequest",
    "RowPlan",
    "SchemaAnomaly",
    "SqlSchemaReader",
    "TenantNotFoundError",
    "build_schema_index",
    "get_import_settings",
    "is_importer_enabled",
    "import_records",
    "plan_rows",
    "reconcile_options",
    "resolve_display_name",
]


def _set_cli(app: Flask, enabled: bool) -> None:
    """Register the appropriate CLI group based on flag state."""
    # Avoid duplicate registrations when running tests
    command_name = importer_cli.name
    if command_name in app.cli.commands:
        app.cli.commands.pop(command_name)

    if enabled:
        app.cli.add_command(importer_cli)
    else:
        app.cli.add_command(get_disabled_importer_group())


def init_importer(app: Flask) -> None:
    """
    Register importer CLI commands and record importer state in ``app.extensions``.
    """
    enabled = is_importer_enabled(app)
    settings = get_import_settings(app)
    app.extensions[IMPORTER_EXTENSION_KEY] = {"enabled": enabled, "settings": settings}
    _set_cli(app, enabled=enabled)

    if not enabled:
        app.logger.info("Importer disabled via IMPORTER_ENABLED flag; skipping registration.")
        return

    app.logger.info(
        "Importer enabled (default module=%s, max rows=%s).",
        settings.default_module,
        settings.max_rows,
    )
