"""
CLI commands for running record imports from already-parsed rows.

Rows are read from a JSON array of header → value objects, the format the
upstream spreadsheet parser emits.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
from flask import current_app
from flask.cli import with_appcontext

from crm_app.models import Organization, db

from .errors import ImporterError
from .schema_index import SqlSchemaReader, build_schema_index
from .service import ImportSummary, import_records
from .settings import get_import_settings


@click.group(name="importer")
def importer_cli():
    """Record importer commands."""


def get_disabled_importer_group() -> click.Group:
    """
    Return a minimal command group that informs the operator the importer is disabled.
    """

    @click.group(name="importer", invoke_without_command=True)
    def disabled_group():
        raise click.ClickException("Importer commands are unavailable because IMPORTER_ENABLED=false.")

    return disabled_group


def _resolve_organization(tenant: str) -> Organization:
    token = tenant.strip()
    organization = None
    if token.isdigit():
        organization = Organization.find_by_id(int(token))
    if organization is None:
        organization = Organization.find_by_slug(token)
    if organization is None:
        raise click.ClickException(f"Organization '{tenant}' was not found.")
    return organization


def _load_rows(file_path: Path) -> list[dict[str, Any]]:
    try:
        payload = json.loads(file_path.read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"{file_path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, list) or not all(isinstance(row, dict) for row in payload):
        raise click.ClickException(f"{file_path} must contain a JSON array of objects (one per row).")
    return payload


def _format_summary(organization: Organization, summary: ImportSummary) -> str:
    unmatched = ", ".join(summary.unmatched_columns) if summary.unmatched_columns else "none"
    ignored = ", ".join(summary.ignored_columns) if summary.ignored_columns else "none"
    rejected = ", ".join(summary.rejected_option_columns) if summary.rejected_option_columns else "none"
    lines = [
        f"Import for {organization.slug} completed (dry_run={summary.dry_run}).",
        f"  rows_processed     : {summary.rows_processed}",
        f"  rows_skipped_blank : {summary.rows_skipped_blank}",
        f"  records_created    : {summary.records_created}",
        f"  values_created     : {summary.values_created}",
        f"  options_created    : {summary.options_created}",
        f"  unmatched_columns  : {unmatched}",
        f"  ignored_columns    : {ignored}",
        f"  rejected_options   : {rejected}",
    ]
    for anomaly in summary.schema_anomalies:
        lines.append(f"  schema_anomaly     : {anomaly.message}")
    return "\n".join(lines)


@importer_cli.command("records")
@click.option("--tenant", "tenant", required=True, help="Organization id or slug.")
@click.option(
    "--file",
    "file_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON array of parsed rows.",
)
@click.option("--module", "module_type", default=None, help="Record module (defaults to IMPORTER_DEFAULT_MODULE).")
@click.option("--dry-run", is_flag=True, default=False, help="Plan the import without writing anything.")
@click.option(
    "--summary-format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
)
@with_appcontext
def import_records_command(tenant, file_path, module_type, dry_run, summary_format):
    """Import parsed rows as records for an organization."""

    organization = _resolve_organization(tenant)
    rows = _load_rows(file_path)

    try:
        summary = import_records(organization.id, rows, module_type=module_type, dry_run=dry_run)
    except ImporterError as exc:
        raise click.ClickException(str(exc)) from exc

    current_app.logger.info(
        "CLI import for %s finished: %s records created.",
        organization.slug,
        summary.records_created,
        extra={"importer_tenant_id": organization.id, "importer_dry_run": dry_run},
    )
    if summary_format == "json":
        click.echo(json.dumps(summary.as_dict(), sort_keys=True))
    else:
        click.echo(_format_summary(organization, summary))


@importer_cli.command("schema")
@click.option("--tenant", "tenant", required=True, help="Organization id or slug.")
@click.option("--module", "module_type", default=None, help="Record module (defaults to IMPORTER_DEFAULT_MODULE).")
@with_appcontext
def show_schema_command(tenant, module_type):
    """List the fields imported columns are matched against."""

    organization = _resolve_organization(tenant)
    module = module_type or get_import_settings().default_module
    index = build_schema_index(SqlSchemaReader(db.session).load_fields(organization.id, module))

    if not len(index):
        click.echo(f"No fields configured for {organization.slug} ({module}).")
        return
    click.echo(f"Fields for {organization.slug} ({module}):")
    for indexed in index.fields.values():
        definition = indexed.definition
        suffix = f" [{len(indexed.options)} options]" if indexed.is_select else ""
        click.echo(f"  - {definition.display_name} ({definition.field_type.value}){suffix}")
    for anomaly in index.anomalies:
        click.echo(f"Warning: {anomaly.message}")
