"""
Lookup from normalized header keys to a tenant's field definitions.

The index is rebuilt for every import call; schema edits between imports must
be visible immediately, so nothing here is cached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from flask import current_app, has_app_context
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from crm_app.models import DEFAULT_MODULE_TYPE, Field, FieldType
from crm_app.utils.normalize import canonical_text, comparison_key, header_key

from .field_types import FieldBehavior, behavior_for

_module_logger = logging.getLogger(__name__)


def _get_logger() -> logging.Logger:
    if has_app_context():
        return current_app.logger
    return _module_logger


@dataclass(frozen=True)
class FieldDefinition:
    """Read-only snapshot of a field and its live option texts."""

    id: int
    display_name: str
    field_type: FieldType
    display_order: int = 0
    options: tuple[str, ...] = ()


@dataclass(frozen=True)
class SchemaAnomaly:
    """Two fields collapsed onto the same normalized name; the later one is used."""

    key: str
    kept_field_id: int
    shadowed_field_id: int
    message: str

    def as_dict(self) -> dict[str, object]:
        return {
            "key": self.key,
            "kept_field_id": self.kept_field_id,
            "shadowed_field_id": self.shadowed_field_id,
            "message": self.message,
        }


@dataclass
class IndexedField:
    definition: FieldDefinition
    behavior: FieldBehavior
    options: dict[str, str] = field(default_factory=dict)

    @property
    def id(self) -> int:
        return self.definition.id

    @property
    def is_select(self) -> bool:
        return self.behavior.is_select


@dataclass
class FieldSchemaIndex:
    """Mapping of ``header_key(display_name)`` to indexed field definitions."""

    fields: dict[str, IndexedField]
    anomalies: tuple[SchemaAnomaly, ...] = ()

    def lookup(self, header: object | None) -> IndexedField | None:
        key = header_key(header)
        if not key:
            return None
        return self.fields.get(key)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, header: object) -> bool:
        return self.lookup(header) is not None


def _option_map(options: Iterable[str]) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for option in options:
        text = canonical_text(option)
        if not text:
            continue
        mapping.setdefault(comparison_key(text), text)
    return mapping


def build_schema_index(definitions: Sequence[FieldDefinition]) -> FieldSchemaIndex:
    """
    Index ``definitions`` by normalized display name.

    Duplicate normalized names are a configuration anomaly: the last definition
    wins and an anomaly is recorded and logged rather than failing the import.
    """

    fields: dict[str, IndexedField] = {}
    anomalies: list[SchemaAnomaly] = []

    for definition in definitions:
        key = header_key(definition.display_name)
        if not key:
            continue
        previous = fields.get(key)
        if previous is not None:
            anomaly = SchemaAnomaly(
                key=key,
                kept_field_id=definition.id,
                shadowed_field_id=previous.id,
                message=(
                    f"Fields '{previous.definition.display_name}' ({previous.id}) and "
                    f"'{definition.display_name}' ({definition.id}) normalize to the same name; "
                    f"using field {definition.id}."
                ),
            )
            anomalies.append(anomaly)
            _get_logger().warning(
                "Field schema anomaly: %s",
                anomaly.message,
                extra={"importer_schema_key": key, "importer_field_ids": (previous.id, definition.id)},
            )
        fields[key] = IndexedField(
            definition=definition,
            behavior=behavior_for(definition.field_type),
            options=_option_map(definition.options),
        )

    return FieldSchemaIndex(fields=fields, anomalies=tuple(anomalies))


class SqlSchemaReader:
    """Load a tenant's field definitions through an explicit SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def load_fields(self, tenant_id: int, module_type: str = DEFAULT_MODULE_TYPE) -> list[FieldDefinition]:
        stmt = (
            select(Field)
            .where(Field.organization_id == tenant_id, Field.module_type == module_type)
            .options(selectinload(Field.options))
            .order_by(Field.display_order, Field.id)
        )
        definitions: list[FieldDefinition] = []
        for field_row in self.session.scalars(stmt):
            definitions.append(
                FieldDefinition(
                    id=field_row.id,
                    display_name=field_row.display_name,
                    field_type=field_row.field_type,
                    display_order=field_row.display_order or 0,
                    options=tuple(option.option_text for option in field_row.active_options()),
                )
            )
        return definitions
