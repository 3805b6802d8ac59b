# crm_app/models/__init__.py
"""
Database models package
"""

from .base import BaseModel, db
from .field import DEFAULT_MODULE_TYPE, OPTION_TEXT_MAX_LENGTH, Field, FieldOption, FieldType
from .organization import Organization
from .record import Record, RecordValue, generate_record_id

__all__ = [
    "db",
    "BaseModel",
    "DEFAULT_MODULE_TYPE",
    "Field",
    "FieldOption",
    "FieldType",
    "OPTION_TEXT_MAX_LENGTH",
    "Organization",
    "Record",
    "RecordValue",
    "generate_record_id",
]
