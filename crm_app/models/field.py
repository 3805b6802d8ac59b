# crm_app/models/field.py

from enum import Enum as PyEnum

from sqlalchemy import Enum, Index, text
from sqlalchemy.orm import validates

from crm_app.utils.normalize import canonical_text, comparison_key

from .base import BaseModel, db

DEFAULT_MODULE_TYPE = "lead"
OPTION_TEXT_MAX_LENGTH = 255


class FieldType(PyEnum):
    """Declared type of a tenant-defined field"""

    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    DATE = "date"
    LOCATION = "location"
    DROPDOWN = "dropdown"
    STATUS = "status"
    MULTISELECT = "multiselect"
    ASSIGNED_USER = "assigned_user"
    CHECKBOX = "checkbox"


class Field(BaseModel):
    """Schema column configured by a tenant for one module (leads, referrals, ...)"""

    __tablename__ = "fields"

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    module_type = db.Column(db.String(50), nullable=False, default=DEFAULT_MODULE_TYPE)
    display_name = db.Column(db.String(200), nullable=False)
    field_type = db.Column(
        Enum(FieldType, name="field_type_enum"),
        nullable=False,
        default=FieldType.TEXT,
    )
    display_order = db.Column(db.Integer, nullable=False, default=0)

    organization = db.relationship("Organization", back_populates="fields")
    options = db.relationship(
        "FieldOption",
        back_populates="field",
        cascade="all, delete-orphan",
        order_by="FieldOption.id",
    )

    __table_args__ = (Index("idx_field_org_module", "organization_id", "module_type", "display_order"),)

    def __repr__(self):
        return f"<Field {self.display_name} ({self.field_type.value})>"

    def active_options(self):
        """Options that have not been soft-deleted"""
        return [option for option in self.options if not option.is_deleted]


class FieldOption(BaseModel):
    """
    Allowed value for a dropdown/status/multiselect field.

    ``option_key`` holds the case-folded form of ``option_text`` so the partial
    unique index rejects case-insensitive duplicates among live options.
    """

    __tablename__ = "field_options"

    id = db.Column(db.Integer, primary_key=True)
    field_id = db.Column(db.Integer, db.ForeignKey("fields.id", ondelete="CASCADE"), nullable=False, index=True)
    option_text = db.Column(db.String(OPTION_TEXT_MAX_LENGTH), nullable=False)
    option_key = db.Column(db.String(OPTION_TEXT_MAX_LENGTH), nullable=False)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    field = db.relationship("Field", back_populates="options")

    __table_args__ = (
        Index(
            "uq_field_option_key_active",
            "field_id",
            "option_key",
            unique=True,
            sqlite_where=text("is_deleted = 0"),
            postgresql_where=text("is_deleted = false"),
        ),
    )

    def __repr__(self):
        return f"<FieldOption {self.option_text} field={self.field_id}>"

    @validates("option_text")
    def validate_option_text(self, key, value):
        """Canonicalize option text and keep the comparison key in sync"""
        value = canonical_text(value)
        if not value:
            raise ValueError("Option text cannot be blank")
        self.option_key = comparison_key(value)
        return value
