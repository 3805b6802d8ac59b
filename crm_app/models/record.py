# crm_app/models/record.py

from uuid import uuid4

from sqlalchemy import Index

from .base import BaseModel, db
from .field import DEFAULT_MODULE_TYPE


def generate_record_id():
    """Client-side primary key so bulk inserts know every id up front"""
    return str(uuid4())


class Record(BaseModel):
    """Business entity (lead, referral, ...) owned by a tenant"""

    __tablename__ = "records"

    id = db.Column(db.String(36), primary_key=True, default=generate_record_id)
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    module_type = db.Column(db.String(50), nullable=False, default=DEFAULT_MODULE_TYPE)
    display_name = db.Column(db.String(255), nullable=False)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    organization = db.relationship("Organization", back_populates="records")
    values = db.relationship("RecordValue", back_populates="record", cascade="all, delete-orphan")

    __table_args__ = (Index("idx_record_org_module_created", "organization_id", "module_type", "created_at"),)

    def __repr__(self):
        return f"<Record {self.display_name}>"

    def value_for(self, field_id):
        """Return the stored text for ``field_id`` or None"""
        for value in self.values:
            if value.field_id == field_id:
                return value.value
        return None


class RecordValue(BaseModel):
    """Value of one field for one record"""

    __tablename__ = "record_values"

    id = db.Column(db.Integer, primary_key=True)
    record_id = db.Column(db.String(36), db.ForeignKey("records.id", ondelete="CASCADE"), nullable=False)
    field_id = db.Column(db.Integer, db.ForeignKey("fields.id", ondelete="CASCADE"), nullable=False, index=True)
    value = db.Column(db.Text, nullable=False)

    record = db.relationship("Record", back_populates="values")
    field = db.relationship("Field")

    __table_args__ = (db.UniqueConstraint("record_id", "field_id", name="_record_field_uc"),)

    def __repr__(self):
        return f"<RecordValue record={self.record_id} field={self.field_id}>"
