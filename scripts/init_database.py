# scripts/init_database.py

"""
Database initialization script.
This script creates all tables and seeds a demo tenant:
- Default organization (slug: demo-outreach)
- A lead field schema covering plain, dropdown, status and multiselect fields
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import app  # noqa: E402
from crm_app.models import Field, FieldOption, FieldType, Organization, db  # noqa: E402

DEFAULT_ORG_SLUG = "demo-outreach"

LEAD_FIELDS = [
    {"display_name": "Company", "field_type": FieldType.TEXT},
    {"display_name": "Email", "field_type": FieldType.EMAIL},
    {"display_name": "Phone", "field_type": FieldType.PHONE},
    {"display_name": "Address", "field_type": FieldType.LOCATION},
    {"display_name": "County", "field_type": FieldType.DROPDOWN, "options": ["Jackson", "Clay", "Platte"]},
    {
        "display_name": "Services",
        "field_type": FieldType.MULTISELECT,
        "options": ["Intake", "Transport", "Housing"],
    },
    {"display_name": "Status", "field_type": FieldType.STATUS, "options": ["New", "Contacted", "Qualified"]},
]


def create_default_organization():
    """Create the demo organization if it doesn't exist"""
    organization = Organization.query.filter_by(slug=DEFAULT_ORG_SLUG).first()
    if organization:
        return organization, False

    organization = Organization(name="Demo Outreach", slug=DEFAULT_ORG_SLUG, is_active=True)
    db.session.add(organization)
    db.session.commit()
    return organization, True


def create_lead_fields(organization):
    """Create the demo lead schema, skipping fields that already exist"""
    existing = {
        field.display_name
        for field in Field.query.filter_by(organization_id=organization.id, module_type="lead").all()
    }
    created = 0
    for order, field_data in enumerate(LEAD_FIELDS):
        if field_data["display_name"] in existing:
            continue
        field = Field(
            organization_id=organization.id,
            module_type="lead",
            display_name=field_data["display_name"],
            field_type=field_data["field_type"],
            display_order=order,
        )
        for option_text in field_data.get("options", []):
            field.options.append(FieldOption(option_text=option_text))
        db.session.add(field)
        created += 1

    db.session.commit()
    return created


def init_database():
    """Initialize database with demo data"""
    with app.app_context():
        print("Creating database tables...")
        db.create_all()
        print("Database tables created")

        print("Creating default organization...")
        organization, was_created = create_default_organization()
        status = "created" if was_created else "already exists"
        print(f"Default organization {status}: {organization.name} (slug: {organization.slug})")

        print("Creating lead fields...")
        created = create_lead_fields(organization)
        print(f"Created {created} lead fields")

        print("\nDatabase initialization complete!")
        print("\nNext steps:")
        print(f"  1. Inspect the schema: flask --app app importer schema --tenant {organization.slug}")
        print(f"  2. Import rows: flask --app app importer records --tenant {organization.slug} --file rows.json")


if __name__ == "__main__":
    init_database()
