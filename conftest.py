# conftest.py

import os
import tempfile
import uuid

import pytest

# Set testing environment BEFORE importing app so the module-level app uses TestingConfig
os.environ["FLASK_ENV"] = "testing"

from app import create_app  # noqa: E402
from crm_app.models import Field, FieldOption, FieldType, Organization, db  # noqa: E402


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: long-running import scenarios")


@pytest.fixture(scope="function")
def app():
    """Create and configure a test Flask application"""
    # Create a unique temporary database file for each test
    db_fd, temp_db = tempfile.mkstemp(suffix=f"_{uuid.uuid4().hex[:8]}.db")

    try:
        flask_app = create_app(
            {
                "TESTING": True,
                "SQLALCHEMY_DATABASE_URI": f"sqlite:///{temp_db}",
                "SQLALCHEMY_ECHO": False,
                "SECRET_KEY": "test-secret-key-for-testing-only",
                "MONITORING_ENABLED": False,
                "ENABLE_FILE_LOGGING": False,
                "ENABLE_CONSOLE_LOGGING": False,
                "LOG_LEVEL": "DEBUG",
                "IMPORTER_ENABLED": True,
            }
        )

        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            yield flask_app
            db.session.remove()
            db.drop_all()
            db.engine.dispose()
    finally:
        try:
            os.close(db_fd)
        except OSError:
            pass
        try:
            if os.path.exists(temp_db):
                os.unlink(temp_db)
        except OSError:
            pass


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    """Create a test client for the Flask application"""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application"""
    return app.test_cli_runner()


@pytest.fixture
def tenant(app):
    """Active organization that imports are run against"""
    organization = Organization(name="Acme Outreach", slug="acme-outreach", is_active=True)
    db.session.add(organization)
    db.session.commit()
    return organization


@pytest.fixture
def inactive_tenant(app):
    organization = Organization(name="Dormant Org", slug="dormant-org", is_active=False)
    db.session.add(organization)
    db.session.commit()
    return organization


@pytest.fixture
def field_factory(tenant):
    """Create tenant fields (with options for select types)"""
    created = []

    def _factory(
        display_name,
        field_type=FieldType.TEXT,
        *,
        options=(),
        organization=None,
        module_type="lead",
        display_order=None,
    ):
        field = Field(
            organization_id=(organization or tenant).id,
            module_type=module_type,
            display_name=display_name,
            field_type=field_type,
            display_order=len(created) if display_order is None else display_order,
        )
        for option_text in options:
            field.options.append(FieldOption(option_text=option_text))
        db.session.add(field)
        db.session.commit()
        created.append(field)
        return field

    return _factory


@pytest.fixture
def lead_fields(field_factory):
    """A typical lead schema: plain fields plus one of each select variant"""
    return {
        "email": field_factory("Email", FieldType.EMAIL),
        "phone": field_factory("Phone Number", FieldType.PHONE),
        "county": field_factory("County", FieldType.DROPDOWN, options=("Jackson", "Clay")),
        "services": field_factory("Services", FieldType.MULTISELECT, options=("Intake", "Transport")),
        "status": field_factory("Status", FieldType.STATUS, options=("New", "Contacted")),
    }
