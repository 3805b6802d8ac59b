import json
import logging

from config.base import _coerce_bool, _parse_header_list
from config.validation import validate_environment
from crm_app.importer import IMPORTER_EXTENSION_KEY, ImportSettings, import_records
from crm_app.utils.logging_config import JSONFormatter, setup_logging


def test_importer_registered_on_app(app):
    state = app.extensions[IMPORTER_EXTENSION_KEY]
    assert state["enabled"] is True
    assert isinstance(state["settings"], ImportSettings)
    assert "importer" in app.cli.commands


def test_metrics_endpoint_disabled_by_default(client):
    assert client.get("/metrics").status_code == 404


def test_metrics_endpoint_exposes_importer_counters(tmp_path, tenant):
    from app import create_app
    from crm_app.models import db

    import_records(tenant.id, [{"Name": "Acme"}])

    metrics_app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'metrics.db'}",
            "MONITORING_ENABLED": True,
            "ENABLE_CONSOLE_LOGGING": False,
        }
    )
    with metrics_app.app_context():
        response = metrics_app.test_client().get("/metrics")
        db.engine.dispose()

    assert response.status_code == 200
    assert b"crm_importer_batches_total" in response.data
    assert b"crm_importer_records_created_total" in response.data


def test_json_formatter_includes_extra_fields():
    record = logging.makeLogRecord(
        {"name": "app", "levelname": "INFO", "msg": "Imported %s records", "args": (3,), "importer_tenant_id": 7}
    )
    payload = json.loads(JSONFormatter(app_name="crm").format(record))

    assert payload["message"] == "Imported 3 records"
    assert payload["importer_tenant_id"] == 7
    assert payload["app"] == "crm"


def test_setup_logging_is_idempotent(app, tmp_path):
    app.config.update(
        {
            "ENABLE_CONSOLE_LOGGING": True,
            "ENABLE_FILE_LOGGING": True,
            "LOG_DIR": str(tmp_path),
            "LOG_FORMAT": "text",
        }
    )
    setup_logging(app)
    setup_logging(app)

    handlers = [handler for handler in app.logger.handlers if getattr(handler, "_crm_app_handler", False)]
    assert len(handlers) == 2
    assert (tmp_path / "app.log").exists()

    app.config.update({"ENABLE_CONSOLE_LOGGING": False, "ENABLE_FILE_LOGGING": False})
    setup_logging(app)


def test_config_helpers():
    assert _coerce_bool("Yes") is True
    assert _coerce_bool("off", default=True) is False
    assert _coerce_bool("maybe", default=True) is True
    assert _parse_header_list(" Agency, agency ,Org ") == ("Agency", "Org")
    assert _parse_header_list("", default=("Name",)) == ("Name",)


def test_validate_environment_flags_bad_importer_settings(monkeypatch):
    monkeypatch.setenv("IMPORTER_MAX_ROWS", "lots")
    monkeypatch.delenv("IMPORTER_PROGRESS_INTERVAL", raising=False)
    monkeypatch.delenv("LOG_FORMAT", raising=False)

    is_valid, errors = validate_environment("development")

    assert is_valid is False
    assert errors == ["IMPORTER_MAX_ROWS must be a positive integer"]


def test_validate_environment_production_requires_database(monkeypatch):
    for name in ("IMPORTER_MAX_ROWS", "IMPORTER_PROGRESS_INTERVAL", "LOG_FORMAT", "DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SECRET_KEY", "a-real-secret")

    is_valid, errors = validate_environment("production")

    assert is_valid is False
    assert any("DATABASE_URL" in error for error in errors)
