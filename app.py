# app.py

import logging
import os

from dotenv import load_dotenv
from flask import Flask, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import event

# Load environment variables from .env file first
load_dotenv()

# Module imports after load_dotenv() - E402 is intentional
from config import DevelopmentConfig, ProductionConfig, TestingConfig  # noqa: E402
from config.monitoring import (  # noqa: E402
    DevelopmentMonitoringConfig,
    ProductionMonitoringConfig,
    TestingMonitoringConfig,
)
from config.validation import validate_and_exit  # noqa: E402
from crm_app.importer import init_importer  # noqa: E402
from crm_app.models import db  # noqa: E402
from crm_app.utils.logging_config import setup_logging  # noqa: E402

logger = logging.getLogger(__name__)


def _configure_sqlite_connection_factory(*, enable_foreign_keys: bool):
    """Return a connection hook applying concurrency-friendly pragmas."""

    def _configure_sqlite_connection(dbapi_connection, connection_record):  # pragma: no cover - instrumentation
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute("PRAGMA busy_timeout=5000")
            if enable_foreign_keys:
                cursor.execute("PRAGMA foreign_keys=ON")
        except Exception as exc:
            logger.warning("Failed to apply SQLite PRAGMAs: %s", exc)
        finally:
            cursor.close()

    return _configure_sqlite_connection


def _load_config(app, flask_env):
    if flask_env == "production":
        app.config.from_object(ProductionConfig)
        app.config.from_object(ProductionMonitoringConfig)
    elif flask_env == "testing":
        app.config.from_object(TestingConfig)
        app.config.from_object(TestingMonitoringConfig)
    else:
        app.config.from_object(DevelopmentConfig)
        app.config.from_object(DevelopmentMonitoringConfig)


def _init_metrics_endpoint(app):
    if not app.config.get("MONITORING_ENABLED", False):
        return

    def metrics():
        return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)

    app.add_url_rule(app.config.get("METRICS_ENDPOINT", "/metrics"), "metrics", metrics)


def create_app(config_overrides=None):
    """
    Build the Flask application.

    ``config_overrides`` is applied after the environment config and before
    extensions are initialised, so tests can point the app at their own database.
    """
    app = Flask(__name__)

    flask_env = os.environ.get("FLASK_ENV", "development")
    if flask_env == "production":
        validate_and_exit(flask_env)

    _load_config(app, flask_env)
    if config_overrides:
        app.config.update(config_overrides)

    db.init_app(app)
    setup_logging(app)
    init_importer(app)
    _init_metrics_endpoint(app)

    with app.app_context():
        engine = db.engine
        if engine.url.drivername.startswith("sqlite"):
            if not getattr(engine, "_sqlite_pragmas_configured", False):
                pragma_hook = _configure_sqlite_connection_factory(
                    enable_foreign_keys=not app.config.get("TESTING", False)
                )
                event.listen(engine, "connect", pragma_hook)
                engine._sqlite_pragmas_configured = True  # type: ignore[attr-defined]
        # Create the database tables only if not in testing mode
        if not app.config.get("TESTING", False):
            db.create_all()

    return app


app = create_app()


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port)
