# config/base.py
import os


def _coerce_bool(value, default=False):
    """Convert environment-style truthy/falsey values to bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def _coerce_int(value, default, *, minimum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if minimum is not None and number < minimum:
        return default
    return number


def _parse_header_list(value, default=()):
    """
    Parse a comma-separated list of column headers while keeping order and removing duplicates.

    Headers keep their original casing; duplicates are detected case-insensitively.

    Returns:
        tuple[str, ...]: Header names, or ``default`` when nothing usable was given.
    """
    if not value:
        return tuple(default)

    seen = set()
    headers = []
    for raw_item in value.split(","):
        item = raw_item.strip()
        if not item or item.lower() in seen:
            continue
        seen.add(item.lower())
        headers.append(item)
    return tuple(headers) or tuple(default)


class Config:
    _flask_env = os.environ.get("FLASK_ENV", "development")
    _is_production = _flask_env == "production"

    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Only require SECRET_KEY in production mode
    if not SECRET_KEY and _is_production:
        raise ValueError(
            "SECRET_KEY environment variable is required in production. "
            'Generate with: python -c "import secrets; print(secrets.token_hex(32))"'
        )
    if not SECRET_KEY:
        SECRET_KEY = "dev-secret-key-change-in-production"

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Importer configuration
    IMPORTER_ENABLED = _coerce_bool(os.environ.get("IMPORTER_ENABLED"), default=True)
    # Empty means the built-in name aliases
    IMPORTER_NAME_HEADERS = _parse_header_list(os.environ.get("IMPORTER_NAME_HEADERS"))
    IMPORTER_FALLBACK_RECORD_NAME = os.environ.get("IMPORTER_FALLBACK_RECORD_NAME", "Untitled Lead").strip() or (
        "Untitled Lead"
    )
    IMPORTER_DEFAULT_MODULE = os.environ.get("IMPORTER_DEFAULT_MODULE", "lead").strip().lower() or "lead"
    IMPORTER_PROGRESS_INTERVAL = _coerce_int(os.environ.get("IMPORTER_PROGRESS_INTERVAL"), 50, minimum=1)
    IMPORTER_SKIP_BLANK_ROWS = _coerce_bool(os.environ.get("IMPORTER_SKIP_BLANK_ROWS"), default=False)
    IMPORTER_MAX_ROWS = _coerce_int(os.environ.get("IMPORTER_MAX_ROWS"), 10000, minimum=1)


class DevelopmentConfig(Config):
    DEBUG = True
    # Get the project root directory (parent of config directory)
    _config_dir = os.path.dirname(os.path.abspath(__file__))
    _project_root = os.path.dirname(_config_dir)
    instance_path = os.path.join(_project_root, "instance")

    if not os.path.exists(instance_path):
        os.makedirs(instance_path, exist_ok=True)

    # SQLite URI needs forward slashes on Windows
    db_path = os.path.join(instance_path, "crm_dev.db").replace("\\", "/")
    db_uri = f"sqlite:///{db_path}"

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", db_uri)
    SQLALCHEMY_ECHO = _coerce_bool(os.environ.get("SQLALCHEMY_ECHO"), default=False)
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS = {
            "connect_args": {
                "check_same_thread": False,
                "timeout": 5,
            }
        }
    else:
        SQLALCHEMY_ENGINE_OPTIONS = {}


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key-for-testing-only")
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {
            "check_same_thread": False,
            "timeout": 5,
        }
    }
    IMPORTER_ENABLED = True


class ProductionConfig(Config):
    DEBUG = False
    uri = os.environ.get("DATABASE_URL")
    if uri and uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = uri
    SQLALCHEMY_ECHO = False
