"""Importer tuning resolved from Flask configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from flask import current_app, has_app_context

from crm_app.models import DEFAULT_MODULE_TYPE

from .planner import DEFAULT_FALLBACK_NAME, DEFAULT_NAME_HEADERS, DEFAULT_PROGRESS_INTERVAL

DEFAULT_MAX_ROWS = 10000


def _coerce_positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


@dataclass(frozen=True)
class ImportSettings:
    name_headers: tuple[str, ...] = DEFAULT_NAME_HEADERS
    fallback_name: str = DEFAULT_FALLBACK_NAME
    default_module: str = DEFAULT_MODULE_TYPE
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL
    skip_blank_rows: bool = False
    max_rows: int = DEFAULT_MAX_ROWS

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ImportSettings":
        name_headers = tuple(config.get("IMPORTER_NAME_HEADERS") or ()) or DEFAULT_NAME_HEADERS
        return cls(
            name_headers=name_headers,
            fallback_name=config.get("IMPORTER_FALLBACK_RECORD_NAME") or DEFAULT_FALLBACK_NAME,
            default_module=config.get("IMPORTER_DEFAULT_MODULE") or DEFAULT_MODULE_TYPE,
            progress_interval=_coerce_positive_int(
                config.get("IMPORTER_PROGRESS_INTERVAL"), DEFAULT_PROGRESS_INTERVAL
            ),
            skip_blank_rows=bool(config.get("IMPORTER_SKIP_BLANK_ROWS", False)),
            max_rows=_coerce_positive_int(config.get("IMPORTER_MAX_ROWS"), DEFAULT_MAX_ROWS),
        )


def get_import_settings(app=None) -> ImportSettings:
    """Settings for ``app`` (or the current app); defaults outside an app context."""

    if app is not None:
        return ImportSettings.from_config(app.config)
    if has_app_context():
        return ImportSettings.from_config(current_app.config)
    return ImportSettings()


def is_importer_enabled(app=None) -> bool:
    """IMPORTER_ENABLED for ``app`` or the current app."""

    config = app.config if app is not None else current_app.config
    return bool(config.get("IMPORTER_ENABLED", False))
