from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dynaconf import Dynaconf

PACKAGE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_DIR.parent


def _resolve_config_dir() -> Path | None:
    env_override = os.environ.get("CLINIDEX_CONFIG_DIR")
    candidates: list[Path] = []

    if env_override:
        candidates.append(Path(env_override).expanduser())

    candidates.append(PROJECT_ROOT / "config")
    candidates.append(PROJECT_ROOT.parent / "config")

    for candidate in candidates:
        expanded = candidate.expanduser()
        if expanded.is_dir():
            return expanded.resolve()

    if env_override:
        raise RuntimeError(
            f"CLINIDEX_CONFIG_DIR points to a missing directory: {env_override}"
        )
    # Running from an installed wheel without a config directory is fine;
    # the in-code defaults below cover every key.
    return None


CONFIG_DIR = _resolve_config_dir()


DEFAULTS: dict[str, Any] = {
    "APP_NAME": "Clinidex",
    "LOG_LEVEL": "INFO",
    "APP": {
        "host": "127.0.0.1",
        "port": 5000,
    },
    "DATABASE": {
        "path": "data/clinidex.sqlite3",
        "pool_size": 10,
        "pool_acquire_timeout": 10,
        "timeout": 5.0,
        "busy_timeout": 5000,
        "mmap_size": 10 * 1024 * 1024,
    },
    "SEARCH": {
        "default_page_size": 20,
        "max_page_size": 50,
        "ranking": {
            "title_weight": 1.0,
            "keyword_weight": 0.4,
        },
        "autocomplete": {
            "min_query_length": 3,
            "limit": 5,
        },
    },
    "CAPABILITIES": {
        "ttl": 24 * 60 * 60,
    },
    "RATE_LIMIT": {
        "enabled": True,
        "max_requests": 50,
        "window": 60,
        "path_prefix": "/search",
    },
}

_settings_files: list[Path] = []
if CONFIG_DIR is not None:
    _settings_files = [
        CONFIG_DIR / "settings.toml",
        CONFIG_DIR / ".secrets.toml",
        CONFIG_DIR / "settings.local.toml",
    ]

settings = Dynaconf(
    envvar_prefix="CLINIDEX",
    settings_files=_settings_files,
    environments=True,
    env_switcher="CLINIDEX_ENV",
    load_dotenv=True,
    envvar_parse_values=True,
    merge_enabled=True,
    defaults=DEFAULTS,
)


_MISSING = object()


def _ensure_defaults(prefix: str, defaults: dict[str, Any]) -> None:
    for key, value in defaults.items():
        dotted = f"{prefix}.{key}" if prefix else key
        existing = settings.get(dotted, _MISSING)

        if isinstance(value, dict):
            if existing is _MISSING:
                settings.set(dotted, value.copy())
                existing = settings.get(dotted, _MISSING)
            if isinstance(existing, Mapping):
                _ensure_defaults(dotted, value)
            continue

        if existing is _MISSING:
            settings.set(dotted, value)


_ensure_defaults("", DEFAULTS)


max_page_size = int(settings.get("SEARCH.max_page_size", 0))
if max_page_size <= 0:
    settings.set("SEARCH.max_page_size", DEFAULTS["SEARCH"]["max_page_size"])
    max_page_size = DEFAULTS["SEARCH"]["max_page_size"]

default_page_size = int(settings.get("SEARCH.default_page_size", 0))
if default_page_size <= 0 or default_page_size > max_page_size:
    settings.set("SEARCH.default_page_size", min(20, max_page_size))

__all__ = ["settings"]
