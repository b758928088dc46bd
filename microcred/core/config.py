from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

LogLevel = Literal["debug", "info", "warning", "error"]

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getbool(name: str, default: str) -> bool:
    raw = _getenv(name, default).lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ValueError(f"{name} must be true|false (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    log_level: LogLevel
    log_json: bool
    # reject expires_at <= issued_at at issuance time
    strict_expiry: bool
    key_dir: Path


def load_settings() -> Settings:
    log_level_raw = _getenv("MICROCRED_LOG_LEVEL", "info").lower()

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"MICROCRED_LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    key_dir_raw = _getenv("MICROCRED_KEY_DIR", "issuer_data")
    if not key_dir_raw:
        raise ValueError("MICROCRED_KEY_DIR must not be empty")

    return Settings(  # type: ignore[arg-type]
        log_level=log_level_raw,
        log_json=_getbool("MICROCRED_LOG_JSON", "false"),
        strict_expiry=_getbool("MICROCRED_STRICT_EXPIRY", "true"),
        key_dir=Path(key_dir_raw),
    )
