"""Allowlisted config mutation and secret masking for openclaw.json.

Only the dot-paths in ``CONFIG_ALLOWLIST`` may be written remotely, and
only with a value that passes the entry's schema. There is no wildcard or
prefix matching.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any

REDACTED = "[REDACTED]"
SECRET_KEYWORDS = ("token", "password", "api_key", "apikey", "api-key", "secret", "auth", "credentials", "private")


@dataclass(frozen=True)
class ConfigAllowlistEntry:
    path: str
    type: str  # string | number | boolean
    min: float | None = None
    max: float | None = None
    enum: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.enum is not None:
            data["enum"] = list(self.enum)
        return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    error: str | None = None


CONFIG_ALLOWLIST: tuple[ConfigAllowlistEntry, ...] = (
    ConfigAllowlistEntry("model", "string"),
    ConfigAllowlistEntry("gateway.port", "number", min=1, max=65535),
    ConfigAllowlistEntry("gateway.enabled", "boolean"),
    ConfigAllowlistEntry("log.level", "string", enum=("debug", "info", "warn", "error")),
    ConfigAllowlistEntry("agents.defaults.model", "string"),
)

_BY_PATH = {entry.path: entry for entry in CONFIG_ALLOWLIST}


def is_path_allowed(path: str) -> bool:
    return path in _BY_PATH


def get_schema(path: str) -> ConfigAllowlistEntry | None:
    return _BY_PATH.get(path)


def _format_bound(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def validate_value(path: str, value: Any) -> ValidationResult:
    """Check ``value`` against the allowlist schema for ``path``. Never raises."""
    schema = get_schema(path)
    if schema is None:
        return ValidationResult(ok=False, error="Path not allowed")

    if schema.type == "string":
        if not isinstance(value, str):
            return ValidationResult(ok=False, error="Must be a string")
        if schema.enum is not None and value not in schema.enum:
            return ValidationResult(ok=False, error=f"Must be one of: {', '.join(schema.enum)}")
        return ValidationResult(ok=True)

    if schema.type == "number":
        # bool is an int subclass but is not a number here
        if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
            return ValidationResult(ok=False, error="Must be a number")
        if schema.min is not None and value < schema.min:
            return ValidationResult(ok=False, error=f"Must be >= {_format_bound(schema.min)}")
        if schema.max is not None and value > schema.max:
            return ValidationResult(ok=False, error=f"Must be <= {_format_bound(schema.max)}")
        return ValidationResult(ok=True)

    if schema.type == "boolean":
        if not isinstance(value, bool):
            return ValidationResult(ok=False, error="Must be true or false")
        return ValidationResult(ok=True)

    return ValidationResult(ok=False, error="Unknown type")


def get_at_path(obj: Any, path: str) -> Any:
    """Value at a dot-path, or None when any segment is missing."""
    current = obj
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def set_at_path(obj: dict[str, Any], path: str, value: Any) -> None:
    """Write ``value`` at a dot-path, mutating ``obj``.

    Missing intermediates are created. An intermediate that exists but is not
    an object (a string, number, list or null) is replaced with ``{}``.
    """
    parts = path.split(".")
    current = obj
    for key in parts[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[parts[-1]] = value


def affects_gateway(path: str) -> bool:
    """Whether a write to ``path`` warrants a gateway restart (advisory only)."""
    return path == "gateway" or path.startswith("gateway.")


def is_secret_key(key: str) -> bool:
    lower = key.lower()
    return any(keyword in lower for keyword in SECRET_KEYWORDS)


def mask_secrets(value: Any) -> Any:
    """Return a copy of ``value`` with every secret-looking key's value redacted.

    A secret key holding an object is replaced wholesale, not recursed into.
    """
    if isinstance(value, list):
        return [mask_secrets(item) for item in value]
    if not isinstance(value, dict):
        return value
    return {key: REDACTED if is_secret_key(key) else mask_secrets(item) for key, item in value.items()}
