"""Whole-file JSON stores under the data directory.

Every store is read-modify-write of the entire file with no locking:
concurrent writers resolve as last-write-wins. A missing or unreadable
file reads as the empty collection.
"""

import json
from pathlib import Path
from typing import Any

from mission_control.observability import get_logger

logger = get_logger(__name__)


def read_json(path: Path, default: Any) -> Any:
    """Parse ``path``, returning ``default`` when it is missing or malformed."""
    try:
        with path.open(encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as exc:
        logger.warning("json_store_unreadable", path=str(path), error=str(exc))
        return default


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


class WorkflowStore:
    """``workflows.json``: ``{"workflows": [...]}``."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> list[dict[str, Any]]:
        data = read_json(self._path, {})
        workflows = data.get("workflows") if isinstance(data, dict) else None
        if not isinstance(workflows, list):
            return []
        return [w for w in workflows if isinstance(w, dict)]

    def save(self, workflows: list[dict[str, Any]]) -> None:
        write_json(self._path, {"workflows": workflows})


class NotificationStore:
    """``notifications.json``: a bare list, newest first."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> list[dict[str, Any]]:
        data = read_json(self._path, [])
        if not isinstance(data, list):
            return []
        return [n for n in data if isinstance(n, dict)]

    def save(self, notifications: list[dict[str, Any]]) -> None:
        write_json(self._path, notifications)


class DisabledSkillsStore:
    """``disabled-skills.json``: ``{"disabled": [...]}``."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> list[str]:
        data = read_json(self._path, {})
        disabled = data.get("disabled") if isinstance(data, dict) else None
        if not isinstance(disabled, list):
            return []
        return [str(item) for item in disabled]

    def save(self, disabled: list[str]) -> None:
        write_json(self._path, {"disabled": list(disabled)})


class ConfigFile:
    """The agent runtime's ``openclaw.json``.

    Unlike the stores above, a malformed file is an error here: the
    caller must not overwrite a config it could not parse.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return str(self._path)

    def exists(self) -> bool:
        return self._path.is_file()

    def read(self) -> dict[str, Any]:
        with self._path.open(encoding="utf-8") as f:
            config = json.load(f)
        if not isinstance(config, dict):
            raise ValueError("config root is not a JSON object")
        return config

    def write(self, config: dict[str, Any]) -> None:
        write_json(self._path, config)
