"""Configured agents joined with live session counts and memory-file activity."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from mission_control.adapters.json_store import read_json
from mission_control.core.aggregation import derive_agent_id
from mission_control.core.interfaces import IOpenClawCli
from mission_control.core.pricing import normalize_model_id
from mission_control.core.timeutil import resolve_zone, to_iso
from mission_control.observability import get_logger
from mission_control.settings import Settings

logger = get_logger(__name__)

ONLINE_WINDOW = timedelta(minutes=5)


def _model_name(value: Any) -> str | None:
    # Model settings appear both as a bare id and as {"primary": id, ...}.
    if isinstance(value, dict):
        value = value.get("primary")
    return value if isinstance(value, str) and value else None


class AgentDirectory:
    """Implements IAgentDirectory from core/interfaces.py.

    Args:
        settings: Provides the runtime config path and default workspace.
        cli: Source of live session rows.
    """

    def __init__(self, settings: Settings, cli: IOpenClawCli) -> None:
        self._settings = settings
        self._cli = cli
        self._zone = resolve_zone(settings.timezone)

    def _session_counts(self, sessions: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
        counts: dict[str, dict[str, Any]] = {}
        for session in sessions:
            agent_id = derive_agent_id(str(session.get("key") or ""))
            entry = counts.setdefault(agent_id, {"count": 0, "latest_model": None, "updated_at": 0})
            entry["count"] += 1
            updated_at = session.get("updatedAt") or 0
            if isinstance(updated_at, (int, float)) and updated_at >= entry["updated_at"]:
                entry["latest_model"] = session.get("model") or entry["latest_model"]
                entry["updated_at"] = updated_at
        return counts

    def _last_activity(self, workspace: Path, now: datetime) -> tuple[str | None, str]:
        today = now.astimezone(self._zone).strftime("%Y-%m-%d")
        memory_file = workspace / "memory" / f"{today}.md"
        try:
            mtime = datetime.fromtimestamp(memory_file.stat().st_mtime, tz=timezone.utc)
        except OSError:
            return None, "offline"
        status = "online" if now - mtime < ONLINE_WINDOW else "offline"
        return to_iso(mtime), status

    async def list_agents(self, now: datetime) -> list[dict[str, Any]]:
        """List agents from ``agents.list``, or a single ``main`` agent when none are configured.

        Args:
            now: Reference time for the online window.

        Returns:
            One dict per agent with id, name, model, workspace, status,
            last_activity, active_sessions and allow_agents.
        """
        config = read_json(self._settings.openclaw_config_path, {})
        if not isinstance(config, dict):
            config = {}
        agents_section = config.get("agents") if isinstance(config.get("agents"), dict) else {}
        defaults = agents_section.get("defaults") if isinstance(agents_section.get("defaults"), dict) else {}

        default_workspace = Path(defaults.get("workspace") or self._settings.workspace_path)
        default_model = _model_name(defaults.get("model"))

        raw_agents = [a for a in agents_section.get("list") or [] if isinstance(a, dict) and a.get("id")]
        if not raw_agents:
            raw_agents = [{"id": "main", "workspace": str(default_workspace)}]

        sessions = await self._cli.sessions_list()
        counts = self._session_counts(sessions or [])

        agents: list[dict[str, Any]] = []
        for raw in raw_agents:
            agent_id = str(raw["id"])
            workspace = Path(raw.get("workspace") or default_workspace)
            last_activity, status = self._last_activity(workspace, now)
            live = counts.get(agent_id, {})
            model = live.get("latest_model") or _model_name(raw.get("model")) or default_model
            subagents = raw.get("subagents") if isinstance(raw.get("subagents"), dict) else {}
            agents.append(
                {
                    "id": agent_id,
                    "name": raw.get("name") or agent_id,
                    "model": normalize_model_id(model) if model else None,
                    "workspace": str(workspace),
                    "status": status,
                    "last_activity": last_activity,
                    "active_sessions": live.get("count", 0),
                    "allow_agents": [str(a) for a in subagents.get("allowAgents") or []],
                }
            )
        return agents
