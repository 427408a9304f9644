"""Async wrapper around the external ``openclaw`` CLI.

Every call runs ``openclaw <args> --json`` as a child process with a hard
timeout and parses stdout as JSON. A missing binary, non-zero exit,
timeout or malformed output is logged and reported as "no data"; nothing
here raises to the caller.
"""

import asyncio
import json
from typing import Any

from mission_control.observability import get_logger
from mission_control.settings import Settings

logger = get_logger(__name__)


class OpenClawCli:
    """Implements IOpenClawCli from core/interfaces.py.

    Args:
        settings: Provides ``openclaw_bin`` and ``cli_timeout_seconds``.
    """

    def __init__(self, settings: Settings) -> None:
        self._bin = settings.openclaw_bin
        self._timeout = settings.cli_timeout_seconds

    async def run_json(self, *args: str) -> Any | None:
        """Run the CLI and decode its stdout.

        Args:
            args: Arguments after the binary name, e.g. ``("cron", "list", "--json")``.

        Returns:
            The decoded JSON value, or None on any failure.
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                self._bin,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            logger.warning("openclaw_cli_unavailable", args=list(args), error=str(exc))
            return None

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("openclaw_cli_timeout", args=list(args), timeout_seconds=self._timeout)
            return None

        if proc.returncode != 0:
            logger.warning("openclaw_cli_failed", args=list(args), returncode=proc.returncode)
            return None

        try:
            return json.loads(stdout.decode("utf-8", errors="replace"))
        except json.JSONDecodeError as exc:
            logger.warning("openclaw_cli_bad_json", args=list(args), error=str(exc))
            return None

    async def sessions_list(self) -> list[dict[str, Any]] | None:
        """Live sessions from ``openclaw sessions list --json``; None when unavailable."""
        data = await self.run_json("sessions", "list", "--json")
        if not isinstance(data, dict):
            return None
        sessions = data.get("sessions")
        if not isinstance(sessions, list):
            return []
        return [s for s in sessions if isinstance(s, dict)]

    async def cron_list(self) -> list[dict[str, Any]]:
        """All cron jobs, enabled or not, from ``openclaw cron list --json --all``."""
        data = await self.run_json("cron", "list", "--json", "--all")
        if not isinstance(data, dict):
            return []
        jobs = data.get("jobs")
        if not isinstance(jobs, list):
            return []
        return [j for j in jobs if isinstance(j, dict)]
