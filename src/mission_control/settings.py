"""Service settings for the Mission Control dashboard API."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for the Mission Control service.

    Every value can be overridden from the environment with the
    ``MISSION_CONTROL_`` prefix, e.g. ``MISSION_CONTROL_DATA_DIR=/srv/mc``.
    """

    service_name: str = "mission-control"

    # Local state (JSON stores and SQLite databases)
    data_dir: Path = Path("data")

    # Agent runtime locations
    openclaw_dir: Path = Field(default_factory=lambda: Path.home() / ".openclaw")
    openclaw_workspace: Path | None = None
    openclaw_bin: str = "openclaw"
    cli_timeout_seconds: float = 10.0

    # Cost reporting
    budget_usd: float = 100.0

    # Authentication
    admin_password: str = ""
    auth_secret: str = ""
    auth_cookie_name: str = "mc_auth"
    auth_cookie_max_age_seconds: int = 60 * 60 * 24 * 7
    login_max_attempts: int = 5
    login_window_seconds: int = 15 * 60
    login_lockout_seconds: int = 15 * 60

    # Shared reports
    report_expiry_days: int = 30

    # Model playground
    playground_runs_per_minute: int = 10
    playground_max_models: int = 5
    playground_max_prompt_chars: int = 32_000
    playground_share_expiry_days: int = 30
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_timeout_seconds: float = 90.0
    openrouter_max_tokens: int = 4096
    public_origin: str = "http://localhost:8000"

    # Activity log
    activity_retention_days: int = 30

    # Hour-of-day bucketing (cron clustering, analytics heatmap)
    timezone: str = "UTC"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = SettingsConfigDict(env_prefix="MISSION_CONTROL_")

    @property
    def workspace_path(self) -> Path:
        """Default agent workspace directory."""
        return self.openclaw_workspace or self.openclaw_dir / "workspace"

    @property
    def openclaw_config_path(self) -> Path:
        """Agent runtime configuration file (openclaw.json)."""
        return self.openclaw_dir / "openclaw.json"

    @property
    def workflows_path(self) -> Path:
        return self.data_dir / "workflows.json"

    @property
    def notifications_path(self) -> Path:
        return self.data_dir / "notifications.json"

    @property
    def disabled_skills_path(self) -> Path:
        return self.data_dir / "disabled-skills.json"

    @property
    def auth_enabled(self) -> bool:
        """The session guard is active only when a cookie secret is configured."""
        return bool(self.auth_secret)
