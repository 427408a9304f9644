"""Pydantic request/response schemas for the Mission Control API.

Request bodies accept the dashboard's camelCase field names (``startDate``,
``suggestionId``, ``modelIds``) as aliases as well as snake_case. Responses
are snake_case throughout.
"""

from collections.abc import Iterable
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mission_control.observability import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class RequestModel(BaseModel):
    """Base for request bodies: accept both alias and field name."""

    model_config = ConfigDict(populate_by_name=True)


def validate_records(model: type[ModelT], records: Iterable[dict[str, Any]], event: str) -> list[ModelT]:
    """Validate stored JSON records one at a time, skipping and logging the ones that fail.

    Args:
        model: Response model each record must satisfy.
        records: Raw dicts read from a JSON store.
        event: Log event name for a skipped record, e.g. ``workflow_record_invalid``.

    Returns:
        The records that validated, in input order.
    """
    valid: list[ModelT] = []
    for record in records:
        try:
            valid.append(model.model_validate(record))
        except ValidationError as exc:
            logger.warning(event, record_id=record.get("id"), errors=exc.error_count())
    return valid


# ---------------------------------------------------------------------------
# Activities and analytics
# ---------------------------------------------------------------------------


class LogActivityRequest(RequestModel):
    """Request body for POST /activities."""

    type: str | None = None
    description: str | None = None
    status: str | None = None
    timestamp: str | None = None
    duration_ms: int | None = Field(default=None, alias="durationMs")
    tokens_used: int | None = Field(default=None, alias="tokensUsed")
    agent: str | None = None
    metadata: dict[str, Any] | None = None


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    timestamp: str
    type: str
    description: str
    status: str
    duration_ms: int | None = None
    tokens_used: int | None = None
    agent: str | None = None
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="metadata_")


class ActivityListResponse(BaseModel):
    activities: list[ActivityResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


class ActivityStatsResponse(BaseModel):
    total: int
    today: int
    this_week: int
    by_type: dict[str, int]
    by_status: dict[str, int]


class DayCount(BaseModel):
    date: str
    count: int


class TypeCount(BaseModel):
    type: str
    count: int


class HourDayCount(BaseModel):
    hour: int
    day: int = Field(description="Weekday with Sunday as 0")
    count: int


class TypeSuccessRate(BaseModel):
    type: str
    total: int
    success: int
    success_rate: float


class AnalyticsResponse(BaseModel):
    by_day: list[DayCount]
    by_type: list[TypeCount]
    by_hour: list[HourDayCount]
    success_rate: float
    average_response_time_ms: float | None
    success_rate_by_type: list[TypeSuccessRate]


# ---------------------------------------------------------------------------
# Costs
# ---------------------------------------------------------------------------


class AgentCost(BaseModel):
    agent: str
    cost: float
    tokens: int
    input_tokens: int
    output_tokens: int
    percent_of_total: float


class ModelCost(BaseModel):
    model: str
    cost: float
    tokens: int
    input_tokens: int
    output_tokens: int
    percent_of_total: float


class DailyCostPoint(BaseModel):
    date: str = Field(description="MM-DD")
    cost: float
    input: int
    output: int


class HourlyCostPoint(BaseModel):
    hour: str = Field(description="HH:00")
    cost: float


class CostOverviewResponse(BaseModel):
    today: float
    yesterday: float
    this_month: float
    last_month: float
    projected: float
    budget: float
    by_agent: list[AgentCost]
    by_model: list[ModelCost]
    daily: list[DailyCostPoint]
    hourly: list[HourlyCostPoint]
    message: str | None = None


# ---------------------------------------------------------------------------
# Agents and cron
# ---------------------------------------------------------------------------


class AgentResponse(BaseModel):
    id: str
    name: str
    model: str | None
    workspace: str
    status: Literal["online", "offline"]
    last_activity: str | None
    active_sessions: int
    allow_agents: list[str]


class CronJobResponse(BaseModel):
    id: str
    agent_id: str
    name: str
    enabled: bool
    schedule: Any = None
    schedule_display: str
    timezone: str
    description: str
    next_run: str | None
    last_run: str | None


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


class ConfigAllowlistEntryResponse(BaseModel):
    path: str
    type: str
    min: float | None = None
    max: float | None = None
    enum: list[str] | None = None


class ConfigResponse(BaseModel):
    config: dict[str, Any]
    path: str
    allowlist: list[ConfigAllowlistEntryResponse]


class ConfigPatchRequest(RequestModel):
    """Single-path update; ``value`` is validated against the allowlist schema."""

    path: Any = None
    value: Any = None


class ConfigPatchResponse(BaseModel):
    success: bool
    restart_recommended: bool


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


class SuggestionResponse(BaseModel):
    id: str
    title: str
    description: str
    category: str
    action_type: str
    action_payload: dict[str, Any] = Field(default_factory=dict)


class SuggestionListResponse(BaseModel):
    suggestions: list[SuggestionResponse]


class DismissSuggestionRequest(RequestModel):
    suggestion_id: str | None = Field(default=None, alias="suggestionId")
    applied: bool = False


class SuccessResponse(BaseModel):
    success: bool = True


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class GenerateReportRequest(RequestModel):
    start_date: str | None = Field(default=None, alias="startDate")
    end_date: str | None = Field(default=None, alias="endDate")


class ReportSummary(BaseModel):
    start_date: str
    end_date: str
    activity_total: int
    cost_total: float


class GenerateReportResponse(BaseModel):
    report_id: str
    token: str
    expires_at: str
    summary: ReportSummary


class ReportActivity(BaseModel):
    total: int
    by_type: dict[str, int]
    by_status: dict[str, int]
    success_rate: int


class ReportModelCost(BaseModel):
    model: str
    cost: float
    percent_of_total: int


class ReportCost(BaseModel):
    total: float
    by_model: list[ReportModelCost]
    daily: list[DailyCostPoint]


class ReportPayloadResponse(BaseModel):
    """Frozen report snapshot, exactly as stored at generation time."""

    start_date: str
    end_date: str
    generated_at: str
    activity: ReportActivity
    cost: ReportCost


# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------


class WorkflowStepRequest(RequestModel):
    id: str | None = None
    label: str | None = None
    agent_id: str | None = Field(default=None, alias="agentId")
    execution: str | None = None
    dependencies: list[str] | None = None


class CreateWorkflowRequest(RequestModel):
    name: str | None = None
    description: str | None = None
    steps: list[WorkflowStepRequest] | None = None


class UpdateWorkflowRequest(CreateWorkflowRequest):
    """Partial update; omitted fields are left as stored."""


class WorkflowStepResponse(BaseModel):
    id: str
    label: str
    agent_id: str
    execution: Literal["sequential", "parallel"]
    dependencies: list[str]


class WorkflowResponse(BaseModel):
    id: str
    name: str
    description: str = ""
    created_at: str
    updated_at: str
    steps: list[WorkflowStepResponse]


class WorkflowListResponse(BaseModel):
    workflows: list[WorkflowResponse]


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class CreateNotificationRequest(RequestModel):
    title: str | None = None
    message: str | None = None
    type: str | None = None
    link: str | None = None
    metadata: dict[str, Any] | None = None


class UpdateNotificationRequest(RequestModel):
    """Mark one notification (``id``) read, unread or toggled, or every one (``mark_all_read``)."""

    id: str | None = None
    read: bool | None = None
    mark_all_read: bool = Field(default=False, alias="markAllRead")


class NotificationResponse(BaseModel):
    id: str
    timestamp: str
    title: str
    message: str
    type: str
    read: bool
    link: str | None = None
    metadata: dict[str, Any] | None = None


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


class CountResponse(BaseModel):
    success: bool = True
    count: int


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------


class ToggleSkillRequest(RequestModel):
    id: str | None = None
    enabled: bool | None = None


class ToggleSkillResponse(BaseModel):
    id: str
    enabled: bool


class DisabledSkillsResponse(BaseModel):
    disabled: list[str]


# ---------------------------------------------------------------------------
# Playground
# ---------------------------------------------------------------------------


class PlaygroundModelResponse(BaseModel):
    id: str
    name: str
    alias: str | None = None
    input_price_per_million: float
    output_price_per_million: float
    context_window: int


class PlaygroundRunRequest(RequestModel):
    prompt: Any = None
    model_ids: Any = Field(default=None, alias="modelIds")


class PlaygroundResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    model_id: str
    text: str
    input_tokens: int
    output_tokens: int
    cost: float
    elapsed_ms: int
    error: str | None = None


class PlaygroundRunResponse(BaseModel):
    results: list[PlaygroundResult]


class SaveExperimentRequest(RequestModel):
    prompt: Any = None
    results: Any = None


class ExperimentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    prompt: str
    results: list[dict[str, Any]]
    created_at: str


class ExperimentListResponse(BaseModel):
    experiments: list[ExperimentResponse]


class ShareExperimentRequest(RequestModel):
    experiment_id: Any = Field(default=None, alias="experimentId")


class ShareExperimentResponse(BaseModel):
    token: str
    url: str
    expires_at: str


# ---------------------------------------------------------------------------
# Auth and health
# ---------------------------------------------------------------------------


class LoginRequest(RequestModel):
    password: Any = None


class HealthCheck(BaseModel):
    name: str
    status: Literal["up", "degraded", "down"]
    details: str


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"]
    checks: list[HealthCheck]
    timestamp: str
