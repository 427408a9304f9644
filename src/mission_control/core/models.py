"""SQLAlchemy ORM models for the Mission Control service.

Timestamps are stored as UTC ISO strings (see core/timeutil.py).

Domain model:
  Activity             : append-only log of agent/dashboard actions (activities.db)
  UsageSnapshot        : token/cost rows written by the external usage collector (usage-tracking.db)
  Dismissal            : suppression marker for a suggestion id (suggestions.db)
  SharedReport         : frozen report payload behind an opaque token (shared-reports.db)
  PlaygroundExperiment : saved multi-model prompt comparison (playground.db)
  PlaygroundShare      : expiring share token for an experiment (playground.db)
"""
from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Boolean, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mission_control.database import (
    ACTIVITIES_DB,
    PLAYGROUND_DB,
    SHARED_REPORTS_DB,
    SUGGESTIONS_DB,
    USAGE_DB,
    Base,
)

ACTIVITY_STATUSES = ("success", "error", "pending", "running")


class Activity(Base):
    """One logged action. Immutable after insert apart from retention pruning.

    Table: activities
    """

    __tablename__ = "activities"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    timestamp: Mapped[str] = mapped_column(String(32), nullable=False, comment="UTC ISO timestamp")
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="success",
        comment="success | error | pending | running",
    )
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tokens_used: Mapped[int | None] = mapped_column(Integer, nullable=True)
    agent: Mapped[str | None] = mapped_column(String(100), nullable=True)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)

    __table_args__ = (
        Index("idx_activities_timestamp", "timestamp"),
        Index("idx_activities_type", "type"),
        Index("idx_activities_status", "status"),
    )


class UsageSnapshot(Base):
    """Aggregated token usage for one (date, hour, agent, model) bucket.

    Written only by the external usage collector; this service reads it.

    Table: usage_snapshots
    """

    __tablename__ = "usage_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[str] = mapped_column(String(10), nullable=False, comment="YYYY-MM-DD")
    hour: Mapped[int | None] = mapped_column(Integer, nullable=True, comment="0-23 hour of day")
    agent_id: Mapped[str] = mapped_column(String(100), nullable=False, default="main")
    model: Mapped[str] = mapped_column(String(255), nullable=False)
    input_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    output_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, comment="USD")

    __table_args__ = (Index("idx_usage_snapshots_date", "date"),)


class Dismissal(Base):
    """A dismissed suggestion id. Keyed by id, not by suggestion content.

    Table: dismissals
    """

    __tablename__ = "dismissals"

    suggestion_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    dismissed_at: Mapped[str] = mapped_column(String(32), nullable=False)
    applied: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class SharedReport(Base):
    """Serialized report payload, readable until expires_at.

    Table: shared_reports
    """

    __tablename__ = "shared_reports"

    token: Mapped[str] = mapped_column(String(64), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False, comment="JSON-serialized report payload")
    created_at: Mapped[str] = mapped_column(String(32), nullable=False)
    expires_at: Mapped[str] = mapped_column(String(32), nullable=False)


class PlaygroundExperiment(Base):
    """Table: playground_experiments"""

    __tablename__ = "playground_experiments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    results: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[str] = mapped_column(String(32), nullable=False)


class PlaygroundShare(Base):
    """Table: playground_shared"""

    __tablename__ = "playground_shared"

    token: Mapped[str] = mapped_column(String(64), primary_key=True)
    experiment_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("playground_experiments.id"),
        nullable=False,
    )
    created_at: Mapped[str] = mapped_column(String(32), nullable=False)
    expires_at: Mapped[str] = mapped_column(String(32), nullable=False)


DATABASE_TABLES = {
    ACTIVITIES_DB: [Activity.__table__],
    USAGE_DB: [UsageSnapshot.__table__],
    SUGGESTIONS_DB: [Dismissal.__table__],
    SHARED_REPORTS_DB: [SharedReport.__table__],
    PLAYGROUND_DB: [PlaygroundExperiment.__table__, PlaygroundShare.__table__],
}
