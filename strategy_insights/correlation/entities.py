"""Snapshots of platform entities as read from the entity repository."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EntityType(str, Enum):
    """Entity kinds tracked by the strategy platform."""

    ISSUE = "issue"  # Reported problems, scored on the heatmap
    INITIATIVE = "initiative"  # Funded efforts with owner and progress
    CLUSTER = "cluster"  # Groups of related issues
    USER = "user"  # Owners and stakeholders
    MILESTONE = "milestone"  # Dated checkpoints of an initiative


def ensure_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps from the store as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


class Record(BaseModel):
    """Base for read-only repository records."""

    model_config = ConfigDict(frozen=True)

    id: str

    @field_validator("*", mode="after")
    @classmethod
    def _normalize_datetimes(cls, value):
        if isinstance(value, datetime):
            return ensure_utc(value)
        return value


class User(Record):
    """Platform user, typically an initiative owner."""

    name: str
    email: str | None = None
    role: str | None = None


class Issue(Record):
    """An issue reported by employees, scored on the heatmap."""

    description: str = ""
    heatmap_score: float = Field(default=0.0, description="Severity, 0-100")
    votes: int = 0
    department: str | None = None
    category: str | None = None
    cluster_id: str | None = None
    created_at: datetime


class Milestone(Record):
    """A dated checkpoint of an initiative."""

    title: str
    status: str | None = None
    due_date: datetime
    progress: float = 0.0
    initiative_id: str | None = None


class Initiative(Record):
    """An initiative with its milestones and addressed issues (by id)."""

    title: str
    status: str | None = None
    progress: float | None = Field(default=None, description="Percent complete, 0-100")
    owner_id: str | None = None
    owner: User | None = None
    cluster_id: str | None = None
    milestones: list[Milestone] = Field(default_factory=list)
    addressed_issue_ids: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Cluster(Record):
    """An issue cluster with its issues and the initiatives addressing it."""

    name: str
    severity: str | None = None
    issues: list[Issue] = Field(default_factory=list)
    initiatives: list[Initiative] = Field(default_factory=list)
