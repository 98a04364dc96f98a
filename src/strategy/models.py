"""
Strategy Domain Models.

Inputs (syllabus, per-topic progress, user profile, course overrides) and
outputs (StrategyMetrics and its sections) of the strategy calculator.
All inputs are plain value objects; the calculator never mutates them.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


def as_local_naive(value: datetime | None) -> datetime | None:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def parse_datetime(value: Any) -> datetime | None:
    """
    Coerce an ISO string, date or datetime into a naive local datetime.

    Plans mix date-only values with offset timestamps ("...Z"), so every
    parsed value is brought to naive local time before any arithmetic.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_local_naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value)
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return as_local_naive(datetime.fromisoformat(text))


# =============================================================================
# Inputs
# =============================================================================


class TopicStatus(str, Enum):
    """Lifecycle of a topic for one user."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    MASTERED = "mastered"

    @property
    def is_done(self) -> bool:
        return self in (TopicStatus.COMPLETED, TopicStatus.MASTERED)


@dataclass
class Topic:
    """A single syllabus topic."""

    id: str
    name: str = ""
    estimated_hours: float | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Topic:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            estimated_hours=data.get("estimated_hours"),
        )


@dataclass
class SyllabusSubject:
    """A subject owning an ordered list of topics."""

    id: str
    name: str
    topics: list[Topic] = field(default_factory=list)
    tier: int = 1  # 1=High, 2=Medium, 3=Low

    @classmethod
    def from_dict(cls, data: dict) -> SyllabusSubject:
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            topics=[Topic.from_dict(t) for t in data.get("topics", [])],
            tier=data.get("tier", 1),
        )


@dataclass
class TopicProgress:
    """Per-user progress on a topic."""

    topic_id: str
    status: TopicStatus = TopicStatus.NOT_STARTED
    mastery_score: float = 0.0  # 0-100
    total_study_time: float = 0.0  # minutes
    next_revision: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict) -> TopicProgress:
        return cls(
            topic_id=data["topic_id"],
            status=TopicStatus(data.get("status", TopicStatus.NOT_STARTED.value)),
            mastery_score=data.get("mastery_score", 0.0) or 0.0,
            total_study_time=data.get("total_study_time", 0.0) or 0.0,
            next_revision=parse_datetime(data.get("next_revision")),
        )


@dataclass
class ExamTarget:
    """The exam a user is preparing for."""

    id: str
    name: str = ""
    target_date: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict) -> ExamTarget:
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            target_date=parse_datetime(data.get("target_date")),
        )


@dataclass
class StudyPreferences:
    """Global study schedule preferences."""

    daily_study_goal_minutes: int | None = None
    use_weekend_schedule: bool = False
    weekday_study_minutes: int | None = None
    weekend_study_minutes: int | None = None

    @classmethod
    def from_dict(cls, data: dict) -> StudyPreferences:
        return cls(
            daily_study_goal_minutes=data.get("daily_study_goal_minutes"),
            use_weekend_schedule=bool(data.get("use_weekend_schedule", False)),
            weekday_study_minutes=data.get("weekday_study_minutes"),
            weekend_study_minutes=data.get("weekend_study_minutes"),
        )


@dataclass
class UserProfile:
    """The slice of a user profile the calculator reads."""

    user_id: str
    preparation_start_date: datetime | None = None
    current_exam: ExamTarget | None = None
    preferences: StudyPreferences | None = None

    @classmethod
    def from_dict(cls, data: dict) -> UserProfile:
        exam = data.get("current_exam")
        prefs = data.get("preferences")
        return cls(
            user_id=data.get("user_id", ""),
            preparation_start_date=parse_datetime(data.get("preparation_start_date")),
            current_exam=ExamTarget.from_dict(exam) if exam else None,
            preferences=StudyPreferences.from_dict(prefs) if prefs else None,
        )


@dataclass
class CourseSettings:
    """
    Course-scoped schedule overrides.

    Fields left as None fall through to the user's preferences.
    active_days uses 0=Sunday .. 6=Saturday.
    """

    daily_goal_minutes: int | None = None
    use_weekend_schedule: bool | None = None
    weekday_study_minutes: int | None = None
    weekend_study_minutes: int | None = None
    active_days: list[int] | None = None

    @classmethod
    def from_dict(cls, data: dict) -> CourseSettings:
        return cls(
            daily_goal_minutes=data.get("daily_goal_minutes"),
            use_weekend_schedule=data.get("use_weekend_schedule"),
            weekday_study_minutes=data.get("weekday_study_minutes"),
            weekend_study_minutes=data.get("weekend_study_minutes"),
            active_days=data.get("active_days"),
        )


@dataclass
class StudySchedule:
    """Resolved schedule after merging preferences with course overrides."""

    daily_goal_minutes: int
    use_weekend_schedule: bool = False
    weekday_study_minutes: int | None = None
    weekend_study_minutes: int | None = None
    active_days: list[int] = field(default_factory=lambda: [0, 1, 2, 3, 4, 5, 6])

    @property
    def has_granular_schedule(self) -> bool:
        return bool(
            self.use_weekend_schedule and self.weekday_study_minutes and self.weekend_study_minutes
        )

    @property
    def has_restricted_days(self) -> bool:
        return len(self.active_days) < 7


# =============================================================================
# Outputs
# =============================================================================


class StrategyStatus(str, Enum):
    """Pacing status of a preparation plan."""

    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    CRITICAL = "critical"
    AHEAD = "ahead"

    @property
    def label(self) -> str:
        return {
            StrategyStatus.ON_TRACK: "On Track",
            StrategyStatus.AHEAD: "Ahead of Schedule",
            StrategyStatus.AT_RISK: "At Risk",
            StrategyStatus.CRITICAL: "Critical Delay",
        }[self]

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            StrategyStatus.ON_TRACK: "green",
            StrategyStatus.AHEAD: "bright_green",
            StrategyStatus.AT_RISK: "yellow",
            StrategyStatus.CRITICAL: "red",
        }[self]


@dataclass
class SubjectMetrics:
    id: str
    name: str
    total_topics: int
    completed_topics: int
    mastery_score_avg: float
    total_study_hours: float
    completion_percentage: float
    efficiency: float  # topics per hour
    tier: int = 1


@dataclass
class RevisionHealth:
    overdue: int
    due_today: int
    upcoming: int
    total: int
    health_score: float  # 0-100


@dataclass
class StudyEfficiency:
    actual_hourly_pace: float  # hours/day
    required_hourly_pace: float  # hours/day from goal
    efficiency_ratio: float  # actual / goal
    total_study_hours: float
    goal_study_hours: float


@dataclass
class StrategyMetrics:
    """Pacing, projection and health metrics for one preparation plan."""

    start_date: datetime
    exam_date: datetime
    total_topics: int
    completed_topics_count: int
    days_elapsed: int
    days_remaining: int
    current_velocity: float  # topics/day
    required_velocity: float  # topics/day
    projected_finish_date: datetime
    status: StrategyStatus
    percentage_time_elapsed: float
    percentage_content_completed: float
    subject_metrics: list[SubjectMetrics]
    revision_health: RevisionHealth
    study_efficiency: StudyEfficiency

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        data = asdict(self)
        data["status"] = self.status.value
        for key in ("start_date", "exam_date", "projected_finish_date"):
            data[key] = data[key].isoformat()
        return data
