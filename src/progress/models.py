"""
Unified Progress Models.

Pydantic models for the per-user unified progress document and the
activity payloads (missions, adaptive tests, journey syncs) that update it.
The document is stored whole: model_dump(mode="json") on write,
model_validate on read.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# Enums
# =============================================================================


class Track(str, Enum):
    """Progress track; each has independent proficiency state."""

    EXAM = "exam"
    COURSE_TECH = "course_tech"

    @property
    def display_name(self) -> str:
        return {Track.EXAM: "Exam", Track.COURSE_TECH: "Course & Tech"}[self]


class LearningTrack(str, Enum):
    """Track a mission or test was run under."""

    EXAM = "exam"
    COURSE_TECH = "course_tech"
    CUSTOM_SKILL = "custom_skill"
    LANGUAGE = "language"
    CERTIFICATION = "certification"

    @property
    def progress_track(self) -> Track:
        """Everything that is not an exam is aggregated under course_tech."""
        return Track.EXAM if self is LearningTrack.EXAM else Track.COURSE_TECH


class ProficiencyLevel(str, Enum):
    """Proficiency tier, also used as mission difficulty."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @property
    def next_level(self) -> ProficiencyLevel | None:
        levels = list(ProficiencyLevel)
        index = levels.index(self)
        return levels[index + 1] if index < len(levels) - 1 else None


# =============================================================================
# Document sections
# =============================================================================


class DifficultyProgression(BaseModel):
    current: ProficiencyLevel = ProficiencyLevel.BEGINNER
    recommended: ProficiencyLevel = ProficiencyLevel.BEGINNER
    ready_for_advancement: bool = False


class TopicBreakdown(BaseModel):
    topic: str
    proficiency: float = 0.0  # 0-100
    missions_completed: int = 0
    average_score: float = 0.0


class AdaptiveTestMetrics(BaseModel):
    ability_estimate: float
    confidence_interval: tuple[float, float] = (0.0, 0.0)
    standard_error: float = 0.0


class TrackProgress(BaseModel):
    """Progress within one track."""

    track: Track
    missions_completed: int = 0
    average_score: float = 0.0
    time_invested: float = 0.0  # minutes
    proficiency_level: ProficiencyLevel = ProficiencyLevel.BEGINNER
    mastered_skills: list[str] = Field(default_factory=list)
    skills_in_progress: list[str] = Field(default_factory=list)
    performance_trend: Literal["improving", "stable", "declining"] = "stable"
    difficulty_progression: DifficultyProgression = Field(default_factory=DifficultyProgression)
    topic_breakdown: list[TopicBreakdown] = Field(default_factory=list)
    tests_completed: int = 0
    last_test_date: datetime | None = None
    adaptive_test_metrics: AdaptiveTestMetrics | None = None


class OverallProgress(BaseModel):
    total_missions_completed: int = 0
    total_time_invested: float = 0.0  # minutes
    average_score: float = 0.0
    current_streak: int = 0
    longest_streak: int = 0
    consistency_rating: float = 0.0  # 0-1
    total_tests_completed: int = 0
    last_activity: datetime | None = None
    adaptive_testing_level: str = "Beginner"
    overall_completion_percentage: float = 0.0


class PeriodSummary(BaseModel):
    period: Literal["week", "month"]
    start_date: datetime
    end_date: datetime
    missions_completed: int = 0
    average_score: float = 0.0
    time_invested: float = 0.0
    goals_achieved: int = 0
    goals_set: int = 0
    achievements: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    period_rating: int = 3  # 1-5 stars


class PeriodSummaries(BaseModel):
    weekly: list[PeriodSummary] = Field(default_factory=list)
    monthly: list[PeriodSummary] = Field(default_factory=list)


class CrossTrackInsights(BaseModel):
    transferable_skills: list[str] = Field(default_factory=list)
    effective_patterns: list[str] = Field(default_factory=list)
    recommended_balance: dict[Track, float] = Field(
        default_factory=lambda: {Track.EXAM: 60.0, Track.COURSE_TECH: 40.0}
    )


class SubjectAdaptiveMetrics(BaseModel):
    ability_estimate: float
    confidence: float
    last_test_date: datetime
    proficiency_trend: Literal["improving", "stable", "declining"] = "stable"


class SubjectProgress(BaseModel):
    """Per-subject scores fed by adaptive tests."""

    subject_id: str
    track: Track = Track.EXAM
    completion: float = 0.0
    time_spent: float = 0.0
    average_score: float = 0.0
    last_studied: datetime | None = None
    topics_completed: list[str] = Field(default_factory=list)
    weak_areas: list[str] = Field(default_factory=list)
    strong_areas: list[str] = Field(default_factory=list)
    adaptive_metrics: SubjectAdaptiveMetrics | None = None


class JourneyContribution(BaseModel):
    """What a linked journey has contributed to this document."""

    linked_at: datetime
    last_sync: datetime
    contributed_hours: float = 0.0
    contributed_missions: int = 0
    overall_completion: float = 0.0
    goal_completions: dict[str, float] = Field(default_factory=dict)


class UnifiedProgress(BaseModel):
    """The single progress document owned by a user."""

    user_id: str
    overall_progress: OverallProgress = Field(default_factory=OverallProgress)
    track_progress: dict[Track, TrackProgress] = Field(default_factory=dict)
    cross_track_insights: CrossTrackInsights = Field(default_factory=CrossTrackInsights)
    period_summaries: PeriodSummaries = Field(default_factory=PeriodSummaries)
    subject_progress: dict[str, SubjectProgress] = Field(default_factory=dict)
    linked_journeys: list[str] = Field(default_factory=list)
    journey_progress: dict[str, JourneyContribution] = Field(default_factory=dict)
    revision: int = 0
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _ensure_tracks(self) -> UnifiedProgress:
        for track in Track:
            if track not in self.track_progress:
                self.track_progress[track] = TrackProgress(track=track)
        return self

    def track(self, track: Track | LearningTrack) -> TrackProgress:
        """Progress for a track; learning tracks map onto their progress track."""
        if isinstance(track, LearningTrack):
            track = track.progress_track
        return self.track_progress[track]


# =============================================================================
# Activity payloads
# =============================================================================


class Mission(BaseModel):
    id: str
    user_id: str = ""
    track: LearningTrack = LearningTrack.EXAM
    title: str = ""
    difficulty: ProficiencyLevel = ProficiencyLevel.BEGINNER
    estimated_duration: int = 0  # minutes


class MissionResults(BaseModel):
    final_score: float = 0.0
    max_score: float = 100.0
    percentage: float = Field(..., ge=0, le=100)
    passed: bool = False
    total_time: float = Field(0.0, ge=0, description="Minutes spent")
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)


class SubjectPerformance(BaseModel):
    subject_id: str
    questions_answered: int = 0
    correct_answers: int = 0
    accuracy: float = 0.0  # 0-100
    average_time: float = 0.0
    ability_estimate: float = 0.0


class TestPerformance(BaseModel):
    """Outcome of one adaptive test."""

    total_questions: int = 0
    correct_answers: int = 0
    accuracy: float = Field(..., ge=0, le=100)
    average_response_time: float = 0.0
    total_time: float = 0.0
    subject_performance: dict[str, SubjectPerformance] = Field(default_factory=dict)
    final_ability_estimate: float = 0.0
    ability_confidence_interval: tuple[float, float] = (0.0, 0.0)
    standard_error: float = 0.0


class TestMetadata(BaseModel):
    subjects: list[str] = Field(default_factory=list)
    track: LearningTrack = LearningTrack.EXAM
    algorithm_type: str = "CAT"


class JourneyProgressUpdate(BaseModel):
    journey_id: str
    overall_completion: float = Field(..., ge=0, le=100)
    goal_completions: dict[str, float] = Field(default_factory=dict)
    last_activity: datetime


# =============================================================================
# Outputs
# =============================================================================


class OptimalTiming(BaseModel):
    recommended_date: datetime
    depends_on: list[str] = Field(default_factory=list)


class TestRecommendation(BaseModel):
    test_id: str
    title: str
    description: str
    confidence: float  # 0-1
    reasons: list[str] = Field(default_factory=list)
    subjects: list[str] = Field(default_factory=list)
    question_count: int = 20
    estimated_duration: int = 30  # minutes
    priority: Literal["low", "medium", "high", "critical"] = "medium"
    difficulty: ProficiencyLevel = ProficiencyLevel.BEGINNER
    track: Track | None = None
    ability_improvement: float = 0.0
    weakness_addressing: list[str] = Field(default_factory=list)
    optimal_timing: OptimalTiming | None = None


class AdaptiveTestingInsights(BaseModel):
    total_tests_completed: int = 0
    adaptive_testing_level: str = "Beginner"
    strong_subjects: list[str] = Field(default_factory=list)
    weak_subjects: list[str] = Field(default_factory=list)
    recommended_test_frequency: int = 5  # days


class EnhancedAnalytics(BaseModel):
    overall_progress: OverallProgress
    track_progress: dict[Track, TrackProgress]
    adaptive_testing_insights: AdaptiveTestingInsights
    recommendations: list[TestRecommendation] = Field(default_factory=list)
