"""
Strategy Module for exam preparation plans.

Provides:
- Plan input models (syllabus, topic progress, user profile, course settings)
- StrategyMetricsCalculator for velocity, projection and status
- Subject, revision-health and study-efficiency breakdowns
"""

from src.strategy.calculator import (
    StrategyMetricsCalculator,
    calculate_strategy_metrics,
    count_completed_topics,
    format_velocity,
)
from src.strategy.models import (
    CourseSettings,
    ExamTarget,
    RevisionHealth,
    StrategyMetrics,
    StrategyStatus,
    StudyEfficiency,
    StudyPreferences,
    SubjectMetrics,
    SyllabusSubject,
    Topic,
    TopicProgress,
    TopicStatus,
    UserProfile,
)
from src.strategy.plan import StrategyPlan

__all__ = [
    "StrategyMetricsCalculator",
    "calculate_strategy_metrics",
    "count_completed_topics",
    "format_velocity",
    "StrategyPlan",
    "CourseSettings",
    "ExamTarget",
    "RevisionHealth",
    "StrategyMetrics",
    "StrategyStatus",
    "StudyEfficiency",
    "StudyPreferences",
    "SubjectMetrics",
    "SyllabusSubject",
    "Topic",
    "TopicProgress",
    "TopicStatus",
    "UserProfile",
]
