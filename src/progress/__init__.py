"""
Unified Progress Module.

One progress document per user, aggregated from missions, adaptive tests,
skill updates and journey syncs.

Components:
- models: pydantic models for the document and the activity payloads
- rules: pure aggregation rules (tiers, consistency, streaks, skill sets)
- recommendations: rule-based adaptive test recommendations
- service: ProgressService, the read-modify-write aggregator
"""

from src.progress.models import (
    EnhancedAnalytics,
    JourneyProgressUpdate,
    LearningTrack,
    Mission,
    MissionResults,
    ProficiencyLevel,
    Track,
    TrackProgress,
    UnifiedProgress,
)
from src.progress.service import ProgressService

__all__ = [
    "EnhancedAnalytics",
    "JourneyProgressUpdate",
    "LearningTrack",
    "Mission",
    "MissionResults",
    "ProficiencyLevel",
    "ProgressService",
    "Track",
    "TrackProgress",
    "UnifiedProgress",
]
