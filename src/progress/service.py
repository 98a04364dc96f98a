"""
Unified Progress Service.

Aggregates missions, adaptive tests, skill updates and journey syncs into a
single progress document per user. Every mutation is a read-modify-write of
the whole document; writes carry the revision that was read so a concurrent
writer is rejected instead of silently overwritten.

All public methods return a Result and never raise store errors.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from loguru import logger
from pydantic import ValidationError

from src.core.errors import DocumentStoreError, ProgressServiceError
from src.core.result import Result
from src.progress import rules
from src.progress.models import (
    AdaptiveTestingInsights,
    AdaptiveTestMetrics,
    EnhancedAnalytics,
    JourneyContribution,
    JourneyProgressUpdate,
    LearningTrack,
    Mission,
    MissionResults,
    PeriodSummaries,
    PeriodSummary,
    SubjectAdaptiveMetrics,
    SubjectProgress,
    TestMetadata,
    TestPerformance,
    TestRecommendation,
    Track,
    UnifiedProgress,
)
from src.progress.recommendations import build_recommendations
from src.store.base import DocumentStore

WEEKLY_GOALS_SET = 3
MONTHLY_GOALS_SET = 5

DEFAULT_CONFIG: dict[str, Any] = {
    "collection_template": "users/{user_id}/progress",
    "document_id": "unified",
    "test_weight": 0.3,
    "overall_test_weight": 0.1,
    "subject_alpha": 0.4,
    "optimistic_concurrency": True,
}


def _as_track(track: Track | LearningTrack | str) -> Track:
    if isinstance(track, LearningTrack):
        return track.progress_track
    if isinstance(track, Track):
        return track
    return LearningTrack(track).progress_track


class ProgressService:
    """
    Read-modify-write aggregation over the unified progress document.

    Usage:
        service = ProgressService(InMemoryDocumentStore())
        result = await service.update_progress_after_mission(user_id, mission, results)
        if result.success:
            print(result.data.overall_progress.average_score)
    """

    def __init__(
        self,
        store: DocumentStore,
        config: dict[str, Any] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the service.

        Args:
            store: Document store holding the progress documents
            config: Overrides for DEFAULT_CONFIG (see Settings.get_progress_config)
            clock: Source of the current time
        """
        self.store = store
        self.config = {**DEFAULT_CONFIG, **(config or {})}
        self.clock = clock

    @classmethod
    def from_settings(cls, store: DocumentStore, settings: Any = None) -> ProgressService:
        if settings is None:
            from config import get_settings

            settings = get_settings()
        return cls(store, config=settings.get_progress_config())

    # =========================================================================
    # Document access
    # =========================================================================

    def collection_for(self, user_id: str) -> str:
        return self.config["collection_template"].format(user_id=user_id)

    @property
    def document_id(self) -> str:
        return self.config["document_id"]

    def create_default_progress(self, user_id: str) -> UnifiedProgress:
        """Zeroed progress document with the current week and month opened."""
        now = self.clock()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        # Weeks start on Sunday
        week_start = today - timedelta(days=(today.weekday() + 1) % 7)
        month_start = today.replace(day=1)

        return UnifiedProgress(
            user_id=user_id,
            period_summaries=PeriodSummaries(
                weekly=[
                    PeriodSummary(
                        period="week",
                        start_date=week_start,
                        end_date=now,
                        goals_set=WEEKLY_GOALS_SET,
                    )
                ],
                monthly=[
                    PeriodSummary(
                        period="month",
                        start_date=month_start,
                        end_date=now,
                        goals_set=MONTHLY_GOALS_SET,
                    )
                ],
            ),
            updated_at=now,
        )

    async def _load(self, user_id: str) -> UnifiedProgress:
        collection = self.collection_for(user_id)
        document = await self.store.get_document(collection, self.document_id)

        if document is None:
            progress = self.create_default_progress(user_id)
            await self._save(progress)
            logger.info("Created default progress for user {}", user_id)
            return progress

        logger.debug("Loaded progress for user {} (revision {})", user_id, document.get("revision", 0))
        return UnifiedProgress.model_validate(document)

    async def _save(self, progress: UnifiedProgress) -> None:
        expected = progress.revision if self.config["optimistic_concurrency"] else None
        progress.revision += 1
        progress.updated_at = self.clock()

        await self.store.set_document(
            self.collection_for(progress.user_id),
            self.document_id,
            progress.model_dump(mode="json"),
            expected_revision=expected,
        )
        logger.debug("Saved progress for user {} (revision {})", progress.user_id, progress.revision)

    def _failure(self, message: str, exc: Exception) -> Result:
        error = ProgressServiceError(message, exc)
        if error.is_conflict:
            logger.warning("{}: {}", message, exc)
        else:
            logger.error("{}: {}", message, exc)
        return Result.fail(error)

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_user_progress(self, user_id: str) -> Result[UnifiedProgress]:
        """Get the user's progress, creating and persisting the default on first access."""
        try:
            return Result.ok(await self._load(user_id))
        except (DocumentStoreError, ValidationError) as exc:
            return self._failure("Failed to get user progress", exc)

    async def get_weekly_summary(self, user_id: str) -> Result[PeriodSummary | None]:
        try:
            progress = await self._load(user_id)
        except (DocumentStoreError, ValidationError) as exc:
            return self._failure("Failed to get weekly summary", exc)

        weekly = progress.period_summaries.weekly
        return Result.ok(weekly[0] if weekly else None)

    async def get_monthly_summary(self, user_id: str) -> Result[PeriodSummary | None]:
        try:
            progress = await self._load(user_id)
        except (DocumentStoreError, ValidationError) as exc:
            return self._failure("Failed to get monthly summary", exc)

        monthly = progress.period_summaries.monthly
        return Result.ok(monthly[0] if monthly else None)

    async def get_adaptive_test_recommendations(
        self, user_id: str
    ) -> Result[list[TestRecommendation]]:
        try:
            progress = await self._load(user_id)
        except (DocumentStoreError, ValidationError) as exc:
            return self._failure("Failed to get test recommendations", exc)

        return Result.ok(build_recommendations(progress, self.clock()))

    async def get_enhanced_analytics(self, user_id: str) -> Result[EnhancedAnalytics]:
        """Progress snapshot plus adaptive testing insights and recommendations."""
        try:
            progress = await self._load(user_id)
        except (DocumentStoreError, ValidationError) as exc:
            return self._failure("Failed to get enhanced analytics", exc)

        overall = progress.overall_progress
        insights = AdaptiveTestingInsights(
            total_tests_completed=overall.total_tests_completed,
            adaptive_testing_level=overall.adaptive_testing_level,
            strong_subjects=rules.strong_subjects(progress),
            weak_subjects=rules.weak_subjects(progress),
            recommended_test_frequency=rules.calculate_recommended_test_frequency(progress),
        )
        return Result.ok(
            EnhancedAnalytics(
                overall_progress=overall,
                track_progress=progress.track_progress,
                adaptive_testing_insights=insights,
                recommendations=build_recommendations(progress, self.clock()),
            )
        )

    # =========================================================================
    # Missions and skills
    # =========================================================================

    async def update_progress_after_mission(
        self, user_id: str, mission: Mission, results: MissionResults
    ) -> Result[UnifiedProgress]:
        """
        Fold a completed mission into the overall and track progress.

        Averages are running means over all missions; the proficiency tier,
        consistency rating and streak are re-evaluated afterwards.
        """
        try:
            progress = await self._load(user_id)
            now = self.clock()

            overall = progress.overall_progress
            overall.total_missions_completed += 1
            overall.total_time_invested += results.total_time
            overall.average_score = rules.running_mean(
                overall.average_score, overall.total_missions_completed, results.percentage
            )
            overall.last_activity = now

            track_progress = progress.track(mission.track)
            previous_average = track_progress.average_score
            track_progress.missions_completed += 1
            track_progress.time_invested += results.total_time
            track_progress.average_score = rules.running_mean(
                previous_average, track_progress.missions_completed, results.percentage
            )
            track_progress.performance_trend = rules.score_trend(
                previous_average, track_progress.average_score
            )

            rules.update_proficiency_level(track_progress)
            rules.update_consistency_rating(overall)
            rules.update_streak(overall)

            await self._save(progress)
        except (DocumentStoreError, ValidationError) as exc:
            return self._failure("Failed to update progress", exc)

        logger.info(
            "Mission {} recorded for user {}: {:.1f}% on {}",
            mission.id,
            user_id,
            results.percentage,
            mission.track.value,
        )
        return Result.ok(progress)

    async def update_skill_mastery(
        self,
        user_id: str,
        track: Track | LearningTrack | str,
        skill: str,
        proficiency: float,
    ) -> Result[None]:
        try:
            progress = await self._load(user_id)
            rules.apply_skill_proficiency(progress.track(_as_track(track)), skill, proficiency)
            await self._save(progress)
        except (DocumentStoreError, ValidationError, ValueError) as exc:
            return self._failure("Failed to update skill mastery", exc)

        return Result.ok()

    # =========================================================================
    # Adaptive testing
    # =========================================================================

    async def update_progress_from_adaptive_test(
        self, user_id: str, test_results: TestPerformance, test_metadata: TestMetadata
    ) -> Result[None]:
        """
        Blend an adaptive test into track, subject and overall scores.

        Track averages take the test at ``test_weight`` (30%), the overall
        average at ``overall_test_weight`` (10%), and each subject keeps an
        exponential moving average with ``subject_alpha`` (0.4).
        """
        try:
            progress = await self._load(user_id)
            now = self.clock()
            track = test_metadata.track.progress_track

            track_progress = progress.track(track)
            track_progress.average_score = rules.blend(
                track_progress.average_score, test_results.accuracy, self.config["test_weight"]
            )
            track_progress.tests_completed += 1
            track_progress.last_test_date = now
            track_progress.adaptive_test_metrics = AdaptiveTestMetrics(
                ability_estimate=test_results.final_ability_estimate,
                confidence_interval=test_results.ability_confidence_interval,
                standard_error=test_results.standard_error,
            )

            for subject_id, performance in test_results.subject_performance.items():
                subject = progress.subject_progress.get(subject_id)
                if subject is None:
                    subject = SubjectProgress(subject_id=subject_id, track=track)
                    progress.subject_progress[subject_id] = subject

                subject.average_score = rules.blend(
                    subject.average_score, performance.accuracy, self.config["subject_alpha"]
                )
                rules.update_subject_areas(subject, performance.accuracy)
                subject.last_studied = now

            overall = progress.overall_progress
            overall.average_score = rules.blend(
                overall.average_score, test_results.accuracy, self.config["overall_test_weight"]
            )
            overall.total_tests_completed += 1
            overall.last_activity = now
            overall.adaptive_testing_level = rules.calculate_adaptive_testing_level(test_results)

            await self._save(progress)
        except (DocumentStoreError, ValidationError) as exc:
            return self._failure("Failed to update progress from adaptive test", exc)

        logger.info(
            "Adaptive test recorded for user {}: {:.1f}% accuracy on {}",
            user_id,
            test_results.accuracy,
            track.value,
        )
        return Result.ok()

    async def update_subject_proficiency(
        self,
        user_id: str,
        subject_id: str,
        ability_estimate: float,
        confidence: float,
        track: Track | LearningTrack | str | None = None,
    ) -> Result[None]:
        """
        Apply an ability estimate on [-2, 2] to a subject and its owning track.

        The estimate maps onto a 0-100 proficiency that is blended at
        ``test_weight`` into the subject score and the track average, and
        decides whether the subject counts as mastered or in progress.
        """
        try:
            progress = await self._load(user_id)
            now = self.clock()
            proficiency = rules.ability_to_proficiency(ability_estimate)

            subject = progress.subject_progress.get(subject_id)
            if subject is None:
                subject = SubjectProgress(subject_id=subject_id)
                progress.subject_progress[subject_id] = subject
            if track is not None:
                subject.track = _as_track(track)

            weight = self.config["test_weight"]
            previous_score = subject.average_score
            subject.average_score = rules.blend(previous_score, proficiency, weight)
            subject.last_studied = now
            subject.adaptive_metrics = SubjectAdaptiveMetrics(
                ability_estimate=ability_estimate,
                confidence=confidence,
                last_test_date=now,
                proficiency_trend=rules.score_trend(previous_score, subject.average_score),
            )

            track_progress = progress.track(subject.track)
            track_progress.average_score = rules.blend(
                track_progress.average_score, proficiency, weight
            )
            rules.apply_skill_proficiency(track_progress, subject_id, proficiency)

            await self._save(progress)
        except (DocumentStoreError, ValidationError, ValueError) as exc:
            return self._failure("Failed to update subject proficiency", exc)

        return Result.ok()

    # =========================================================================
    # Journeys
    # =========================================================================

    async def link_journey(self, user_id: str, journey_id: str) -> Result[str]:
        """Attach a journey to the progress document; returns the progress ID."""
        try:
            progress = await self._load(user_id)
            now = self.clock()

            if journey_id not in progress.linked_journeys:
                progress.linked_journeys.append(journey_id)
            if journey_id not in progress.journey_progress:
                progress.journey_progress[journey_id] = JourneyContribution(
                    linked_at=now, last_sync=now
                )

            await self._save(progress)
        except (DocumentStoreError, ValidationError) as exc:
            return self._failure("Failed to link journey", exc)

        logger.info("Linked journey {} to user {}", journey_id, user_id)
        return Result.ok(progress.user_id)

    async def update_journey_progress(
        self, user_id: str, update: JourneyProgressUpdate
    ) -> Result[None]:
        """
        Record a journey sync and blend it into the overall completion.

        A single journey never moves the overall completion by more than
        30%: its weight is ``min(0.3, completion / 100)``.
        """
        try:
            progress = await self._load(user_id)
            now = self.clock()

            if update.journey_id not in progress.linked_journeys:
                progress.linked_journeys.append(update.journey_id)
            contribution = progress.journey_progress.get(update.journey_id)
            if contribution is None:
                contribution = JourneyContribution(linked_at=now, last_sync=now)
                progress.journey_progress[update.journey_id] = contribution

            contribution.last_sync = update.last_activity
            contribution.overall_completion = update.overall_completion
            contribution.goal_completions = dict(update.goal_completions)

            overall = progress.overall_progress
            weight = min(0.3, update.overall_completion / 100)
            overall.overall_completion_percentage = rules.blend(
                overall.overall_completion_percentage, update.overall_completion, weight
            )

            await self._save(progress)
        except (DocumentStoreError, ValidationError) as exc:
            return self._failure("Failed to update journey progress", exc)

        return Result.ok()
