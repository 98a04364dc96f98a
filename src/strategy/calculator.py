"""
Strategy Metrics Calculator.

Derives pacing metrics for a single preparation plan:
- Velocity (topics/day) observed vs. required to finish on time
- Projected finish date and on_track / at_risk / critical / ahead status
- Per-subject completion, mastery and efficiency
- Revision health (overdue vs. upcoming revisions)
- Study efficiency against a daily, weekday/weekend or active-day goal

Pure computation: all inputs are passed in, nothing is persisted.
"""

from __future__ import annotations

import calendar
import math
from datetime import datetime, timedelta

from loguru import logger

from src.strategy.models import (
    CourseSettings,
    RevisionHealth,
    StrategyMetrics,
    StrategyStatus,
    StudyEfficiency,
    StudyPreferences,
    StudySchedule,
    SubjectMetrics,
    SyllabusSubject,
    TopicProgress,
    UserProfile,
    as_local_naive,
)

SECONDS_PER_DAY = 24 * 60 * 60
WEEKEND_DAYS = (0, 6)  # Sunday, Saturday


def ceil_days(delta: timedelta) -> int:
    """Round a time span up to whole days."""
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def sunday_based_weekday(moment: datetime) -> int:
    """Weekday with 0=Sunday .. 6=Saturday."""
    return (moment.weekday() + 1) % 7


def format_velocity(topics_per_day: float) -> str:
    """Format a daily velocity as topics per week."""
    return f"{topics_per_day * 7:.1f}"


def count_completed_topics(topic_progress_map: dict[str, TopicProgress] | None) -> int:
    """Count topics whose status is completed or mastered."""
    if not topic_progress_map:
        return 0
    return sum(1 for p in topic_progress_map.values() if p.status.is_done)


class StrategyMetricsCalculator:
    """
    Calculates pacing and projection metrics for a preparation plan.

    Thresholds:
    - Target dates less than 2 days after the start are treated as unset
      and replaced by a date 6 months from today
    - New users (first 7 days, nothing completed) are projected to finish
      exactly on time instead of never
    - Projection more than 14 days late is critical, 1-14 days at risk,
      14+ days early ahead
    """

    def __init__(
        self,
        fallback_topic_hours: float = 1.0,
        default_daily_goal_minutes: int = 60,
        grace_period_days: int = 7,
        status_buffer_days: int = 14,
        min_preparation_days: float = 2.0,
        fallback_target_months: int = 6,
        goal_walk_max_days: int = 3650,
        never_finish_days: int = 9999,
    ):
        """
        Initialize calculator with configurable thresholds.

        Args:
            fallback_topic_hours: Hours credited to a finished topic with no
                logged time and no estimate
            default_daily_goal_minutes: Goal used when the user has none
            grace_period_days: New-user window for optimistic projection
            status_buffer_days: Slack separating the status bands
            min_preparation_days: Minimum start-to-target gap for a valid target
            fallback_target_months: Months ahead for the fallback target
            goal_walk_max_days: Iteration cap for the day-by-day goal walk
            never_finish_days: Projection used when velocity is zero
        """
        self.fallback_topic_hours = fallback_topic_hours
        self.default_daily_goal_minutes = default_daily_goal_minutes
        self.grace_period_days = grace_period_days
        self.status_buffer_days = status_buffer_days
        self.min_preparation_days = min_preparation_days
        self.fallback_target_months = fallback_target_months
        self.goal_walk_max_days = goal_walk_max_days
        self.never_finish_days = never_finish_days

    @classmethod
    def from_settings(cls, settings) -> StrategyMetricsCalculator:
        """Build a calculator from application settings."""
        return cls(**settings.get_strategy_config())

    # -------------------------------------------------------------------------
    # Date resolution
    # -------------------------------------------------------------------------

    def resolve_dates(
        self,
        user: UserProfile,
        today: datetime,
        course_start_date: datetime | None = None,
        course_target_date: datetime | None = None,
    ) -> tuple[datetime | None, datetime]:
        """
        Resolve the plan's start and exam dates.

        The user's global exam date is only consulted outside a course
        context (no course start date given).

        Returns:
            Tuple of (start_date or None, exam_date)
        """
        today = as_local_naive(today)
        start_date = as_local_naive(course_start_date or user.preparation_start_date)

        target_date = course_target_date
        if target_date is None and course_start_date is None and user.current_exam:
            target_date = user.current_exam.target_date
        target_date = as_local_naive(target_date)

        if target_date is not None and start_date is not None:
            gap_days = (target_date - start_date).total_seconds() / SECONDS_PER_DAY
            if gap_days < self.min_preparation_days:
                target_date = None

        if target_date is None:
            target_date = add_months(today, self.fallback_target_months)

        return start_date, target_date

    def classify_status(
        self,
        days_remaining: int,
        remaining_topics: int,
        projected_finish_date: datetime,
        exam_date: datetime,
    ) -> StrategyStatus:
        """Classify pacing status; first matching rule wins."""
        buffer = timedelta(days=self.status_buffer_days)

        if days_remaining <= 0 and remaining_topics > 0:
            return StrategyStatus.CRITICAL
        if projected_finish_date > exam_date:
            delay_days = ceil_days(projected_finish_date - exam_date)
            return StrategyStatus.CRITICAL if delay_days > self.status_buffer_days else StrategyStatus.AT_RISK
        if projected_finish_date <= exam_date - buffer:
            return StrategyStatus.AHEAD
        return StrategyStatus.ON_TRACK

    # -------------------------------------------------------------------------
    # Subject, revision and effort metrics
    # -------------------------------------------------------------------------

    def calculate_subject_metrics(
        self,
        syllabus: list[SyllabusSubject],
        topic_progress_map: dict[str, TopicProgress] | None,
    ) -> list[SubjectMetrics]:
        """
        Per-subject completion, mastery and study effort.

        Finished topics with zero logged minutes are credited with their
        estimated hours (or the fallback) so efficiency stays meaningful.
        """
        progress_map = topic_progress_map or {}
        results = []

        for subject in syllabus:
            completed = 0
            mastery_sum = 0.0
            study_minutes = 0.0

            for topic in subject.topics:
                progress = progress_map.get(topic.id)
                if progress is None:
                    continue

                if progress.status.is_done:
                    completed += 1
                mastery_sum += progress.mastery_score or 0

                duration = progress.total_study_time or 0
                if duration == 0 and progress.status.is_done:
                    duration = (topic.estimated_hours or self.fallback_topic_hours) * 60
                study_minutes += duration

            total = len(subject.topics)
            study_hours = study_minutes / 60
            results.append(
                SubjectMetrics(
                    id=subject.id,
                    name=subject.name,
                    total_topics=total,
                    completed_topics=completed,
                    mastery_score_avg=mastery_sum / total if total > 0 else 0.0,
                    total_study_hours=study_hours,
                    completion_percentage=(completed / total) * 100 if total > 0 else 0.0,
                    efficiency=completed / study_hours if study_minutes > 0 else 0.0,
                    tier=subject.tier,
                )
            )

        return results

    def calculate_revision_health(
        self,
        topic_progress_map: dict[str, TopicProgress] | None,
        today: datetime,
    ) -> RevisionHealth:
        """Bucket scheduled revisions by calendar day relative to today."""
        overdue = due_today = upcoming = 0
        today_date = today.date()

        for progress in (topic_progress_map or {}).values():
            if progress.next_revision is None:
                continue
            revision_date = as_local_naive(progress.next_revision).date()
            if revision_date < today_date:
                overdue += 1
            elif revision_date == today_date:
                due_today += 1
            else:
                upcoming += 1

        total = overdue + due_today + upcoming
        health_score = max(0.0, 100 - (overdue / total) * 100) if total > 0 else 100.0

        return RevisionHealth(
            overdue=overdue,
            due_today=due_today,
            upcoming=upcoming,
            total=total,
            health_score=health_score,
        )

    def resolve_schedule(
        self,
        user: UserProfile,
        course_settings: CourseSettings | None = None,
    ) -> StudySchedule:
        """Merge user preferences with course overrides."""
        prefs = user.preferences or StudyPreferences()
        schedule = StudySchedule(
            daily_goal_minutes=prefs.daily_study_goal_minutes or self.default_daily_goal_minutes,
            use_weekend_schedule=prefs.use_weekend_schedule,
            weekday_study_minutes=prefs.weekday_study_minutes,
            weekend_study_minutes=prefs.weekend_study_minutes,
        )

        if course_settings is not None:
            if course_settings.daily_goal_minutes is not None:
                schedule.daily_goal_minutes = course_settings.daily_goal_minutes
            if course_settings.use_weekend_schedule is not None:
                schedule.use_weekend_schedule = course_settings.use_weekend_schedule
            if course_settings.weekday_study_minutes is not None:
                schedule.weekday_study_minutes = course_settings.weekday_study_minutes
            if course_settings.weekend_study_minutes is not None:
                schedule.weekend_study_minutes = course_settings.weekend_study_minutes
            if course_settings.active_days is not None:
                schedule.active_days = list(course_settings.active_days)

        return schedule

    def calculate_goal_minutes(
        self,
        schedule: StudySchedule,
        start_date: datetime,
        today: datetime,
        days_elapsed: int,
    ) -> float:
        """
        Total goal minutes from start to today.

        A flat daily goal is multiplied out; weekday/weekend splits and
        restricted active days are summed day by day.
        """
        if not (schedule.has_granular_schedule or schedule.has_restricted_days):
            return schedule.daily_goal_minutes * days_elapsed

        goal_minutes = 0
        current = start_date
        iterations = 0
        while current <= today and iterations < self.goal_walk_max_days:
            day = sunday_based_weekday(current)
            if day in schedule.active_days:
                if schedule.has_granular_schedule:
                    if day in WEEKEND_DAYS:
                        goal_minutes += schedule.weekend_study_minutes
                    else:
                        goal_minutes += schedule.weekday_study_minutes
                else:
                    goal_minutes += schedule.daily_goal_minutes
            current += timedelta(days=1)
            iterations += 1

        return goal_minutes

    def calculate_study_efficiency(
        self,
        subject_metrics: list[SubjectMetrics],
        goal_minutes: float,
        days_elapsed: int,
    ) -> StudyEfficiency:
        # Reuse fallback-adjusted subject hours so totals match the subject table
        total_study_hours = sum(s.total_study_hours for s in subject_metrics)
        goal_study_hours = goal_minutes / 60
        pace_days = max(1, days_elapsed)

        return StudyEfficiency(
            actual_hourly_pace=total_study_hours / pace_days,
            required_hourly_pace=goal_study_hours / pace_days,
            efficiency_ratio=total_study_hours / goal_study_hours if goal_study_hours > 0 else 0.0,
            total_study_hours=total_study_hours,
            goal_study_hours=goal_study_hours,
        )

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def calculate(
        self,
        user: UserProfile,
        syllabus: list[SyllabusSubject],
        completed_topics_count: int,
        topic_progress_map: dict[str, TopicProgress] | None = None,
        course_start_date: datetime | None = None,
        course_target_date: datetime | None = None,
        course_settings: CourseSettings | None = None,
        today: datetime | None = None,
    ) -> StrategyMetrics | None:
        """
        Calculate strategy metrics for a plan.

        Args:
            user: User profile (global start/exam dates and preferences)
            syllabus: Ordered subjects with their topics
            completed_topics_count: Topics completed so far
            topic_progress_map: topic_id -> TopicProgress (absent = not started)
            course_start_date: Course-scoped start date override
            course_target_date: Course-scoped target date override
            course_settings: Course-scoped schedule overrides
            today: Reference time (defaults to now)

        Returns:
            StrategyMetrics, or None when no start date can be resolved
        """
        # All date arithmetic below runs on naive local time
        today = as_local_naive(today) if today is not None else datetime.now()

        start_date, exam_date = self.resolve_dates(
            user, today, course_start_date, course_target_date
        )
        if start_date is None:
            logger.debug("No preparation start date for user {}", user.user_id)
            return None

        total_topics = sum(len(subject.topics) for subject in syllabus)
        remaining_topics = max(0, total_topics - completed_topics_count)

        days_elapsed = max(1, ceil_days(today - start_date))
        days_remaining = max(0, ceil_days(exam_date - today))
        total_days = days_elapsed + days_remaining

        current_velocity = completed_topics_count / days_elapsed
        required_velocity = remaining_topics / max(1, days_remaining)

        days_to_finish = self.never_finish_days
        if current_velocity > 0:
            days_to_finish = math.ceil(remaining_topics / current_velocity)
        elif days_elapsed <= self.grace_period_days and completed_topics_count == 0:
            days_to_finish = days_remaining

        projected_finish_date = today + timedelta(days=days_to_finish)
        status = self.classify_status(
            days_remaining, remaining_topics, projected_finish_date, exam_date
        )

        subject_metrics = self.calculate_subject_metrics(syllabus, topic_progress_map)
        revision_health = self.calculate_revision_health(topic_progress_map, today)

        schedule = self.resolve_schedule(user, course_settings)
        goal_minutes = self.calculate_goal_minutes(schedule, start_date, today, days_elapsed)
        study_efficiency = self.calculate_study_efficiency(subject_metrics, goal_minutes, days_elapsed)

        return StrategyMetrics(
            start_date=start_date,
            exam_date=exam_date,
            total_topics=total_topics,
            completed_topics_count=completed_topics_count,
            days_elapsed=days_elapsed,
            days_remaining=days_remaining,
            current_velocity=current_velocity,
            required_velocity=required_velocity,
            projected_finish_date=projected_finish_date,
            status=status,
            percentage_time_elapsed=min(100.0, max(0.0, (days_elapsed / total_days) * 100)),
            percentage_content_completed=(
                min(100.0, max(0.0, (completed_topics_count / total_topics) * 100))
                if total_topics > 0
                else 0.0
            ),
            subject_metrics=subject_metrics,
            revision_health=revision_health,
            study_efficiency=study_efficiency,
        )


_default_calculator = StrategyMetricsCalculator()


def calculate_strategy_metrics(
    user: UserProfile,
    syllabus: list[SyllabusSubject],
    completed_topics_count: int,
    topic_progress_map: dict[str, TopicProgress] | None = None,
    course_start_date: datetime | None = None,
    course_target_date: datetime | None = None,
    course_settings: CourseSettings | None = None,
    today: datetime | None = None,
) -> StrategyMetrics | None:
    """Calculate strategy metrics with the default thresholds."""
    return _default_calculator.calculate(
        user,
        syllabus,
        completed_topics_count,
        topic_progress_map=topic_progress_map,
        course_start_date=course_start_date,
        course_target_date=course_target_date,
        course_settings=course_settings,
        today=today,
    )
