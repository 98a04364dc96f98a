"""
Unit tests for study schedules and plan files.

Tests:
- Merging user preferences with course overrides
- Goal minutes: flat daily goal vs. the day-by-day walk
- StrategyPlan parsing and calculation
"""

import json
from datetime import datetime, timedelta

import pytest

from src.strategy.calculator import StrategyMetricsCalculator, sunday_based_weekday
from src.strategy.models import CourseSettings, StudySchedule, TopicStatus
from src.strategy.plan import StrategyPlan
from tests.factories import make_user

# Saturday 2024-03-09 through Friday 2024-03-15
WEEK_START = datetime(2024, 3, 9)


@pytest.fixture
def calculator():
    return StrategyMetricsCalculator()


class TestSundayBasedWeekday:
    def test_mapping(self):
        assert sunday_based_weekday(datetime(2024, 3, 10)) == 0  # Sunday
        assert sunday_based_weekday(datetime(2024, 3, 11)) == 1  # Monday
        assert sunday_based_weekday(datetime(2024, 3, 9)) == 6  # Saturday


class TestResolveSchedule:
    """Tests for preference and course override merging."""

    def test_defaults_without_preferences(self, calculator):
        user = make_user(start=WEEK_START, daily_goal_minutes=None)

        schedule = calculator.resolve_schedule(user)

        assert schedule.daily_goal_minutes == 60
        assert schedule.active_days == [0, 1, 2, 3, 4, 5, 6]
        assert not schedule.has_granular_schedule
        assert not schedule.has_restricted_days

    def test_course_overrides_only_set_fields(self, calculator):
        user = make_user(start=WEEK_START, daily_goal_minutes=90)
        course = CourseSettings(
            use_weekend_schedule=True, weekday_study_minutes=30, weekend_study_minutes=120
        )

        schedule = calculator.resolve_schedule(user, course)

        assert schedule.daily_goal_minutes == 90
        assert schedule.use_weekend_schedule is True
        assert schedule.has_granular_schedule

    def test_course_can_disable_weekend_schedule(self, calculator):
        user = make_user(
            start=WEEK_START,
            use_weekend_schedule=True,
            weekday_study_minutes=30,
            weekend_study_minutes=120,
        )

        schedule = calculator.resolve_schedule(user, CourseSettings(use_weekend_schedule=False))

        assert not schedule.has_granular_schedule

    def test_active_days_override(self, calculator):
        user = make_user(start=WEEK_START)

        schedule = calculator.resolve_schedule(user, CourseSettings(active_days=[1, 3, 5]))

        assert schedule.has_restricted_days
        assert schedule.active_days == [1, 3, 5]


class TestGoalMinutes:
    """Tests for goal minutes between start and today."""

    today = datetime(2024, 3, 15, 9, 30)

    def test_flat_goal_multiplies_days_elapsed(self, calculator):
        schedule = StudySchedule(daily_goal_minutes=60)

        assert calculator.calculate_goal_minutes(schedule, WEEK_START, self.today, 10) == 600

    def test_weekend_split_walks_each_day(self, calculator):
        schedule = StudySchedule(
            daily_goal_minutes=60,
            use_weekend_schedule=True,
            weekday_study_minutes=60,
            weekend_study_minutes=120,
        )

        # Sat + Sun at 120, Mon-Fri at 60
        assert calculator.calculate_goal_minutes(schedule, WEEK_START, self.today, 7) == 540

    def test_restricted_days_count_only_active_days(self, calculator):
        schedule = StudySchedule(daily_goal_minutes=60, active_days=[1, 3, 5])

        assert calculator.calculate_goal_minutes(schedule, WEEK_START, self.today, 7) == 180

    def test_split_and_restricted_days_combine(self, calculator):
        schedule = StudySchedule(
            daily_goal_minutes=60,
            use_weekend_schedule=True,
            weekday_study_minutes=60,
            weekend_study_minutes=120,
            active_days=[0, 1],
        )

        assert calculator.calculate_goal_minutes(schedule, WEEK_START, self.today, 7) == 180

    def test_walk_is_bounded(self):
        calculator = StrategyMetricsCalculator(goal_walk_max_days=3)
        schedule = StudySchedule(
            daily_goal_minutes=60,
            use_weekend_schedule=True,
            weekday_study_minutes=60,
            weekend_study_minutes=120,
        )

        # Sat, Sun, Mon only
        assert calculator.calculate_goal_minutes(schedule, WEEK_START, self.today, 7) == 300

    def test_course_settings_flow_into_efficiency(self, calculator):
        user = make_user(start=WEEK_START, exam=WEEK_START + timedelta(days=90))
        course = CourseSettings(active_days=[1, 3, 5], daily_goal_minutes=120)

        metrics = calculator.calculate(
            user, [], 0, course_settings=course, today=self.today
        )

        assert metrics.study_efficiency.goal_study_hours == pytest.approx(6.0)


class TestStrategyPlan:
    """Tests for plan file parsing."""

    def test_from_dict(self, sample_plan):
        plan = StrategyPlan.from_dict(sample_plan)

        assert plan.user.user_id == "alice"
        assert [s.id for s in plan.syllabus] == ["history", "polity"]
        assert plan.topic_progress["h2"].status == TopicStatus.MASTERED
        assert plan.completed_count == 2

    def test_explicit_completed_count_wins(self, sample_plan):
        sample_plan["completed_topics_count"] = 3

        assert StrategyPlan.from_dict(sample_plan).completed_count == 3

    def test_topic_progress_as_list(self, sample_plan):
        sample_plan["topic_progress"] = [
            {"topic_id": "h1", "status": "completed"},
            {"topic_id": "p1", "status": "not_started"},
        ]

        plan = StrategyPlan.from_dict(sample_plan)

        assert set(plan.topic_progress) == {"h1", "p1"}
        assert plan.completed_count == 1

    def test_course_section(self, sample_plan, today):
        sample_plan["course"] = {
            "start_date": (today - timedelta(days=5)).isoformat(),
            "settings": {"daily_goal_minutes": 30},
        }

        plan = StrategyPlan.from_dict(sample_plan)

        assert plan.course_start_date == today - timedelta(days=5)
        assert plan.course_settings.daily_goal_minutes == 30
        assert plan.course_target_date is None

    def test_calculate(self, sample_plan, today):
        metrics = StrategyPlan.from_dict(sample_plan).calculate(today=today)

        assert metrics.total_topics == 4
        assert metrics.completed_topics_count == 2
        assert metrics.days_elapsed == 21
        assert metrics.days_remaining == 40
        assert metrics.revision_health.overdue == 1
        assert metrics.revision_health.health_score == 0.0
        history = metrics.subject_metrics[0]
        # 90 logged minutes on h1 plus the 1-hour fallback for h2
        assert history.total_study_hours == pytest.approx(2.5)
        assert metrics.study_efficiency.goal_study_hours == pytest.approx(42.0)

    def test_from_file(self, sample_plan, tmp_path, today):
        path = tmp_path / "plan.json"
        path.write_text(json.dumps(sample_plan))

        plan = StrategyPlan.from_file(path)

        assert plan.calculate(today=today).total_topics == 4

    def test_offset_start_with_date_only_target(self, sample_plan):
        sample_plan["user"]["preparation_start_date"] = "2024-01-01T00:00:00Z"
        sample_plan["user"]["current_exam"]["target_date"] = "2024-06-01"

        plan = StrategyPlan.from_dict(sample_plan)
        metrics = plan.calculate(today=datetime(2024, 3, 1))

        assert plan.user.preparation_start_date.tzinfo is None
        assert metrics.exam_date == datetime(2024, 6, 1)
        assert metrics.days_remaining == 92

    def test_offset_plan_without_fixed_today(self, sample_plan):
        sample_plan["user"]["preparation_start_date"] = "2024-01-01T00:00:00+00:00"

        metrics = StrategyPlan.from_dict(sample_plan).calculate()

        assert metrics is not None
        assert metrics.days_elapsed >= 1
