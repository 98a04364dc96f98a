"""
Preparation plan files.

A plan bundles everything the calculator needs for one user:

    {
        "user": {"user_id": "u1", "preparation_start_date": "2024-01-01",
                 "current_exam": {"id": "upsc", "target_date": "2024-06-01"}},
        "syllabus": [{"id": "history", "name": "History", "topics": [...]}],
        "topic_progress": {"t1": {"status": "completed", "total_study_time": 90}},
        "completed_topics_count": 12,
        "course": {"start_date": "...", "target_date": "...", "settings": {...}}
    }

``completed_topics_count`` is optional and defaults to the number of
completed or mastered entries in ``topic_progress``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from src.strategy.calculator import StrategyMetricsCalculator, count_completed_topics
from src.strategy.models import (
    CourseSettings,
    StrategyMetrics,
    SyllabusSubject,
    TopicProgress,
    UserProfile,
    parse_datetime,
)


@dataclass
class StrategyPlan:
    user: UserProfile
    syllabus: list[SyllabusSubject]
    topic_progress: dict[str, TopicProgress] = field(default_factory=dict)
    completed_topics_count: int | None = None
    course_start_date: datetime | None = None
    course_target_date: datetime | None = None
    course_settings: CourseSettings | None = None

    @classmethod
    def from_dict(cls, data: dict) -> StrategyPlan:
        raw_progress = data.get("topic_progress") or {}
        if isinstance(raw_progress, list):
            entries = raw_progress
        else:
            entries = [{"topic_id": topic_id, **entry} for topic_id, entry in raw_progress.items()]
        topic_progress = {
            progress.topic_id: progress
            for progress in (TopicProgress.from_dict(entry) for entry in entries)
        }

        course = data.get("course") or {}
        settings = course.get("settings")

        return cls(
            user=UserProfile.from_dict(data.get("user") or {}),
            syllabus=[SyllabusSubject.from_dict(s) for s in data.get("syllabus", [])],
            topic_progress=topic_progress,
            completed_topics_count=data.get("completed_topics_count"),
            course_start_date=parse_datetime(course.get("start_date")),
            course_target_date=parse_datetime(course.get("target_date")),
            course_settings=CourseSettings.from_dict(settings) if settings else None,
        )

    @classmethod
    def from_file(cls, path: Path) -> StrategyPlan:
        return cls.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))

    @property
    def completed_count(self) -> int:
        if self.completed_topics_count is not None:
            return self.completed_topics_count
        return count_completed_topics(self.topic_progress)

    def calculate(
        self,
        calculator: StrategyMetricsCalculator | None = None,
        today: datetime | None = None,
    ) -> StrategyMetrics | None:
        calculator = calculator or StrategyMetricsCalculator()
        return calculator.calculate(
            self.user,
            self.syllabus,
            self.completed_count,
            topic_progress_map=self.topic_progress,
            course_start_date=self.course_start_date,
            course_target_date=self.course_target_date,
            course_settings=self.course_settings,
            today=today,
        )
