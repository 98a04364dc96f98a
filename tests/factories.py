"""Builders for strategy inputs shared across test modules."""

from datetime import datetime

from src.strategy.models import (
    ExamTarget,
    StudyPreferences,
    SyllabusSubject,
    Topic,
    UserProfile,
)


def make_syllabus(total_topics: int, subjects: int = 1) -> list[SyllabusSubject]:
    """Build a syllabus with topics spread evenly over subjects."""
    syllabus = []
    per_subject = total_topics // subjects
    for s in range(subjects):
        count = per_subject if s < subjects - 1 else total_topics - per_subject * (subjects - 1)
        syllabus.append(
            SyllabusSubject(
                id=f"subject-{s}",
                name=f"Subject {s}",
                topics=[Topic(id=f"s{s}-t{t}", name=f"Topic {t}") for t in range(count)],
            )
        )
    return syllabus


def make_user(
    start: datetime | None,
    exam: datetime | None = None,
    daily_goal_minutes: int | None = 60,
    **preferences,
) -> UserProfile:
    return UserProfile(
        user_id="user-1",
        preparation_start_date=start,
        current_exam=ExamTarget(id="exam-1", name="Prelims", target_date=exam) if exam else None,
        preferences=StudyPreferences(daily_study_goal_minutes=daily_goal_minutes, **preferences),
    )
