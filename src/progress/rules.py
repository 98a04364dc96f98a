"""
Progress aggregation rules.

Stateless helpers used by ProgressService. Each mutates the model it is
given in place (or returns a value) and performs no I/O, so the rules can
be exercised without a document store.
"""

from __future__ import annotations

from src.progress.models import (
    OverallProgress,
    ProficiencyLevel,
    SubjectProgress,
    TestPerformance,
    Track,
    TrackProgress,
    UnifiedProgress,
)

# Tier thresholds: (level, min missions, min average score), highest first
PROFICIENCY_THRESHOLDS: list[tuple[ProficiencyLevel, int, float]] = [
    (ProficiencyLevel.EXPERT, 50, 90.0),
    (ProficiencyLevel.ADVANCED, 25, 80.0),
    (ProficiencyLevel.INTERMEDIATE, 10, 70.0),
]

# Advancement readiness is independent of the tier table
ADVANCEMENT_MIN_SCORE = 85.0
ADVANCEMENT_MIN_MISSIONS = 5

# Consistency blend
STREAK_TARGET_DAYS = 30
VOLUME_TARGET_MISSIONS = 100
STREAK_WEIGHT = 0.6
VOLUME_WEIGHT = 0.4

# Skill sets
MASTERED_SKILL_THRESHOLD = 80.0
IN_PROGRESS_SKILL_THRESHOLD = 40.0

# Subject strength bands
WEAK_SUBJECT_THRESHOLD = 70.0
STRONG_SUBJECT_THRESHOLD = 85.0

# Adaptive testing level bands: (label, ability above, accuracy above)
ADAPTIVE_LEVELS: list[tuple[str, float, float]] = [
    ("Expert", 0.8, 90.0),
    ("Advanced", 0.5, 80.0),
    ("Intermediate", 0.2, 70.0),
    ("Developing", -0.2, 60.0),
]


def running_mean(previous: float, count: int, value: float) -> float:
    """
    Running mean after adding one observation.

    Args:
        previous: Mean over the first count-1 observations
        count: Number of observations including the new one
        value: The new observation
    """
    if count <= 0:
        return value
    return (previous * (count - 1) + value) / count


def blend(previous: float, value: float, weight: float) -> float:
    """Weighted blend giving the new value the stated weight."""
    return previous * (1 - weight) + value * weight


def ability_to_proficiency(ability_estimate: float) -> float:
    """Map an IRT ability estimate on [-2, 2] linearly onto a 0-100 score."""
    return max(0.0, min(100.0, (ability_estimate + 2) * 25))


def proficiency_tier(missions_completed: int, average_score: float) -> ProficiencyLevel:
    """Step function of volume and quality."""
    for level, min_missions, min_score in PROFICIENCY_THRESHOLDS:
        if missions_completed >= min_missions and average_score >= min_score:
            return level
    return ProficiencyLevel.BEGINNER


def update_proficiency_level(track_progress: TrackProgress) -> None:
    """
    Re-evaluate the tier and the difficulty progression of a track.

    The tier comes from the threshold table. Readiness to advance is a
    separate check (average >= 85 over at least 5 missions) that only moves
    the recommended difficulty; it never bumps the tier.
    """
    level = proficiency_tier(track_progress.missions_completed, track_progress.average_score)
    track_progress.proficiency_level = level

    progression = track_progress.difficulty_progression
    progression.current = level
    progression.recommended = level
    progression.ready_for_advancement = False

    if (
        track_progress.average_score >= ADVANCEMENT_MIN_SCORE
        and track_progress.missions_completed >= ADVANCEMENT_MIN_MISSIONS
    ):
        next_level = level.next_level
        if next_level is not None:
            progression.recommended = next_level
            progression.ready_for_advancement = True


def update_consistency_rating(overall: OverallProgress) -> None:
    streak_score = min(overall.current_streak / STREAK_TARGET_DAYS, 1.0)
    volume_score = min(overall.total_missions_completed / VOLUME_TARGET_MISSIONS, 1.0)
    overall.consistency_rating = streak_score * STREAK_WEIGHT + volume_score * VOLUME_WEIGHT


def update_streak(overall: OverallProgress) -> None:
    # Every completed mission extends the streak
    overall.current_streak += 1
    if overall.current_streak > overall.longest_streak:
        overall.longest_streak = overall.current_streak


def apply_skill_proficiency(track_progress: TrackProgress, skill: str, proficiency: float) -> None:
    """
    Place a skill in exactly one of the mastered / in-progress sets.

    >= 80 moves it to mastered; 40 to < 80 moves it to in progress.
    Below 40 leaves both sets untouched.
    """
    if proficiency >= MASTERED_SKILL_THRESHOLD:
        if skill not in track_progress.mastered_skills:
            track_progress.mastered_skills.append(skill)
        track_progress.skills_in_progress = [
            s for s in track_progress.skills_in_progress if s != skill
        ]
    elif proficiency >= IN_PROGRESS_SKILL_THRESHOLD:
        if skill not in track_progress.skills_in_progress:
            track_progress.skills_in_progress.append(skill)
        track_progress.mastered_skills = [s for s in track_progress.mastered_skills if s != skill]


def update_subject_areas(subject: SubjectProgress, score: float) -> None:
    """Flag the subject weak below 70, strong above 85 (clearing weak)."""
    if score < WEAK_SUBJECT_THRESHOLD:
        if subject.subject_id not in subject.weak_areas:
            subject.weak_areas.append(subject.subject_id)
    elif score > STRONG_SUBJECT_THRESHOLD:
        if subject.subject_id not in subject.strong_areas:
            subject.strong_areas.append(subject.subject_id)
        subject.weak_areas = [s for s in subject.weak_areas if s != subject.subject_id]


def score_trend(previous: float, current: float) -> str:
    if current > previous:
        return "improving"
    if current < previous:
        return "declining"
    return "stable"


def calculate_adaptive_testing_level(test_results: TestPerformance) -> str:
    ability = test_results.final_ability_estimate
    accuracy = test_results.accuracy
    for label, min_ability, min_accuracy in ADAPTIVE_LEVELS:
        if ability > min_ability and accuracy > min_accuracy:
            return label
    return "Beginner"


def calculate_recommended_test_frequency(progress: UnifiedProgress) -> int:
    """Days between adaptive tests; weaker or less consistent learners test more often."""
    score = progress.track_progress[Track.EXAM].average_score
    consistency = progress.overall_progress.consistency_rating

    if score < 60 or consistency < 0.5:
        return 2
    if score < 80 or consistency < 0.7:
        return 3
    return 5


def strong_subjects(progress: UnifiedProgress) -> list[str]:
    return [
        subject_id
        for subject_id, subject in progress.subject_progress.items()
        if subject.average_score > STRONG_SUBJECT_THRESHOLD
    ]


def weak_subjects(progress: UnifiedProgress) -> list[str]:
    return [
        subject_id
        for subject_id, subject in progress.subject_progress.items()
        if subject.average_score < WEAK_SUBJECT_THRESHOLD
    ]
