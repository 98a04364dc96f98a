"""
Rule-based adaptive test recommendations.

- Track remediation: track average below 75 with skills still in progress
- Subject weakness: subject average below 75 with flagged weak areas
- Otherwise a single comprehensive assessment
"""

from __future__ import annotations

from datetime import datetime, timedelta

from src.progress.models import (
    OptimalTiming,
    ProficiencyLevel,
    TestRecommendation,
    UnifiedProgress,
)

REMEDIATION_SCORE_THRESHOLD = 75.0
REMEDIATION_DELAY_DAYS = 3
COMPREHENSIVE_DELAY_DAYS = 7


def _track_recommendations(progress: UnifiedProgress, now: datetime) -> list[TestRecommendation]:
    recommendations = []
    for track, track_progress in progress.track_progress.items():
        if track_progress.average_score >= REMEDIATION_SCORE_THRESHOLD:
            continue
        if not track_progress.skills_in_progress:
            continue

        skills = list(track_progress.skills_in_progress)
        recommendations.append(
            TestRecommendation(
                test_id=f"track_remediation_{track.value}",
                title=f"{track.display_name} Remediation Assessment",
                description=f"Adaptive test on the {len(skills)} skills still in progress",
                confidence=0.8,
                reasons=[
                    f"Track average: {track_progress.average_score:.1f}% (below 75%)",
                    f"{len(skills)} skills in progress",
                    "Adaptive testing targets the weakest skills first",
                ],
                subjects=skills,
                priority="high",
                difficulty=track_progress.difficulty_progression.current,
                track=track,
                ability_improvement=0.2,
                weakness_addressing=skills,
                optimal_timing=OptimalTiming(
                    recommended_date=now + timedelta(days=REMEDIATION_DELAY_DAYS),
                    depends_on=[f"Review {track.display_name} skills in progress"],
                ),
            )
        )
    return recommendations


def _subject_recommendations(progress: UnifiedProgress, now: datetime) -> list[TestRecommendation]:
    recommendations = []
    for subject_id, subject in progress.subject_progress.items():
        if subject.average_score >= REMEDIATION_SCORE_THRESHOLD or not subject.weak_areas:
            continue

        recommendations.append(
            TestRecommendation(
                test_id=f"weakness_test_{subject_id}",
                title=f"{subject_id} Weakness Assessment",
                description=f"Targeted adaptive test for improving weak areas in {subject_id}",
                confidence=0.8,
                reasons=[
                    f"Current score: {subject.average_score:.1f}% (below 75%)",
                    f"{len(subject.weak_areas)} weak areas identified",
                    "Adaptive testing can provide targeted improvement",
                ],
                subjects=[subject_id],
                priority="high",
                track=subject.track,
                ability_improvement=0.2,
                weakness_addressing=list(subject.weak_areas),
                optimal_timing=OptimalTiming(
                    recommended_date=now + timedelta(days=REMEDIATION_DELAY_DAYS),
                    depends_on=[f"Review {subject_id} materials", "Complete pending missions"],
                ),
            )
        )
    return recommendations


def _comprehensive_assessment(progress: UnifiedProgress, now: datetime) -> TestRecommendation:
    subjects = progress.subject_progress.values()
    overall_score = (
        sum(s.average_score for s in subjects) / len(subjects) if subjects else 0.0
    )

    return TestRecommendation(
        test_id=f"comprehensive_assessment_{int(now.timestamp())}",
        title="Comprehensive Knowledge Assessment",
        description="Evaluate your overall progress and identify growth opportunities",
        confidence=0.6,
        reasons=[
            f"Overall performance: {overall_score:.1f}%",
            "Regular assessment maintains learning momentum",
            "Adaptive testing provides personalized insights",
        ],
        priority="medium",
        difficulty=ProficiencyLevel.BEGINNER,
        ability_improvement=0.1,
        weakness_addressing=["General knowledge gaps"],
        optimal_timing=OptimalTiming(
            recommended_date=now + timedelta(days=COMPREHENSIVE_DELAY_DAYS),
        ),
    )


def build_recommendations(progress: UnifiedProgress, now: datetime) -> list[TestRecommendation]:
    """Generate test recommendations from a progress snapshot."""
    recommendations = _track_recommendations(progress, now)
    recommendations.extend(_subject_recommendations(progress, now))

    if not recommendations:
        recommendations.append(_comprehensive_assessment(progress, now))

    return recommendations
