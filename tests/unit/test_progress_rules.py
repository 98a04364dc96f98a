"""
Unit tests for progress aggregation rules.

Tests:
- Proficiency tiers and the separate advancement readiness check
- Consistency rating blend and streaks
- Skill set exclusivity (mastered vs. in progress)
- Subject weak/strong areas and adaptive testing level
"""

import pytest

from src.progress import models, rules
from src.progress.models import (
    OverallProgress,
    ProficiencyLevel,
    SubjectProgress,
    Track,
    TrackProgress,
    UnifiedProgress,
)


def _track(missions: int = 0, average: float = 0.0) -> TrackProgress:
    return TrackProgress(track=Track.EXAM, missions_completed=missions, average_score=average)


class TestRunningMean:
    def test_first_observation(self):
        assert rules.running_mean(0.0, 1, 80.0) == 80.0

    def test_identical_observations_keep_the_mean(self):
        mean = 0.0
        for count in range(1, 11):
            mean = rules.running_mean(mean, count, 72.5)
            assert mean == pytest.approx(72.5)

    def test_mixed_observations(self):
        mean = rules.running_mean(0.0, 1, 60.0)
        mean = rules.running_mean(mean, 2, 90.0)
        assert mean == pytest.approx(75.0)

    def test_blend(self):
        assert rules.blend(50.0, 100.0, 0.3) == pytest.approx(65.0)
        assert rules.blend(50.0, 100.0, 0.0) == 50.0


class TestProficiencyTier:
    """Tier is a step function of mission count and average score."""

    @pytest.mark.parametrize(
        "missions,average,expected",
        [
            (50, 95.0, ProficiencyLevel.EXPERT),
            (50, 90.0, ProficiencyLevel.EXPERT),
            (50, 85.0, ProficiencyLevel.ADVANCED),
            (49, 95.0, ProficiencyLevel.ADVANCED),
            (25, 80.0, ProficiencyLevel.ADVANCED),
            (24, 95.0, ProficiencyLevel.INTERMEDIATE),
            (10, 70.0, ProficiencyLevel.INTERMEDIATE),
            (10, 69.9, ProficiencyLevel.BEGINNER),
            (9, 100.0, ProficiencyLevel.BEGINNER),
            (0, 0.0, ProficiencyLevel.BEGINNER),
        ],
    )
    def test_thresholds(self, missions, average, expected):
        assert rules.proficiency_tier(missions, average) == expected

    def test_lower_average_drops_tier(self):
        track = _track(50, 95.0)
        rules.update_proficiency_level(track)
        assert track.proficiency_level == ProficiencyLevel.EXPERT

        track.average_score = 85.0
        rules.update_proficiency_level(track)
        assert track.proficiency_level == ProficiencyLevel.ADVANCED


class TestAdvancementReadiness:
    """Readiness moves the recommended difficulty, never the tier."""

    def test_ready_beginner_is_recommended_intermediate(self):
        track = _track(5, 90.0)

        rules.update_proficiency_level(track)

        assert track.proficiency_level == ProficiencyLevel.BEGINNER
        assert track.difficulty_progression.current == ProficiencyLevel.BEGINNER
        assert track.difficulty_progression.recommended == ProficiencyLevel.INTERMEDIATE
        assert track.difficulty_progression.ready_for_advancement is True

    def test_too_few_missions(self):
        track = _track(4, 100.0)

        rules.update_proficiency_level(track)

        assert track.difficulty_progression.ready_for_advancement is False
        assert track.difficulty_progression.recommended == ProficiencyLevel.BEGINNER

    def test_expert_has_nothing_above(self):
        track = _track(60, 95.0)

        rules.update_proficiency_level(track)

        assert track.proficiency_level == ProficiencyLevel.EXPERT
        assert track.difficulty_progression.ready_for_advancement is False

    def test_readiness_is_withdrawn_when_scores_drop(self):
        track = _track(6, 90.0)
        rules.update_proficiency_level(track)
        assert track.difficulty_progression.ready_for_advancement is True

        track.average_score = 70.0
        rules.update_proficiency_level(track)

        assert track.difficulty_progression.ready_for_advancement is False
        assert track.difficulty_progression.recommended == ProficiencyLevel.BEGINNER

    def test_next_level(self):
        assert ProficiencyLevel.BEGINNER.next_level == ProficiencyLevel.INTERMEDIATE
        assert ProficiencyLevel.EXPERT.next_level is None


class TestConsistencyAndStreak:
    def test_zero(self):
        overall = OverallProgress()
        rules.update_consistency_rating(overall)
        assert overall.consistency_rating == 0.0

    def test_blend_of_streak_and_volume(self):
        overall = OverallProgress(current_streak=15, total_missions_completed=50)
        rules.update_consistency_rating(overall)
        assert overall.consistency_rating == pytest.approx(0.5 * 0.6 + 0.5 * 0.4)

    def test_each_component_capped(self):
        overall = OverallProgress(current_streak=90, total_missions_completed=500)
        rules.update_consistency_rating(overall)
        assert overall.consistency_rating == pytest.approx(1.0)

    def test_streak_tracks_longest(self):
        overall = OverallProgress(current_streak=2, longest_streak=5)
        for _ in range(4):
            rules.update_streak(overall)
        assert overall.current_streak == 6
        assert overall.longest_streak == 6


class TestSkillSets:
    """A skill is never both mastered and in progress."""

    def _assert_exclusive(self, track):
        assert not set(track.mastered_skills) & set(track.skills_in_progress)

    def test_mastered_removes_from_in_progress(self):
        track = _track()
        rules.apply_skill_proficiency(track, "economy", 55)
        assert track.skills_in_progress == ["economy"]

        rules.apply_skill_proficiency(track, "economy", 85)

        assert track.mastered_skills == ["economy"]
        assert track.skills_in_progress == []
        self._assert_exclusive(track)

    def test_regression_moves_back_to_in_progress(self):
        track = _track()
        rules.apply_skill_proficiency(track, "economy", 90)

        rules.apply_skill_proficiency(track, "economy", 60)

        assert track.mastered_skills == []
        assert track.skills_in_progress == ["economy"]
        self._assert_exclusive(track)

    def test_low_proficiency_changes_nothing(self):
        track = _track()
        rules.apply_skill_proficiency(track, "economy", 90)

        rules.apply_skill_proficiency(track, "economy", 20)

        assert track.mastered_skills == ["economy"]
        assert track.skills_in_progress == []

    @pytest.mark.parametrize("sequence", [[40, 80, 79.9, 100, 0, 45], [85, 85, 50, 50], [39, 40]])
    def test_exclusive_after_any_sequence(self, sequence):
        track = _track()
        for proficiency in sequence:
            rules.apply_skill_proficiency(track, "geography", proficiency)
            self._assert_exclusive(track)
            assert track.mastered_skills.count("geography") <= 1
            assert track.skills_in_progress.count("geography") <= 1


class TestSubjects:
    def test_ability_to_proficiency(self):
        assert rules.ability_to_proficiency(-2.0) == 0.0
        assert rules.ability_to_proficiency(0.0) == 50.0
        assert rules.ability_to_proficiency(2.0) == 100.0
        assert rules.ability_to_proficiency(3.5) == 100.0
        assert rules.ability_to_proficiency(-4.0) == 0.0

    def test_weak_then_strong(self):
        subject = SubjectProgress(subject_id="polity")

        rules.update_subject_areas(subject, 55.0)
        assert subject.weak_areas == ["polity"]

        rules.update_subject_areas(subject, 90.0)
        assert subject.weak_areas == []
        assert subject.strong_areas == ["polity"]

    def test_middle_band_leaves_areas(self):
        subject = SubjectProgress(subject_id="polity", weak_areas=["polity"])

        rules.update_subject_areas(subject, 80.0)

        assert subject.weak_areas == ["polity"]

    def test_score_trend(self):
        assert rules.score_trend(50.0, 60.0) == "improving"
        assert rules.score_trend(60.0, 50.0) == "declining"
        assert rules.score_trend(60.0, 60.0) == "stable"

    def test_strong_and_weak_subjects(self):
        progress = UnifiedProgress(
            user_id="u1",
            subject_progress={
                "history": SubjectProgress(subject_id="history", average_score=90.0),
                "polity": SubjectProgress(subject_id="polity", average_score=60.0),
                "economy": SubjectProgress(subject_id="economy", average_score=75.0),
            },
        )

        assert rules.strong_subjects(progress) == ["history"]
        assert rules.weak_subjects(progress) == ["polity"]


class TestAdaptiveTesting:
    @pytest.mark.parametrize(
        "ability,accuracy,expected",
        [
            (1.0, 95.0, "Expert"),
            (1.0, 85.0, "Advanced"),
            (0.6, 95.0, "Advanced"),
            (0.3, 75.0, "Intermediate"),
            (0.0, 65.0, "Developing"),
            (-0.5, 95.0, "Beginner"),
            (1.0, 50.0, "Beginner"),
        ],
    )
    def test_level(self, ability, accuracy, expected):
        results = models.TestPerformance(accuracy=accuracy, final_ability_estimate=ability)
        assert rules.calculate_adaptive_testing_level(results) == expected

    @pytest.mark.parametrize(
        "score,consistency,expected",
        [(50.0, 0.9, 2), (90.0, 0.4, 2), (70.0, 0.9, 3), (90.0, 0.6, 3), (90.0, 0.8, 5)],
    )
    def test_recommended_frequency(self, score, consistency, expected):
        progress = UnifiedProgress(
            user_id="u1", overall_progress=OverallProgress(consistency_rating=consistency)
        )
        progress.track(Track.EXAM).average_score = score

        assert rules.calculate_recommended_test_frequency(progress) == expected


class TestUnifiedProgressModel:
    def test_both_tracks_always_present(self):
        progress = UnifiedProgress(user_id="u1")
        assert set(progress.track_progress) == {Track.EXAM, Track.COURSE_TECH}

    def test_learning_tracks_map_to_progress_tracks(self):
        progress = UnifiedProgress(user_id="u1")
        assert progress.track(models.LearningTrack.LANGUAGE).track == Track.COURSE_TECH
        assert progress.track(models.LearningTrack.EXAM).track == Track.EXAM

    def test_json_round_trip_keeps_enum_keys(self):
        progress = UnifiedProgress(user_id="u1")
        progress.track(Track.COURSE_TECH).mastered_skills.append("python")

        restored = UnifiedProgress.model_validate(progress.model_dump(mode="json"))

        assert restored.track(Track.COURSE_TECH).mastered_skills == ["python"]
