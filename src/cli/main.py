"""
Typer CLI for the exam strategy engine.

Commands:
    prep strategy PLAN.json              - Pacing, projection and health report for a plan
    prep progress show USER              - Unified progress for a user
    prep progress mission USER           - Record a completed mission
    prep progress test USER RESULTS.json - Record an adaptive test
    prep progress subject USER SUBJECT   - Apply an ability estimate to a subject
    prep progress skill USER SKILL       - Update skill mastery
    prep progress recommend USER         - Adaptive test recommendations
    prep progress link-journey USER ID   - Link a journey to the progress document
    prep progress sync-journey USER ID   - Record a journey sync

Usage:
    prep strategy plans/upsc.json
    prep strategy plans/upsc.json --json
    prep progress mission alice --track exam --score 82 --minutes 45
"""

from __future__ import annotations

import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import Settings, get_settings
from src.core.result import Result
from src.db.database import create_db_engine
from src.progress.models import (
    JourneyProgressUpdate,
    LearningTrack,
    Mission,
    MissionResults,
    TestMetadata,
    TestPerformance,
    Track,
    UnifiedProgress,
)
from src.progress.service import ProgressService
from src.store.sql import SqlDocumentStore
from src.strategy.calculator import StrategyMetricsCalculator, format_velocity
from src.strategy.models import StrategyMetrics, parse_datetime
from src.strategy.plan import StrategyPlan

app = typer.Typer(
    name="prep",
    help="Exam preparation strategy and unified progress tracking",
    no_args_is_help=True,
)

progress_app = typer.Typer(help="Unified progress (missions, adaptive tests, skills, journeys)")
app.add_typer(progress_app, name="progress")

console = Console()


def _configure_logging(settings: Settings) -> None:
    """Route loguru to stderr, plus a rotating file when LOG_FILE is set."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )
    if settings.log_file:
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB", retention=5)


def _build_service() -> ProgressService:
    settings = get_settings()
    engine = create_db_engine(settings.database_url, echo=settings.database_echo)
    return ProgressService.from_settings(SqlDocumentStore(engine), settings)


def _unwrap(result: Result):
    """Return the result data or exit with the service error."""
    if not result.success:
        console.print(f"[red]Error: {result.error}[/]")
        raise typer.Exit(1)
    return result.data


# =============================================================================
# Strategy
# =============================================================================


def _render_strategy(metrics: StrategyMetrics) -> None:
    status = metrics.status
    console.print(
        Panel(
            f"[bold {status.color}]{status.label}[/]\n"
            f"Start: {metrics.start_date:%Y-%m-%d}   Exam: {metrics.exam_date:%Y-%m-%d}\n"
            f"Topics: {metrics.completed_topics_count}/{metrics.total_topics} "
            f"({metrics.percentage_content_completed:.1f}%)\n"
            f"Time elapsed: {metrics.percentage_time_elapsed:.1f}% "
            f"({metrics.days_elapsed} days, {metrics.days_remaining} remaining)\n"
            f"Velocity: {format_velocity(metrics.current_velocity)} topics/week "
            f"(need {format_velocity(metrics.required_velocity)})\n"
            f"Projected finish: {metrics.projected_finish_date:%Y-%m-%d}",
            title="Strategy",
            border_style=status.color,
        )
    )

    if metrics.subject_metrics:
        table = Table(title="Subjects")
        table.add_column("Subject", style="cyan")
        table.add_column("Tier", justify="right")
        table.add_column("Done", justify="right")
        table.add_column("Complete", justify="right")
        table.add_column("Mastery", justify="right")
        table.add_column("Hours", justify="right")
        table.add_column("Topics/hr", justify="right")
        for subject in metrics.subject_metrics:
            table.add_row(
                subject.name,
                str(subject.tier),
                f"{subject.completed_topics}/{subject.total_topics}",
                f"{subject.completion_percentage:.0f}%",
                f"{subject.mastery_score_avg:.0f}",
                f"{subject.total_study_hours:.1f}",
                f"{subject.efficiency:.2f}",
            )
        console.print(table)

    health = metrics.revision_health
    efficiency = metrics.study_efficiency
    console.print(
        f"Revision health: [bold]{health.health_score:.0f}[/] "
        f"(overdue {health.overdue}, due today {health.due_today}, upcoming {health.upcoming})"
    )
    console.print(
        f"Study efficiency: {efficiency.efficiency_ratio * 100:.0f}% "
        f"({efficiency.total_study_hours:.1f}h of {efficiency.goal_study_hours:.1f}h goal, "
        f"{efficiency.actual_hourly_pace:.2f}h/day vs {efficiency.required_hourly_pace:.2f}h/day)"
    )


@app.command("strategy")
def strategy(
    plan_file: Annotated[Path, typer.Argument(help="Plan JSON file")],
    as_json: Annotated[bool, typer.Option("--json", help="Print raw metrics as JSON")] = False,
    today: Annotated[
        str | None, typer.Option("--today", help="Evaluate as of this date (YYYY-MM-DD)")
    ] = None,
) -> None:
    """
    Calculate pacing, projection and health metrics for a preparation plan.

    Examples:
        prep strategy plan.json
        prep strategy plan.json --json --today 2024-03-01
    """
    if not plan_file.exists():
        console.print(f"[red]File not found: {plan_file}[/]")
        raise typer.Exit(1)

    try:
        plan = StrategyPlan.from_file(plan_file)
        as_of = parse_datetime(today)
    except (json.JSONDecodeError, KeyError, ValueError) as exc:
        console.print(f"[red]Invalid plan: {exc}[/]")
        raise typer.Exit(1)

    calculator = StrategyMetricsCalculator.from_settings(get_settings())
    metrics = plan.calculate(calculator, today=as_of)

    if metrics is None:
        console.print(
            "[yellow]No preparation start date found. "
            "Set user.preparation_start_date or course.start_date in the plan.[/]"
        )
        raise typer.Exit(2)

    if as_json:
        typer.echo(json.dumps(metrics.to_dict(), indent=2))
        return

    _render_strategy(metrics)


# =============================================================================
# Progress
# =============================================================================


def _render_progress(progress: UnifiedProgress) -> None:
    overall = progress.overall_progress
    console.print(
        Panel(
            f"Missions: {overall.total_missions_completed}   "
            f"Tests: {overall.total_tests_completed}\n"
            f"Average score: {overall.average_score:.1f}%\n"
            f"Time invested: {overall.total_time_invested:.0f} min\n"
            f"Streak: {overall.current_streak} (best {overall.longest_streak})   "
            f"Consistency: {overall.consistency_rating:.2f}\n"
            f"Adaptive level: {overall.adaptive_testing_level}   "
            f"Journey completion: {overall.overall_completion_percentage:.1f}%",
            title=f"Progress: {progress.user_id}",
            border_style="cyan",
        )
    )

    table = Table(title="Tracks")
    table.add_column("Track", style="cyan")
    table.add_column("Missions", justify="right")
    table.add_column("Average", justify="right")
    table.add_column("Level")
    table.add_column("Next")
    table.add_column("Trend")
    table.add_column("Mastered")
    table.add_column("In progress")
    for track in Track:
        tp = progress.track(track)
        table.add_row(
            track.display_name,
            str(tp.missions_completed),
            f"{tp.average_score:.1f}%",
            tp.proficiency_level.value,
            tp.difficulty_progression.recommended.value,
            tp.performance_trend,
            ", ".join(tp.mastered_skills) or "-",
            ", ".join(tp.skills_in_progress) or "-",
        )
    console.print(table)

    if progress.subject_progress:
        subjects = Table(title="Subjects")
        subjects.add_column("Subject", style="cyan")
        subjects.add_column("Track")
        subjects.add_column("Score", justify="right")
        subjects.add_column("Weak")
        for subject_id, subject in progress.subject_progress.items():
            subjects.add_row(
                subject_id,
                subject.track.value,
                f"{subject.average_score:.1f}%",
                "yes" if subject.weak_areas else "",
            )
        console.print(subjects)


@progress_app.command("show")
def progress_show(
    user_id: Annotated[str, typer.Argument(help="User ID")],
) -> None:
    """Show the unified progress document for a user."""
    service = _build_service()
    progress = _unwrap(asyncio.run(service.get_user_progress(user_id)))
    _render_progress(progress)


@progress_app.command("mission")
def progress_mission(
    user_id: Annotated[str, typer.Argument(help="User ID")],
    score: Annotated[float, typer.Option("--score", "-s", help="Mission score (0-100)")],
    minutes: Annotated[float, typer.Option("--minutes", "-m", help="Minutes spent")] = 0.0,
    track: Annotated[
        LearningTrack, typer.Option("--track", "-t", help="Learning track")
    ] = LearningTrack.EXAM,
    mission_id: Annotated[str | None, typer.Option("--id", help="Mission ID")] = None,
    title: Annotated[str, typer.Option("--title", help="Mission title")] = "",
) -> None:
    """Record a completed mission."""
    try:
        mission = Mission(
            id=mission_id or f"cli-{datetime.now():%Y%m%d%H%M%S}",
            user_id=user_id,
            track=track,
            title=title,
        )
        results = MissionResults(percentage=score, final_score=score, total_time=minutes)
    except ValidationError as exc:
        console.print(f"[red]Invalid mission: {exc}[/]")
        raise typer.Exit(1)

    service = _build_service()
    progress = _unwrap(asyncio.run(service.update_progress_after_mission(user_id, mission, results)))

    tp = progress.track(track)
    console.print(
        f"[green]✓ Mission recorded[/] ({track.value}: {tp.missions_completed} missions, "
        f"average {tp.average_score:.1f}%, level {tp.proficiency_level.value})"
    )
    if tp.difficulty_progression.ready_for_advancement:
        console.print(
            f"[cyan]Ready for {tp.difficulty_progression.recommended.value} missions[/]"
        )


@progress_app.command("test")
def progress_test(
    user_id: Annotated[str, typer.Argument(help="User ID")],
    results_file: Annotated[Path, typer.Argument(help="Adaptive test results JSON")],
    track: Annotated[
        LearningTrack, typer.Option("--track", "-t", help="Learning track")
    ] = LearningTrack.EXAM,
    algorithm: Annotated[str, typer.Option("--algorithm", help="Test algorithm")] = "CAT",
) -> None:
    """Record an adaptive test result."""
    if not results_file.exists():
        console.print(f"[red]File not found: {results_file}[/]")
        raise typer.Exit(1)

    try:
        results = TestPerformance.model_validate_json(results_file.read_text(encoding="utf-8"))
    except ValidationError as exc:
        console.print(f"[red]Invalid test results: {exc}[/]")
        raise typer.Exit(1)

    metadata = TestMetadata(
        subjects=list(results.subject_performance),
        track=track,
        algorithm_type=algorithm,
    )
    service = _build_service()
    _unwrap(asyncio.run(service.update_progress_from_adaptive_test(user_id, results, metadata)))
    console.print(
        f"[green]✓ Adaptive test recorded[/] ({results.accuracy:.1f}% accuracy, "
        f"{len(results.subject_performance)} subjects)"
    )


@progress_app.command("subject")
def progress_subject(
    user_id: Annotated[str, typer.Argument(help="User ID")],
    subject_id: Annotated[str, typer.Argument(help="Subject ID")],
    ability: Annotated[float, typer.Option("--ability", "-a", help="Ability estimate (-2 to 2)")],
    confidence: Annotated[float, typer.Option("--confidence", "-c", help="Confidence (0-1)")] = 0.5,
    track: Annotated[
        LearningTrack | None, typer.Option("--track", "-t", help="Owning track")
    ] = None,
) -> None:
    """Apply an adaptive-test ability estimate to a subject."""
    service = _build_service()
    _unwrap(
        asyncio.run(
            service.update_subject_proficiency(user_id, subject_id, ability, confidence, track)
        )
    )
    console.print(f"[green]✓ Subject {subject_id} updated[/]")


@progress_app.command("skill")
def progress_skill(
    user_id: Annotated[str, typer.Argument(help="User ID")],
    skill: Annotated[str, typer.Argument(help="Skill name")],
    proficiency: Annotated[
        float, typer.Option("--proficiency", "-p", help="Proficiency (0-100)")
    ],
    track: Annotated[
        LearningTrack, typer.Option("--track", "-t", help="Learning track")
    ] = LearningTrack.EXAM,
) -> None:
    """Update mastery of a named skill."""
    service = _build_service()
    _unwrap(asyncio.run(service.update_skill_mastery(user_id, track, skill, proficiency)))
    console.print(f"[green]✓ Skill {skill} updated[/]")


@progress_app.command("recommend")
def progress_recommend(
    user_id: Annotated[str, typer.Argument(help="User ID")],
) -> None:
    """Show adaptive test recommendations and insights."""
    service = _build_service()
    analytics = _unwrap(asyncio.run(service.get_enhanced_analytics(user_id)))
    insights = analytics.adaptive_testing_insights

    console.print(
        f"Adaptive level: [bold]{insights.adaptive_testing_level}[/]   "
        f"Tests: {insights.total_tests_completed}   "
        f"Test every {insights.recommended_test_frequency} days"
    )
    if insights.strong_subjects:
        console.print(f"[green]Strong:[/] {', '.join(insights.strong_subjects)}")
    if insights.weak_subjects:
        console.print(f"[yellow]Weak:[/] {', '.join(insights.weak_subjects)}")

    table = Table(title="Recommended tests")
    table.add_column("Test", style="cyan")
    table.add_column("Priority")
    table.add_column("Subjects")
    table.add_column("When")
    for rec in analytics.recommendations:
        when = rec.optimal_timing.recommended_date if rec.optimal_timing else None
        table.add_row(
            rec.title,
            rec.priority,
            ", ".join(rec.subjects) or "all",
            f"{when:%Y-%m-%d}" if when else "-",
        )
    console.print(table)


@progress_app.command("link-journey")
def progress_link_journey(
    user_id: Annotated[str, typer.Argument(help="User ID")],
    journey_id: Annotated[str, typer.Argument(help="Journey ID")],
) -> None:
    """Link a journey to the user's progress document."""
    service = _build_service()
    progress_id = _unwrap(asyncio.run(service.link_journey(user_id, journey_id)))
    console.print(f"[green]✓ Journey {journey_id} linked to progress {progress_id}[/]")


@progress_app.command("sync-journey")
def progress_sync_journey(
    user_id: Annotated[str, typer.Argument(help="User ID")],
    journey_id: Annotated[str, typer.Argument(help="Journey ID")],
    completion: Annotated[
        float, typer.Option("--completion", help="Journey completion (0-100)")
    ],
) -> None:
    """Record a journey sync and blend it into overall completion."""
    try:
        update = JourneyProgressUpdate(
            journey_id=journey_id,
            overall_completion=completion,
            last_activity=datetime.now(),
        )
    except ValidationError as exc:
        console.print(f"[red]Invalid journey update: {exc}[/]")
        raise typer.Exit(1)

    service = _build_service()
    _unwrap(asyncio.run(service.update_journey_progress(user_id, update)))
    console.print(f"[green]✓ Journey {journey_id} synced ({completion:.0f}%)[/]")


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """Entry point for the CLI."""
    _configure_logging(get_settings())
    app()


if __name__ == "__main__":
    main()
