#!/usr/bin/env python3
"""
SportBoard CLI.

Local training intelligence for running activities.

Usage:
    sportboard import activities.json   # Import activities and reflections
    sportboard stats                    # Database and dashboard totals
    sportboard profile --recompute      # Show or recompute the runner profile
    sportboard dashboard                # Full intelligence report
    sportboard activity 12345678        # Classification and bad-run diagnosis
    sportboard export 12345678          # Write the web JSON export
    sportboard compare --criterion similar_volume
    sportboard simulate --days 5 --volume-change 10 --hard 2
    sportboard reset --yes              # Delete activities and sync state
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .clock import SystemClock, get_calendar
from .config import get_settings
from .db.database import ActivityDatabase
from .exceptions import ActivityNotFoundError, ExportError, PayloadValidationError, RepositoryError
from .export.web_json import export_activity_as_web_json, write_export
from .metrics.stats import round_half_away
from .models.activity import format_pace_seconds
from .models.payloads import parse_import_payload
from .services.dashboard import IntelligenceEngine
from .services.simulator import SimulatorInput
from .services.week_comparator import WeekEquivalenceCriterion

console = Console()
logger = logging.getLogger("sportboard")

SEVERITY_STYLES = {
    "low": "green",
    "medium": "yellow",
    "high": "red",
    "info": "cyan",
    "warning": "yellow",
}


def setup_logging(level: str) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def format_pace(speed_ms: float) -> str:
    if not speed_ms or speed_ms <= 0:
        return "-"
    return f"{format_pace_seconds(round_half_away(1000 / speed_ms))} /km"


def build_engine(db: ActivityDatabase) -> IntelligenceEngine:
    settings = get_settings()
    return IntelligenceEngine(
        db,
        clock=SystemClock(),
        calendar=get_calendar(),
        recompute_interval_days=settings.profile_recompute_days,
    )


def cmd_import(args, db: ActivityDatabase):
    """Import activities (and reflections) from a JSON file."""
    path = Path(args.path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Cannot read {path}: {e}[/red]")
        sys.exit(1)

    try:
        bundle = parse_import_payload(data)
    except PayloadValidationError as e:
        console.print(f"[red]{e.message}[/red]")
        for error in e.details.get("errors", [])[:10]:
            location = ".".join(str(part) for part in error.get("loc", ()))
            console.print(f"  {location}: {error.get('msg')}")
        sys.exit(1)

    synced_at = SystemClock().now()
    activities = [fixture.to_activity(synced_at=synced_at) for fixture in bundle.activities]
    saved = db.save_activities(activities)
    for reflection in bundle.reflections:
        db.save_reflection(reflection.to_reflection())

    logger.info(f"Imported {saved} activities and {len(bundle.reflections)} reflections from {path}")
    console.print(f"[green]Imported {saved} activities, {len(bundle.reflections)} reflections.[/green]")


def cmd_stats(args, db: ActivityDatabase):
    """Show database statistics and dashboard totals."""
    stats = db.get_stats()
    console.print()
    console.print(Panel("[bold]SportBoard - Database Stats[/bold]"))

    table = Table(box=box.ROUNDED)
    table.add_column("Table", style="cyan")
    table.add_column("Rows", justify="right")
    for name, count in stats["counts"].items():
        table.add_row(name, str(count))
    console.print(table)
    console.print(f"Database: {stats['db_path']}")
    date_range = stats["activity_date_range"]
    if date_range["earliest"]:
        console.print(f"Activity range: {date_range['earliest']} to {date_range['latest']}")

    dashboard = build_engine(db).dashboard_stats(args.sport)
    if dashboard is None:
        console.print("[yellow]Dashboard totals unavailable.[/yellow]")
        return

    totals = Table(title="Totals", box=box.ROUNDED)
    totals.add_column("Period", style="cyan")
    totals.add_column("Activities", justify="right")
    totals.add_column("Distance", justify="right")
    totals.add_column("Time", justify="right")
    totals.add_row(
        "All time",
        str(dashboard.total_activities),
        f"{dashboard.total_distance / 1000:.1f} km",
        f"{dashboard.total_time / 3600:.1f} h",
    )
    for label, period in (("This week (runs)", dashboard.this_week), ("This month", dashboard.this_month)):
        totals.add_row(
            label,
            str(period.activities),
            f"{period.distance / 1000:.1f} km",
            f"{period.moving_time / 3600:.1f} h",
        )
    console.print(totals)

    if dashboard.sport_type_counts:
        sports = Table(title="By sport", box=box.SIMPLE)
        sports.add_column("Sport", style="cyan")
        sports.add_column("Count", justify="right")
        for sport, count in dashboard.sorted_sport_types:
            sports.add_row(sport, str(count))
        console.print(sports)
    console.print()


def cmd_profile(args, db: ActivityDatabase):
    """Show the runner profile, recomputing it when requested or due."""
    engine = build_engine(db)
    if args.recompute:
        profile = engine.profiles.compute_and_save()
    else:
        profile = engine.profiles.ensure_profile()

    console.print()
    if profile is None:
        console.print("[yellow]Not enough runs for a profile (at least 5 of 10+ minutes).[/yellow]")
        return

    table = Table(title="Runner Profile", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Easy pace", format_pace(profile.easy_pace_ms))
    table.add_row("Threshold pace", format_pace(profile.threshold_pace_ms))
    table.add_row("Weekly variability", f"{profile.weekly_variability:.2f}")
    table.add_row("Easy/hard ratio", f"{profile.easy_hard_ratio:.0%}")
    table.add_row("Confidence", f"{profile.confidence:.2f}")
    table.add_row("Valid", "yes" if profile.is_valid else "[yellow]no[/yellow]")
    table.add_row("Computed", profile.last_computed_at.isoformat(timespec="seconds"))
    console.print(table)
    console.print()


def cmd_dashboard(args, db: ActivityDatabase):
    """Show the full intelligence report."""
    report = build_engine(db).load_intelligence()

    if args.json:
        console.print_json(json.dumps(report.to_dict(), ensure_ascii=False))
        return

    console.print()
    console.print(Panel("[bold]SportBoard - Dashboard[/bold]"))

    if report.weekly_narrative:
        console.print(Panel(report.weekly_narrative, title="Esta semana", box=box.ROUNDED))

    for alert in report.silent_alerts:
        style = SEVERITY_STYLES.get(alert.severity.value, "white")
        console.print(f"[{style}]! {alert.title}[/{style}]: {alert.message}")

    table = Table(box=box.ROUNDED)
    table.add_column("Indicator", style="cyan")
    table.add_column("Value")
    table.add_column("Details", style="dim")

    if report.consistency:
        table.add_row(
            "Consistencia",
            f"{report.consistency.score}/100",
            "; ".join(report.consistency.reasons),
        )
    if report.fatigue:
        level = report.fatigue.level
        style = SEVERITY_STYLES[level.value]
        table.add_row(
            "Fatiga",
            f"[{style}]{level.display_name}[/{style}]",
            "; ".join(report.fatigue.causes),
        )
    if report.efficiency_trend:
        trend = report.efficiency_trend
        table.add_row(
            "Eficiencia",
            f"{trend.direction.value} ({trend.confidence:.0%})",
            "; ".join(trend.reasons),
        )
    if report.suspicious_peak and report.suspicious_peak.detected:
        table.add_row("Pico", "detectado", report.suspicious_peak.message)
    console.print(table)

    if report.next_workout:
        console.print(Panel(report.next_workout.full_text, title="Próximo entreno", box=box.ROUNDED))
    console.print()


def cmd_activity(args, db: ActivityDatabase):
    """Show classification and bad-run diagnosis for one activity."""
    insights = build_engine(db).activity_insights(args.activity_id)
    if insights is None:
        console.print(f"[red]Activity {args.activity_id} not found[/red]")
        sys.exit(1)

    activity = insights.activity
    console.print()
    console.print(Panel(f"[bold]{activity.name}[/bold] ({activity.sport_type})"))

    table = Table(box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    table.add_row("Distance", f"{activity.distance_km:.2f} km")
    table.add_row("Moving time", f"{activity.moving_time // 60} min")
    table.add_row("Pace", format_pace(activity.average_speed))
    if activity.average_heartrate is not None:
        table.add_row("Avg HR", f"{activity.average_heartrate:.0f} bpm")
    classification = insights.classification
    if classification.should_show:
        table.add_row("Session", f"{classification.type.display_name} ({classification.confidence:.0%})")
    console.print(table)

    for reason in insights.quality.missing_reasons:
        console.print(f"[dim]- {reason}[/dim]")

    bad_run = insights.bad_run
    if bad_run.has_issue:
        style = SEVERITY_STYLES[bad_run.severity.value]
        body = "\n".join([bad_run.summary, *[f"- {c}" for c in bad_run.causes], bad_run.suggested_action])
        console.print(Panel(body.strip(), title=f"[{style}]{bad_run.severity.display_name}[/{style}]"))
    console.print()


def cmd_export(args, db: ActivityDatabase):
    """Export one activity as web JSON."""
    try:
        activity = db.get_activity(args.activity_id)
    except ActivityNotFoundError as e:
        console.print(f"[red]{e.message}[/red]")
        sys.exit(1)

    if args.stdout:
        print(export_activity_as_web_json(activity))
        return

    directory = Path(args.out) if args.out else get_settings().export_dir
    try:
        path = write_export(activity, directory)
    except ExportError as e:
        console.print(f"[red]{e.message}[/red]")
        sys.exit(1)
    console.print(f"[green]Exported to {path}[/green]")


def cmd_compare(args, db: ActivityDatabase):
    """Compare the current week against an equivalent past week."""
    engine = build_engine(db)
    profile = engine.profiles.fetch_profile()
    comparison = engine.comparator.compare_current_week(
        WeekEquivalenceCriterion(args.criterion), profile
    )
    console.print()
    if comparison is None:
        console.print("[yellow]No equivalent past week found.[/yellow]")
        return

    table = Table(title="Week comparison", box=box.ROUNDED)
    table.add_column("", style="cyan")
    table.add_column("This week", justify="right")
    table.add_column("Reference", justify="right")
    current, reference = comparison.current, comparison.reference
    table.add_row("Week of", current.week_start.date().isoformat(), reference.week_start.date().isoformat())
    table.add_row("Distance", current.formatted_distance, reference.formatted_distance)
    table.add_row("Time", current.formatted_time, reference.formatted_time)
    table.add_row("Sessions", str(current.session_count), str(reference.session_count))
    table.add_row("Easy ratio", f"{current.easy_ratio:.0%}", f"{reference.easy_ratio:.0%}")
    console.print(table)
    for insight in comparison.insights:
        console.print(f"- {insight}")
    console.print()


def cmd_simulate(args, db: ActivityDatabase):
    """Run a what-if scenario against the current week."""
    engine = build_engine(db)
    scenario = SimulatorInput(
        days_per_week=args.days,
        volume_change_percent=args.volume_change,
        hard_sessions_per_week=args.hard,
    )
    result = engine.simulator.simulate_from_current(scenario, engine.profiles.fetch_profile())

    table = Table(title="Simulation", box=box.ROUNDED)
    table.add_column("Outcome", style="cyan")
    table.add_column("Value")
    table.add_row("Consistencia", result.consistency_impact)
    table.add_row("Riesgo", result.risk_level)
    table.add_row("Tendencia", result.trend_expectation)
    console.print()
    console.print(table)
    for reason in result.reasons:
        console.print(f"- {reason}")
    console.print()


def cmd_reset(args, db: ActivityDatabase):
    """Delete activities, laps, splits and sync state."""
    if not args.yes:
        console.print("[yellow]This deletes every stored activity. Re-run with --yes to confirm.[/yellow]")
        return
    removed = db.reset()
    console.print(f"[green]Removed {removed.get('activities', 0)} activities.[/green]")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="SportBoard - local running intelligence",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sportboard import activities.json
  sportboard dashboard
  sportboard export 12345678 --out exports
        """,
    )
    parser.add_argument("--db", help="SQLite database path")
    parser.add_argument("--log-level", help="Logging level (default from settings)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    import_p = subparsers.add_parser("import", help="Import activities from JSON")
    import_p.add_argument("path", help="JSON file (fixture, list of fixtures or bundle)")

    stats_p = subparsers.add_parser("stats", help="Show database statistics")
    stats_p.add_argument("--sport", help="Restrict totals to one sport type")

    profile_p = subparsers.add_parser("profile", help="Show the runner profile")
    profile_p.add_argument("--recompute", action="store_true", help="Force recomputation")

    dashboard_p = subparsers.add_parser("dashboard", help="Show the intelligence report")
    dashboard_p.add_argument("--json", action="store_true", help="Print the report as JSON")

    activity_p = subparsers.add_parser("activity", help="Analyze one activity")
    activity_p.add_argument("activity_id", type=int)

    export_p = subparsers.add_parser("export", help="Export one activity as web JSON")
    export_p.add_argument("activity_id", type=int)
    export_p.add_argument("--out", help="Output directory (default from settings)")
    export_p.add_argument("--stdout", action="store_true", help="Print instead of writing a file")

    compare_p = subparsers.add_parser("compare", help="Compare this week with an equivalent week")
    compare_p.add_argument(
        "--criterion",
        choices=[c.value for c in WeekEquivalenceCriterion],
        default=WeekEquivalenceCriterion.SIMILAR_VOLUME.value,
    )

    simulate_p = subparsers.add_parser("simulate", help="What-if simulation")
    simulate_p.add_argument("--days", type=int, required=True, help="Training days per week")
    simulate_p.add_argument("--volume-change", type=float, default=0.0, help="Volume change in percent")
    simulate_p.add_argument("--hard", type=int, default=0, help="Hard sessions per week")

    reset_p = subparsers.add_parser("reset", help="Delete stored activities")
    reset_p.add_argument("--yes", action="store_true", help="Confirm deletion")

    args = parser.parse_args()
    setup_logging(args.log_level or get_settings().log_level)

    if args.command is None:
        parser.print_help()
        return

    commands = {
        "import": cmd_import,
        "stats": cmd_stats,
        "profile": cmd_profile,
        "dashboard": cmd_dashboard,
        "activity": cmd_activity,
        "export": cmd_export,
        "compare": cmd_compare,
        "simulate": cmd_simulate,
        "reset": cmd_reset,
    }

    try:
        db = ActivityDatabase(args.db)
        commands[args.command](args, db)
    except RepositoryError as e:
        console.print(f"[red]Database error: {e.message}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
