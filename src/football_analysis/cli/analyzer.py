"""Command line interface for fixture market analysis."""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List

import click
import pandas as pd
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..analysis import (
    CanonicalFixture,
    MarketDistribution,
    ScoreSelector,
    aggregate_league,
    aggregate_markets,
    analyze_leagues,
    analyze_streaks,
    analyze_team,
    analyze_teams,
    condition_streaks,
    last_played,
    normalize_algo_settings,
    normalize_fixtures,
    team_fixtures,
)
from ..config import get_settings
from ..database import (
    get_session,
    init_db,
    pick_history,
    resolve_pending_picks,
    resolve_team_settings,
    save_team_settings,
    snapshot_date_key,
    snapshot_picks,
)
from ..utils import setup_logging

console = Console()
logger = logging.getLogger(__name__)

SELECTOR_CHOICES = click.Choice([s.value for s in ScoreSelector])


def load_fixture_records(path: Path) -> List[dict]:
    """Read raw fixture records from a JSON or CSV file."""
    if path.suffix.lower() == ".csv":
        frame = pd.read_csv(path)
        frame = frame.astype(object).where(frame.notna(), None)
        return frame.to_dict(orient="records")

    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        # Provider envelopes wrap the list
        for key in ("response", "fixtures", "items", "data"):
            if isinstance(data.get(key), list):
                return data[key]
        raise click.BadParameter(f"{path} contains no fixture list")
    if not isinstance(data, list):
        raise click.BadParameter(f"{path} must contain a list of fixtures")
    return data


def load_fixtures(path: Path) -> List[CanonicalFixture]:
    fixtures, malformed = normalize_fixtures(load_fixture_records(path))
    if malformed:
        console.print(f"[yellow]⚠️ Skipped {len(malformed)} malformed fixture records[/yellow]")
    return fixtures


def _pct(value) -> str:
    return f"{value.percent}% ({value.raw})"


def display_distribution(distribution: MarketDistribution, title: str) -> None:
    """Render over/under lines and double-chance buckets."""
    console.print(f"[bold]{title}[/bold] - sample size {distribution.sample_size}")

    table = Table(title="Over / Under")
    table.add_column("Line", style="cyan")
    table.add_column("Over", justify="right", style="green")
    table.add_column("Under", justify="right", style="magenta")
    for line, over in distribution.over.items():
        table.add_row(line, _pct(over), _pct(distribution.under[line]))
    console.print(table)

    table = Table(title="Double Chance / Result")
    table.add_column("Market", style="cyan")
    table.add_column("Hit rate", justify="right")
    for key, value in distribution.double_chance.items():
        table.add_row(f"DC {key}", _pct(value))
    for key, value in distribution.result.items():
        table.add_row(f"Result {key}", _pct(value))
    table.add_row("BTTS", _pct(distribution.btts))
    console.print(table)


def _as_of_utc(value) -> datetime:
    """Naive --as-of values are UTC; no value means now."""
    if value is None:
        return datetime.now(timezone.utc)
    return value.replace(tzinfo=timezone.utc)


def _run(verbose: bool, action) -> None:
    try:
        action()
    except click.ClickException:
        raise
    except Exception as e:
        console.print(f"[red]❌ Error: {e}[/red]")
        if verbose:
            console.print_exception()
        raise click.Abort()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(__version__)
@click.pass_context
def main(ctx, verbose):
    """Market probabilities, streaks and picks from fixture history."""
    setup_logging(level="DEBUG" if verbose else "WARNING")
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@main.command()
@click.argument("fixtures_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--team", "-t", "team_id", type=int, required=True, help="Team id to analyze")
@click.option("--selector", "-s", type=SELECTOR_CHOICES, default="ft", help="Score period")
@click.option("--venue", type=click.Choice(["home", "away"]), help="Only home or away fixtures")
@click.option("--window", type=int, help="Only the N most recent played fixtures")
@click.option("--team-perspective", is_flag=True, help="Read outcomes from the team's side")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of tables")
@click.pass_context
def markets(ctx, fixtures_file, team_id, selector, venue, window, team_perspective, as_json):
    """Over/under and double-chance distribution for one team."""
    def action():
        fixtures = team_fixtures(load_fixtures(fixtures_file), team_id, venue=venue)
        if window:
            fixtures = last_played(fixtures, window)

        distribution = aggregate_markets(
            fixtures,
            selector=ScoreSelector(selector),
            team_id=team_id if team_perspective else None,
        )
        if as_json:
            click.echo(json.dumps(distribution.to_dict(), indent=2))
        else:
            display_distribution(distribution, f"Team {team_id} ({selector.upper()})")

    _run(ctx.obj["verbose"], action)


@main.command()
@click.argument("fixtures_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--competition", "competition_id", type=int, help="Competition id")
@click.option("--season", type=int, help="Season year")
@click.option("--selector", "-s", type=SELECTOR_CHOICES, default="ft", help="Score period")
@click.option("--split", is_flag=True, help="One distribution per competition and season")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of tables")
@click.pass_context
def league(ctx, fixtures_file, competition_id, season, selector, split, as_json):
    """Distribution pooled over every fixture of a league."""
    def action():
        fixtures = load_fixtures(fixtures_file)
        if split:
            partitions = analyze_leagues(
                fixtures, ScoreSelector(selector), max_workers=get_settings().max_workers
            )
            if as_json:
                payload = {f"{c}:{s}": d.to_dict() for (c, s), d in partitions.items()}
                click.echo(json.dumps(payload, indent=2))
            else:
                for (c, s), distribution in partitions.items():
                    display_distribution(distribution, f"League {c} / {s} ({selector.upper()})")
            return

        distribution = aggregate_league(
            fixtures,
            selector=ScoreSelector(selector),
            competition_id=competition_id,
            season=season,
        )
        if as_json:
            click.echo(json.dumps(distribution.to_dict(), indent=2))
        else:
            display_distribution(distribution, f"League {competition_id or 'all'} ({selector.upper()})")

    _run(ctx.obj["verbose"], action)


@main.command()
@click.argument("fixtures_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--team", "-t", "team_id", type=int, required=True, help="Team id to analyze")
@click.option("--selector", "-s", type=SELECTOR_CHOICES, default="ft", help="Score period")
@click.pass_context
def streaks(ctx, fixtures_file, team_id, selector):
    """Current and longest result streaks plus active market streaks."""
    def action():
        fixtures = load_fixtures(fixtures_file)
        selector_value = ScoreSelector(selector)
        summary = analyze_streaks(fixtures, team_id, selector_value)

        if summary.current_length:
            console.print(
                f"Current streak: [bold]{summary.current_length} x {summary.current_type.value}[/bold]"
            )
        else:
            console.print("Current streak: none")
        longest = ", ".join(f"{o.value} {n}" for o, n in summary.longest.items())
        console.print(f"Longest streaks: {longest}")

        table = Table(title="Active market streaks")
        table.add_column("Condition", style="cyan")
        table.add_column("Streak", justify="right")
        table.add_column("Continues", justify="right")
        for name, streak in condition_streaks(fixtures, team_id, selector_value).items():
            if not streak.active:
                continue
            continuation = "-" if streak.continuation_percent is None else f"{streak.continuation_percent}%"
            table.add_row(name, str(streak.length), continuation)
        console.print(table)

    _run(ctx.obj["verbose"], action)


@main.command()
@click.argument("fixtures_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--team", "-t", "team_id", type=int, required=True, help="Team id to analyze")
@click.option("--settings", "settings_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="JSON file with algo settings")
@click.option("--stored", is_flag=True, help="Use the team's stored settings")
@click.option("--user", "user_id", help="Settings owner (defaults to the anonymous user)")
@click.option("--save", is_flag=True, help="Snapshot the picks into the database")
@click.option("--only-met", is_flag=True, help="Show only picks meeting the criteria")
@click.option("--as-of", type=click.DateTime(), help="Reference time in UTC (default: now)")
@click.pass_context
def picks(ctx, fixtures_file, team_id, settings_file, stored, user_id, save, only_met, as_of):
    """Evaluate pick lines for a team's next fixture."""
    def action():
        fixtures = load_fixtures(fixtures_file)
        settings = None
        if settings_file:
            with open(settings_file, encoding="utf-8") as f:
                settings = normalize_algo_settings(json.load(f))
        elif stored:
            init_db()
            with get_session() as session:
                settings = resolve_team_settings(session, team_id, user_id)

        analysis = analyze_team(
            fixtures,
            team_id,
            settings,
            form_window=get_settings().form_window,
            as_of=_as_of_utc(as_of),
        )
        if analysis.next_fixture_id is None:
            console.print("[yellow]No upcoming fixture for this team.[/yellow]")
            return

        rows = [p for p in analysis.picks if p.meets_criteria or not only_met]
        table = Table(title=f"Picks for fixture {analysis.next_fixture_id}")
        table.add_column("Market", style="cyan")
        table.add_column("Hit rate", justify="right")
        table.add_column("Sample", justify="right")
        table.add_column("Meets", justify="center")
        for pick in rows:
            table.add_row(
                pick.market_label,
                f"{pick.percent_green}%",
                str(pick.sample_size),
                "[green]✔[/green]" if pick.meets_criteria else "[red]✘[/red]",
            )
        console.print(table)
        console.print("Form: " + " ".join(o.value[0].upper() for o in analysis.form))

        if save:
            init_db()
            kickoffs = {f.fixture_id: f.kickoff_utc for f in fixtures}
            with get_session() as session:
                stored_count = snapshot_picks(session, snapshot_date_key(), analysis.picks, kickoffs)
            console.print(f"✅ Saved {stored_count} picks")

    _run(ctx.obj["verbose"], action)


@main.command()
@click.argument("fixtures_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--team", "-t", "team_ids", type=int, multiple=True,
              help="Team id, repeatable (default: every team in the file)")
@click.option("--stored", is_flag=True, help="Use each team's stored settings")
@click.option("--user", "user_id", help="Settings owner (defaults to the anonymous user)")
@click.option("--as-of", type=click.DateTime(), help="Reference time in UTC (default: now)")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of tables")
@click.pass_context
def batch(ctx, fixtures_file, team_ids, stored, user_id, as_of, as_json):
    """Analyze many teams in parallel and show each team's best pick."""
    def action():
        fixtures = load_fixtures(fixtures_file)
        ids = list(team_ids) or sorted(
            {team for f in fixtures for team in (f.home_team_id, f.away_team_id)}
        )

        settings_by_team = {}
        if stored:
            init_db()
            with get_session() as session:
                settings_by_team = {t: resolve_team_settings(session, t, user_id) for t in ids}

        app_settings = get_settings()
        results = analyze_teams(
            fixtures,
            ids,
            settings_by_team,
            max_workers=app_settings.max_workers,
            form_window=app_settings.form_window,
            as_of=_as_of_utc(as_of),
        )

        if as_json:
            click.echo(json.dumps({str(t): a.to_dict() for t, a in results.items()}, indent=2))
            return

        table = Table(title=f"Best picks ({len(results)} teams)")
        table.add_column("Team", style="cyan")
        table.add_column("Next", justify="right")
        table.add_column("Form")
        table.add_column("Streak")
        table.add_column("Best pick", style="green")
        for team_id, analysis in results.items():
            best = analysis.best_pick
            streak = analysis.streaks
            table.add_row(
                str(team_id),
                str(analysis.next_fixture_id or "-"),
                "".join(o.value[0].upper() for o in analysis.form),
                f"{streak.current_length}{streak.current_type.value[0].upper()}" if streak.current_type else "-",
                f"{best.market_label} ({best.percent_green}%)" if best else "-",
            )
        console.print(table)

    _run(ctx.obj["verbose"], action)


@main.command("set-settings")
@click.argument("team_id", type=int)
@click.argument("settings_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--user", "user_id", help="Settings owner (defaults to the anonymous user)")
@click.pass_context
def set_settings(ctx, team_id, settings_file, user_id):
    """Store algo settings for a team, replacing previous ones."""
    def action():
        with open(settings_file, encoding="utf-8") as f:
            raw = json.load(f)
        init_db()
        with get_session() as session:
            saved = save_team_settings(session, team_id, raw, user_id)
        click.echo(json.dumps(saved.model_dump(mode="json"), indent=2))

    _run(ctx.obj["verbose"], action)


@main.command()
@click.argument("fixtures_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def resolve(ctx, fixtures_file):
    """Grade pending snapshotted picks against final scores."""
    def action():
        fixtures = load_fixtures(fixtures_file)
        init_db()
        with get_session() as session:
            count = resolve_pending_picks(session, fixtures)
        console.print(f"✅ Resolved {count} picks")

    _run(ctx.obj["verbose"], action)


@main.command()
@click.option("--days", type=int, default=30, help="How many days back")
@click.option("--criteria", type=click.Choice(["all", "met", "unmet"]), default="all")
@click.option("--category", type=click.Choice(["all", "over_under", "double_chance"]), default="all")
@click.pass_context
def history(ctx, days, criteria, category):
    """List snapshotted picks with their settlement status."""
    def action():
        since = snapshot_date_key() - timedelta(days=max(days, 0))
        init_db()
        with get_session() as session:
            rows = pick_history(session, since, criteria=criteria, category=category)
            summary: Dict[str, int] = {}
            table = Table(title=f"Picks since {since.isoformat()}")
            for column in ("Date", "Fixture", "Market", "Hit rate", "Meets", "Status"):
                table.add_column(column)
            for row in rows:
                summary[row.status] = summary.get(row.status, 0) + 1
                table.add_row(
                    row.snapshot_date.isoformat(),
                    str(row.fixture_id),
                    row.market_label,
                    f"{row.percent_green}%",
                    "yes" if row.meets_criteria else "no",
                    row.status,
                )
        console.print(table)
        console.print(", ".join(f"{k}: {v}" for k, v in sorted(summary.items())) or "No picks")

    _run(ctx.obj["verbose"], action)


@main.command("init-db")
def init_db_command():
    """Create the database tables."""
    init_db()
    console.print("✅ Database initialized")


if __name__ == "__main__":
    main()
