"""CLI over a persisted regimen state file."""

from __future__ import annotations

import json
import logging
import sys
from datetime import date
from pathlib import Path

import click

from regimen_core.analytics import calendar_day_sets, dose_due_today, summarize
from regimen_core.config import Config
from regimen_core.dates import parse_iso_day
from regimen_core.errors import InvalidDoseDay, classify_error
from regimen_core.ledger import Regimen, mark_taken, start_regimen, unmark
from regimen_core.logging import setup_logging
from regimen_core.persistence import read_state_file, write_state_file
from regimen_core.presets import PRESETS, build_policy, seed_regimen
from regimen_core.start_date import set_start_date

_policy_option = click.option(
    "--policy", "policy_name",
    type=click.Choice(sorted(PRESETS.keys())),
    default="daily",
    show_default=True,
    help="Dosing policy preset.",
)
_state_option = click.option(
    "--state", "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Regimen state file (defaults to REGIMEN_STATE_FILE).",
)


def _parse_day(ctx: click.Context, param: click.Parameter, value):
    if value is None:
        return None
    if isinstance(value, tuple):
        return tuple(_parse_day(ctx, param, item) for item in value)
    parsed = parse_iso_day(value)
    if parsed is None:
        raise click.BadParameter(f"expected YYYY-MM-DD, got {value!r}")
    return parsed


_today_option = click.option(
    "--today",
    callback=_parse_day,
    help="Reference day for date-dependent presets and analytics (defaults to the local date).",
)


def _resolve_state_path(ctx: click.Context, state_path: Path | None) -> Path:
    cfg: Config = ctx.obj["config"]
    path = state_path or cfg.state_file
    if path is None:
        click.echo("Error: Specify --state or set REGIMEN_STATE_FILE.", err=True)
        sys.exit(1)
    return path


def _load(path: Path, policy_name: str, today: date | None):
    return read_state_file(path, lambda start: build_policy(policy_name, start, today))


@click.group()
@click.pass_context
def main(ctx: click.Context):
    """Medication regimen adherence tracker."""
    try:
        cfg = Config.from_env()
    except RuntimeError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    setup_logging(cfg.log_format, level=logging.WARNING)
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


@main.command()
@_state_option
@_policy_option
@_today_option
@click.pass_context
def summary(ctx: click.Context, state_path: Path | None, policy_name: str, today: date | None):
    """Print next pending dose, streak and compliance as JSON."""
    cfg: Config = ctx.obj["config"]
    today = today or date.today()
    regimen, profile = _load(_resolve_state_path(ctx, state_path), policy_name, today)

    result = summarize(regimen, today, cfg.horizon_days).to_dict()
    result["dose_due_today"] = dose_due_today(regimen, today)
    result["user_name"] = profile.user_name
    click.echo(json.dumps(result, indent=2))


@main.command()
@_state_option
@_policy_option
@_today_option
@click.pass_context
def calendar(ctx: click.Context, state_path: Path | None, policy_name: str, today: date | None):
    """Print taken, missed and pending days as JSON."""
    cfg: Config = ctx.obj["config"]
    today = today or date.today()
    regimen, _ = _load(_resolve_state_path(ctx, state_path), policy_name, today)

    day_sets = calendar_day_sets(
        regimen,
        today,
        lookback_days=cfg.calendar_lookback_days,
        lookahead_days=cfg.calendar_lookahead_days,
    )
    click.echo(json.dumps(
        {
            "taken": sorted(d.isoformat() for d in day_sets.taken),
            "missed": sorted(d.isoformat() for d in day_sets.missed),
            "scheduled_pending": sorted(d.isoformat() for d in day_sets.scheduled_pending),
        },
        indent=2,
    ))


def _save_transition(path: Path, previous: Regimen | None, updated: Regimen, profile) -> None:
    write_state_file(path, updated, profile)
    click.echo(
        f"Saved {path} (start {updated.start_date.isoformat()}, "
        f"{len(updated.doses)} dose(s) recorded"
        + ("" if previous is not None else ", regimen started")
        + ")."
    )


@main.command()
@click.argument("day", callback=_parse_day)
@_state_option
@_policy_option
@_today_option
@click.pass_context
def mark(
    ctx: click.Context, day: date, state_path: Path | None, policy_name: str, today: date | None
):
    """Mark DAY as taken (starts the regimen if none exists)."""
    today = today or date.today()
    path = _resolve_state_path(ctx, state_path)
    regimen, profile = _load(path, policy_name, today)
    try:
        if regimen is None:
            updated = start_regimen(day, build_policy(policy_name, day, today))
        else:
            updated = mark_taken(regimen, day)
    except InvalidDoseDay as exc:
        click.echo(f"Error [{classify_error(exc)}]: {exc}", err=True)
        sys.exit(1)
    _save_transition(path, regimen, updated, profile)


@main.command(name="unmark")
@click.argument("day", callback=_parse_day)
@_state_option
@_policy_option
@_today_option
@click.pass_context
def unmark_command(
    ctx: click.Context, day: date, state_path: Path | None, policy_name: str, today: date | None
):
    """Remove the taken entry for DAY."""
    today = today or date.today()
    path = _resolve_state_path(ctx, state_path)
    regimen, profile = _load(path, policy_name, today)
    if regimen is None:
        click.echo("Error: No regimen configured.", err=True)
        sys.exit(1)
    _save_transition(path, regimen, unmark(regimen, day), profile)


@main.command(name="set-start")
@click.argument("day", callback=_parse_day)
@_state_option
@_policy_option
@_today_option
@click.pass_context
def set_start(
    ctx: click.Context, day: date, state_path: Path | None, policy_name: str, today: date | None
):
    """Move the treatment start date to DAY, pruning earlier entries."""
    today = today or date.today()
    path = _resolve_state_path(ctx, state_path)
    regimen, profile = _load(path, policy_name, today)
    if regimen is None:
        updated = start_regimen(day, build_policy(policy_name, day, today))
    else:
        updated = set_start_date(regimen, day)
    _save_transition(path, regimen, updated, profile)


@main.command()
@click.option("--output", "-o", required=True, type=click.Path(dir_okay=False, path_type=Path))
@click.option("--start", required=True, callback=_parse_day, help="Treatment start date.")
@click.option("--until", required=True, callback=_parse_day, help="Last seeded day.")
@click.option("--absent", multiple=True, callback=_parse_day, help="Scheduled day to leave untaken.")
@_policy_option
def seed(output: Path, start: date, until: date, absent: tuple[date, ...], policy_name: str):
    """Write a fixture state file with every scheduled day taken."""
    if until < start:
        click.echo("Error: --until must not be before --start.", err=True)
        sys.exit(1)
    regimen = seed_regimen(start, until, build_policy(policy_name, start, until), force_absent=absent)
    write_state_file(output, regimen)
    click.echo(f"Seeded {len(regimen.doses)} dose(s) into {output}.")


if __name__ == "__main__":
    main()
