"""
CLI: momentum scores / calendar / today / toggle / reset
Terminal views over the same record store the API uses.
"""
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import click

# make the momentum package importable when run as a script
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root))

from momentum.calendar_view import DayState
from momentum.exceptions import MomentumError
from momentum.persona_service import PersonaService
from momentum.schedule import WEEKDAYS, parse_weekday
from momentum.config_manager import config

STATE_MARKS = {
    DayState.COMPLETE: "#",
    DayState.PARTIAL: "+",
    DayState.MISSED: "x",
    DayState.NEUTRAL: ".",
}


def _service(ctx: click.Context) -> PersonaService:
    return ctx.obj["service_factory"]()


@click.group()
@click.pass_context
def momentum(ctx: click.Context):
    """Persona Momentum commands"""
    ctx.ensure_object(dict)
    ctx.obj.setdefault("service_factory", PersonaService)


@momentum.command()
@click.option("--persona", "persona_id", default=None, help="Persona id (defaults to the active one)")
@click.pass_context
def scores(ctx: click.Context, persona_id: Optional[str]):
    """Show momentum (7-day) and alignment (30-day) scores"""
    service = _service(ctx)
    try:
        persona = service.resolve_persona(persona_id)
        snapshot = service.scores(persona.id)
        context = service.coaching_context(persona.id)
    except MomentumError as e:
        click.echo(f"Error: {e.get_user_message()}", err=True)
        ctx.exit(1)

    click.echo(f"Persona: {persona.name}")
    click.echo(f"Momentum ({config.MOMENTUM_WINDOW_DAYS}d): {snapshot.momentum}%")
    click.echo(f"Alignment ({config.ALIGNMENT_WINDOW_DAYS}d): {snapshot.alignment}%")
    click.echo(f"Current streak: {context['current_streak']} day(s)")
    monthly = context["monthly"]
    pace = "ahead" if monthly["is_ahead"] else "behind" if monthly["is_behind"] else "on track"
    click.echo(f"Month pace: {monthly['percent_through_month']}% through, {pace}")


@momentum.command()
@click.option("--persona", "persona_id", default=None)
@click.option("--year", type=click.IntRange(1, 9999), default=None)
@click.option("--month", type=click.IntRange(1, 12), default=None)
@click.pass_context
def calendar(ctx: click.Context, persona_id: Optional[str], year: Optional[int], month: Optional[int]):
    """Print the month grid (# complete, + partial, x missed, = streak)"""
    service = _service(ctx)
    today = service.today()
    year = today.year if year is None else year
    month = today.month if month is None else month
    try:
        cells = service.month_grid(year, month, persona_id)
    except MomentumError as e:
        click.echo(f"Error: {e.get_user_message()}", err=True)
        ctx.exit(1)

    start = WEEKDAYS.index(parse_weekday(config.CALENDAR_WEEK_START))
    header = [WEEKDAYS[(start + i) % 7].value[:2] for i in range(7)]
    click.echo(f"{year}-{month:02d}")
    click.echo(" ".join(f"{h:>4}" for h in header))
    for row_start in range(0, len(cells), 7):
        row = []
        for cell in cells[row_start:row_start + 7]:
            if not cell.is_current_month:
                row.append("    ")
                continue
            link = "=" if cell.has_streak else " "
            row.append(f"{link}{cell.date.day:>2}{STATE_MARKS[cell.state]}")
        click.echo(" ".join(row))


@momentum.command()
@click.option("--persona", "persona_id", default=None)
@click.pass_context
def today(ctx: click.Context, persona_id: Optional[str]):
    """List today's actions and whether each one is done"""
    service = _service(ctx)
    try:
        detail = service.day_detail(service.today(), persona_id)
    except MomentumError as e:
        click.echo(f"Error: {e.get_user_message()}", err=True)
        ctx.exit(1)

    if not detail.items:
        click.echo("No actions scheduled")
        return
    click.echo(f"{detail.completed_count}/{detail.total_count} done")
    for item in detail.items:
        mark = "[x]" if item.completed else "[ ]"
        click.echo(f"  {mark} {item.action.title}  ({item.action.id})")


@momentum.command()
@click.argument("action_id")
@click.option("--date", "day", type=click.DateTime(formats=["%Y-%m-%d"]), default=None, help="YYYY-MM-DD, defaults to today")
@click.pass_context
def toggle(ctx: click.Context, action_id: str, day: Optional[datetime]):
    """Toggle completion of an action for a day"""
    service = _service(ctx)
    target = day.date() if day else service.today()
    try:
        log = service.toggle_from_calendar(action_id, target)
    except MomentumError as e:
        click.echo(f"Error: {e.get_user_message()}", err=True)
        ctx.exit(1)

    state = "done" if log.status else "not done"
    click.echo(f"{action_id} on {log.log_date.isoformat()}: {state}")
    if service.mutator.last_scores is not None:
        click.echo(f"Momentum: {service.mutator.last_scores.momentum}%")


@momentum.command()
@click.confirmation_option(prompt="Delete every persona, log and reflection?")
@click.pass_context
def reset(ctx: click.Context):
    """Wipe the record store (the audit log is kept)"""
    service = _service(ctx)
    counts = service.store.counts()
    service.store.clear_all()
    click.echo("Removed " + ", ".join(f"{n} {kind}" for kind, n in counts.items()))


if __name__ == "__main__":
    momentum()
