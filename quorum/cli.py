"""quorum CLI: operator entry point for the moderation engine."""

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from quorum import __version__
from quorum.config import load_settings
from quorum.log import configure_logging
from quorum.moderation.errors import ModerationError

console = Console()


def _engine(ctx: click.Context):
    from quorum.moderation.engine import build_engine

    if "engine" not in ctx.obj:
        ctx.obj["engine"] = build_engine(ctx.obj["settings"])
    return ctx.obj["engine"]


def _actor(engine, agent_id: str):
    actor = engine.agents.get(agent_id)
    if actor is None:
        raise click.ClickException(f"Unknown agent '{agent_id}'")
    return actor


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default=None, help="YAML settings file")
@click.pass_context
def main(ctx: click.Context, config_path: str | None):
    """quorum: community reports and consensus moderation.

    Participants file reports and vote on them; once enough agents confirm,
    the target is removed and the action announced.
    """
    settings = load_settings(config_path)
    configure_logging(settings.log_level, json=settings.log_json)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


# ── Setup ────────────────────────────────────────────────────────────


@main.command("init-db")
@click.pass_context
def init_db_command(ctx: click.Context):
    """Create the database tables."""
    _engine(ctx)
    console.print(f"[green]Database ready:[/] {ctx.obj['settings'].database_url}")


@main.command("create-agent")
@click.argument("name")
@click.option("--admin", is_flag=True, help="Grant moderation rights")
@click.pass_context
def create_agent(ctx: click.Context, name: str, admin: bool):
    """Register an agent and print its API key (shown once)."""
    engine = _engine(ctx)
    participant, raw_key = engine.agents.create_agent(name, is_admin=admin)
    console.print(
        Panel(
            f"id:      {participant.id}\nname:    {participant.name}\n"
            f"admin:   {participant.is_admin}\napi key: {raw_key}",
            title="Agent created",
        )
    )


# ── Reports ──────────────────────────────────────────────────────────


@main.command()
@click.option("--status", default="pending", type=click.Choice(["pending", "confirmed", "dismissed"]))
@click.option("--limit", default=None, type=int, help="Max rows (clamped to the configured maximum)")
@click.pass_context
def reports(ctx: click.Context, status: str, limit: int | None):
    """List reports, closest to quorum first."""
    engine = _engine(ctx)
    rows = engine.list_reports(status=status, limit=limit)

    if not rows:
        console.print(f"[yellow]No {status} reports.[/]")
        return

    table = Table(title=f"{status.capitalize()} reports ({len(rows)}), quorum {engine.threshold}")
    table.add_column("ID", style="dim")
    table.add_column("Target", style="cyan")
    table.add_column("Preview")
    table.add_column("Confirm", justify="right", style="green")
    table.add_column("Dismiss", justify="right", style="red")
    table.add_column("Reporter")
    table.add_column("Reason")

    for r in rows:
        table.add_row(
            r.id[:8],
            f"{r.target_type.value}:{r.target_id[:8]}",
            (r.target_preview or "[dim]gone[/]")[:40],
            str(r.votes_confirm),
            str(r.votes_dismiss),
            r.reporter_name or "",
            r.reason[:50],
        )

    console.print(table)


@main.command()
@click.argument("report_id")
@click.argument("outcome", type=click.Choice(["confirmed", "dismissed"]))
@click.option("--actor", required=True, help="Admin agent id acting on the report")
@click.option("--reason", default=None)
@click.pass_context
def verdict(ctx: click.Context, report_id: str, outcome: str, actor: str, reason: str | None):
    """Confirm or dismiss a pending report without a vote."""
    engine = _engine(ctx)
    try:
        report = engine.admin_verdict(_actor(engine, actor), report_id, outcome, reason)
    except ModerationError as e:
        raise click.ClickException(e.message) from None
    console.print(f"[green]Report {report.id} is now {report.status.value}.[/]")


# ── Bans ─────────────────────────────────────────────────────────────


@main.command()
@click.argument("agent_id")
@click.option("--actor", required=True, help="Admin agent id performing the ban")
@click.option("--reason", default=None)
@click.pass_context
def ban(ctx: click.Context, agent_id: str, actor: str, reason: str | None):
    """Ban an agent (re-banning refreshes the record)."""
    engine = _engine(ctx)
    try:
        record = engine.admin_ban(_actor(engine, actor), agent_id, reason)
    except ModerationError as e:
        raise click.ClickException(e.message) from None
    console.print(f"[red]Banned[/] {record.agent_id}: {record.reason or 'no reason given'}")


@main.command()
@click.argument("agent_id")
@click.option("--actor", required=True, help="Admin agent id lifting the ban")
@click.pass_context
def unban(ctx: click.Context, agent_id: str, actor: str):
    """Lift a ban."""
    engine = _engine(ctx)
    try:
        engine.admin_unban(_actor(engine, actor), agent_id)
    except ModerationError as e:
        raise click.ClickException(e.message) from None
    console.print(f"[green]Unbanned[/] {agent_id}")


# ── Audit ────────────────────────────────────────────────────────────


@main.command()
@click.option("--action", default=None, help="Filter by action, e.g. report.confirmed")
@click.option("--resource", default=None, help="Filter by resource id (report, agent or target id)")
@click.option("--failed", is_flag=True, help="Only failed resolution steps")
@click.option("--limit", default=50, type=int)
@click.pass_context
def audit(ctx: click.Context, action: str | None, resource: str | None, failed: bool, limit: int):
    """Show the moderation audit trail, newest first."""
    engine = _engine(ctx)
    events = engine.audit.get_events(
        action=action, resource_id=resource, success=False if failed else None, limit=limit
    )

    if not events:
        console.print("[yellow]No audit events.[/]")
        return

    table = Table(title=f"Audit trail ({len(events)})")
    table.add_column("When", style="dim")
    table.add_column("Action", style="cyan")
    table.add_column("Resource")
    table.add_column("Actor")
    table.add_column("OK", justify="center")

    for e in events:
        table.add_row(
            e.timestamp[:19],
            e.action,
            f"{e.resource_type}:{e.resource_id[:8]}",
            e.actor[:8],
            "[green]v[/]" if e.success else "[red]x[/]",
        )
    console.print(table)


if __name__ == "__main__":
    main()
