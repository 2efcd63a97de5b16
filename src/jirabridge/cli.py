"""
jirabridge Command Line Interface.

This module provides the CLI entry point: configuration checks and one-shot
notification of an Alertmanager webhook payload.
"""

import asyncio
import json
import logging
import sys
from http import HTTPStatus

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from jirabridge.config import ConfigLoader, ConfigurationError, LoggingConfig
from jirabridge.service import NotificationService, build_snapshot
from jirabridge.version import __version__

console = Console()

# Exit code when the delivery may succeed if retried (sysexits EX_TEMPFAIL)
EXIT_RETRYABLE = 75


def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.run(coro)


def configure_logging(config: LoggingConfig, verbose: bool = False) -> None:
    """Configure root logging from the logging section of the configuration."""
    level = logging.DEBUG if verbose else getattr(logging, config.level.value)
    logging.basicConfig(
        level=level,
        format=config.format,
        handlers=[logging.StreamHandler()],
        force=True,
    )
    logging.getLogger("jirabridge").setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@click.group()
@click.version_option(version=__version__, prog_name="jirabridge")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """jirabridge: file Alertmanager alert groups as Jira issues.

    Deduplicates by a stable fingerprint and reopens recently resolved
    issues when the same incident recurs.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@main.command("check-config")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Path to configuration file",
)
def check_config(config_path: str) -> None:
    """Validate the configuration file and every template it references."""
    try:
        config = ConfigLoader(config_path).load()
        build_snapshot(config)
    except (ConfigurationError, FileNotFoundError) as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        sys.exit(1)

    table = Table(title="Receivers")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Project")
    table.add_column("Dedup")
    table.add_column("Reopen Window")
    table.add_column("Reopen State")
    for receiver in config.receivers:
        table.add_row(
            receiver.name,
            receiver.project,
            receiver.dedup_strategy.value,
            str(receiver.reopen_duration),
            receiver.reopen_state,
        )
    console.print(table)
    console.print(f"[green]All checks passed[/green] ({len(config.receivers)} receivers)")


@main.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Path to configuration file",
)
@click.argument("payload", type=click.File("r"), default="-")
@click.pass_context
def notify(ctx: click.Context, config_path: str, payload) -> None:
    """Reconcile one Alertmanager webhook PAYLOAD with Jira.

    PAYLOAD is a file holding the webhook JSON body, or - for stdin.
    Exits 0 on success, 75 when re-delivery may succeed, 1 otherwise.
    """
    verbose = ctx.obj.get("verbose", False)
    service = NotificationService(ConfigLoader(config_path))
    try:
        snapshot = service.reload()
    except (ConfigurationError, FileNotFoundError) as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        sys.exit(1)

    configure_logging(snapshot.config.logging, verbose)

    outcome = run_async(service.handle(payload.read()))

    if outcome.ok:
        decision = outcome.decision
        if decision is None:
            detail = "no firing alerts"
        else:
            detail = f"{decision.action.value} {decision.issue_key or ''}".strip()
        console.print(
            Panel(
                f"[bold green]{detail}[/bold green]",
                title=f"jirabridge: {outcome.receiver}",
            )
        )
        return

    click.echo(json.dumps(outcome.to_json()), err=True)
    if outcome.status_code == HTTPStatus.SERVICE_UNAVAILABLE:
        sys.exit(EXIT_RETRYABLE)
    sys.exit(1)
