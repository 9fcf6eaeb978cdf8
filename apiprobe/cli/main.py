#!/usr/bin/env python3
"""Main CLI entry point for apiprobe using Typer.

Runs one discovery session against a browser tab through the automation
API and prints the run summary as JSON. Exit codes are suitable for
scripting: 0 on success, 1 when the run aborted, 2 on usage or
configuration errors.
"""

import asyncio
import json
import logging
from enum import IntEnum
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from typing_extensions import Annotated

from .. import __version__
from ..discovery.automation.client import AutomationClient
from ..discovery.config import ConnectionSettings, DiscoveryConfigManager, DiscoveryOptions
from ..discovery.errors import ConfigurationError, DiscoveryRunError
from ..discovery.models.run import RunSummary
from ..discovery.orchestrator import DiscoveryOrchestrator

logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    """CLI exit codes."""
    SUCCESS = 0         # Run completed and artifacts were written
    RUN_FAILED = 1      # Run aborted; a failed summary was printed
    CONFIG_ERROR = 2    # Invalid flags or configuration


# Create the main Typer app
app = typer.Typer(
    name="apiprobe",
    help="apiprobe - autonomous API discovery against a live browser tab",
    add_completion=False,
)


@app.callback()
def main():
    """
    apiprobe - autonomous API discovery against a live browser tab.

    Explores a web app with low-risk interactions, captures the traffic they
    cause, and writes OpenAPI, Postman and replay artifacts.
    """
    pass


@app.command(name="version")
def show_version():
    """Show version information."""
    typer.echo(f"apiprobe v{__version__}")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _run_discovery(connection: ConnectionSettings, options: DiscoveryOptions) -> RunSummary:
    async with AutomationClient(
        base_url=connection.url,
        token=connection.token or None,
        timeout_ms=connection.timeout_ms,
    ) as client:
        orchestrator = DiscoveryOrchestrator(client, options)
        return await orchestrator.run()


def _print_summary(summary: Optional[RunSummary]) -> None:
    if summary is not None:
        typer.echo(json.dumps(summary.to_json_dict(), indent=2))


@app.command()
def discover(
    # Target selection
    tab_id: Annotated[
        Optional[int],
        typer.Option("--tab-id", help="Explicit target tab id")
    ] = None,

    tab_url: Annotated[
        Optional[str],
        typer.Option("--tab-url", help="Regex matched against open tab URLs")
    ] = None,

    active: Annotated[
        bool,
        typer.Option("--active", help="Use the active tab")
    ] = False,

    # Budget and limits
    budget_minutes: Annotated[
        Optional[float],
        typer.Option("--budget-minutes", "-b", help="Wall-clock budget in minutes (minimum 1)")
    ] = None,

    max_actions: Annotated[
        Optional[int],
        typer.Option("--max-actions", help="Maximum actions executed across both phases")
    ] = None,

    # Scope
    scope: Annotated[
        Optional[str],
        typer.Option("--scope", help="Request scope: first-party, origin or all")
    ] = None,

    include_hosts: Annotated[
        Optional[List[str]],
        typer.Option("--include-host", help="Host regex always in scope (repeatable)")
    ] = None,

    exclude_hosts: Annotated[
        Optional[List[str]],
        typer.Option("--exclude-host", help="Host regex never in scope (repeatable)")
    ] = None,

    # Exploration policy
    allow_phase2: Annotated[
        bool,
        typer.Option("--allow-phase2", help="Execute allowlisted phase 2 actions")
    ] = False,

    seed_path: Annotated[
        Optional[str],
        typer.Option("--seed-path", help="Path to navigate to before exploring")
    ] = None,

    baseline_ms: Annotated[
        Optional[int],
        typer.Option("--baseline-ms", help="Fixed baseline wait in milliseconds")
    ] = None,

    action_delay_ms: Annotated[
        Optional[int],
        typer.Option("--action-delay-ms", help="Settle delay after each action")
    ] = None,

    probe_text: Annotated[
        Optional[str],
        typer.Option("--probe-text", help="Text typed into search fields")
    ] = None,

    # Output
    out: Annotated[
        Optional[Path],
        typer.Option("--out", "-o", help="Output directory for artifacts")
    ] = None,

    # Connection
    url: Annotated[
        Optional[str],
        typer.Option("--url", help="Automation API base URL")
    ] = None,

    token: Annotated[
        Optional[str],
        typer.Option("--token", help="Automation API auth token")
    ] = None,

    timeout_ms: Annotated[
        Optional[int],
        typer.Option("--timeout-ms", help="Per-request timeout in milliseconds")
    ] = None,

    # Configuration and logging
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to discovery YAML config")
    ] = None,

    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
):
    """
    Run autonomous API discovery against a browser tab.

    Examples:

        apiprobe discover --active

        apiprobe discover --tab-url "app\\.example\\.com" --budget-minutes 3 -o ./discovery

        apiprobe discover --tab-id 42 --allow-phase2 --scope origin
    """
    _configure_logging(verbose)

    if config is not None and not config.exists():
        typer.echo(f"❌ Config file not found: {config}", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)

    try:
        discovery_config = DiscoveryConfigManager(config).load_config()
        options = discovery_config.get_discovery_options(
            tab_id=tab_id,
            tab_url=tab_url,
            active=True if active else None,
            budget_minutes=budget_minutes,
            max_actions=max_actions,
            scope=scope,
            include_hosts=include_hosts or None,
            exclude_hosts=exclude_hosts or None,
            allow_phase2=True if allow_phase2 else None,
            seed_path=seed_path,
            baseline_ms=baseline_ms,
            action_delay_ms=action_delay_ms,
            probe_text=probe_text,
            output_dir=out,
        )
        connection = ConnectionSettings.resolve(
            url=url,
            token=token,
            timeout_ms=timeout_ms,
            defaults=discovery_config.get_connection_defaults(),
        )
    except (ConfigurationError, ValidationError) as e:
        typer.echo(f"❌ Invalid configuration: {e}", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)

    if not connection.token and not connection.is_local:
        typer.echo(
            f"❌ No auth token for non-local automation API {connection.url}. "
            "Pass --token or set APIPROBE_AUTH_TOKEN.",
            err=True,
        )
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)

    logger.info(f"Using automation API {connection.url} (token source: {connection.token_source})")

    try:
        summary = asyncio.run(_run_discovery(connection, options))
    except DiscoveryRunError as e:
        _print_summary(e.summary)
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=ExitCode.RUN_FAILED.value)

    _print_summary(summary)
    if summary.artifacts is not None:
        typer.echo(f"✅ Artifacts written to {summary.artifacts.output_dir}", err=True)


if __name__ == "__main__":
    app()
