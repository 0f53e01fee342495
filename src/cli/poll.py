"""Poll commands.

``poll`` runs a single cycle and prints what was notified; ``watch`` keeps
polling on the configured interval until interrupted.
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from src.cli.utils import (
    DEFAULT_CONFIG_PATH,
    load_config,
    handle_errors,
    report_gitlab_error,
    display_info,
    display_success,
    display_warning,
    logger,
)
from src.models.config import NotifierConfig
from src.observability.metrics import start_metrics_server
from src.orchestration.context import NotifierContext
from src.output.console_notifier import ConsoleNotifier
from src.scheduling import PollingScheduler, PollJob


@handle_errors
def poll_command(
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config",
        "-c",
        help="Path to notifier config YAML",
    ),
    show_ids: bool = typer.Option(
        False, "--show-ids", help="Print each notification's dedup key"
    ),
):
    """Poll every watched project once."""
    config = load_config(config_path)
    if not config.gitlab.is_configured:
        display_warning("No GitLab API path configured; nothing to poll.")
        return

    summary = asyncio.run(_poll_once(config, ConsoleNotifier(show_ids=show_ids)))
    _display_summary(summary)


async def _poll_once(config: NotifierConfig, platform: ConsoleNotifier) -> Dict[str, Any]:
    context = NotifierContext.from_config(config, platform)
    try:
        return await PollJob(context)()
    finally:
        await context.close()


def _display_summary(summary: Dict[str, Any]) -> None:
    display_success(
        f"\nPolled {summary['projects_polled']} projects: "
        f"{summary['notified']} new, "
        f"{summary['duplicates']} already seen, "
        f"{summary['suppressed'] + summary['filtered']} skipped"
    )
    for error in summary["errors"]:
        display_warning(f"  {error['project']}: {error['error']}")


@handle_errors
def watch_command(
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config",
        "-c",
        help="Path to notifier config YAML",
    ),
    metrics_port: Optional[int] = typer.Option(
        None, "--metrics-port", "-p", help="Serve Prometheus metrics on this port"
    ),
):
    """Poll on the configured interval until interrupted.

    Examples:
        # Poll every polling_second seconds
        python -m src.cli watch

        # Expose metrics at http://localhost:9100/metrics
        python -m src.cli watch --metrics-port 9100
    """
    config = load_config(config_path)
    if not config.gitlab.is_configured:
        display_warning("No GitLab API path configured; nothing to watch.")
        return

    try:
        asyncio.run(_run_watch(config, metrics_port))
    except KeyboardInterrupt:
        display_warning("\nWatcher stopped.")


async def _run_watch(config: NotifierConfig, metrics_port: Optional[int]) -> None:
    context = NotifierContext.from_config(
        config, ConsoleNotifier(), on_error=report_gitlab_error
    )

    typer.secho("Watching GitLab projects", fg=typer.colors.CYAN, bold=True)
    typer.echo(f"  API: {config.gitlab.api_path}")
    typer.echo(f"  Projects: {', '.join(p.name for p in config.projects) or '-'}")
    typer.echo(f"  Interval: {config.polling.polling_second}s")
    if metrics_port is not None:
        start_metrics_server(metrics_port)
        typer.echo(f"  Metrics endpoint: http://localhost:{metrics_port}/metrics")
    typer.echo("\nPress Ctrl+C to stop.\n")

    scheduler = PollingScheduler()
    scheduler.add_poll_job(PollJob(context), config.polling.polling_second)
    display_info(f"Scheduled {len(scheduler.get_jobs())} job(s)")

    try:
        await scheduler.start()
    finally:
        logger.info("watch_stopping")
        await context.close()
