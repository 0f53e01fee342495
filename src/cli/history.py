"""History command.

Shows the most recent notifications recorded in the history slot of the
configured storage.
"""

from pathlib import Path

import typer

from src.cli.utils import DEFAULT_CONFIG_PATH, load_config, handle_errors, display_warning
from src.services.notification_history import NotificationHistory
from src.services.storage import create_storage


@handle_errors
def history_command(
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config",
        "-c",
        help="Path to notifier config YAML",
    ),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Entries to show"),
):
    """Display recent notifications, newest first."""
    config = load_config(config_path)
    history = NotificationHistory(create_storage(config.storage))

    entries = history.entries[:limit]
    if not entries:
        display_warning("No notifications recorded yet.")
        return

    for entry in entries:
        typer.secho(
            f"{entry.get('notified_at')}  {entry.get('project_name')}",
            fg=typer.colors.CYAN,
        )
        typer.echo(f"  {entry.get('message')}")
        if entry.get("target_url"):
            typer.echo(f"  {entry['target_url']}")
