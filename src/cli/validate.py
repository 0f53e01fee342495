"""Validate command for configuration files.

Validates configuration file syntax and semantics.
"""

from pathlib import Path

import typer

from src.services.config_manager import ConfigManager
from src.cli.utils import handle_errors, display_success, display_error, display_warning


@handle_errors
def validate_command(
    config_path: Path = typer.Argument(..., help="Config file to validate"),
):
    """Validate configuration file syntax and semantics."""
    try:
        manager = ConfigManager(config_path=str(config_path))
        config = manager.load_config()
    except Exception as e:
        display_error(f"Validation failed: {e}")
        raise typer.Exit(code=1)

    display_success("Configuration is valid! ✅")
    if not config.gitlab.is_configured:
        display_warning("gitlab.api_path is empty: the notifier will stay offline.")
    if not config.projects:
        display_warning("No projects are watched.")
    if config.notifier.ignore_own_events and config.notifier.user_id is None:
        display_warning(
            "notifier.ignore_own_events is set without notifier.user_id; "
            "own events will still be notified."
        )
