"""Shared CLI utilities.

Provides common functionality for all CLI commands.
"""

import functools
from pathlib import Path
from typing import Callable, TypeVar

import structlog
import typer

from src.services.config_manager import ConfigManager, ConfigValidationError
from src.models.config import NotifierConfig
from src.observability.logging import configure_logging
from src.utils.exceptions import GitLabError

# Configure structured logging
configure_logging(json_output=False)
logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = Path("config/notifier.yaml")

# Type variable for decorator
F = TypeVar("F", bound=Callable)


def load_config(config_path: Path) -> NotifierConfig:
    """Load and validate configuration.

    Args:
        config_path: Path to configuration file.

    Returns:
        Validated NotifierConfig.

    Raises:
        typer.Exit: If configuration is invalid.
    """
    config_manager = ConfigManager(config_path=str(config_path))
    try:
        return config_manager.load_config()
    except (FileNotFoundError, ConfigValidationError) as e:
        typer.secho(f"Configuration Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling.

    Catches exceptions and displays user-friendly error messages.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except Exception as e:
            logger.exception("command_failed")
            typer.secho(f"Error: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]


def report_gitlab_error(error: GitLabError) -> None:
    """Error channel for long-running commands: show the failure and go on."""
    typer.secho(f"GitLab request failed: {error}", fg=typer.colors.RED, err=True)


def display_success(message: str) -> None:
    """Display a success message."""
    typer.secho(message, fg=typer.colors.GREEN)


def display_warning(message: str) -> None:
    """Display a warning message."""
    typer.secho(message, fg=typer.colors.YELLOW)


def display_error(message: str) -> None:
    """Display an error message."""
    typer.secho(message, fg=typer.colors.RED)


def display_info(message: str) -> None:
    """Display an info message."""
    typer.secho(message, fg=typer.colors.CYAN)
