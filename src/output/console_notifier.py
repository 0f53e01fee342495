"""Terminal implementation of the platform notifier.

Prints each notification as a colored line and keeps the badge text so the
CLI can show the unread count at the end of a cycle.
"""

from typing import Any, Dict, List

import structlog
import typer

logger = structlog.get_logger()


class ConsoleNotifier:
    """Platform notifier writing to the terminal"""

    def __init__(self, show_ids: bool = False):
        self.show_ids = show_ids
        self.badge_text = ""
        self.created: List[str] = []

    def create(self, notification_id: str, options: Dict[str, Any]) -> None:
        self.created.append(notification_id)
        typer.secho(f"{options['title']}: ", fg=typer.colors.CYAN, nl=False, bold=True)
        typer.echo(options["message"])
        if self.show_ids:
            typer.secho(f"  id={notification_id}", fg=typer.colors.BRIGHT_BLACK)

    def set_badge_text(self, text: str) -> None:
        self.badge_text = text
        logger.debug("badge_updated", text=text)
