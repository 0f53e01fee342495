"""GitLab notifier CLI package.

Provides the command-line interface for polling GitLab project events and
surfacing them as notifications.

Usage:
    python -m src.cli poll --config config/notifier.yaml
    python -m src.cli watch --metrics-port 9100
    python -m src.cli check
    python -m src.cli projects
    python -m src.cli branches group/repo
    python -m src.cli triggers group/repo
    python -m src.cli history --limit 10
    python -m src.cli validate config/notifier.yaml
"""

import typer

from src.cli.poll import poll_command, watch_command
from src.cli.gitlab import (
    check_command,
    projects_command,
    branches_command,
    triggers_command,
)
from src.cli.history import history_command
from src.cli.validate import validate_command

# Create main app
app = typer.Typer(help="GitLab event notifier")

app.command(name="poll")(poll_command)
app.command(name="watch")(watch_command)
app.command(name="check")(check_command)
app.command(name="projects")(projects_command)
app.command(name="branches")(branches_command)
app.command(name="triggers")(triggers_command)
app.command(name="history")(history_command)
app.command(name="validate")(validate_command)

__all__ = [
    "app",
    "poll_command",
    "watch_command",
    "check_command",
    "projects_command",
    "branches_command",
    "triggers_command",
    "history_command",
    "validate_command",
]
