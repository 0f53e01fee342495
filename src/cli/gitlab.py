"""GitLab inspection commands.

Read-only helpers for setting up the watch list: verify the connection,
list visible projects, and show a project's branches and triggers.
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, List

import typer

from src.cli.utils import (
    DEFAULT_CONFIG_PATH,
    load_config,
    handle_errors,
    display_error,
    display_success,
    display_warning,
)
from src.models.config import GitLabSettings, NotifierConfig
from src.services.gitlab_client import GitLabClient
from src.services.storage import MemoryStorage

CONFIG_OPTION = typer.Option(
    DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to notifier config YAML"
)


def _configured_settings(config: NotifierConfig) -> GitLabSettings:
    if not config.gitlab.is_configured:
        display_error("No GitLab API path configured.")
        raise typer.Exit(code=1)
    return config.gitlab


@handle_errors
def check_command(config_path: Path = CONFIG_OPTION):
    """Verify the token and report the instance version."""
    config = load_config(config_path)
    settings = _configured_settings(config)

    async def _check():
        async with GitLabClient.from_settings(settings, MemoryStorage()) as client:
            user = await client.get_current_user()
            version = await client.get_gitlab_version()
        return user, version

    user, version = asyncio.run(_check())

    display_success(f"Authenticated as {user.get('username')} (id={user.get('id')})")
    typer.echo(f"GitLab {version.version} ({version.revision or 'unknown revision'})")

    configured = config.notifier.gitlab_version
    if configured is None:
        return
    if config.notifier.is_gitlab_16_0() != version.is_at_least(16):
        display_warning(
            f"notifier.gitlab_version is {configured} but the server reports "
            f"{version.version}; target URLs may be built for the wrong layout."
        )
    if config.notifier.user_id is not None and config.notifier.user_id != user.get("id"):
        display_warning(
            f"notifier.user_id is {config.notifier.user_id} but the token "
            f"belongs to user {user.get('id')}."
        )


@handle_errors
def projects_command(config_path: Path = CONFIG_OPTION):
    """List projects visible to the token."""
    settings = _configured_settings(load_config(config_path))

    async def _load():
        async with GitLabClient.from_settings(settings, MemoryStorage()) as client:
            return await client.load_projects()

    projects = asyncio.run(_load())
    typer.echo(f"{len(projects)} projects:")
    for project in projects:
        name = project.get("path_with_namespace") or project.get("name")
        typer.echo(f" - {name} (id={project.get('id')})")


@handle_errors
def branches_command(
    project: str = typer.Argument(..., help="Project path, e.g. group/repo"),
    config_path: Path = CONFIG_OPTION,
):
    """List a project's repository branches."""
    settings = _configured_settings(load_config(config_path))

    async def _load():
        async with GitLabClient.from_settings(settings, MemoryStorage()) as client:
            return await client.load_branches(project)

    branches = asyncio.run(_load())
    typer.echo(f"{len(branches)} branches in {project}:")
    for branch in branches:
        commit = branch.get("commit") or {}
        typer.echo(f" - {branch.get('name')} {str(commit.get('id', ''))[:8]}")


@handle_errors
def triggers_command(
    project: str = typer.Argument(..., help="Project path, e.g. group/repo"),
    config_path: Path = CONFIG_OPTION,
):
    """List a project's pipeline triggers."""
    settings = _configured_settings(load_config(config_path))

    async def _load() -> List[Dict[str, Any]]:
        async with GitLabClient.from_settings(settings, MemoryStorage()) as client:
            return await client.load_triggers(project)

    triggers = asyncio.run(_load())
    if not triggers:
        display_warning(f"No triggers in {project}")
        return

    typer.echo(f"{len(triggers)} triggers in {project}:")
    for trigger in triggers:
        typer.echo(f" - {trigger.get('id')}: {trigger.get('description') or '-'}")
