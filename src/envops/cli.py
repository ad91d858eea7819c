"""
envops CLI

Implements two command groups with Operations facade integration:
- activity list: List build and deploy activities (aliases: activities, act)
- repo: Local git operations (init, clone, branch, checkout, current-branch,
  branch-exists, upstream, config-get)
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

import typer

from .cli_context import CLIContext
from .models import ActivityFilters, ActivityResource
from .operations import Operations, OpsConfig, run_and_exit
from .operations.printers import FORMATS, git_output_observer, print_activities, print_git_value

app = typer.Typer(name="envops", help="Manage cloud-hosted project environments")
activity_app = typer.Typer(help="Build and deploy activities")
repo_app = typer.Typer(help="Local git operations used to drive deployments")
app.add_typer(activity_app, name="activity")
app.add_typer(repo_app, name="repo")

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging")
) -> None:
    """Manage cloud-hosted project environments."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


def _split(values: Optional[List[str]]) -> List[str]:
    """Flatten repeated and comma-separated option values."""
    items: List[str] = []
    for value in values or []:
        items.extend(part.strip() for part in value.split(",") if part.strip())
    return items


def _parse_start(value: Optional[str]) -> Optional[datetime]:
    """
    Parse the --start option.

    Accepts ISO 8601 dates and datetimes (e.g. "2015-03-15", "2015-03-15T10:00:00+00:00").

    Raises:
        ValueError: If the value is not an ISO 8601 date
    """
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        raise ValueError(f"Invalid --start date: {value}. Use ISO 8601, e.g. 2015-03-15") from None


def _resolve_resource(context: CLIContext, project: Optional[str],
                      environment: Optional[str], all_environments: bool) -> ActivityResource:
    """Pick the project/environment from options, falling back to settings."""
    project = project or context.settings.project
    if not project:
        raise ValueError("No project specified. Use --project or set ENVOPS_PROJECT")

    if all_environments:
        environment = None
    else:
        environment = environment or context.settings.environment

    return ActivityResource(project=project, environment=environment)


def activity_list(
    types: Optional[List[str]] = typer.Option(None, "--type", "-t", help="Filter activities by type (repeatable or comma-separated)"),
    exclude_types: Optional[List[str]] = typer.Option(None, "--exclude-type", "-x", help="Exclude activities by type"),
    limit: int = typer.Option(10, "--limit", min=1, help="Limit the number of results displayed"),
    start: Optional[str] = typer.Option(None, "--start", help="Only activities created before this date will be listed"),
    states: Optional[List[str]] = typer.Option(None, "--state", help="Filter by state: in_progress, pending, complete, or cancelled"),
    result: Optional[str] = typer.Option(None, "--result", help="Filter activities by result: success or failure"),
    incomplete: bool = typer.Option(False, "--incomplete", "-i", help="Only list incomplete activities"),
    all_environments: bool = typer.Option(False, "--all", "-a", help="List activities on all environments"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project ID"),
    environment: Optional[str] = typer.Option(None, "--environment", "-e", help="Environment ID"),
    fmt: str = typer.Option("table", "--format", help=f"Output format: {', '.join(FORMATS)}"),
    columns: Optional[List[str]] = typer.Option(None, "--columns", "-c", help="Columns to display"),
    no_header: bool = typer.Option(False, "--no-header", help="Do not output the table header"),
) -> None:
    """Get a list of activities for an environment or project."""

    def _list() -> None:
        if fmt not in FORMATS:
            raise ValueError(f"Invalid format '{fmt}'. Use one of: {', '.join(FORMATS)}")

        context = CLIContext.from_env()
        resource = _resolve_resource(context, project, environment, all_environments)
        filters = ActivityFilters(
            types=_split(types),
            exclude_types=_split(exclude_types),
            states=_split(states),
            result=result or None,
            start=_parse_start(start),
            limit=limit,
            incomplete=incomplete,
        )

        with context.loader as loader:
            ops = Operations(config=OpsConfig(), git=context.git(), loader=loader)
            activities = ops.list_activities(resource, filters)
        print_activities(activities, resource, limit=limit, fmt=fmt,
                         columns=_split(columns), no_header=no_header)

    run_and_exit(_list)


activity_app.command("list")(activity_list)
app.command("activities", hidden=True)(activity_list)
app.command("act", hidden=True)(activity_list)


def _repo_ops(directory: Optional[str], must_succeed: bool, stream: bool = False) -> Operations:
    """Build Operations over a git facade for one repo command."""
    context = CLIContext.from_env()
    git = context.git(directory, observer=git_output_observer if stream else None)
    return Operations(config=OpsConfig(must_succeed=must_succeed), git=git)


def _check(succeeded: bool, what: str) -> None:
    if not succeeded:
        typer.echo(f"Failed to {what}", err=True)
        raise typer.Exit(code=1)


DIR_OPTION = typer.Option(None, "--dir", "-d", help="Repository directory (default: ENVOPS_REPOSITORY_DIR or .)")
MUST_SUCCEED_OPTION = typer.Option(False, "--must-succeed", help="Fail with git's exit details instead of a generic failure")


@repo_app.command("init")
def repo_init(
    directory: str = typer.Argument(..., help="Directory to create the repository in"),
    must_succeed: bool = MUST_SUCCEED_OPTION,
) -> None:
    """Create a Git repository in a directory."""

    def _init() -> None:
        ops = _repo_ops(directory, must_succeed, stream=True)
        _check(ops.init(directory), f"initialize a repository in {directory}")

    run_and_exit(_init)


@repo_app.command("clone")
def repo_clone(
    url: str = typer.Argument(..., help="Git repository URL"),
    destination: Optional[str] = typer.Argument(None, help="Directory name to clone into"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch to clone"),
    must_succeed: bool = MUST_SUCCEED_OPTION,
) -> None:
    """Clone a repository."""

    def _clone() -> None:
        ops = _repo_ops(None, must_succeed, stream=True)
        _check(ops.clone(url, destination, branch), f"clone {url}")

    run_and_exit(_clone)


@repo_app.command("branch")
def repo_branch(
    name: str = typer.Argument(..., help="New branch name"),
    parent: Optional[str] = typer.Argument(None, help="Branch to start from (default: HEAD)"),
    directory: Optional[str] = DIR_OPTION,
    must_succeed: bool = MUST_SUCCEED_OPTION,
) -> None:
    """Create a new branch and switch to it."""

    def _branch() -> None:
        ops = _repo_ops(directory, must_succeed, stream=True)
        _check(ops.create_branch(name, parent), f"create branch {name}")

    run_and_exit(_branch)


@repo_app.command("checkout")
def repo_checkout(
    name: str = typer.Argument(..., help="Branch to switch to"),
    directory: Optional[str] = DIR_OPTION,
    must_succeed: bool = MUST_SUCCEED_OPTION,
) -> None:
    """Check out a branch."""

    def _checkout() -> None:
        ops = _repo_ops(directory, must_succeed, stream=True)
        _check(ops.checkout(name), f"check out {name}")

    run_and_exit(_checkout)


@repo_app.command("current-branch")
def repo_current_branch(
    directory: Optional[str] = DIR_OPTION,
    must_succeed: bool = MUST_SUCCEED_OPTION,
) -> None:
    """Print the current branch name."""

    def _current() -> None:
        value = _repo_ops(directory, must_succeed).current_branch()
        print_git_value(value, "Not on a branch")
        if value is None:
            raise typer.Exit(code=1)

    run_and_exit(_current)


@repo_app.command("branch-exists")
def repo_branch_exists(
    name: str = typer.Argument(..., help="Branch name"),
    directory: Optional[str] = DIR_OPTION,
    must_succeed: bool = MUST_SUCCEED_OPTION,
) -> None:
    """Check whether a local branch exists (exit code 1 if not)."""

    def _exists() -> None:
        exists = _repo_ops(directory, must_succeed).branch_exists(name)
        typer.echo("true" if exists else "false")
        if not exists:
            raise typer.Exit(code=1)

    run_and_exit(_exists)


@repo_app.command("upstream")
def repo_upstream(
    directory: Optional[str] = DIR_OPTION,
    must_succeed: bool = MUST_SUCCEED_OPTION,
) -> None:
    """Print the upstream of the current branch."""

    def _upstream() -> None:
        value = _repo_ops(directory, must_succeed).upstream()
        print_git_value(value, "No upstream configured")
        if value is None:
            raise typer.Exit(code=1)

    run_and_exit(_upstream)


@repo_app.command("config-get")
def repo_config_get(
    key: str = typer.Argument(..., help="Git configuration key"),
    directory: Optional[str] = DIR_OPTION,
    must_succeed: bool = MUST_SUCCEED_OPTION,
) -> None:
    """Read a configuration item."""

    def _config_get() -> None:
        value = _repo_ops(directory, must_succeed).config_get(key)
        print_git_value(value, f"Config key not set: {key}")
        if value is None:
            raise typer.Exit(code=1)

    run_and_exit(_config_get)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
