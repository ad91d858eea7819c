"""
Human-readable and machine-readable output formatting.

Centralizes all CLI output so commands stay thin. Tables go to stdout;
headings, hints and streamed git output go to stderr so machine formats
can be piped cleanly.
"""
from __future__ import annotations

import csv
import io
from datetime import datetime
from typing import List, Optional, Sequence

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..models import Activity, ActivityResource, ActivityResult, ActivityState
from ..vcs.process import OutputStream

__all__ = [
    "FORMATS",
    "ACTIVITY_HEADERS",
    "DEFAULT_ACTIVITY_COLUMNS",
    "render",
    "select_columns",
    "activity_rows",
    "print_activities",
    "print_git_value",
    "git_output_observer",
]

FORMATS = ("table", "csv", "tsv", "plain")

ACTIVITY_HEADERS = [
    "ID", "Created", "Completed", "Description", "Type",
    "Progress", "State", "Result", "Environment(s)",
]
DEFAULT_ACTIVITY_COLUMNS = ["ID", "Created", "Description", "Progress", "State", "Result"]

_console = Console()
_err_console = Console(stderr=True)


def select_columns(headers: Sequence[str], columns: Optional[Sequence[str]]) -> List[int]:
    """
    Resolve column names to header indexes.

    Matching is case-insensitive and keeps the order of ``columns``.

    Raises:
        ValueError: If a column name is not one of ``headers``
    """
    if not columns:
        return list(range(len(headers)))

    lookup = {header.lower(): i for i, header in enumerate(headers)}
    indexes = []
    for column in columns:
        index = lookup.get(column.strip().lower())
        if index is None:
            raise ValueError(f"Invalid column: {column}. Available columns: {', '.join(headers)}")
        indexes.append(index)
    return indexes


def render(rows: Sequence[Sequence[str]], headers: Sequence[str],
           columns: Optional[Sequence[str]] = None, fmt: str = "table",
           no_header: bool = False) -> None:
    """
    Print rows as a table or in a machine-readable format.

    Args:
        rows: Cell values, one sequence per row, aligned with ``headers``
        headers: Header names
        columns: Subset and order of headers to show (all when None)
        fmt: One of ``table``, ``csv``, ``tsv``, ``plain``
        no_header: Omit the header row (machine formats only)
    """
    if fmt not in FORMATS:
        raise ValueError(f"Invalid format '{fmt}'. Use one of: {', '.join(FORMATS)}")

    indexes = select_columns(headers, columns)
    picked_headers = [headers[i] for i in indexes]
    picked_rows = [[row[i] for i in indexes] for row in rows]

    if fmt == "table":
        table = Table()
        for header in picked_headers:
            table.add_column(header, overflow="fold")
        for row in picked_rows:
            table.add_row(*row)
        _console.print(table)
        return

    if fmt == "plain":
        lines = [] if no_header else ["\t".join(picked_headers)]
        lines.extend("\t".join(row) for row in picked_rows)
        for line in lines:
            typer.echo(line)
        return

    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter="," if fmt == "csv" else "\t", lineterminator="\n")
    if not no_header:
        writer.writerow(picked_headers)
    writer.writerows(picked_rows)
    typer.echo(buffer.getvalue(), nl=False)


def _format_date(value: Optional[datetime]) -> str:
    return value.isoformat(timespec="seconds") if value else ""


def _format_state(state: ActivityState) -> str:
    return state.value.replace("_", " ")


def _format_result(result: Optional[ActivityResult], decorate: bool) -> str:
    if result is None:
        return ""
    if not decorate:
        return result.value
    color = "green" if result == ActivityResult.SUCCESS else "red"
    return f"[{color}]{result.value}[/]"


def activity_rows(activities: Sequence[Activity], machine_readable: bool) -> List[List[str]]:
    """Build rows matching ``ACTIVITY_HEADERS``."""
    decorate = not machine_readable
    rows = []
    for activity in activities:
        description = activity.plain_description()
        rows.append([
            activity.id,
            _format_date(activity.created_at),
            _format_date(activity.completed_at),
            escape(description) if decorate else description,
            activity.type,
            f"{activity.completion_percent}%",
            _format_state(activity.state),
            _format_result(activity.result, decorate),
            ", ".join(activity.environments),
        ])
    return rows


def print_activities(activities: Sequence[Activity], resource: ActivityResource, *,
                     limit: int, fmt: str = "table", columns: Optional[Sequence[str]] = None,
                     no_header: bool = False, executable: str = "envops") -> None:
    """
    Print an activity listing.

    In table mode a heading precedes the table and usage hints follow it,
    both on stderr.
    """
    machine_readable = fmt != "table"
    if not columns:
        columns = list(DEFAULT_ACTIVITY_COLUMNS)
        if not resource.environment_specific:
            columns.append("Environment(s)")

    if not machine_readable:
        if resource.environment_specific:
            _err_console.print(
                f"Activities on the project [bold]{escape(resource.project)}[/], "
                f"environment [bold]{escape(resource.environment)}[/]:"
            )
        else:
            _err_console.print(f"Activities on the project [bold]{escape(resource.project)}[/]:")

    render(activity_rows(activities, machine_readable), ACTIVITY_HEADERS, columns,
           fmt=fmt, no_header=no_header)

    if machine_readable:
        return

    if len(activities) == limit:
        _err_console.print()
        _err_console.print(
            "More activities may be available. To display older activities, increase "
            f"[cyan]--limit[/] above {limit}, or set [cyan]--start[/] to a date in the past. "
            f"For more information, run: [cyan]{executable} activity list --help[/]"
        )


def print_git_value(value: Optional[str], missing: str) -> None:
    """Print a git lookup result, or ``missing`` on stderr when there is none."""
    if value is None:
        typer.echo(missing, err=True)
    else:
        typer.echo(value)


def git_output_observer(stream: OutputStream, chunk: str) -> None:
    """Stream git's output to stderr as it is produced."""
    typer.echo(chunk, err=True, nl=False)
