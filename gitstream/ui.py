"""Terminal rendering for gitstream commands."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

import questionary
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .models import ZERO_DATE, Branch, Commit, RefLogEntry

SUBJECT_WIDTH = 60


def _format_date(value: datetime) -> str:
    if value == ZERO_DATE:
        return "unknown"
    return value.strftime("%Y-%m-%d %H:%M")


def commits_table(commits: Iterable[Commit]) -> Table:
    table = Table(box=None, header_style="bold")
    table.add_column("SHA", style="yellow", no_wrap=True)
    table.add_column("DATE", no_wrap=True)
    table.add_column("AUTHOR")
    table.add_column("SUBJECT", max_width=SUBJECT_WIDTH)
    for commit in commits:
        subject = Text(commit.message_short)
        if commit.refs.strip():
            subject = Text.assemble((commit.refs.strip() + " ", "cyan"), subject)
        table.add_row(commit.short_sha, _format_date(commit.commit_date), commit.author_name, subject)
    return table


def branches_table(branches: Iterable[Branch]) -> Table:
    table = Table(box=None, header_style="bold")
    table.add_column("", width=1)
    table.add_column("BRANCH")
    table.add_column("KIND", style="dim")
    for branch in branches:
        marker = Text("*", style="green") if branch.is_current else Text("")
        name = Text(branch.name, style="green" if branch.is_current else "")
        table.add_row(marker, name, "remote" if branch.is_remote else "local")
    return table


def ref_log_table(entries: Iterable[RefLogEntry]) -> Table:
    table = Table(box=None, header_style="bold")
    table.add_column("SHA", style="yellow", no_wrap=True)
    table.add_column("DATE", no_wrap=True)
    table.add_column("ACTION", style="cyan")
    table.add_column("MESSAGE", max_width=SUBJECT_WIDTH)
    for entry in entries:
        table.add_row(entry.short_sha, _format_date(entry.date_time), entry.action, entry.message_short)
    return table


def render(table: Table, console: Console | None = None) -> None:
    (console or Console()).print(table)


def pick_branch(branches: list[Branch]) -> Branch | None:
    if not branches:
        return None
    choices = [
        questionary.Choice(
            title=f"{'* ' if b.is_current else '  '}{b.name}",
            value=b,
        )
        for b in branches
    ]
    return questionary.select("Checkout branch:", choices=choices).ask()
