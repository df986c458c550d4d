"""Command-line interface for gitstream."""

import asyncio
import logging
import sys
from collections.abc import AsyncIterator, Coroutine, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import click

from gitstream import ui
from gitstream.branch_manager import BranchManager
from gitstream.config import Settings, find_repo_root, load_settings
from gitstream.errors import GitstreamError
from gitstream.models import Branch, LogOptions
from gitstream.process import GitProcess

T = TypeVar("T")


@dataclass
class CliState:
    repo_root: Path
    settings: Settings
    manager: BranchManager


def make_manager(repo_root: Path, settings: Settings) -> BranchManager:
    process = GitProcess(cwd=repo_root, git_executable=settings.git_executable)
    return BranchManager(process, max_workers=settings.max_workers)


@contextmanager
def _errors(*extra: type[Exception]) -> Iterator[None]:
    try:
        yield
    except (GitstreamError, *extra) as exc:
        raise click.ClickException(str(exc)) from exc


def _run(coro: Coroutine[Any, Any, T]) -> T:
    with _errors():
        return asyncio.run(coro)


async def _collect(stream: AsyncIterator[T]) -> list[T]:
    return [item async for item in stream]


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--repo",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    help="Repository to inspect (default: current directory).",
)
@click.pass_context
def main(ctx: click.Context, repo: Path) -> None:
    """gitstream: browse branches and history."""
    with _errors():
        bootstrap = load_settings()
    repo_root = find_repo_root(repo.resolve(), bootstrap.git_executable)
    if repo_root is None:
        click.echo("gitstream: not inside a git repository", err=True)
        raise SystemExit(1)
    with _errors():
        settings = load_settings(repo_root)
    logging.basicConfig(level=settings.logging_level, format="%(levelname)s %(name)s: %(message)s")
    manager = make_manager(repo_root, settings)
    ctx.call_on_close(manager.close)
    ctx.obj = CliState(repo_root=repo_root, settings=settings, manager=manager)


@main.command("log")
@click.argument("branch", required=False)
@click.option("--skip", type=click.IntRange(min=0), default=0, show_default=True)
@click.option("--limit", type=click.IntRange(min=0), default=None, help="0 for no limit.")
@click.option("--merges", is_flag=True, help="Include merge commits.")
@click.option("--topo", is_flag=True, help="Topological order.")
@click.option("--branch-only", is_flag=True, help="Hide commits reachable from other local branches.")
@click.pass_obj
def log_cmd(
    state: CliState,
    branch: str | None,
    skip: int,
    limit: int | None,
    merges: bool,
    topo: bool,
    branch_only: bool,
) -> None:
    """Show the history of BRANCH (default: HEAD)."""
    options = LogOptions.NONE
    if merges:
        options |= LogOptions.INCLUDE_MERGES
    if topo:
        options |= LogOptions.TOPOLOGICAL_ORDER
    if branch_only:
        options |= LogOptions.BRANCH_ONLY_AND_PARENT
    if limit is None:
        limit = state.settings.default_limit
    scope = Branch(branch) if branch else None
    commits = _run(_collect(state.manager.get_commits_for_branch(scope, skip, limit, options)))
    ui.render(ui.commits_table(commits))


@main.command("branches")
@click.option("--remote", "-r", "mode", flag_value="remote", help="Remote branches only.")
@click.option("--all", "-a", "mode", flag_value="all", help="Local and remote branches.")
@click.pass_obj
def branches_cmd(state: CliState, mode: str | None) -> None:
    """List branches."""
    if mode == "remote":
        stream = state.manager.get_remote_branches()
    elif mode == "all":
        stream = state.manager.get_local_and_remote_branches()
    else:
        stream = state.manager.get_local_branches()
    ui.render(ui.branches_table(_run(_collect(stream))))


@main.command("current")
@click.pass_obj
def current_cmd(state: CliState) -> None:
    """Print the checked-out branch."""
    with _errors():
        branch = state.manager.current_branch.latest
    if branch is None:
        raise click.ClickException("no branch is checked out")
    click.echo(branch.name)


@main.command("checkout")
@click.argument("branch", required=False)
@click.option("--force", "-f", is_flag=True, help="Discard local changes.")
@click.pass_obj
def checkout_cmd(state: CliState, branch: str | None, force: bool) -> None:
    """Check out BRANCH, or pick one interactively."""
    if branch is None:
        if not sys.stdin.isatty() or not sys.stdout.isatty():
            raise click.UsageError("BRANCH is required when not running in a terminal")
        with _errors():
            picked = ui.pick_branch(state.manager.list_local_branches())
        if picked is None:
            return
        target = picked
    else:
        target = Branch(branch)
    _run(state.manager.checkout_branch(target, force=force))
    click.echo(f"Switched to {target.name}")


@main.command("count")
@click.argument("branch")
@click.pass_obj
def count_cmd(state: CliState, branch: str) -> None:
    """Print the number of commits reachable from BRANCH."""
    with _errors(ValueError):
        click.echo(state.manager.get_commit_count(Branch(branch)))


@main.command("message")
@click.argument("sha")
@click.pass_obj
def message_cmd(state: CliState, sha: str) -> None:
    """Print the full message of a commit."""
    with _errors():
        click.echo(state.manager.get_commit_message_long(sha))


@main.command("status")
@click.pass_obj
def status_cmd(state: CliState) -> None:
    """Report whether the work tree is dirty or mid-merge."""

    async def _status() -> tuple[bool, bool]:
        dirty, conflict = await asyncio.gather(
            state.manager.is_working_directory_dirty(),
            state.manager.is_merge_conflict(),
        )
        return dirty, conflict

    dirty, conflict = _run(_status())
    click.echo(f"dirty: {'yes' if dirty else 'no'}")
    click.echo(f"merge conflict: {'yes' if conflict else 'no'}")


@main.command("reflog")
@click.argument("branch", required=False)
@click.option("--limit", type=click.IntRange(min=0), default=None, help="0 for no limit.")
@click.pass_obj
def reflog_cmd(state: CliState, branch: str | None, limit: int | None) -> None:
    """Show the ref log of HEAD or BRANCH."""
    if limit is None:
        limit = state.settings.default_limit
    scope = Branch(branch) if branch else None
    ui.render(ui.ref_log_table(_run(_collect(state.manager.get_ref_log(scope, limit)))))


if __name__ == "__main__":
    main()
