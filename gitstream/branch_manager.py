"""Branch and history queries streamed from git."""

import asyncio
import logging
import threading
from collections.abc import AsyncIterator
from concurrent.futures import Executor, ThreadPoolExecutor
from contextlib import aclosing
from types import TracebackType
from typing import Self

from gitstream.arguments import build_log_arguments, ref_log_format
from gitstream.broadcast import BranchBroadcast
from gitstream.decoders import decode_commit, decode_local_branch, decode_ref_log, decode_remote_branch, decode_stream
from gitstream.errors import GitOutputError
from gitstream.models import Branch, Commit, LogOptions, RefLogEntry
from gitstream.process import LineSource, collect_lines
from gitstream.streams import has_any, merge

logger = logging.getLogger(__name__)


class BranchManager:
    """Issues branch and history queries and tracks the checked-out branch.

    Streaming operations are async generators; closing or cancelling them
    stops the underlying git process. The blocking operations drain their
    query on a worker of ``executor`` so they can be called from a coroutine.
    """

    def __init__(
        self,
        process: LineSource,
        executor: Executor | None = None,
        max_workers: int = 4,
    ) -> None:
        self.process = process
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="gitstream"
        )
        self._current_branch = BranchBroadcast()
        self._seeded = False
        self._seed_lock = threading.Lock()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def current_branch(self) -> BranchBroadcast:
        """Broadcast of the checked-out branch, seeded from `git branch` on first access."""
        with self._seed_lock:
            if not self._seeded and not self._current_branch.closed:
                self._seed_current_branch()
                self._seeded = True
        return self._current_branch

    def _seed_current_branch(self) -> None:
        for line in collect_lines(self.process, ["branch"], self._executor):
            if line.startswith("*"):
                branch = decode_local_branch(line)
                logger.debug("current branch is %s", branch.name)
                self._current_branch.publish(branch)

    async def checkout_branch(self, branch: Branch, force: bool = False) -> None:
        """Check out a branch and publish it as current.

        The branch is published once git exits, whether or not it succeeded.
        """
        arguments = [f"checkout {branch.friendly_name}"]
        if force:
            arguments.append("-f")
        try:
            async with aclosing(self.process.run(arguments, show_output=True)) as lines:
                async for _ in lines:
                    pass
        finally:
            self._current_branch.publish(branch)

    def get_commit_count(self, branch: Branch) -> int:
        """Count the commits reachable from a branch. Blocks."""
        lines = collect_lines(
            self.process, [f"rev-list --count {branch.friendly_name}"], self._executor
        )
        if not lines:
            raise GitOutputError(f"rev-list printed no count for {branch.friendly_name}")
        return int(lines[0].strip())

    def get_commit_message_long(self, commit: Commit | str) -> str:
        """Fetch the full message body of a commit (or sha). Blocks."""
        sha = commit if isinstance(commit, str) else commit.sha
        lines = collect_lines(self.process, ["log", "--format=%B", "-n 1", sha], self._executor)
        return "\n".join(line.strip() for line in lines).strip()

    def list_local_branches(self) -> list[Branch]:
        """List local branches. Blocks."""
        return [decode_local_branch(line) for line in collect_lines(self.process, ["branch"], self._executor)]

    async def get_commit_messages_after_parent(self, parent: Commit) -> AsyncIterator[str]:
        """Yield the long messages of commits between ``parent`` and HEAD."""
        broadcast = await asyncio.to_thread(lambda: self.current_branch)
        current = await broadcast.wait_latest()
        arguments = await asyncio.to_thread(
            build_log_arguments,
            current,
            0,
            0,
            LogOptions.NONE,
            f"{parent.sha}..HEAD",
            self.list_local_branches,
        )
        async with aclosing(decode_stream(self.process.run(["log", *arguments]), decode_commit)) as commits:
            async for commit in commits:
                message = await asyncio.to_thread(self.get_commit_message_long, commit)
                yield message.strip("\r\n")

    async def get_commits_for_branch(
        self,
        branch: Branch | None,
        skip: int = 0,
        limit: int = 0,
        options: LogOptions = LogOptions.NONE,
    ) -> AsyncIterator[Commit]:
        """Yield the history of a branch; malformed records are dropped."""
        arguments = await asyncio.to_thread(
            build_log_arguments, branch, skip, limit, options, "HEAD", self.list_local_branches
        )
        async with aclosing(decode_stream(self.process.run(["log", *arguments]), decode_commit)) as commits:
            async for commit in commits:
                yield commit

    async def get_local_branches(self) -> AsyncIterator[Branch]:
        async with aclosing(self.process.run(["branch"])) as lines:
            async for line in lines:
                yield decode_local_branch(line)

    async def get_remote_branches(self) -> AsyncIterator[Branch]:
        async with aclosing(self.process.run(["branch -r"])) as lines:
            async for line in lines:
                yield decode_remote_branch(line)

    async def get_local_and_remote_branches(self) -> AsyncIterator[Branch]:
        """Yield local and remote branches interleaved as they arrive."""
        async with aclosing(merge(self.get_local_branches(), self.get_remote_branches())) as branches:
            async for branch in branches:
                yield branch

    async def get_remote_branch(self, branch: Branch) -> Branch | None:
        """Resolve the remote branch tracked by ``branch``.

        Not supported: always returns None.
        """
        return None

    async def get_ref_log(self, branch: Branch | None = None, limit: int = 0) -> AsyncIterator[RefLogEntry]:
        """Yield ref log entries, newest first, for HEAD or a branch."""
        arguments = ["reflog", "show", *ref_log_format()]
        if limit > 0:
            arguments.append(f"--max-count={limit}")
        if branch is not None:
            arguments.append(branch.friendly_name)
        async with aclosing(decode_stream(self.process.run(arguments), decode_ref_log)) as entries:
            async for entry in entries:
                yield entry

    async def is_merge_conflict(self) -> bool:
        """Check if the index has unmerged paths."""
        return await has_any(self.process.run(["ls-files", "-u"]))

    async def is_working_directory_dirty(self) -> bool:
        """Check for changes or untracked files, ignoring dirty submodules."""
        arguments = ["status", "--porcelain", "--ignore-submodules=dirty", "--untracked-files=all"]
        return await has_any(self.process.run(arguments))

    def close(self) -> None:
        """Complete current-branch subscribers and release the worker pool."""
        self._current_branch.close()
        if self._owns_executor and isinstance(self._executor, ThreadPoolExecutor):
            self._executor.shutdown(wait=False)
