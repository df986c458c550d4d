"""Git subprocess streaming."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable, Sequence
from concurrent.futures import Executor, ThreadPoolExecutor
from pathlib import Path
from typing import Protocol, cast, runtime_checkable

from gitstream.errors import GitProcessError

logger = logging.getLogger(__name__)

READ_CHUNK = 64 * 1024


@runtime_checkable
class LineSource(Protocol):
    """Anything that can run git and stream its output lines."""

    def run(self, arguments: Sequence[str], show_output: bool = False) -> AsyncGenerator[str, None]:
        """Yield stdout lines of one invocation without trailing newlines."""
        ...


def command_line(arguments: Sequence[str]) -> list[str]:
    """Join argument fragments and split them back into argv tokens."""
    return [token for token in " ".join(arguments).split(" ") if token]


class GitProcess:
    """Runs git in a working directory and streams stdout line by line."""

    def __init__(self, cwd: Path | None = None, git_executable: str = "git") -> None:
        self.cwd = cwd
        self.git_executable = git_executable

    async def run(self, arguments: Sequence[str], show_output: bool = False) -> AsyncGenerator[str, None]:
        args = command_line(arguments)
        logger.debug("running git %s in %s", " ".join(args), self.cwd or ".")
        proc = await asyncio.create_subprocess_exec(
            self.git_executable,
            *args,
            cwd=self.cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout = cast(asyncio.StreamReader, proc.stdout)
        stderr_task = asyncio.ensure_future(cast(asyncio.StreamReader, proc.stderr).read())
        finished = False
        try:
            async for raw in _split_lines(stdout):
                line = raw.decode("utf-8", errors="replace").rstrip("\r")
                if show_output:
                    logger.info("git: %s", line)
                yield line
            returncode = await proc.wait()
            stderr = (await stderr_task).decode("utf-8", errors="replace").strip()
            finished = True
        finally:
            if not finished:
                # Consumer stopped early or was cancelled.
                stderr_task.cancel()
                if proc.returncode is None:
                    try:
                        proc.kill()
                    except ProcessLookupError:
                        pass
                    await proc.wait()
                logger.debug("git %s terminated before completion", " ".join(args))
        if returncode != 0:
            raise GitProcessError(args, returncode, stderr)


async def _split_lines(stream: asyncio.StreamReader) -> AsyncGenerator[bytes, None]:
    # StreamReader.readline fails on lines longer than its buffer limit.
    pending = b""
    while True:
        chunk = await stream.read(READ_CHUNK)
        if not chunk:
            break
        pending += chunk
        *lines, pending = pending.split(b"\n")
        for raw in lines:
            yield raw
    if pending:
        yield pending


async def drain(source: LineSource, arguments: Sequence[str]) -> list[str]:
    """Consume a whole invocation into a list."""
    return [line async for line in source.run(arguments)]


def collect_lines(
    source: LineSource,
    arguments: Sequence[str],
    executor: Executor | None = None,
) -> list[str]:
    """Run an invocation to completion on a worker thread and block for its lines.

    The stream is driven by a fresh event loop on the worker, never by the
    caller's loop, so this is safe to call from inside a coroutine.
    """
    return _run_blocking(lambda: asyncio.run(drain(source, arguments)), executor)


def _run_blocking(func: Callable[[], list[str]], executor: Executor | None) -> list[str]:
    if executor is not None:
        return executor.submit(func).result()
    with ThreadPoolExecutor(max_workers=1) as owned:
        return owned.submit(func).result()
