from __future__ import annotations

from collections.abc import AsyncGenerator, Sequence

import pytest

from gitstream.arguments import FIELD_SEPARATOR
from gitstream.process import command_line

SHA_A = "a" * 40
SHA_B = "b" * 40
SHA_C = "c" * 40


def commit_line(
    sha: str,
    parents: str = "",
    subject: str = "subject",
    date: str = "2018-03-04 12:34:56 +1100",
    refs: str = "",
) -> str:
    fields = [
        sha,
        sha[:7],
        parents,
        date,
        "Committer",
        "committer@example.com",
        "Author",
        "author@example.com",
        refs,
        subject,
        "",
    ]
    return FIELD_SEPARATOR.join(fields)


class StubProcess:
    """Line source answering by longest matching argv prefix."""

    def __init__(self) -> None:
        self.responses: dict[tuple[str, ...], list[str] | Exception] = {}
        self.calls: list[tuple[list[str], bool]] = []

    def on(self, arguments: Sequence[str], response: list[str] | Exception) -> StubProcess:
        self.responses[tuple(command_line(arguments))] = response
        return self

    def argvs(self) -> list[list[str]]:
        return [command_line(args) for args, _ in self.calls]

    async def run(self, arguments: Sequence[str], show_output: bool = False) -> AsyncGenerator[str, None]:
        argv = tuple(command_line(arguments))
        self.calls.append((list(arguments), show_output))
        matches = [key for key in self.responses if argv[: len(key)] == key]
        response = self.responses[max(matches, key=len)] if matches else []
        if isinstance(response, Exception):
            raise response
        for line in response:
            yield line


@pytest.fixture
def stub() -> StubProcess:
    return StubProcess()
