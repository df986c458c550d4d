"""Decoders for git's textual output."""

import logging
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import aclosing
from datetime import datetime
from typing import Any

from gitstream.arguments import COMMIT_FIELD_COUNT, FIELD_SEPARATOR
from gitstream.models import ZERO_DATE, Branch, Commit, Decoded, DecodeResult, RefLogEntry, Skipped

logger = logging.getLogger(__name__)

REF_LOG_FIELD_COUNT = 5
REMOTE_ARROW = " -> "


def parse_date(value: str) -> datetime:
    """Parse a git iso date, falling back to ZERO_DATE."""
    text = value.strip()
    try:
        return datetime.strptime(text, "%Y-%m-%d %H:%M:%S %z")
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return ZERO_DATE


def decode_commit(line: str) -> DecodeResult:
    """Decode one decorated history line into a commit."""
    fields = line.split(FIELD_SEPARATOR)
    if len(fields) != COMMIT_FIELD_COUNT:
        return Skipped(line, f"expected {COMMIT_FIELD_COUNT} fields, got {len(fields)}")

    parents = tuple(p.strip("\r\n") for p in fields[2].split() if p.strip("\r\n"))
    return Decoded(
        Commit(
            sha=fields[0],
            short_sha=fields[1],
            parent_shas=parents,
            commit_date=parse_date(fields[3]),
            committer_name=fields[4],
            committer_email=fields[5],
            author_name=fields[6],
            author_email=fields[7],
            refs=fields[8],
            message_short=fields[9].strip("\r\n"),
        )
    )


def _selector_date(value: str) -> str:
    # %gd with --date=iso prints HEAD@{2024-01-02 10:11:12 +0100}
    _, sep, rest = value.partition("@{")
    if sep and rest.endswith("}"):
        return rest[:-1]
    return value


def decode_ref_log(line: str) -> DecodeResult:
    """Decode one ref log line (sha, short sha, subject, selector)."""
    fields = line.split(FIELD_SEPARATOR)
    if len(fields) != REF_LOG_FIELD_COUNT:
        return Skipped(line, f"expected {REF_LOG_FIELD_COUNT} fields, got {len(fields)}")

    action, sep, message = fields[2].partition(": ")
    if not sep:
        action, message = "", fields[2]
    return Decoded(
        RefLogEntry(
            sha=fields[0],
            short_sha=fields[1],
            action=action,
            message_short=message.strip("\r\n"),
            date_time=parse_date(_selector_date(fields[3])),
        )
    )


def decode_local_branch(line: str) -> Branch:
    """Decode a line of `git branch`: two marker characters then the name."""
    return Branch(line[2:], is_remote=False, is_current=line[:1] == "*")


def decode_remote_branch(line: str) -> Branch:
    """Decode a line of `git branch -r`, dropping any symbolic ref target."""
    name, _, _ = line.partition(REMOTE_ARROW)
    return Branch(name.strip(), is_remote=True, is_current=False)


async def decode_stream(
    lines: AsyncGenerator[str, None],
    decode: Callable[[str], DecodeResult],
) -> AsyncIterator[Any]:
    """Decode a line stream, logging and dropping skipped records."""
    async with aclosing(lines):
        async for line in lines:
            result = decode(line)
            if isinstance(result, Skipped):
                logger.debug("skipping record: %s (%r)", result.reason, result.line)
                continue
            yield result.value
