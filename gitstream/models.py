"""Data models for gitstream."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Flag, auto
from typing import Generic, TypeVar

T = TypeVar("T")

ZERO_DATE = datetime.min.replace(tzinfo=timezone.utc)


class LogOptions(Flag):
    """Switches for history queries."""

    NONE = 0
    INCLUDE_MERGES = auto()
    TOPOLOGICAL_ORDER = auto()
    BRANCH_ONLY_AND_PARENT = auto()


@dataclass(frozen=True)
class Branch:
    """A local or remote branch as listed by git branch."""

    name: str
    is_remote: bool = False
    is_current: bool = field(default=False, compare=False)

    @property
    def friendly_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class Commit:
    """One decoded history record."""

    sha: str
    short_sha: str
    parent_shas: tuple[str, ...]
    commit_date: datetime
    committer_name: str
    committer_email: str
    author_name: str
    author_email: str
    refs: str
    message_short: str

    @property
    def is_merge(self) -> bool:
        """Check if this commit has more than one parent."""
        return len(self.parent_shas) > 1


@dataclass(frozen=True)
class RefLogEntry:
    """An item of the ref log."""

    sha: str
    short_sha: str
    action: str
    message_short: str
    date_time: datetime


@dataclass(frozen=True)
class Decoded(Generic[T]):
    """A record that decoded into an entity."""

    value: T


@dataclass(frozen=True)
class Skipped:
    """A record that was dropped because it did not have the expected shape."""

    line: str
    reason: str


DecodeResult = Decoded | Skipped
