"""Error types raised by gitstream."""

from typing import Sequence


class GitstreamError(Exception):
    """Base class for gitstream failures."""


class GitProcessError(GitstreamError):
    """Git command exited with a nonzero status."""

    def __init__(self, cmd: Sequence[str], returncode: int, stderr: str) -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"git {' '.join(self.cmd)}: {stderr or f'exit code {returncode}'}")


class GitOutputError(GitstreamError):
    """Git succeeded but printed nothing usable."""


class ConfigError(GitstreamError):
    """Settings file or environment value is invalid."""
