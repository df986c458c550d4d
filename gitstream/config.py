"""Settings resolution for gitstream."""

import json
import logging
import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from gitstream.errors import ConfigError

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

ENV_PREFIX = "GITSTREAM_"


@dataclass(frozen=True)
class Settings:
    """Runtime settings: defaults, then the repo settings file, then environment."""

    git_executable: str = "git"
    log_level: str = "WARNING"
    max_workers: int = 4
    default_limit: int = 50

    @property
    def logging_level(self) -> int:
        return logging.getLevelName(self.log_level)


def settings_path(repo_root: Path) -> Path:
    return repo_root / ".gitstream" / "settings.json"


def _load_file(repo_root: Path) -> dict[str, object]:
    path = settings_path(repo_root)
    if not path.is_file():
        return {}

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Invalid settings format in {path}")
    return raw


def _from_env(env: Mapping[str, str]) -> dict[str, object]:
    values: dict[str, object] = {}
    for f in fields(Settings):
        key = ENV_PREFIX + f.name.upper()
        if f.name == "git_executable":
            key = ENV_PREFIX + "GIT"
        if key in env:
            values[f.name] = env[key]
    return values


def _coerce(name: str, value: Any) -> Any:
    if name in {"max_workers", "default_limit"}:
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{name} must be an integer, got {value!r}") from exc
        if number <= 0:
            raise ConfigError(f"{name} must be positive, got {number}")
        return number
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{name} must be a non-empty string")
    if name == "log_level":
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ConfigError(f"Unknown log level {value!r}")
        return level
    return value.strip()


def load_settings(repo_root: Path | None = None, env: Mapping[str, str] | None = None) -> Settings:
    """Resolve settings for a repository (or for no repository)."""
    source = os.environ if env is None else env
    known = {f.name for f in fields(Settings)}
    overrides: dict[str, object] = {}
    if repo_root is not None:
        for name, value in _load_file(repo_root).items():
            if name not in known:
                raise ConfigError(f"Unknown setting {name!r} in {settings_path(repo_root)}")
            overrides[name] = value
    overrides.update(_from_env(source))
    return replace(Settings(), **{name: _coerce(name, value) for name, value in overrides.items()})


def find_repo_root(cwd: Path, git_executable: str = "git") -> Path | None:
    """Return the top level of the work tree containing cwd."""
    try:
        result = subprocess.run(
            [git_executable, "-C", str(cwd), "rev-parse", "--show-toplevel"],
            check=False,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError:
        return None
    if result.returncode != 0:
        return None
    return Path(result.stdout.strip())
