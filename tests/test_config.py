from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path

import pytest

from gitstream.config import Settings, find_repo_root, load_settings, settings_path
from gitstream.errors import ConfigError

GIT_AVAILABLE = subprocess.run(["git", "--version"], capture_output=True).returncode == 0


def _write_settings(repo_root: Path, payload: object) -> None:
    path = settings_path(repo_root)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")


def test_defaults_without_repo() -> None:
    settings = load_settings(env={})
    assert settings == Settings()
    assert settings.logging_level == logging.WARNING


def test_file_then_env_precedence(tmp_path: Path) -> None:
    _write_settings(tmp_path, {"max_workers": 8, "log_level": "info", "default_limit": 10})
    settings = load_settings(tmp_path, env={"GITSTREAM_DEFAULT_LIMIT": "25", "GITSTREAM_GIT": "/usr/bin/git"})
    assert settings.max_workers == 8
    assert settings.log_level == "INFO"
    assert settings.default_limit == 25
    assert settings.git_executable == "/usr/bin/git"


def test_invalid_json(tmp_path: Path) -> None:
    path = settings_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid JSON"):
        load_settings(tmp_path, env={})


@pytest.mark.parametrize(
    "payload",
    [
        ["not", "an", "object"],
        {"colour": "blue"},
        {"log_level": "LOUD"},
        {"max_workers": 0},
        {"default_limit": "many"},
        {"git_executable": ""},
    ],
)
def test_rejected_settings(tmp_path: Path, payload: object) -> None:
    _write_settings(tmp_path, payload)
    with pytest.raises(ConfigError):
        load_settings(tmp_path, env={})


def test_rejected_env_value() -> None:
    with pytest.raises(ConfigError):
        load_settings(env={"GITSTREAM_MAX_WORKERS": "-2"})


@pytest.mark.skipif(not GIT_AVAILABLE, reason="git missing")
def test_find_repo_root(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    (repo / "sub").mkdir(parents=True)
    subprocess.run(["git", "init"], cwd=repo, check=True, capture_output=True)
    assert find_repo_root(repo / "sub").resolve() == repo.resolve()


def test_find_repo_root_missing_git(tmp_path: Path) -> None:
    assert find_repo_root(tmp_path, git_executable="definitely-not-git") is None
