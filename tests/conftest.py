"""Shared fixtures."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Any, Callable, List

import pytest

from strata.core import provider as registry


class ManualTask:
    def __init__(self, action: Callable[[], Any], period: float):
        self.action = action
        self.period = period
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose tasks only run when the test says so."""

    def __init__(self):
        self.tasks: List[ManualTask] = []

    def schedule(self, action: Callable[[], Any], period: float) -> ManualTask:
        task = ManualTask(action, period)
        self.tasks.append(task)
        return task

    def tick(self) -> None:
        """Run every live task once, as if one period elapsed."""
        for task in self.tasks:
            if not task.cancelled:
                task.action()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def clean_registry():
    """Restore the extension registry after the test."""
    before = registry.registered_extensions()
    yield
    for extension in registry.registered_extensions():
        if extension not in before:
            registry.unregister_extension(extension)
    for extension, provider in before.items():
        registry.register_extension(extension, provider)


def _git(*args: str, cwd: Path) -> None:
    subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True)


@pytest.fixture
def git_repo(tmp_path):
    """A local repository with one commit holding ``source.properties``."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    repo = tmp_path / "remote"
    repo.mkdir()
    _git("init", "--quiet", cwd=repo)
    _git("config", "user.email", "test@example.com", cwd=repo)
    _git("config", "user.name", "test", cwd=repo)
    _git("config", "commit.gpgsign", "false", cwd=repo)
    (repo / "source.properties").write_text("type = git\n")
    _git("add", "source.properties", cwd=repo)
    _git("commit", "--quiet", "-m", "initial", cwd=repo)
    return repo


@pytest.fixture
def commit_file():
    """Commit a file to a repository created by ``git_repo``."""

    def commit(repo: Path, name: str, content: str) -> None:
        (repo / name).write_text(content)
        _git("add", name, cwd=repo)
        _git("commit", "--quiet", "-m", f"update {name}", cwd=repo)

    return commit
