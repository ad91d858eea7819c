"""Root pytest configuration for envops tests."""
from __future__ import annotations

import pytest

from envops.settings import Settings
from envops.vcs.git import GitFacade

from .fakes import FakeActivityLoader, FakeProcessRunner
from .helpers.activities import make_activity

ENV_VARS = [
    "ENVOPS_API_URL",
    "ENVOPS_API_TOKEN",
    "ENVOPS_PROJECT",
    "ENVOPS_ENVIRONMENT",
    "ENVOPS_GIT_BINARY",
    "ENVOPS_REPOSITORY_DIR",
    "ENVOPS_HTTP_TIMEOUT",
    "ENVOPS_HTTP_RETRY",
]


# Isolate tests from the developer's environment
@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Clear envops environment variables for every test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings():
    """Standard test settings."""
    return Settings(
        api_url="https://api.example.com",
        api_token="test-token",
        project="proj1",
        environment="main",
    )


@pytest.fixture
def runner():
    """Recording fake process runner."""
    return FakeProcessRunner()


@pytest.fixture
def repo_dir(tmp_path):
    """A directory that looks like a repository (has a .git subdirectory)."""
    path = tmp_path / "repo"
    (path / ".git").mkdir(parents=True)
    return path


@pytest.fixture
def plain_dir(tmp_path):
    """A directory that is not a repository."""
    path = tmp_path / "plain"
    path.mkdir()
    return path


@pytest.fixture
def git(repo_dir, runner):
    """Git facade bound to repo_dir over the fake runner."""
    return GitFacade(repo_dir, runner=runner)


@pytest.fixture
def activities():
    """Three activities on the main environment, newest first."""
    return [
        make_activity("act3", type="environment.push", state="in_progress", result="", day=3),
        make_activity("act2", type="environment.backup", day=2),
        make_activity("act1", type="environment.push", result="failure", environments=("main", "dev"), day=1),
    ]


@pytest.fixture
def loader(activities):
    """Fake activity loader serving the standard activities."""
    return FakeActivityLoader(activities)
