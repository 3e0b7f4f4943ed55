"""Configuration for pytest."""

from unittest.mock import MagicMock

import pytest

from jjspr.config import Config
from jjspr.github import GitHubClient
from jjspr.tests.fake_github import FakeGithub, FakeRepository
from jjspr.tests.fakes import make_config

@pytest.fixture
def config() -> Config:
    return make_config()

@pytest.fixture
def fake_github() -> FakeGithub:
    return FakeGithub(login="me")

@pytest.fixture
def fake_repo(fake_github: FakeGithub) -> FakeRepository:
    return fake_github.get_repo("acme/widgets")

@pytest.fixture
def github(config: Config, fake_github: FakeGithub) -> GitHubClient:
    return GitHubClient(config, fake_github)

@pytest.fixture
def git_cmd() -> MagicMock:
    """Git adapter where only the first commit's parent is on master."""
    git = MagicMock()
    git.remote_ref_names.return_value = set()
    git.is_on_master.side_effect = lambda commit_hash: commit_hash == "trunk"
    return git
