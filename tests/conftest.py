"""Shared fixtures for alex tests."""

import pytest

from alex_secrets import crypto
from alex_secrets.config import Config
from alex_secrets.project import METHOD_GIT_REMOTE, ProjectIdentity


@pytest.fixture(autouse=True)
def fast_kdf(monkeypatch):
    """Use the cheapest allowed scrypt cost so tests stay fast."""
    monkeypatch.setattr(crypto, "DEFAULT_LOG_N", crypto.MIN_LOG_N)


@pytest.fixture
def config(tmp_path):
    work = tmp_path / "work"
    work.mkdir()
    return Config(home=tmp_path / "alex-home", cwd=work)


@pytest.fixture
def project():
    return ProjectIdentity(value="git@github.com:acme/webapp.git", method=METHOD_GIT_REMOTE)
