"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from helpers import FakeRunner, create_repo
from llvmenv.config import RetryPolicy, Settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in a temporary directory with instant retries."""
    system_prefix = tmp_path / "usr"
    system_prefix.mkdir()
    return Settings(
        config_dir=tmp_path / "config" / "llvmenv",
        data_dir=tmp_path / "data" / "llvmenv",
        cache_dir=tmp_path / "cache" / "llvmenv",
        system_prefix=system_prefix,
        retry=RetryPolicy(attempts=3, backoff=0.0),
    )


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    repo = tmp_path / "upstream"
    create_repo(repo)
    return repo
