"""
Pytest configuration and shared fixtures for policy engine tests.
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
import yaml

from tests.fakes import GRAPH_URL, FakeDirectory


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def directory() -> FakeDirectory:
    """Fake directory service with empty policy listings."""
    fake = FakeDirectory()
    fake.empty_listings()
    return fake


@pytest.fixture
def sample_config(temp_dir: Path) -> Path:
    """Create a sample configuration file."""
    config_path = temp_dir / "policy.yaml"
    config_data = {
        "logging": {
            "level": "debug",
        },
        "graph": {
            "timeout": 10,
            "domains": {
                "Contoso.onmicrosoft.com": GRAPH_URL,
            },
        },
        "extensions": {
            "enabled": [],
        },
    }
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path
