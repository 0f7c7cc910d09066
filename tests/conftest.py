"""
Pytest configuration and fixtures for LocalSpace tests.
"""

import os
import shutil
import tempfile
from pathlib import Path

import pytest

from localspace.core.config.risk_config import default_risk_config
from localspace.providers.database.duckdb_provider import DuckDBProvider
from localspace.services.risk_classifier import RiskClassifier


@pytest.fixture
def temp_dir():
    """Create a temporary directory tree root for testing."""
    path = Path(tempfile.mkdtemp())

    yield path

    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def tree(temp_dir):
    """A small directory tree with known file sizes.

    Layout::

        tree/a.txt          10 bytes
        tree/sub/b.log      20 bytes
        tree/sub/c.mp4      30 bytes
    """
    root = temp_dir / "tree"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_bytes(b"x" * 10)
    (root / "sub" / "b.log").write_bytes(b"x" * 20)
    (root / "sub" / "c.mp4").write_bytes(b"x" * 30)
    return root


@pytest.fixture
def memory_store():
    """Connected in-memory DuckDB store."""
    store = DuckDBProvider(":memory:")
    store.connect()

    yield store

    store.disconnect()


@pytest.fixture
def classifier(temp_dir):
    """Classifier with the built-in rules and a private config path."""
    return RiskClassifier(
        temp_dir / "risk_config.json", config=default_risk_config()
    )


@pytest.fixture
def clean_environment():
    """Clean up LocalSpace environment variables before and after tests."""
    # Store original values
    original_env = {}
    for key in list(os.environ.keys()):
        if key.startswith("LOCALSPACE_"):
            original_env[key] = os.environ[key]
            del os.environ[key]

    yield

    # Restore original values
    for key in list(os.environ.keys()):
        if key.startswith("LOCALSPACE_"):
            del os.environ[key]

    for key, value in original_env.items():
        os.environ[key] = value
