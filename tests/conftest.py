"""Shared pytest fixtures for all tests."""

import random

import pytest
from fastapi.testclient import TestClient

from client.config import Config
from server.chunk_store import ChunkStore
from server.config import ServerSettings
from server.main import create_app
from server.merge_engine import MergeEngine
from server.namespace_locks import NamespaceLocks


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .sliceupload directory
    """
    config_dir = tmp_path / '.sliceupload'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance.

    Args:
        temp_config_dir: Temporary config directory fixture

    Returns:
        Config instance with temp config file
    """
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file for testing file uploads.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to sample text file
    """
    file_path = tmp_path / 'test.txt'
    file_path.write_text('Sample content for testing')
    return file_path


@pytest.fixture
def make_file(tmp_path):
    """
    Factory writing a file of pseudo-random bytes.

    Returns:
        Callable (name, size, seed=0) -> Path
    """
    def _make(name: str, size: int, seed: int = 0):
        path = tmp_path / name
        path.write_bytes(random.Random(seed).randbytes(size))
        return path
    return _make


@pytest.fixture
def storage_root(tmp_path):
    """Isolated upload root for one test."""
    return tmp_path / 'upload'


@pytest.fixture
def chunk_store(storage_root):
    return ChunkStore(storage_root, NamespaceLocks(timeout=1.0))


@pytest.fixture
def merge_engine(chunk_store):
    return MergeEngine(chunk_store)


@pytest.fixture
def settings(storage_root):
    return ServerSettings(upload_dir=storage_root, lock_timeout=0.2)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def api(app):
    """Create FastAPI test client."""
    return TestClient(app)
