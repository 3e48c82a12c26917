"""Shared fixtures for plugin registry tests."""
import pytest

from core.project import Project
from helpers import RecordingLog


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "book"
    root.mkdir()
    return Project(root=root, log=RecordingLog())
