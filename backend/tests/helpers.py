"""Test doubles and filesystem builders."""
import json
import logging
from pathlib import Path
from typing import Optional

from core.project import ProjectLog


class FakeNpm:
    """Stands in for NpmClient, recording every call."""

    def __init__(self, versions: Optional[dict] = None, install_error: Optional[Exception] = None):
        self.versions = versions or {}
        self.install_error = install_error
        self.queries: list[str] = []
        self.installs: list[tuple] = []

    async def query_versions(self, package_name):
        self.queries.append(package_name)
        return self.versions

    async def install_package(self, package_name, version, target_dir, options=None):
        self.installs.append((package_name, version, target_dir, options))
        if self.install_error is not None:
            raise self.install_error


class RecordingLog(ProjectLog):
    """Project log that keeps (level, message) pairs."""

    def __init__(self):
        super().__init__(logging.getLogger("tests.project"))
        self.records: list[tuple[str, str]] = []

    def info(self, msg):
        self.records.append(("info", msg))

    def ok(self, msg):
        self.records.append(("ok", msg))


def write_package(directory: Path, name: str, version: str = "1.0.0") -> Path:
    """Write a package.json for name@version into directory."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "package.json").write_text(json.dumps({"name": name, "version": version}))
    return directory
