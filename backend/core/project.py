"""Project context passed to plugin operations."""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

# Success notifications sit between INFO and WARNING
OK = 25
logging.addLevelName(OK, "OK")


class ProjectLog:
    """Logging sink of a project.

    Wraps a standard logger and adds the ``ok`` severity used to report
    completed operations.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("project")

    def info(self, msg: str) -> None:
        self.logger.info(msg)

    def ok(self, msg: str) -> None:
        self.logger.log(OK, msg)

    def warning(self, msg: str) -> None:
        self.logger.warning(msg)

    def error(self, msg: str) -> None:
        self.logger.error(msg)


@dataclass
class Project:
    """A project (book) whose plugins are being managed.

    Only ``root`` and ``log`` are used. The plugin core never mutates a
    project except by writing to its log and installing under its root.
    """
    root: Path
    log: ProjectLog = field(default_factory=ProjectLog)

    @classmethod
    def at(cls, root: Union[str, Path]) -> "Project":
        """Build a project for a directory, logging under its own name."""
        root = Path(root).resolve()
        return cls(root=root, log=ProjectLog(logging.getLogger(f"project.{root.name}")))
