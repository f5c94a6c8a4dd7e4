"""
Errors raised by the postsubmit orchestrator.

Every error here is fatal for the run. They are only caught by the CLI entry
point, which logs them and exits non-zero.
"""

from __future__ import annotations

from typing import List, Optional


class PostsubmitError(Exception):
    """Base class for postsubmit failures."""


class ConfigError(PostsubmitError):
    """The configuration file could not be loaded."""


class ResolutionError(PostsubmitError):
    """A git query (root discovery or diff) could not be executed or failed."""

    def __init__(self, message: str, command: List[str], output: str = ""):
        self.command = list(command)
        self.output = output
        detail = f"{message}: {' '.join(self.command)}"
        if output:
            detail = f"{detail}\n{output}"
        super().__init__(detail)


class BuildError(PostsubmitError):
    """A selected project's build exited non-zero or could not be started."""

    def __init__(self, project: str, command: List[str], cause: Optional[BaseException] = None):
        self.project = project
        self.command = list(command)
        self.cause = cause
        super().__init__(f"error building {project}: {cause}: {' '.join(self.command)}")
