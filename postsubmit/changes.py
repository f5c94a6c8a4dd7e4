"""
Change set resolution.

Asks git which files changed between the previous and the current commit of
the checked out tree, and where the repository root is.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Callable, List

from postsubmit.errors import ResolutionError

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


def _run_git(cmd: List[str], runner: Runner, what: str) -> str:
    logger.info(f"Executing command: {' '.join(cmd)}")
    try:
        result = runner(cmd, capture_output=True, text=True)
    except OSError as e:
        raise ResolutionError(f"error running {what}", cmd, str(e)) from e

    if result.returncode != 0:
        output = "\n".join(part for part in (result.stdout, result.stderr) if part)
        raise ResolutionError(
            f"error running {what} (exit status {result.returncode})", cmd, output.strip()
        )
    return result.stdout or ""


def find_git_root(runner: Runner = subprocess.run) -> str:
    """Return the top level directory of the current git checkout."""
    cmd = ["git", "rev-parse", "--show-toplevel"]
    fields = _run_git(cmd, runner, "finding git root").split()
    if not fields:
        raise ResolutionError("error finding git root: no output", cmd)
    return fields[0]


class ChangeSetResolver:
    """Lists the files changed by the commit at HEAD."""

    def __init__(self, runner: Runner = subprocess.run):
        self.runner = runner

    def command(self, repo_root: str) -> List[str]:
        return ["git", "-C", str(repo_root), "diff", "--name-only", "HEAD^", "HEAD"]

    def resolve(self, repo_root: str) -> List[str]:
        """
        Return changed paths in the order git reports them.

        An empty list is a valid result (e.g. an empty commit).

        Raises:
            ResolutionError: git could not be run or returned non-zero.
        """
        output = _run_git(self.command(repo_root), self.runner, "git diff")
        changed = output.split()
        logger.info(f"{len(changed)} file(s) changed")
        return changed
