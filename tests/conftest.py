"""Pytest configuration and fixtures for postsubmit tests."""

import subprocess
from typing import List, Optional

import pytest


class FakeRunner:
    """
    Stands in for subprocess.run.

    Answers git queries with canned output and records every make
    invocation instead of executing it.
    """

    def __init__(
        self,
        diff_output: str = "",
        diff_returncode: int = 0,
        diff_stderr: str = "",
        toplevel: str = "/repo\n",
        toplevel_returncode: int = 0,
        fail_on: Optional[str] = None,
    ):
        self.diff_output = diff_output
        self.diff_returncode = diff_returncode
        self.diff_stderr = diff_stderr
        self.toplevel = toplevel
        self.toplevel_returncode = toplevel_returncode
        self.fail_on = fail_on
        self.calls: List[tuple] = []

    def __call__(self, cmd, **kwargs):
        cmd = list(cmd)
        self.calls.append((cmd, kwargs))

        if cmd[:3] == ["git", "rev-parse", "--show-toplevel"]:
            return subprocess.CompletedProcess(
                cmd, self.toplevel_returncode, stdout=self.toplevel, stderr="fatal: not a git repository"
            )
        if cmd[0] == "git" and "diff" in cmd:
            return subprocess.CompletedProcess(
                cmd, self.diff_returncode, stdout=self.diff_output, stderr=self.diff_stderr
            )
        if cmd[0] == "make":
            if self.fail_on and cmd[2].endswith(self.fail_on):
                raise subprocess.CalledProcessError(2, cmd)
            return subprocess.CompletedProcess(cmd, 0)
        raise AssertionError(f"unexpected command: {cmd}")

    @property
    def git_calls(self) -> List[List[str]]:
        return [cmd for cmd, _ in self.calls if cmd[0] == "git"]

    @property
    def make_calls(self) -> List[List[str]]:
        return [cmd for cmd, _ in self.calls if cmd[0] == "make"]

    @property
    def built_projects(self) -> List[str]:
        return [cmd[2].split("/projects/", 1)[1] for cmd in self.make_calls]


@pytest.fixture
def fake_runner():
    """Factory for FakeRunner instances."""
    return FakeRunner
