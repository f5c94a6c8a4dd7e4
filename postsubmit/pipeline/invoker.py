"""
Build invocation for a single vendored project.

Each build is a blocking `make -C projects/<project> <target> KEY=VALUE...`
call. Output goes straight to the orchestrator's own streams.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import IO, Any, Callable, List, Optional

from postsubmit.errors import BuildError

logger = logging.getLogger(__name__)

# Passed to make verbatim; make expands it, not us.
IMAGE_TAG_TEMPLATE = "'$(GIT_TAG)-$(PULL_BASE_SHA)'"


@dataclass(frozen=True)
class BuildParameters:
    """Make-facing build configuration. Built once per run."""
    target: str = "release"
    release_branch: str = "1-18"
    release: str = "1"
    development: bool = False
    region: str = "us-west-2"
    account_id: str = ""
    base_image: str = ""
    image_repo: str = ""
    go_runner_image: str = ""
    kube_proxy_base: str = ""
    # Not forwarded to make; the build tool publishes artifacts itself.
    artifact_bucket: str = ""

    def make_args(self) -> List[str]:
        """Ordered KEY=VALUE arguments, image tag last."""
        return [
            f"RELEASE_BRANCH={self.release_branch}",
            f"RELEASE={self.release}",
            f"DEVELOPMENT={'true' if self.development else 'false'}",
            f"AWS_REGION={self.region}",
            f"AWS_ACCOUNT_ID={self.account_id}",
            f"BASE_IMAGE={self.base_image}",
            f"IMAGE_REPO={self.image_repo}",
            f"GO_RUNNER_IMAGE={self.go_runner_image}",
            f"KUBE_PROXY_BASE_IMAGE={self.kube_proxy_base}",
            f"IMAGE_TAG={IMAGE_TAG_TEMPLATE}",
        ]


class BuildInvoker:
    """Runs (or, in dry-run mode, only logs) one project build at a time."""

    def __init__(
        self,
        repo_root: str,
        parameters: BuildParameters,
        dry_run: bool = False,
        runner: Callable[..., Any] = subprocess.run,
        stdout: Optional[IO] = None,
        stderr: Optional[IO] = None,
        tool: str = "make",
    ):
        self.repo_root = str(repo_root)
        self.parameters = parameters
        self.dry_run = dry_run
        self.runner = runner
        # None inherits our own stdout/stderr
        self.stdout = stdout
        self.stderr = stderr
        self.tool = tool

    def command(self, project: str) -> List[str]:
        project_dir = os.path.join(self.repo_root, "projects", project)
        return [self.tool, "-C", project_dir, self.parameters.target] + self.parameters.make_args()

    def build(self, project: str) -> None:
        """
        Build one project.

        Raises:
            BuildError: make exited non-zero or could not be started
        """
        cmd = self.command(project)
        logger.info(f"Executing: {' '.join(cmd)}")

        if self.dry_run:
            return

        try:
            self.runner(cmd, stdout=self.stdout, stderr=self.stderr, check=True)
        except (subprocess.CalledProcessError, OSError) as e:
            raise BuildError(project, cmd, e) from e

        logger.info(f"Built {project}")
