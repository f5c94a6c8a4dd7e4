#!/usr/bin/env python3
"""
Postsubmit Orchestrator

Rebuilds the vendored projects touched by the latest merge:
- Diff HEAD^..HEAD to find changed files
- Select projects whose path appears in a changed file
- Rebuild everything when shared build files change
- Run `make` for each selected project, stopping at the first failure

Usage:
    # Build what changed in the last commit
    python -m postsubmit.pipeline.orchestrator --release-branch 1-19 --release 3

    # Dry run (log the make commands without running them)
    python -m postsubmit.pipeline.orchestrator --dry-run

    # Show tracked projects and global triggers
    python -m postsubmit.pipeline.orchestrator --list-projects
"""

from __future__ import annotations

import argparse
import logging
import subprocess
import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import IO, Any, Callable, List, Optional

from postsubmit.changes import ChangeSetResolver, find_git_root
from postsubmit.classifier import GlobalTriggerRule, Selection, classify
from postsubmit.config import DEFAULT_BUILD_OPTIONS, load_config
from postsubmit.errors import PostsubmitError
from postsubmit.pipeline.invoker import BuildInvoker, BuildParameters
from postsubmit.registry import ProjectRegistry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@dataclass
class PostsubmitResult:
    """Outcome of a run where every selected build succeeded."""
    started_at: str
    repo_root: str = ""
    dry_run: bool = False
    completed_at: Optional[str] = None
    duration_seconds: float = 0.0
    changed_paths: List[str] = field(default_factory=list)
    selection: Optional[Selection] = None
    built: List[str] = field(default_factory=list)


class PostsubmitOrchestrator:
    """
    Resolves the change set, classifies it and runs the builds.

    Builds run sequentially in registry order. The first BuildError is raised
    to the caller and no further projects are attempted.
    """

    def __init__(
        self,
        parameters: BuildParameters,
        git_root: Optional[str] = None,
        dry_run: bool = False,
        registry: Optional[ProjectRegistry] = None,
        rule: Optional[GlobalTriggerRule] = None,
        runner: Callable[..., Any] = subprocess.run,
        stdout: Optional[IO] = None,
        stderr: Optional[IO] = None,
    ):
        self.parameters = parameters
        self.git_root = git_root or None
        self.dry_run = dry_run
        self.registry = registry if registry is not None else ProjectRegistry()
        self.rule = rule if rule is not None else GlobalTriggerRule()
        self.runner = runner
        self.stdout = stdout
        self.stderr = stderr

    def run(self) -> PostsubmitResult:
        """
        Run postsubmit.

        Raises:
            ResolutionError: git root or diff could not be determined
            BuildError: a selected project failed to build
        """
        result = PostsubmitResult(started_at=datetime.now().isoformat(), dry_run=self.dry_run)
        logger.info(f"Running postsubmit - dry-run: {str(self.dry_run).lower()}")

        repo_root = self.git_root or find_git_root(self.runner)
        result.repo_root = repo_root

        result.changed_paths = ChangeSetResolver(self.runner).resolve(repo_root)
        selection = classify(result.changed_paths, self.registry, self.rule)
        result.selection = selection

        if selection.is_empty:
            logger.info("No tracked projects changed, nothing to build")

        invoker = BuildInvoker(
            repo_root,
            self.parameters,
            dry_run=self.dry_run,
            runner=self.runner,
            stdout=self.stdout,
            stderr=self.stderr,
        )
        for project in selection:
            invoker.build(project)
            result.built.append(project)

        result.completed_at = datetime.now().isoformat()
        started = datetime.fromisoformat(result.started_at)
        completed = datetime.fromisoformat(result.completed_at)
        result.duration_seconds = (completed - started).total_seconds()
        return result


def parse_bool(value: str) -> bool:
    """Accept the spellings Go's flag package takes for booleans."""
    lowered = value.strip().lower()
    if lowered in ("1", "t", "true", "yes"):
        return True
    if lowered in ("0", "f", "false", "no"):
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Postsubmit Orchestrator",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.set_defaults(**DEFAULT_BUILD_OPTIONS)

    parser.add_argument("--target", help="Make target")
    parser.add_argument("--release-branch", help="Release branch to test")
    parser.add_argument("--release", help="Release to test")
    parser.add_argument(
        "--development",
        nargs="?",
        const=True,
        type=parse_bool,
        metavar="BOOL",
        help="Build as a development build (--development=false to turn off)"
    )
    parser.add_argument(
        "--no-development",
        dest="development",
        action="store_false",
        help="Build as a release build, even if the config says otherwise"
    )
    parser.add_argument("--region", help="AWS region to use")
    parser.add_argument("--account-id", help="AWS Account ID to use")
    parser.add_argument("--base-image", help="Base container image")
    parser.add_argument("--image-repo", help="Container image repository")
    parser.add_argument("--go-runner-image", help="go-runner image")
    parser.add_argument("--kube-proxy-base", help="kube-proxy base image")
    parser.add_argument("--artifact-bucket", help="S3 bucket for artifacts")
    parser.add_argument(
        "--git-root",
        default=None,
        help="Git root directory (default: git rev-parse --show-toplevel)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Echo out commands, but don't run them"
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Config file path (default: $POSTSUBMIT_CONFIG or postsubmit.config.yaml)"
    )
    parser.add_argument(
        "--list-projects",
        action="store_true",
        help="List tracked projects and global triggers and exit"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )
    return parser


def parameters_from_args(args: argparse.Namespace) -> BuildParameters:
    return BuildParameters(
        target=args.target,
        release_branch=str(args.release_branch),
        release=str(args.release),
        development=bool(args.development),
        region=args.region,
        account_id=str(args.account_id),
        base_image=args.base_image,
        image_repo=args.image_repo,
        go_runner_image=args.go_runner_image,
        kube_proxy_base=args.kube_proxy_base,
        artifact_bucket=args.artifact_bucket,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(args.config)
    except PostsubmitError as e:
        logger.error(str(e))
        return 1

    # Flags given on the command line still override config defaults
    parser.set_defaults(**config.defaults)
    args = parser.parse_args(argv)

    registry = ProjectRegistry(config.projects)
    rule = GlobalTriggerRule(config.global_triggers)

    if args.list_projects:
        print("\nTracked Projects:")
        print("=" * 60)
        for project in registry:
            print(f"  {project}")
        print("\nGlobal Triggers:")
        for pattern in rule.patterns:
            print(f"  {pattern}")
        return 0

    orchestrator = PostsubmitOrchestrator(
        parameters_from_args(args),
        git_root=args.git_root,
        dry_run=args.dry_run,
        registry=registry,
        rule=rule,
        runner=subprocess.run,
    )

    try:
        result = orchestrator.run()
    except PostsubmitError as e:
        logger.error(str(e))
        return 1

    logger.info(
        f"Postsubmit completed: {len(result.built)} project(s) "
        f"{'planned' if result.dry_run else 'built'} in {result.duration_seconds:.2f}s"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
