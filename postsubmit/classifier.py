"""
Invalidation classifier.

Maps a list of changed paths onto the project registry. A project is selected
when any changed path contains its identifier. A change to shared build
infrastructure selects every project.

Matching is a plain substring test, so a path that only incidentally contains
an identifier (nested vendoring, for example) still selects that project. An
unnecessary rebuild is preferred over a stale one.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Sequence, Tuple

from postsubmit.registry import ProjectEntry, ProjectRegistry

logger = logging.getLogger(__name__)

# Top-level build-control file, this orchestrator's source, release tooling.
DEFAULT_GLOBAL_TRIGGERS: List[str] = [
    "Makefile",
    "postsubmit/",
    "release/.*",
]


class GlobalTriggerRule:
    """Paths that invalidate every project. Compiled once per run."""

    def __init__(self, patterns: Iterable[str] = DEFAULT_GLOBAL_TRIGGERS):
        self.patterns: Tuple[str, ...] = tuple(patterns)
        self._regex = (
            re.compile("|".join(f"(?:{p})" for p in self.patterns)) if self.patterns else None
        )

    def matches(self, path: str) -> bool:
        if self._regex is None:
            return False
        return self._regex.search(path) is not None

    def __repr__(self) -> str:
        return f"GlobalTriggerRule({list(self.patterns)!r})"


@dataclass(frozen=True)
class Selection:
    """Result of classification. Entries are in registry order."""
    all_selected: bool
    entries: Tuple[ProjectEntry, ...]

    @property
    def projects(self) -> Tuple[str, ...]:
        return tuple(e.identifier for e in self.entries if e.selected)

    @property
    def is_empty(self) -> bool:
        return not self.projects

    def __iter__(self) -> Iterator[str]:
        return iter(self.projects)

    def __len__(self) -> int:
        return len(self.projects)


def classify(
    changed_paths: Sequence[str],
    registry: ProjectRegistry,
    rule: GlobalTriggerRule,
) -> Selection:
    """
    Decide which registered projects must be rebuilt.

    Args:
        changed_paths: Repository-relative paths from the diff
        registry: Tracked projects
        rule: Global invalidation rule

    Returns:
        A new Selection; inputs are not modified
    """
    matched = set()
    all_selected = False

    for path in changed_paths:
        for identifier in registry:
            if identifier in path and identifier not in matched:
                logger.debug(f"{path} selects {identifier}")
                matched.add(identifier)
        if not all_selected and rule.matches(path):
            logger.info(f"{path} matches global trigger, rebuilding all projects")
            all_selected = True

    entries = tuple(
        ProjectEntry(identifier, all_selected or identifier in matched)
        for identifier in registry
    )
    selection = Selection(all_selected=all_selected, entries=entries)

    logger.info(
        f"Selected {len(selection)} of {len(registry)} project(s)"
        f"{' (global invalidation)' if all_selected else ''}"
    )
    return selection
