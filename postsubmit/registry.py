"""
Tracked project registry.

The registry is the fixed set of vendored projects that postsubmit knows how
to rebuild. Identifiers are path fragments such as ``coredns/coredns`` and are
matched as substrings of changed file paths.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Tuple


DEFAULT_PROJECTS: List[str] = [
    "kubernetes/kubernetes",
    "kubernetes/release",
    "coredns/coredns",
    "containernetworking/plugins",
    "kubernetes-sigs/aws-iam-authenticator",
    "kubernetes-sigs/metrics-server",
    "etcd-io/etcd",
    "kubernetes-csi/external-attacher",
    "kubernetes-csi/external-resizer",
    "kubernetes-csi/livenessprobe",
    "kubernetes-csi/node-driver-registrar",
    "kubernetes-csi/external-snapshotter",
    "kubernetes-csi/external-provisioner",
]


@dataclass(frozen=True)
class ProjectEntry:
    """A tracked project and whether this run selected it."""
    identifier: str
    selected: bool = False


class ProjectRegistry:
    """
    Immutable, sorted set of tracked project identifiers.

    Sorting gives a stable build order across runs.
    """

    def __init__(self, identifiers: Iterable[str] = DEFAULT_PROJECTS):
        cleaned = set()
        for identifier in identifiers:
            identifier = str(identifier).strip()
            # An empty fragment would match every path.
            if not identifier:
                raise ValueError("Project identifier must not be empty")
            cleaned.add(identifier)
        self._identifiers: Tuple[str, ...] = tuple(sorted(cleaned))

    @property
    def identifiers(self) -> Tuple[str, ...]:
        return self._identifiers

    def entries(self) -> Tuple[ProjectEntry, ...]:
        """Fresh, unselected entries in registry order."""
        return tuple(ProjectEntry(identifier) for identifier in self._identifiers)

    def __iter__(self) -> Iterator[str]:
        return iter(self._identifiers)

    def __len__(self) -> int:
        return len(self._identifiers)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._identifiers

    def __repr__(self) -> str:
        return f"ProjectRegistry({list(self._identifiers)!r})"
