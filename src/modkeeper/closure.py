"""
Dependency Closure Engine

Expands a set of requested mod names into every manifest that must be installed
for them to work.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from modkeeper.exceptions import MissingDependencyError
from modkeeper.log_utils import logger
from modkeeper.manifest import Manifest


@dataclass
class ClosureResult:
    """The manifests reachable from a request, and the names that could not be found."""

    manifests: List[Manifest] = field(default_factory=list)
    """Every reachable manifest, each listed once"""

    missing: List[str] = field(default_factory=list)
    """Sorted names referenced but absent from the catalog"""

    def names(self) -> List[str]:
        return [m.name for m in self.manifests]

    def raise_for_missing(self) -> None:
        """
        Raise a single aggregate error if any names were missing.

        Raises:
            MissingDependencyError: Listing every missing name.
        """
        if self.missing:
            raise MissingDependencyError(self.missing)


def transitive_closure(
    manifests: Sequence[Manifest], names: Iterable[str]
) -> ClosureResult:
    """
    Compute the transitive dependency closure of the requested names.

    Walks the dependency graph depth-first from each name. A name already in the
    result is not expanded again, so circular dependencies terminate. Names that
    are not in the catalog are collected as missing and their subtree is skipped;
    the walk carries on with everything else.

    Parameters:
        manifests (Sequence[Manifest]): The full catalog.
        names (Iterable[str]): Exact catalog names to start from.

    Returns:
        ClosureResult: Both the reachable manifests and the missing names.
    """
    by_name: Dict[str, Manifest] = {}
    for manifest in manifests:
        # First occurrence wins if the catalog carries duplicates
        by_name.setdefault(manifest.name, manifest)

    result: Dict[str, Manifest] = {}
    missing = set()
    for start in names:
        stack = [start]
        while stack:
            name = stack.pop()
            if name in result or name in missing:
                continue
            manifest = by_name.get(name)
            if manifest is None:
                logger.debug(f"Dependency {name!r} is not in the catalog")
                missing.add(name)
                continue
            result[name] = manifest
            # Reversed so dependencies are visited in declaration order
            stack.extend(reversed(manifest.dependencies or []))

    return ClosureResult(manifests=list(result.values()), missing=sorted(missing))
