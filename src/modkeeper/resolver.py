"""
Name Resolver

Maps a user-supplied, possibly partial or differently-cased mod name to exactly
one name from a list of candidates.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from modkeeper.exceptions import (
    AmbiguousModError,
    DuplicateModError,
    ModNotFoundError,
    ResolutionError,
)
from modkeeper.manifest import Manifest


@dataclass
class ResolveResult:
    """Outcome of resolving one requested name."""

    requested: str
    """The name as supplied by the user"""

    name: Optional[str] = None
    """The matched catalog name (if successful)"""

    error: Optional[ResolutionError] = None
    """Why the name could not be resolved (if failed)"""

    @property
    def success(self) -> bool:
        return self.error is None


def resolve_mod_name(names: Sequence[str], requested_name: str) -> str:
    """
    Resolve a requested name against a list of names using escalating specificity.

    1. Names containing `requested_name` case-insensitively are candidates. None
       is an error; exactly one is the answer.
    2. Among the candidates, those equal to `requested_name` ignoring case. None
       means the request is ambiguous over all candidates; exactly one is the
       answer.
    3. Among those, names equal to `requested_name` exactly. One resolves to the
       request itself, none is ambiguous over the step-2 names, and more than one
       means the list itself contains duplicates.

    Parameters:
        names (Sequence[str]): Candidate names, in catalog order.
        requested_name (str): The user's request.

    Returns:
        str: The single matching name.

    Raises:
        ModNotFoundError: If no name contains the request.
        AmbiguousModError: If the request cannot be narrowed to one name.
        DuplicateModError: If several names equal the request exactly.
    """
    lowered = requested_name.lower()
    matches = [name for name in names if lowered in name.lower()]
    if not matches:
        raise ModNotFoundError(requested_name)
    if len(matches) == 1:
        return matches[0]

    full_matches = [name for name in matches if name.lower() == lowered]
    if not full_matches:
        raise AmbiguousModError(requested_name, matches)
    if len(full_matches) == 1:
        return full_matches[0]

    num_exact_matches = sum(1 for name in full_matches if name == requested_name)
    if num_exact_matches == 1:
        return requested_name
    if num_exact_matches == 0:
        raise AmbiguousModError(requested_name, full_matches)
    raise DuplicateModError(requested_name, num_exact_matches)


def resolve_mod(manifests: Sequence[Manifest], requested_name: str) -> str:
    """Resolve a requested name against the names of a catalog."""
    return resolve_mod_name([m.name for m in manifests], requested_name)


def resolve_mods(
    manifests: Sequence[Manifest], requested_names: Iterable[str]
) -> List[ResolveResult]:
    """
    Resolve every requested name, collecting one result per request.

    A failure on one name never prevents the remaining names from being resolved.
    """
    names = [m.name for m in manifests]
    results: List[ResolveResult] = []
    for requested in requested_names:
        try:
            results.append(
                ResolveResult(requested, name=resolve_mod_name(names, requested))
            )
        except ResolutionError as e:
            results.append(ResolveResult(requested, error=e))
    return results
