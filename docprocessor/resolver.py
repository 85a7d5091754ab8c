"""Reference resolution from short names to fully-qualified declaration paths."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from .declarations import CorpusIndex, Declaration, DeclarationFilter, DocFlavor


class ResolutionStatus(str, Enum):
    FOUND = "found"
    # the path was observed in the corpus but nothing there matches
    UNDOCUMENTED = "undocumented"
    UNKNOWN = "unknown"


@dataclass
class Resolution:
    """Outcome of resolving one target from one requesting declaration."""

    target: str
    status: ResolutionStatus
    attempted: List[str] = field(default_factory=list)
    declaration: Optional[Declaration] = None
    path: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status is ResolutionStatus.FOUND

    def attempted_block(self) -> str:
        lines = "\n".join(f"|  {query}" for query in self.attempted)
        return f"Attempted queries: [\n{lines}\n]"


def _enclosing_scopes(path: str) -> List[str]:
    """``a.b.C`` -> ``["a.b.C", "a.b", "a"]``."""

    parts = path.split(".") if path else []
    return [".".join(parts[:size]) for size in range(len(parts), 0, -1)]


def _dedupe(candidates: List[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for candidate in candidates:
        if candidate and candidate not in seen:
            seen.add(candidate)
            ordered.append(candidate)
    return ordered


def _is_qualified(target: str, requester: Declaration) -> bool:
    prefixes = [requester.package] + [entry.package for entry in requester.imports]
    return any(prefix and target.startswith(prefix + ".") for prefix in prefixes)


def _candidates_for(target: str, requester: Declaration) -> List[str]:
    candidates: List[str] = []
    if _is_qualified(target, requester):
        candidates.append(target)

    for scope in _enclosing_scopes(requester.path):
        candidates.append(f"{scope}.{target}")
    if requester.extension_path:
        receiver = requester.extension_path.rsplit(".", 1)[0]
        for scope in _enclosing_scopes(receiver):
            candidates.append(f"{scope}.{target}")
    for supertype in requester.supertypes:
        for scope in _enclosing_scopes(supertype):
            candidates.append(f"{scope}.{target}")

    for entry in requester.imports:
        if entry.wildcard:
            continue
        name = entry.imported_name
        if target == name or target.startswith(name + "."):
            candidates.append(entry.name + target[len(name):])
    if requester.package:
        candidates.append(f"{requester.package}.{target}")
    for entry in requester.imports:
        if entry.wildcard:
            candidates.append(f"{entry.package}.{target}")

    candidates.append(target)
    return candidates


def candidate_paths(target: str, requester: Declaration) -> List[str]:
    """Return every fully-qualified path ``target`` may refer to, best first."""

    candidates = _candidates_for(target, requester)
    if requester.flavor is DocFlavor.JAVADOC:
        # ``FileKt.member`` notation for top level members seen from Java
        head, _, rest = target.partition(".")
        if rest and head.endswith("Kt"):
            candidates.extend(_candidates_for(rest, requester))
    return _dedupe(candidates)


def resolve(
    target: str,
    requester: Declaration,
    index: CorpusIndex,
    predicate: Optional[DeclarationFilter] = None,
) -> Resolution:
    """Resolve ``target`` to the first declaration found among the candidates.

    When nothing matches, the resolution still tells whether one of the
    candidate paths was observed in the index (undocumented) or not.
    """

    attempted = candidate_paths(target, requester)
    for path in attempted:
        matches = index.get(path, predicate)
        if matches:
            return Resolution(
                target=target,
                status=ResolutionStatus.FOUND,
                attempted=attempted,
                declaration=matches[0],
                path=path,
            )
    for path in attempted:
        if path in index:
            return Resolution(target=target, status=ResolutionStatus.UNDOCUMENTED, attempted=attempted, path=path)
    return Resolution(target=target, status=ResolutionStatus.UNKNOWN, attempted=attempted)


def resolve_link_path(
    target: str,
    requester: Declaration,
    index: CorpusIndex,
    path_is_valid: Optional[Callable[[str, Declaration], bool]] = None,
) -> Optional[str]:
    """Return the fully-qualified path a link in ``requester`` points at.

    Of the main and extension path of the found declaration the valid one
    with the fewest collisions wins. Without a declaration the first
    observed candidate path is returned.
    """

    resolution = resolve(target, requester, index)
    if resolution.declaration is not None:
        options = [
            path
            for path in resolution.declaration.paths
            if path_is_valid is None or path_is_valid(path, resolution.declaration)
        ]
        if options:
            return min(options, key=lambda path: len(index.get(path)))
    for path in resolution.attempted:
        if path in index:
            return path
    return None


__all__ = [
    "ResolutionStatus",
    "Resolution",
    "candidate_paths",
    "resolve",
    "resolve_link_path",
]
