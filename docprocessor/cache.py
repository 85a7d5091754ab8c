"""Fingerprint cache for incremental processing.

Entries are keyed by declaration identity. A declaration has to be
processed again when its own fingerprint or the fingerprint of any
declaration it transitively includes differs from the stored one.
"""

from __future__ import annotations

import hashlib
import json
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import networkx as nx

from .declarations import Declaration
from .dependencies import transitive_dependencies, transitive_dependents


def fingerprint(declaration: Declaration) -> str:
    """Hash the inputs that can change the output of a declaration."""

    key_data = {
        "content": declaration.original_content,
        "imports": [
            [item.name, item.wildcard, item.alias] for item in declaration.imports
        ],
        "supertypes": list(declaration.supertypes),
    }
    key_str = json.dumps(key_data, sort_keys=True)
    return hashlib.sha256(key_str.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    fingerprint: str
    output: str
    dependencies: Dict[str, str] = field(default_factory=dict)


class DocCache:
    """Thread-safe store of processed doc content."""

    def __init__(self, graph: Optional["nx.DiGraph"] = None) -> None:
        self.graph = graph if graph is not None else nx.DiGraph()
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self.stats = {"hits": 0, "misses": 0, "invalidations": 0}

    def use_graph(self, graph: "nx.DiGraph") -> None:
        """Replace the dependency graph used for transitive lookups."""

        with self._lock:
            self.graph = graph

    def needs_rebuild(self, declaration: Declaration, dependencies: Iterable[Declaration] = ()) -> bool:
        with self._lock:
            entry = self._entries.get(declaration.identity)
            if entry is None or entry.fingerprint != fingerprint(declaration):
                self.stats["misses"] += 1
                return True
            current = {dependency.identity: fingerprint(dependency) for dependency in dependencies}
            if current != entry.dependencies:
                self.stats["misses"] += 1
                return True
            self.stats["hits"] += 1
            return False

    def dependencies_of(self, declaration: Declaration, declarations: Iterable[Declaration]) -> List[Declaration]:
        """Return the declarations ``declaration`` transitively includes."""

        wanted = set(transitive_dependencies(self.graph, declaration.identity))
        return [candidate for candidate in declarations if candidate.identity in wanted]

    def store(self, declaration: Declaration, dependencies: Iterable[Declaration] = ()) -> None:
        with self._lock:
            self._entries[declaration.identity] = CacheEntry(
                fingerprint=fingerprint(declaration),
                output=declaration.content,
                dependencies={dependency.identity: fingerprint(dependency) for dependency in dependencies},
            )

    def get(self, identity: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(identity)
            return entry.output if entry else None

    def invalidate(self, identity: str) -> List[str]:
        """Drop ``identity`` and everything that transitively includes it."""

        with self._lock:
            dropped = [identity] + transitive_dependents(self.graph, identity)
            removed = [key for key in dropped if self._entries.pop(key, None) is not None]
            self.stats["invalidations"] += len(removed)
            return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["CacheEntry", "DocCache", "fingerprint"]
