"""Include dependency graph between declarations.

Edges point from the included declaration to the one including it, so a
topological order processes targets before their includers.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

import networkx as nx

from .arguments import decode_callable_target, split_arguments
from .declarations import CorpusIndex, Declaration, DeclarationFilter
from .resolver import resolve
from .scanner import find_block_tags, find_inline_tags


def referenced_targets(declaration: Declaration, tag_name: str) -> List[str]:
    """Return the decoded first argument of every ``tag_name`` occurrence."""

    content = declaration.content
    targets: List[str] = []
    occurrences = find_inline_tags(content) + find_block_tags(content)
    for occurrence in occurrences:
        if occurrence.name != tag_name:
            continue
        first = split_arguments(occurrence.text(content), tag_name, 2)[0]
        target = decode_callable_target(first)
        if target:
            targets.append(target)
    return targets


def build_dependency_graph(
    corpus: CorpusIndex,
    tag_name: str = "include",
    declarations: Optional[Iterable[Declaration]] = None,
    predicate: Optional[DeclarationFilter] = None,
) -> "nx.DiGraph":
    """Build a DiGraph keyed by declaration identity."""

    graph = nx.DiGraph()
    selected = list(declarations) if declarations is not None else corpus.declarations
    for declaration in selected:
        graph.add_node(declaration.identity)
    for declaration in selected:
        if tag_name not in declaration.tags:
            continue
        for target in referenced_targets(declaration, tag_name):

            def accept(candidate: Declaration, requester: Declaration = declaration) -> bool:
                if candidate is requester:
                    return False
                return predicate is None or predicate(candidate)

            resolution = resolve(target, declaration, corpus, accept)
            if resolution.declaration is not None:
                graph.add_edge(resolution.declaration.identity, declaration.identity)
    return graph


def dependency_order(graph: "nx.DiGraph", declarations: List[Declaration]) -> List[Declaration]:
    """Order declarations so dependencies come first; keep the input order on cycles."""

    position = {declaration.identity: index for index, declaration in enumerate(declarations)}
    try:
        ordered = list(nx.lexicographical_topological_sort(graph, key=lambda node: position.get(node, len(position))))
    except nx.NetworkXUnfeasible:
        return list(declarations)
    by_identity = {declaration.identity: declaration for declaration in declarations}
    return [by_identity[node] for node in ordered if node in by_identity]


def transitive_dependencies(graph: "nx.DiGraph", identity: str) -> List[str]:
    if identity not in graph:
        return []
    return sorted(nx.ancestors(graph, identity))


def transitive_dependents(graph: "nx.DiGraph", identity: str) -> List[str]:
    if identity not in graph:
        return []
    return sorted(nx.descendants(graph, identity))


__all__ = [
    "referenced_targets",
    "build_dependency_graph",
    "dependency_order",
    "transitive_dependencies",
    "transitive_dependents",
]
