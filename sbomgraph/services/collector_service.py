"""
Flattens the resolution graphs of many scopes into one deduplicated DAG.

Traversal uses an explicit work-list instead of recursion, so the depth of
the host's graph never grows the Python call stack. One visited set is
shared by every scope of a run: the first discovery of an id decides both
its membership and its parent edge, later discoveries are dropped.
"""
from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import NamedTuple

import structlog

from sbomgraph.core.stats import TraversalStats
from sbomgraph.models.dependency import DependencyCollectionResult
from sbomgraph.models.dependency import DependencyNode
from sbomgraph.models.resolution import LibraryIdentity
from sbomgraph.models.resolution import ModuleIdentity
from sbomgraph.models.resolution import ResolvedComponent
from sbomgraph.models.resolution import Scope

logger = structlog.get_logger('collector_service')

MAX_TRAVERSAL_DEPTH = 1000


class Frame(NamedTuple):
    component: ResolvedComponent
    parent_id: str | None
    depth: int


@dataclass
class _ScopeContribution:
    """Changes of one scope, merged only once the whole scope traversed cleanly."""
    nodes: list[DependencyNode] = field(default_factory=list)
    edges: list[tuple[str, str]] = field(default_factory=list)
    seen: set[str] = field(default_factory=set)
    expanded_modules: set[str] = field(default_factory=set)
    duplicates: int = 0
    depth_exceeded: int = 0
    frames: int = 0


def traverse_scope(
    scope_name: str,
    root: ResolvedComponent,
    visited: set[str],
    max_depth: int = MAX_TRAVERSAL_DEPTH,
) -> _ScopeContribution:
    """
    Walk one resolution graph against the run's visited set.

    ``visited`` is read, not written; the caller merges the returned
    contribution. Errors raised by the host while expanding children
    propagate to the caller.
    """
    contribution = _ScopeContribution()
    stack: list[Frame] = [Frame(root, None, 0)]

    while stack:
        component, parent_id, depth = stack.pop()
        contribution.frames += 1

        if depth > max_depth:
            contribution.depth_exceeded += 1
            logger.warning(
                'Excessive traversal depth, dropping subtree',
                scope=scope_name, depth=depth,
            )
            continue

        identity = component.identity
        if isinstance(identity, ModuleIdentity):
            # Everything below an expanded module is already seen
            if identity.path in contribution.expanded_modules:
                contribution.duplicates += 1
                continue
            contribution.expanded_modules.add(identity.path)
        if not isinstance(identity, LibraryIdentity):
            # Internal module: keep carrying the nearest library ancestor
            _push_children(stack, component, parent_id, depth)
            continue

        dep_id = identity.id
        if dep_id in visited or dep_id in contribution.seen:
            contribution.duplicates += 1
            continue

        contribution.seen.add(dep_id)
        contribution.nodes.append(
            DependencyNode(
                group=identity.group,
                name=identity.name,
                version=identity.version,
                id=dep_id,
            ),
        )
        if parent_id is not None:
            contribution.edges.append((parent_id, dep_id))

        _push_children(stack, component, dep_id, depth)

    return contribution


def _push_children(stack: list[Frame], component: ResolvedComponent, parent_id: str | None, depth: int) -> None:
    # Reversed so children pop in declaration order
    children = list(component.dependencies())
    for child in reversed(children):
        stack.append(Frame(child, parent_id, depth + 1))


class GraphCollector:
    """Collects dependencies and their relationships from a list of scopes."""

    def __init__(self, max_depth: int = MAX_TRAVERSAL_DEPTH):
        self.max_depth = max_depth

    def collect(self, scopes: Iterable[Scope], stats: TraversalStats | None = None) -> DependencyCollectionResult:
        stats = stats or TraversalStats()
        visited: set[str] = set()
        nodes: list[DependencyNode] = []
        graph: dict[str, list[str]] = {}
        files: dict[str, Path | None] = {}

        for scope in scopes:
            stats.total += 1
            try:
                artifacts = scope.resolved_artifacts()
                contribution = traverse_scope(
                    scope.name, scope.resolution_root(), visited, self.max_depth,
                )
            except Exception as e:
                stats.inc_failed()
                logger.warning('Error processing scope', scope=scope.name, error=str(e))
                logger.debug('Scope failure details', scope=scope.name, exc_info=True)
                continue

            self._merge(contribution, visited, nodes, graph)
            for dep_id, path in artifacts.items():
                if files.get(dep_id) is None:
                    files[dep_id] = path

            stats.scopes += 1
            stats.frames += contribution.frames
            stats.duplicates += contribution.duplicates
            stats.depth_exceeded += contribution.depth_exceeded
            logger.debug(
                'Scope collected', scope=scope.name,
                new_dependencies=len(contribution.nodes), absorbed=contribution.duplicates,
            )

        dependencies = [
            node.model_copy(update={'file': files[node.id]}) if files.get(node.id) else node
            for node in nodes
        ]

        logger.info(
            'Dependency collection complete',
            scopes=stats.scopes, failed_scopes=stats.failed,
            dependencies=len(dependencies), edges=sum(len(c) for c in graph.values()),
            absorbed=stats.duplicates, depth_exceeded=stats.depth_exceeded,
        )
        return DependencyCollectionResult(dependencies=dependencies, graph=graph)

    @staticmethod
    def _merge(
        contribution: _ScopeContribution,
        visited: set[str],
        nodes: list[DependencyNode],
        graph: dict[str, list[str]],
    ) -> None:
        for node in contribution.nodes:
            visited.add(node.id)
            nodes.append(node)
            graph.setdefault(node.id, [])
        for parent_id, child_id in contribution.edges:
            graph[parent_id].append(child_id)


def collect_dependencies(scopes: Iterable[Scope]) -> DependencyCollectionResult:
    """Convenience wrapper around :class:`GraphCollector`."""
    return GraphCollector().collect(scopes)
