"""
Dependency graph with priority-ordered topological sorting.

Implements Kahn's algorithm where the ready set is ordered by
``(priority, registration index)``, so priorities are honoured both across
and within topological waves. When the sort cannot place every node, a
depth-first search over the unresolved remainder reports the exact cycle.
"""

import heapq
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from .declaration import ComponentDeclaration
from .errors import DependencyCycleError

logger = logging.getLogger("sequent.graph")

DeclarationSource = Union[Mapping[str, ComponentDeclaration], Iterable[ComponentDeclaration], Any]


def _as_mapping(source: DeclarationSource) -> Dict[str, ComponentDeclaration]:
    """Accept a registry, a mapping, or an iterable of declarations."""
    if hasattr(source, "all") and callable(source.all):
        return source.all()
    if isinstance(source, Mapping):
        return dict(source)
    return {decl.identity: decl for decl in source}


class DependencyGraph:
    """
    Normalized precedence graph over a finalized declaration set.

    Every ``after`` entry X on Y and every ``before`` entry Y on X becomes the
    edge "X must precede Y". Edges naming identities outside the set are
    dropped (soft dependencies).
    """

    def __init__(self, declarations: DeclarationSource):
        self._declarations = _as_mapping(declarations)
        self._index: Dict[str, int] = {
            identity: i for i, identity in enumerate(self._declarations)
        }

        # identity -> identities that must run before it
        self._predecessors: Dict[str, List[str]] = {name: [] for name in self._declarations}
        # identity -> identities that must run after it
        self._successors: Dict[str, List[str]] = {name: [] for name in self._declarations}

        self._build_edges()

    def _add_edge(self, first: str, then: str) -> None:
        if first not in self._declarations or then not in self._declarations:
            return
        if first in self._predecessors[then]:
            return
        self._predecessors[then].append(first)
        self._successors[first].append(then)

    def _build_edges(self) -> None:
        for identity, decl in self._declarations.items():
            for dep in decl.after:
                self._add_edge(dep, identity)
            for dependent in decl.before:
                self._add_edge(identity, dependent)

    def topological_sort(self) -> List[str]:
        """
        Compute the execution order.

        Returns:
            Identities ordered so that every predecessor comes first; among
            ready components, lower priority first, then registration order

        Raises:
            DependencyCycleError: If the declarations form a cycle
        """
        in_degree: Dict[str, int] = {
            name: len(preds) for name, preds in self._predecessors.items()
        }

        ready: List[Tuple[int, int, str]] = []
        for name, degree in in_degree.items():
            if degree == 0:
                heapq.heappush(ready, self._ready_key(name))

        result: List[str] = []

        while ready:
            _, _, name = heapq.heappop(ready)
            result.append(name)

            for dependent in self._successors[name]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, self._ready_key(dependent))

        if len(result) != len(self._declarations):
            placed = set(result)
            unresolved = [name for name in self._declarations if name not in placed]
            cycle = self.find_cycle(unresolved)
            logger.debug(
                "Topological sort stalled with %d unresolved component(s)",
                len(unresolved),
            )
            raise DependencyCycleError(cycle=cycle or unresolved)

        return result

    def _ready_key(self, name: str) -> Tuple[int, int, str]:
        return (self._declarations[name].priority, self._index[name], name)

    def find_cycle(self, start_nodes: Optional[Iterable[str]] = None) -> Optional[List[str]]:
        """
        Find a cycle by depth-first search along predecessor edges.

        Args:
            start_nodes: Nodes to start from (default: every node, in
                registration order)

        Returns:
            Cycle path starting and ending on the same identity, or None
        """
        visited: Set[str] = set()
        on_stack: Set[str] = set()
        path: List[str] = []

        def visit(name: str) -> Optional[List[str]]:
            if name in on_stack:
                return path[path.index(name):] + [name]
            if name in visited:
                return None

            visited.add(name)
            on_stack.add(name)
            path.append(name)

            for dep in self._predecessors[name]:
                cycle = visit(dep)
                if cycle:
                    return cycle

            path.pop()
            on_stack.discard(name)
            return None

        nodes = list(start_nodes) if start_nodes is not None else list(self._declarations)
        for name in nodes:
            if name not in self._declarations:
                continue
            cycle = visit(name)
            if cycle:
                return cycle

        return None

    def get_dependencies(self, name: str) -> List[str]:
        """
        Get direct predecessors of a node.

        Args:
            name: Component identity

        Returns:
            Identities that must run before it
        """
        return list(self._predecessors.get(name, []))

    def get_dependents(self, name: str) -> List[str]:
        """
        Get direct successors of a node.

        Args:
            name: Component identity

        Returns:
            Identities that must run after it
        """
        return list(self._successors.get(name, []))

    def to_dict(self) -> Dict[str, List[str]]:
        """
        Export graph as adjacency dict.

        Returns:
            Dict mapping identities to their predecessor lists
        """
        return {name: list(preds) for name, preds in self._predecessors.items()}

    def to_dot(self) -> str:
        """
        Export graph as DOT format for visualization.

        Edges point in execution direction (earlier -> later).
        """
        lines = ["digraph components {"]
        lines.append("  rankdir=LR;")
        lines.append("  node [shape=box, style=rounded];")

        for name, decl in self._declarations.items():
            lines.append(f'  "{name}" [label="{decl.short_name}\\n({decl.priority})"];')

        for name, dependents in self._successors.items():
            for dependent in dependents:
                lines.append(f'  "{name}" -> "{dependent}";')

        lines.append("}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self._declarations)

    def __contains__(self, name: str) -> bool:
        return name in self._declarations

    def __repr__(self) -> str:
        return f"DependencyGraph({len(self._declarations)} nodes)"


def resolve_order(declarations: DeclarationSource) -> List[str]:
    """
    Resolve a declaration set into its execution order.

    Args:
        declarations: ComponentRegistry, mapping of identity -> declaration,
            or iterable of declarations

    Returns:
        Ordered list of identities

    Raises:
        DependencyCycleError: If the declarations form a cycle
    """
    return DependencyGraph(declarations).topological_sort()
