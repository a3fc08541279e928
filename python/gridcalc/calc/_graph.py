"""Dependency graph over cell names with both edge directions indexed."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable

from gridcalc._errors import CircularDependencyError


class DependencyGraph:
    """Tracks "dependent references dependency" edges between names.

    An edge ``(d, s)`` means the formula in ``d`` reads ``s``.  Both
    directions are kept as separate indices so either neighbour set is an
    O(1) lookup.  Every name ever touched by an edge stays in both indices
    (possibly with an empty set), so queries never need existence checks.
    """

    __slots__ = ("_dependencies", "_dependents", "_size")

    def __init__(self) -> None:
        # name -> names it reads from
        self._dependencies: dict[str, set[str]] = {}
        # name -> names that read from it (reverse edges)
        self._dependents: dict[str, set[str]] = {}
        self._size = 0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        """Number of distinct ordered pairs currently stored."""
        return self._size

    def __len__(self) -> int:
        return self._size

    def __contains__(self, node: object) -> bool:
        return node in self._dependencies

    def __getitem__(self, node: str) -> int:
        return self.dependency_count(node)

    def nodes(self) -> list[str]:
        return list(self._dependencies)

    def dependency_count(self, node: str) -> int:
        """Number of names *node* depends on."""
        return len(self._dependencies.get(node, ()))

    def has_dependents(self, node: str) -> bool:
        return bool(self._dependents.get(node))

    def has_dependencies(self, node: str) -> bool:
        return bool(self._dependencies.get(node))

    def dependencies_of(self, node: str) -> list[str]:
        """Names *node* reads from, in no particular order."""
        return list(self._dependencies.get(node, ()))

    def dependents_of(self, node: str) -> list[str]:
        """Names that read from *node*, in no particular order."""
        return list(self._dependents.get(node, ()))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _ensure(self, node: str) -> None:
        self._dependencies.setdefault(node, set())
        self._dependents.setdefault(node, set())

    def add_dependency(self, dependent: str, dependency: str) -> None:
        """Record that *dependent* reads *dependency*. No-op if present."""
        self._ensure(dependent)
        self._ensure(dependency)
        deps = self._dependencies[dependent]
        if dependency in deps:
            return
        deps.add(dependency)
        self._dependents[dependency].add(dependent)
        self._size += 1

    def remove_dependency(self, dependent: str, dependency: str) -> None:
        """Drop the edge ``(dependent, dependency)``. No-op if absent."""
        deps = self._dependencies.get(dependent)
        if not deps or dependency not in deps:
            return
        deps.discard(dependency)
        self._dependents[dependency].discard(dependent)
        self._size -= 1

    def replace_dependencies(self, dependent: str, new_dependencies: Iterable[str]) -> None:
        """Make *new_dependencies* the exact dependency set of *dependent*."""
        self._ensure(dependent)
        # Snapshot before removing; the live set shrinks as we go.
        for old in tuple(self._dependencies[dependent]):
            self.remove_dependency(dependent, old)
        for new in new_dependencies:
            self.add_dependency(dependent, new)

    def replace_dependents(self, dependency: str, new_dependents: Iterable[str]) -> None:
        """Make *new_dependents* the exact dependent set of *dependency*."""
        self._ensure(dependency)
        for old in tuple(self._dependents[dependency]):
            self.remove_dependency(old, dependency)
        for new in new_dependents:
            self.add_dependency(new, dependency)

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def topological_order(self, nodes: Iterable[str]) -> list[str]:
        """Return *nodes* so every name follows the names it depends on.

        Only edges between members of *nodes* are considered (Kahn's
        algorithm).  Raises CircularDependencyError if they form a cycle.
        """
        members = set(nodes)
        if not members:
            return []

        in_degree: dict[str, int] = {
            node: len(self._dependencies.get(node, set()) & members) for node in members
        }

        queue: deque[str] = deque(sorted(n for n, d in in_degree.items() if d == 0))
        order: list[str] = []
        while queue:
            node = queue.popleft()
            order.append(node)
            for dep in self._dependents.get(node, ()):
                if dep in members:
                    in_degree[dep] -= 1
                    if in_degree[dep] == 0:
                        queue.append(dep)

        if len(order) != len(members):
            stuck = sorted(members - set(order))
            raise CircularDependencyError(stuck[0])
        return order

    def max_depth(self, roots: Iterable[str]) -> int:
        """Longest chain of dependents reachable from *roots*.

        Assumes the reachable part of the graph is acyclic.
        """
        depth: dict[str, int] = {r: 0 for r in roots}
        if not depth:
            return 0

        queue: deque[str] = deque(depth)
        max_d = 0
        while queue:
            node = queue.popleft()
            current = depth[node]
            for dep in self._dependents.get(node, ()):
                new_depth = current + 1
                if dep not in depth or new_depth > depth[dep]:
                    depth[dep] = new_depth
                    max_d = max(max_d, new_depth)
                    queue.append(dep)
        return max_d
