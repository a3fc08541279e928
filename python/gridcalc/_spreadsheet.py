"""Spreadsheet: named cells, their contents and the dependencies between them.

Every mutation updates the dependency graph to match the new content,
computes the order in which affected cells must be re-evaluated and, if the
change would introduce a circular reference, restores the previous state
before raising.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from typing import Union

from gridcalc._errors import CircularDependencyError, InvalidNameError, MissingContentError
from gridcalc._utils import is_identifier, is_signed_number
from gridcalc.calc._formula import Formula
from gridcalc.calc._graph import DependencyGraph

logger = logging.getLogger(__name__)

# Number, text or formula.  Empty text means "no content".
Content = Union[float, str, Formula]


def _identity(name: str) -> str:
    return name


def _accept(name: str) -> bool:
    return True


class Spreadsheet:
    """In-memory cell store with cycle-safe recalculation ordering.

    Usage::

        sheet = Spreadsheet()
        sheet.set_content("A1", 1.0)
        sheet.set_content("B1", Formula("A1+1"))
        sheet.set_content("A1", 2.0)            # ["A1", "B1"]
        sheet.set_contents_of_cell("C1", "=B1*2")

    Cell names must match ``[A-Za-z_][A-Za-z0-9_]*``.  *normalize* and
    *is_valid* are applied to cell names and to the variables of formulas
    built by :meth:`set_contents_of_cell`.

    All public methods hold one re-entrant lock, so a mutation and its
    rollback are never observed half-done by another thread.
    """

    __slots__ = ("_cells", "_graph", "_normalize", "_is_valid", "_lock")

    def __init__(
        self,
        normalize: Callable[[str], str] | None = None,
        is_valid: Callable[[str], bool] | None = None,
    ) -> None:
        self._cells: dict[str, Content] = {}
        self._graph = DependencyGraph()
        self._normalize = normalize or _identity
        self._is_valid = is_valid or _accept
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Names
    # ------------------------------------------------------------------

    def _check_name(self, name: object) -> str:
        """Validate *name* and return its normalized form."""
        if not is_identifier(name):
            raise InvalidNameError(name)
        key = self._normalize(name)  # type: ignore[arg-type]
        if not is_identifier(key) or not self._is_valid(key):
            raise InvalidNameError(name)
        return key

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_content(self, name: str) -> Content:
        """Content of *name*, or ``""`` if the cell is empty."""
        key = self._check_name(name)
        with self._lock:
            return self._cells.get(key, "")

    def non_empty_cell_names(self) -> list[str]:
        with self._lock:
            return list(self._cells)

    def dependents_of(self, name: str) -> list[str]:
        """Cells whose formulas reference *name* directly."""
        key = self._check_name(name)
        with self._lock:
            return self._graph.dependents_of(key)

    def dependencies_of(self, name: str) -> list[str]:
        """Cells referenced directly by the formula in *name*."""
        key = self._check_name(name)
        with self._lock:
            return self._graph.dependencies_of(key)

    def formula_order(self) -> list[str]:
        """All formula cells, each after the formula cells it reads."""
        with self._lock:
            formulas = [n for n, c in self._cells.items() if isinstance(c, Formula)]
            return self._graph.topological_order(formulas)

    def chain_depth(self, name: str) -> int:
        """Length of the longest chain of dependents starting at *name*."""
        key = self._check_name(name)
        with self._lock:
            return self._graph.max_depth({key})

    def __contains__(self, name: object) -> bool:
        if not is_identifier(name):
            return False
        with self._lock:
            return self._normalize(name) in self._cells  # type: ignore[arg-type]

    def __iter__(self) -> Iterator[str]:
        return iter(self.non_empty_cell_names())

    def __len__(self) -> int:
        with self._lock:
            return len(self._cells)

    def __repr__(self) -> str:
        with self._lock:
            return f"<Spreadsheet cells={len(self._cells)} edges={len(self._graph)}>"

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_content(self, name: str, content: Content) -> list[str]:
        """Set the content of *name*; return the cells to re-evaluate.

        *content* is a number, a string (literal text, ``""`` clears the
        cell) or a :class:`Formula`.  The result starts with *name* and
        lists every cell that depends on it, directly or indirectly, each
        after all of the cells it depends on.

        Raises CircularDependencyError, leaving the spreadsheet unchanged,
        if a formula would make some cell depend on itself.
        """
        key = self._check_name(name)
        return self._set(key, content)

    def set_contents_of_cell(self, name: str, text: str) -> list[str]:
        """Set *name* from user-typed text.

        A numeric literal, optionally signed, becomes a number, text starting with ``=`` becomes
        a formula built with this spreadsheet's normalizer and validator,
        anything else is stored as text.
        """
        key = self._check_name(name)
        if text is None:
            raise MissingContentError("Cell text is required")
        content: Content
        stripped = text.strip()
        if stripped and is_signed_number(stripped):
            content = float(stripped)
        elif text.startswith("="):
            content = Formula(text[1:], self._normalize, self._is_valid)
        else:
            content = text
        return self._set(key, content)

    def _set(self, key: str, content: Content) -> list[str]:
        if content is None:
            raise MissingContentError(f"Content for {key} is required")
        if isinstance(content, bool):
            raise TypeError(f"Unsupported cell content type: {type(content).__name__}")
        if isinstance(content, Formula):
            dependencies: tuple[str, ...] = content.variables
        elif isinstance(content, (int, float)):
            content = float(content)
            dependencies = ()
        elif isinstance(content, str):
            if content == "":
                return self._clear(key)
            dependencies = ()
        else:
            raise TypeError(f"Unsupported cell content type: {type(content).__name__}")

        with self._lock:
            return self._commit(key, content, dependencies)

    def _clear(self, key: str) -> list[str]:
        with self._lock:
            self._cells.pop(key, None)
            self._graph.replace_dependencies(key, ())
        logger.debug("Cleared cell %s", key)
        return []

    def _commit(self, key: str, content: Content, dependencies: tuple[str, ...]) -> list[str]:
        previous = self._cells.get(key)
        previous_dependencies = self._graph.dependencies_of(key)

        self._cells[key] = content
        self._graph.replace_dependencies(key, dependencies)
        try:
            return self._recalculation_order(key)
        except CircularDependencyError as e:
            if previous is None:
                del self._cells[key]
            else:
                self._cells[key] = previous
            self._graph.replace_dependencies(key, previous_dependencies)
            logger.debug("Rejected content for %s (cycle through %s); rolled back", key, e.cell)
            raise

    def _recalculation_order(self, start: str) -> list[str]:
        """Reverse postorder of a depth-first walk along dependents edges.

        *start* comes first; every other reachable cell comes after all the
        reachable cells it depends on.  Reaching a cell that is still on the
        active path raises CircularDependencyError.
        """
        graph = self._graph
        order: list[str] = []
        visited = {start}
        on_path = {start}
        stack = [(start, iter(graph.dependents_of(start)))]

        while stack:
            node, children = stack[-1]
            for child in children:
                if child in on_path:
                    raise CircularDependencyError(child)
                if child not in visited:
                    visited.add(child)
                    on_path.add(child)
                    stack.append((child, iter(graph.dependents_of(child))))
                    break
            else:
                stack.pop()
                on_path.discard(node)
                order.append(node)

        order.reverse()
        return order
