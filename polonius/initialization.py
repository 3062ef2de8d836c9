"""Initialization analysis: which paths may be (un)initialized, and move errors."""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Hashable, Iterable

from polonius.context import InitializationContext
from polonius.output import Output

logger = logging.getLogger(__name__)

Atom = Hashable
Fact = tuple[Atom, Atom]


@dataclass(frozen=True)
class TransitivePaths:
    """Path operations elaborated to every descendant path."""

    path_moved_at: frozenset[Fact]
    path_assigned_at: frozenset[Fact]
    path_accessed_at: frozenset[Fact]
    path_begins_with_var: frozenset[Fact]


@dataclass(frozen=True)
class InitializationResult:
    """Variables that may be partly initialized on exit of a point, and move errors."""

    var_maybe_partly_initialized_on_exit: frozenset[Fact]
    move_errors: frozenset[Fact]


def _index(pairs: Iterable[Fact]) -> dict[Atom, set[Atom]]:
    index: dict[Atom, set[Atom]] = defaultdict(set)
    for key, value in pairs:
        index[key].add(value)
    return index


def _descendants(child_path: Iterable[Fact]) -> dict[Atom, set[Atom]]:
    """Map each path to all of its (transitive) descendants."""
    children = _index((parent, child) for child, parent in child_path)
    result: dict[Atom, set[Atom]] = {}
    for root in list(children):
        seen: set[Atom] = set()
        stack = list(children[root])
        while stack:
            path = stack.pop()
            if path not in seen:
                seen.add(path)
                stack.extend(children.get(path, ()))
        result[root] = seen
    return result


def _elaborate(base: Iterable[Fact], descendants: dict[Atom, set[Atom]]) -> frozenset[Fact]:
    facts = set(base)
    facts.update(
        (child, value)
        for path, value in list(facts)
        for child in descendants.get(path, ())
    )
    return frozenset(facts)


def compute_transitive_paths(
    child_path: Iterable[Fact],
    path_assigned_at_base: Iterable[Fact],
    path_moved_at_base: Iterable[Fact],
    path_accessed_at_base: Iterable[Fact],
    path_is_var: Iterable[Fact],
) -> TransitivePaths:
    """Extend moves, assignments, accesses and variable roots of a path to its descendants."""
    descendants = _descendants(child_path)
    return TransitivePaths(
        path_moved_at=_elaborate(path_moved_at_base, descendants),
        path_assigned_at=_elaborate(path_assigned_at_base, descendants),
        path_accessed_at=_elaborate(path_accessed_at_base, descendants),
        path_begins_with_var=_elaborate(path_is_var, descendants),
    )


def _propagate_forward(
    seed: Iterable[Fact],
    successors: dict[Atom, set[Atom]],
    blocked: frozenset[Fact],
) -> set[Fact]:
    """Carry (path, point) facts along CFG edges, stopping at blocked targets."""
    reached = set(seed)
    stack = list(reached)
    while stack:
        path, point1 = stack.pop()
        for point2 in successors.get(point1, ()):
            fact = (path, point2)
            if fact not in blocked and fact not in reached:
                reached.add(fact)
                stack.append(fact)
    return reached


def _record(target: dict[Atom, list[Atom]], facts: Iterable[Fact]) -> None:
    for value, location in sorted(facts, key=lambda f: (f[1], f[0])):
        target.setdefault(location, []).append(value)


def compute_move_errors(
    paths: TransitivePaths,
    cfg_edge: Iterable[Fact],
    output: Output,
) -> InitializationResult:
    """Propagate initialization across the CFG and find accesses to maybe-moved paths."""
    successors = _index(cfg_edge)

    maybe_initialized = _propagate_forward(
        paths.path_assigned_at, successors, paths.path_moved_at
    )
    maybe_uninitialized = _propagate_forward(
        paths.path_moved_at, successors, paths.path_assigned_at
    )

    vars_of_path = _index(paths.path_begins_with_var)
    var_maybe_partly_initialized_on_exit = frozenset(
        (var, point)
        for path, point in maybe_initialized
        for var in vars_of_path.get(path, ())
    )

    move_errors = frozenset(
        (path, point2)
        for path, point1 in maybe_uninitialized
        for point2 in successors.get(point1, ())
        if (path, point2) in paths.path_accessed_at
    )

    if output.dump_enabled:
        _record(output.path_maybe_initialized_on_exit, maybe_initialized)
        _record(output.path_maybe_uninitialized_on_exit, maybe_uninitialized)

    return InitializationResult(var_maybe_partly_initialized_on_exit, move_errors)


def compute_initialization(
    ctx: InitializationContext,
    cfg_edge: Iterable[Fact],
    output: Output,
) -> InitializationResult:
    """Compute over-approximated variable initialization and move errors."""
    start = time.perf_counter()
    paths = compute_transitive_paths(
        ctx.child_path,
        ctx.path_assigned_at_base,
        ctx.path_moved_at_base,
        ctx.path_accessed_at_base,
        ctx.path_is_var,
    )
    logger.info("initialization phase 1 completed: %.6fs", time.perf_counter() - start)

    result = compute_move_errors(paths, cfg_edge, output)
    logger.info(
        "initialization phase 2: %d move errors in %.6fs",
        len(result.move_errors),
        time.perf_counter() - start,
    )

    if output.dump_enabled:
        _record(
            output.var_maybe_partly_initialized_on_exit,
            result.var_maybe_partly_initialized_on_exit,
        )
    return result