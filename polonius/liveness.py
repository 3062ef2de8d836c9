"""Origin liveness: which origins are live on entry to each point."""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from typing import Hashable, Iterable

from polonius.context import LivenessContext
from polonius.output import Output

logger = logging.getLogger(__name__)

Atom = Hashable
Fact = tuple[Atom, Atom]


def _index(pairs: Iterable[Fact]) -> dict[Atom, set[Atom]]:
    index: dict[Atom, set[Atom]] = defaultdict(set)
    for key, value in pairs:
        index[key].add(value)
    return index


def _propagate_backward(
    seed: Iterable[Fact],
    predecessors: dict[Atom, set[Atom]],
    defined: frozenset[Fact],
    required: frozenset[Fact] | None = None,
) -> set[Fact]:
    """Carry (var, point) facts backwards along CFG edges until the variable is defined."""
    reached = set(seed)
    stack = list(reached)
    while stack:
        var, point2 = stack.pop()
        for point1 in predecessors.get(point2, ()):
            fact = (var, point1)
            if fact in defined or fact in reached:
                continue
            if required is not None and fact not in required:
                continue
            reached.add(fact)
            stack.append(fact)
    return reached


def _record(target: dict[Atom, list[Atom]], facts: Iterable[Fact]) -> None:
    for value, location in sorted(facts, key=lambda f: (f[1], f[0])):
        target.setdefault(location, []).append(value)


def compute_live_origins(
    ctx: LivenessContext,
    cfg_edge: Iterable[Fact],
    var_maybe_partly_initialized_on_exit: Iterable[Fact],
    output: Output,
) -> list[Fact]:
    """Return the sorted (origin, point) pairs where origin is live on entry."""
    start = time.perf_counter()
    edges = list(cfg_edge)
    successors = _index(edges)
    predecessors = _index((point2, point1) for point1, point2 in edges)
    defined = frozenset(ctx.var_defined_at)
    initialized_on_exit = frozenset(var_maybe_partly_initialized_on_exit)

    initialized_on_entry = {
        (var, point2)
        for var, point1 in initialized_on_exit
        for point2 in successors.get(point1, ())
    }

    var_live_on_entry = _propagate_backward(ctx.var_used_at, predecessors, defined)
    var_drop_live_on_entry = _propagate_backward(
        (fact for fact in ctx.var_dropped_at if fact in initialized_on_entry),
        predecessors,
        defined,
        required=initialized_on_exit,
    )

    use_origins = _index(ctx.use_of_var_derefs_origin)
    drop_origins = _index(ctx.drop_of_var_derefs_origin)
    live = {
        (origin, point)
        for var, point in var_drop_live_on_entry
        for origin in drop_origins.get(var, ())
    }
    live.update(
        (origin, point)
        for var, point in var_live_on_entry
        for origin in use_origins.get(var, ())
    )
    origin_live_on_entry = sorted(live)

    logger.info(
        "compute_live_origins() completed: %d tuples, %.6fs",
        len(origin_live_on_entry),
        time.perf_counter() - start,
    )

    if output.dump_enabled:
        _record(output.var_drop_live_on_entry, var_drop_live_on_entry)
        _record(output.var_live_on_entry, var_live_on_entry)

    return origin_live_on_entry


def make_universal_regions_live(
    origin_live_on_entry: Iterable[Fact],
    cfg_node: Iterable[Atom],
    universal_regions: Iterable[Atom],
) -> list[Fact]:
    """Return the liveness facts extended with every universal region live at every node."""
    logger.debug("make_universal_regions_live()")
    nodes = sorted(set(cfg_node))
    result = list(origin_live_on_entry)
    result.extend((origin, point) for origin in universal_regions for point in nodes)
    return result