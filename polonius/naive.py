"""The naive, location-sensitive borrow analysis."""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from typing import Hashable, Iterable

from polonius.context import Context
from polonius.output import Output

logger = logging.getLogger(__name__)

Atom = Hashable
Triple = tuple[Atom, Atom, Atom]


def _index(pairs: Iterable[tuple[Atom, Atom]]) -> dict[Atom, set[Atom]]:
    index: dict[Atom, set[Atom]] = defaultdict(set)
    for key, value in pairs:
        index[key].add(value)
    return index


def _compute_subset(
    subset_base: Iterable[Triple],
    successors: dict[Atom, set[Atom]],
    live: frozenset,
) -> tuple[set[Triple], dict[Atom, dict[Atom, set[Atom]]]]:
    """Close `subset(origin1, origin2, point)` under rules 1-3, without reflexive tuples.

    Returns the subset facts and an index point -> origin1 -> {origin2}.
    """
    supersets: dict[Atom, dict[Atom, set[Atom]]] = defaultdict(lambda: defaultdict(set))
    subsets: dict[Atom, dict[Atom, set[Atom]]] = defaultdict(lambda: defaultdict(set))
    subset: set[Triple] = set()
    stack = list(subset_base)
    while stack:
        fact = stack.pop()
        origin1, origin2, point = fact
        if origin1 == origin2 or fact in subset:
            continue
        subset.add(fact)
        supersets[point][origin1].add(origin2)
        subsets[point][origin2].add(origin1)

        # Rule 2: transitive closure at a given point.
        stack.extend((origin1, origin3, point) for origin3 in supersets[point].get(origin2, ()))
        stack.extend((origin0, origin2, point) for origin0 in subsets[point].get(origin1, ()))

        # Rule 3: propagate along the CFG while both origins are live.
        stack.extend(
            (origin1, origin2, point2)
            for point2 in successors.get(point, ())
            if (origin1, point2) in live and (origin2, point2) in live
        )
    return subset, supersets


def _compute_origin_contains_loan(
    loan_issued_at: Iterable[Triple],
    supersets: dict[Atom, dict[Atom, set[Atom]]],
    successors: dict[Atom, set[Atom]],
    live: frozenset,
    killed: frozenset,
) -> set[Triple]:
    """Close `origin_contains_loan_on_entry(origin, loan, point)` under rules 4-6."""
    contains: set[Triple] = set()
    stack = list(loan_issued_at)
    while stack:
        fact = stack.pop()
        if fact in contains:
            continue
        contains.add(fact)
        origin, loan, point = fact

        # Rule 5: loans flow into the supersets of an origin at the same point.
        at_point = supersets.get(point)
        if at_point is not None:
            stack.extend((origin2, loan, point) for origin2 in at_point.get(origin, ()))

        # Rule 6: loans flow along the CFG while not killed and the origin is live.
        if (loan, point) not in killed:
            stack.extend(
                (origin, loan, point2)
                for point2 in successors.get(point, ())
                if (origin, point2) in live
            )
    return contains


def compute(
    ctx: Context, result: Output
) -> tuple[frozenset[tuple[Atom, Atom]], frozenset[Triple]]:
    """Return the loan errors `(loan, point)` and subset errors `(origin1, origin2, point)`."""
    start = time.perf_counter()

    live = ctx.origin_live_on_entry
    successors = _index(ctx.cfg_edge)

    subset, supersets = _compute_subset(ctx.subset_base, successors, live)
    contains = _compute_origin_contains_loan(
        ctx.loan_issued_at, supersets, successors, live, ctx.loan_killed_at
    )

    # Rule 7: a loan is live where a live origin contains it.
    loan_live_at = {(loan, point) for origin, loan, point in contains if (origin, point) in live}

    # Rule 8: an invalidated live loan is an error.
    errors = frozenset(fact for fact in loan_live_at if fact in ctx.loan_invalidated_at)

    # Rule 9: undeclared subsets between two placeholder origins.
    placeholders = ctx.placeholder_origin
    subset_errors = frozenset(
        (origin1, origin2, point)
        for origin1, origin2, point in subset
        if origin1 in placeholders
        and origin2 in placeholders
        and (origin1, origin2) not in ctx.known_placeholder_subset
    )

    if result.dump_enabled:
        for origin1, origin2, location in subset:
            result.subset.setdefault(location, {}).setdefault(origin1, set()).add(origin2)
        for origin, loan, location in contains:
            result.origin_contains_loan_at.setdefault(location, {}).setdefault(
                origin, set()
            ).add(loan)
        for loan, location in sorted(loan_live_at):
            result.loan_live_at.setdefault(location, []).append(loan)

    logger.info(
        "analysis done: %d `errors` tuples, %d `subset_errors` tuples, %.6fs",
        len(errors),
        len(subset_errors),
        time.perf_counter() - start,
    )
    return errors, subset_errors