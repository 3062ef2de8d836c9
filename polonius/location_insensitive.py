"""Location-insensitive borrow analysis: fast, with false positives but no false negatives."""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from typing import Hashable, Iterable

from polonius.context import Context
from polonius.output import Output

logger = logging.getLogger(__name__)

Atom = Hashable


def _index(pairs: Iterable[tuple[Atom, Atom]]) -> dict[Atom, set[Atom]]:
    index: dict[Atom, set[Atom]] = defaultdict(set)
    for key, value in pairs:
        index[key].add(value)
    return index


def _origin_contains_loan(
    seed: Iterable[tuple[Atom, Atom]],
    supersets: dict[Atom, set[Atom]],
) -> set[tuple[Atom, Atom]]:
    """Close (origin, loan) facts over the point-less subset relation."""
    contains: set[tuple[Atom, Atom]] = set()
    stack = list(seed)
    while stack:
        fact = stack.pop()
        if fact in contains:
            continue
        contains.add(fact)
        origin, loan = fact
        stack.extend((origin2, loan) for origin2 in supersets.get(origin, ()))
    return contains


def compute(
    ctx: Context, result: Output
) -> tuple[frozenset[tuple[Atom, Atom]], frozenset[tuple[Atom, Atom]]]:
    """Return the potential loan errors `(loan, point)` and subset errors `(origin1, origin2)`."""
    start = time.perf_counter()

    # subset(origin1, origin2) :- subset_base(origin1, origin2, _).
    subset = {(origin1, origin2) for origin1, origin2, _point in ctx.subset_base}

    # origin_contains_loan_on_entry(origin, loan) :- loan_issued_at(origin, loan, _).
    # origin_contains_loan_on_entry(origin, loan) :- placeholder_loan(origin, loan).
    seed = [(origin, loan) for origin, loan, _point in ctx.loan_issued_at]
    seed.extend((origin, loan) for loan, origin in ctx.placeholder_loan)
    contains = _origin_contains_loan(seed, _index(subset))

    # potential_errors(loan, point) :-
    #   origin_contains_loan_on_entry(origin, loan),
    #   origin_live_on_entry(origin, point),
    #   loan_invalidated_at(loan, point).
    live_points = _index(ctx.origin_live_on_entry)
    invalidated_points = _index(ctx.loan_invalidated_at)
    potential_errors = frozenset(
        (loan, point)
        for origin, loan in contains
        for point in live_points.get(origin, set()) & invalidated_points.get(loan, set())
    )

    # potential_subset_errors(origin1, origin2) :-
    #   placeholder(origin1, loan1),
    #   placeholder(origin2, _),
    #   origin_contains_loan_on_entry(origin2, loan1),
    #   !known_contains(origin2, loan1),
    #   origin1 != origin2.
    placeholder_origins_of_loan = _index(ctx.placeholder_loan)
    potential_subset_errors = frozenset(
        (origin1, origin2)
        for origin2, loan1 in contains
        if origin2 in ctx.placeholder_origin and (origin2, loan1) not in ctx.known_contains
        for origin1 in placeholder_origins_of_loan.get(loan1, ())
        if origin1 != origin2
    )

    if result.dump_enabled:
        for origin1, origin2 in subset:
            result.subset_anywhere.setdefault(origin1, set()).add(origin2)
        for origin, loan in contains:
            result.origin_contains_loan_anywhere.setdefault(origin, set()).add(loan)

    logger.info(
        "analysis done: %d `potential_errors` tuples, %d `potential_subset_errors` tuples, %.6fs",
        len(potential_errors),
        len(potential_subset_errors),
        time.perf_counter() - start,
    )
    return potential_errors, potential_subset_errors