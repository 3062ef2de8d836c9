"""Running the whole borrow analysis over a set of input facts."""

from __future__ import annotations

import dataclasses
import logging
from collections import defaultdict
from typing import Hashable, Iterable

from polonius import datafrog_opt, location_insensitive, naive
from polonius.context import Context, InitializationContext, LivenessContext
from polonius.facts import AllFacts
from polonius.initialization import compute_initialization
from polonius.liveness import compute_live_origins, make_universal_regions_live
from polonius.output import Algorithm, Output, compare_errors, parse_algorithm

logger = logging.getLogger(__name__)

Atom = Hashable

_LOCATION_INSENSITIVE_POINT = 0


class AlgorithmMismatchError(RuntimeError):
    """The naive and optimized analyses reported different errors."""


def compute_known_contains(
    known_placeholder_subset: Iterable[tuple[Atom, Atom]],
    placeholder: Iterable[tuple[Atom, Atom]],
) -> frozenset[tuple[Atom, Atom]]:
    """Placeholder loans contained by each placeholder origin, closed over known subsets.

    known_contains(origin1, loan1) :- placeholder(origin1, loan1).
    known_contains(origin2, loan1) :-
      known_contains(origin1, loan1), known_placeholder_subset(origin1, origin2).
    """
    supersets: dict[Atom, set[Atom]] = defaultdict(set)
    for origin1, origin2 in known_placeholder_subset:
        supersets[origin1].add(origin2)

    contains: set[tuple[Atom, Atom]] = set()
    stack = list(placeholder)
    while stack:
        fact = stack.pop()
        if fact in contains:
            continue
        contains.add(fact)
        origin, loan = fact
        stack.extend((origin2, loan) for origin2 in supersets.get(origin, ()))
    return frozenset(contains)


def compute_known_placeholder_subset(
    known_placeholder_subset_base: Iterable[tuple[Atom, Atom]],
) -> frozenset[tuple[Atom, Atom]]:
    """The transitive closure of the known placeholder subset relation."""
    base = set(known_placeholder_subset_base)
    supersets: dict[Atom, set[Atom]] = defaultdict(set)
    for origin1, origin2 in base:
        supersets[origin1].add(origin2)

    closure: set[tuple[Atom, Atom]] = set()
    stack = list(base)
    while stack:
        fact = stack.pop()
        if fact in closure:
            continue
        closure.add(fact)
        origin1, origin2 = fact
        stack.extend((origin1, origin3) for origin3 in supersets.get(origin2, ()))
    return frozenset(closure)


def _group_by_point(errors: Iterable[tuple[Atom, Atom]]) -> dict[Atom, list[Atom]]:
    grouped: dict[Atom, list[Atom]] = {}
    for loan, point in errors:
        grouped.setdefault(point, []).append(loan)
    return grouped


def _run_variant(
    ctx: Context, algorithm: Algorithm, result: Output
) -> tuple[frozenset, frozenset]:
    if algorithm is Algorithm.LOCATION_INSENSITIVE:
        potential_errors, potential_subset_errors = location_insensitive.compute(ctx, result)
        # The point is meaningless for a location-insensitive subset error.
        subset_errors = frozenset(
            (origin1, origin2, _LOCATION_INSENSITIVE_POINT)
            for origin1, origin2 in potential_subset_errors
        )
        return potential_errors, subset_errors

    if algorithm is Algorithm.NAIVE:
        return naive.compute(ctx, result)

    if algorithm is Algorithm.DATAFROG_OPT:
        return datafrog_opt.compute(ctx, result)

    if algorithm is Algorithm.HYBRID:
        potential_errors, potential_subset_errors = location_insensitive.compute(ctx, result)
        if not potential_errors and not potential_subset_errors:
            return potential_errors, frozenset()
        refined = dataclasses.replace(
            ctx,
            potential_errors=frozenset(loan for loan, _point in potential_errors),
            potential_subset_errors=potential_subset_errors,
        )
        return datafrog_opt.compute(refined, result)

    if algorithm is Algorithm.COMPARE:
        naive_errors, naive_subset_errors = naive.compute(ctx, result)
        opt_errors, _ = datafrog_opt.compute(ctx, result)
        if compare_errors(_group_by_point(naive_errors), _group_by_point(opt_errors)):
            raise AlgorithmMismatchError(
                "The errors reported by the naive algorithm differ from the errors "
                "reported by the optimized algorithm. See the error log for details."
            )
        logger.debug("Naive and optimized algorithms reported the same errors.")
        return naive_errors, naive_subset_errors

    raise ValueError(f"unknown algorithm: {algorithm!r}")


def compute_output(
    all_facts: AllFacts,
    algorithm: Algorithm | str = Algorithm.NAIVE,
    dump_enabled: bool = False,
) -> Output:
    """Run initialization, liveness and the chosen borrow-checking variant."""
    if isinstance(algorithm, str):
        algorithm = parse_algorithm(algorithm)
    result = Output(dump_enabled=dump_enabled)
    cfg_edge = frozenset(all_facts.cfg_edge)

    # 1) Initialization
    initialization_ctx = InitializationContext(
        child_path=all_facts.child_path,
        path_is_var=all_facts.path_is_var,
        path_assigned_at_base=all_facts.path_assigned_at_base,
        path_moved_at_base=all_facts.path_moved_at_base,
        path_accessed_at_base=all_facts.path_accessed_at_base,
    )
    initialization = compute_initialization(initialization_ctx, cfg_edge, result)
    for path, location in sorted(initialization.move_errors):
        result.move_errors.setdefault(location, []).append(path)

    # 2) Liveness
    liveness_ctx = LivenessContext(
        var_used_at=all_facts.var_used_at,
        var_defined_at=all_facts.var_defined_at,
        var_dropped_at=all_facts.var_dropped_at,
        use_of_var_derefs_origin=all_facts.use_of_var_derefs_origin,
        drop_of_var_derefs_origin=all_facts.drop_of_var_derefs_origin,
    )
    origin_live_on_entry = compute_live_origins(
        liveness_ctx,
        cfg_edge,
        initialization.var_maybe_partly_initialized_on_exit,
        result,
    )
    cfg_node = {point for edge in cfg_edge for point in edge}
    origin_live_on_entry = make_universal_regions_live(
        origin_live_on_entry, cfg_node, all_facts.universal_region
    )

    # 3) Borrow checking
    known_placeholder_subset_base = frozenset(all_facts.known_placeholder_subset)
    ctx = Context(
        origin_live_on_entry=origin_live_on_entry,
        loan_invalidated_at=((loan, point) for point, loan in all_facts.loan_invalidated_at),
        subset_base=all_facts.subset_base,
        loan_issued_at=all_facts.loan_issued_at,
        loan_killed_at=all_facts.loan_killed_at,
        known_contains=compute_known_contains(
            known_placeholder_subset_base, all_facts.placeholder
        ),
        placeholder_origin=all_facts.universal_region,
        placeholder_loan=((loan, origin) for origin, loan in all_facts.placeholder),
        known_placeholder_subset=compute_known_placeholder_subset(
            known_placeholder_subset_base
        ),
        cfg_edge=cfg_edge,
    )

    errors, subset_errors = _run_variant(ctx, algorithm, result)

    for loan, location in sorted(errors):
        result.errors.setdefault(location, []).append(loan)
    for origin1, origin2, location in subset_errors:
        result.subset_errors.setdefault(location, set()).add((origin1, origin2))

    if dump_enabled:
        for origin, location in sorted(ctx.origin_live_on_entry):
            result.origin_live_on_entry.setdefault(location, []).append(origin)
        for origin, loan in ctx.known_contains:
            result.known_contains.setdefault(origin, set()).add(loan)

    return result