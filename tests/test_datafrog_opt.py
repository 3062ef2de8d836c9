import pytest

from polonius import datafrog_opt, naive
from polonius.context import Context
from polonius.output import Output


def _chain(*points):
    return [(a, b) for a, b in zip(points, points[1:])]


def _basic_context(**overrides):
    params = dict(
        loan_issued_at=[("a", "L0", 0)],
        cfg_edge=_chain(0, 1, 2),
        origin_live_on_entry=[("a", 1), ("a", 2)],
        loan_invalidated_at=[("L0", 2)],
    )
    params.update(overrides)
    return Context(**params)


SCENARIOS = {
    "basic": _basic_context(),
    "killed": _basic_context(loan_killed_at=[("L0", 1)]),
    "dying_origin": Context(
        loan_issued_at=[("a", "L0", 0)],
        subset_base=[("a", "b", 0)],
        cfg_edge=_chain(0, 1),
        origin_live_on_entry=[("a", 0), ("b", 0), ("b", 1)],
        loan_invalidated_at=[("L0", 1)],
    ),
    "dead_borrow": Context(
        loan_issued_at=[("a", "L0", 1)],
        subset_base=[("a", "b", 1)],
        cfg_edge=_chain(0, 1),
        origin_live_on_entry=[("b", 1)],
        loan_invalidated_at=[("L0", 1)],
    ),
    "dead_intermediate": Context(
        loan_issued_at=[("a", "L0", 0)],
        subset_base=[("a", "c", 0), ("c", "b", 0)],
        cfg_edge=_chain(0, 1, 2),
        origin_live_on_entry=[("a", 0), ("c", 0), ("b", 0), ("b", 1), ("b", 2)],
        loan_invalidated_at=[("L0", 2)],
    ),
    "branch": Context(
        loan_issued_at=[("a", "L0", 0)],
        subset_base=[("a", "b", 1)],
        cfg_edge=[(0, 1), (0, 2), (1, 3), (2, 3)],
        origin_live_on_entry=[("a", 1), ("a", 2), ("b", 1), ("b", 3)],
        loan_invalidated_at=[("L0", 2), ("L0", 3)],
    ),
    "no_live": _basic_context(origin_live_on_entry=[]),
}


def test_loan_error_when_live_origin_is_invalidated():
    errors, subset_errors = datafrog_opt.compute(_basic_context(), Output())
    assert errors == {("L0", 2)}
    assert subset_errors == frozenset()


def test_killed_loan_is_not_an_error():
    errors, _ = datafrog_opt.compute(SCENARIOS["killed"], Output())
    assert errors == frozenset()


def test_loan_flows_into_live_superset_when_origin_dies():
    errors, _ = datafrog_opt.compute(SCENARIOS["dying_origin"], Output())
    assert errors == {("L0", 1)}


def test_dead_borrow_region_reaches_live_origin():
    errors, _ = datafrog_opt.compute(SCENARIOS["dead_borrow"], Output())
    assert errors == {("L0", 1)}


def test_subset_chain_through_dead_origin():
    errors, _ = datafrog_opt.compute(SCENARIOS["dead_intermediate"], Output())
    assert errors == {("L0", 2)}


@pytest.mark.parametrize("name", sorted(SCENARIOS))
def test_agrees_with_naive_on_loan_errors(name):
    ctx = SCENARIOS[name]
    opt_errors, _ = datafrog_opt.compute(ctx, Output())
    naive_errors, _ = naive.compute(ctx, Output())
    assert opt_errors == naive_errors


def test_undeclared_placeholder_subset_is_an_error():
    ctx = Context(
        subset_base=[("a", "b", 0)],
        cfg_edge=_chain(0, 1),
        origin_live_on_entry=[("a", 0), ("a", 1), ("b", 0), ("b", 1)],
        placeholder_origin=["a", "b"],
    )
    _, subset_errors = datafrog_opt.compute(ctx, Output())
    assert ("a", "b", 0) in subset_errors
    assert ("a", "b", 1) in subset_errors
    assert all(o1 != o2 for o1, o2, _ in subset_errors)


def test_known_placeholder_subset_is_not_an_error():
    ctx = Context(
        subset_base=[("a", "b", 0)],
        cfg_edge=_chain(0, 1),
        origin_live_on_entry=[("a", 0), ("a", 1), ("b", 0), ("b", 1)],
        placeholder_origin=["a", "b"],
        known_placeholder_subset=[("a", "b")],
    )
    _, subset_errors = datafrog_opt.compute(ctx, Output())
    assert subset_errors == frozenset()


def test_transitive_placeholder_subset_error():
    ctx = Context(
        subset_base=[("a", "x", 0), ("x", "b", 0)],
        cfg_edge=_chain(0, 1),
        origin_live_on_entry=[("a", 0), ("b", 0), ("x", 0)],
        placeholder_origin=["a", "b"],
    )
    _, subset_errors = datafrog_opt.compute(ctx, Output())
    assert subset_errors == {("a", "b", 0)}


def test_dump_records_subsets_without_symmetries():
    ctx = Context(
        loan_issued_at=[("a", "L0", 0)],
        subset_base=[("a", "a", 0), ("a", "b", 0)],
        cfg_edge=_chain(0, 1),
        origin_live_on_entry=[("a", 0), ("a", 1), ("b", 0), ("b", 1)],
        loan_invalidated_at=[("L0", 1)],
    )
    output = Output(dump_enabled=True)
    datafrog_opt.compute(ctx, output)
    assert output.subsets_at(0) == {"a": {"b"}}
    assert output.subsets_at(1) == {"a": {"b"}}
    for by_origin in output.subset.values():
        for origin1, origin2s in by_origin.items():
            assert origin1 not in origin2s
    assert output.loans_in_scope_at(1) == ["L0"]
    assert output.origins_containing_loans_at(1) == {"a": {"L0"}}


def test_no_dump_data_without_dump():
    output = Output()
    datafrog_opt.compute(_basic_context(), output)
    assert output.subset == {}
    assert output.loan_live_at == {}
    assert output.origin_contains_loan_at == {}


def test_errors_are_a_subset_of_invalidations():
    for ctx in SCENARIOS.values():
        errors, _ = datafrog_opt.compute(ctx, Output())
        assert errors <= ctx.loan_invalidated_at