import pytest

from polonius.compute import (
    compute_known_contains,
    compute_known_placeholder_subset,
    compute_output,
)
from polonius.facts import AllFacts
from polonius.output import Algorithm, DumpDisabledError

ALL_ALGORITHMS = list(Algorithm)
PRECISE = [Algorithm.NAIVE, Algorithm.DATAFROG_OPT, Algorithm.COMPARE, Algorithm.HYBRID]


def _borrow_facts(with_use: bool) -> AllFacts:
    """Loan 100 issued into origin 'a' at 0, invalidated at 1, 'a' used at 2."""
    facts = AllFacts(
        loan_issued_at=[("a", 100, 0)],
        cfg_edge=[(0, 1), (1, 2)],
        loan_invalidated_at=[(1, 100)],
        use_of_var_derefs_origin=[("x", "a")],
    )
    if with_use:
        facts.var_used_at.append(("x", 2))
    return facts


def _placeholder_facts(known: bool) -> AllFacts:
    return AllFacts(
        universal_region=["a", "b"],
        placeholder=[("a", 10), ("b", 20)],
        subset_base=[("a", "b", 0)],
        cfg_edge=[(0, 1)],
        known_placeholder_subset=[("a", "b")] if known else [],
    )


@pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
def test_live_loan_invalidated_is_error(algorithm):
    output = compute_output(_borrow_facts(with_use=True), algorithm, False)
    assert output.errors == {1: [100]}
    assert output.errors_at(1) == [100]


@pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
def test_dead_loan_is_not_error(algorithm):
    output = compute_output(_borrow_facts(with_use=False), algorithm, False)
    assert output.errors == {}


@pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
def test_known_placeholder_subset_is_not_error(algorithm):
    output = compute_output(_placeholder_facts(known=True), algorithm, False)
    assert output.subset_errors == {}


def test_location_insensitive_subset_error_uses_point_zero():
    facts = _placeholder_facts(known=False)
    facts.subset_base = [("a", "b", 1)]
    output = compute_output(facts, Algorithm.LOCATION_INSENSITIVE, False)
    assert list(output.subset_errors) == [0]
    assert output.subset_errors[0] == {("a", "b")}


def test_move_errors_recorded():
    facts = AllFacts(
        cfg_edge=[(0, 1), (1, 2)],
        path_is_var=[("p", "v")],
        path_assigned_at_base=[("p", 0)],
        path_moved_at_base=[("p", 1)],
        path_accessed_at_base=[("p", 2)],
    )
    output = compute_output(facts, Algorithm.NAIVE, False)
    assert output.move_errors == {2: ["p"]}


def test_algorithm_may_be_given_by_name():
    by_name = compute_output(_borrow_facts(with_use=True), "datafrogopt", False)
    by_enum = compute_output(_borrow_facts(with_use=True), Algorithm.DATAFROG_OPT, False)
    assert by_name.errors == by_enum.errors


def test_unknown_algorithm_name_raises():
    with pytest.raises(ValueError):
        compute_output(AllFacts(), "nonsense", False)


def test_location_insensitive_is_superset_of_precise():
    facts = _borrow_facts(with_use=True)
    facts.loan_invalidated_at.append((2, 100))
    facts.loan_killed_at.append((100, 1))
    precise = compute_output(facts, Algorithm.NAIVE, False)
    insensitive = compute_output(facts, Algorithm.LOCATION_INSENSITIVE, False)
    for point, loans in precise.errors.items():
        assert set(loans) <= set(insensitive.errors.get(point, []))


def test_universal_regions_live_everywhere_in_dump():
    facts = _placeholder_facts(known=True)
    output = compute_output(facts, Algorithm.NAIVE, True)
    for point in (0, 1):
        assert {"a", "b"} <= set(output.origins_live_at(point))


def test_dump_records_known_contains():
    output = compute_output(_placeholder_facts(known=True), Algorithm.NAIVE, True)
    assert output.known_contains["a"] == {10}
    assert output.known_contains["b"] == {10, 20}


def test_dump_disabled_blocks_debug_queries():
    output = compute_output(_placeholder_facts(known=True), Algorithm.NAIVE, False)
    with pytest.raises(DumpDisabledError):
        output.origins_live_at(0)


def test_known_contains_includes_placeholders_and_is_closed():
    subset = [(1, 2), (2, 3)]
    placeholder = [(1, 10), (2, 20), (3, 30)]
    result = compute_known_contains(subset, placeholder)
    assert set(placeholder) <= result
    for origin1, loan in result:
        for src, dst in subset:
            if src == origin1:
                assert (dst, loan) in result


def test_known_contains_empty_subset_is_placeholder():
    placeholder = [(1, 10), (2, 20)]
    assert compute_known_contains([], placeholder) == frozenset(placeholder)


def test_known_placeholder_subset_transitive_closure():
    base = [(1, 2), (2, 3), (3, 4)]
    closure = compute_known_placeholder_subset(base)
    assert set(base) <= closure
    for a, b in closure:
        for c, d in closure:
            if b == c:
                assert (a, d) in closure
    assert (1, 4) in closure
    assert (4, 1) not in closure


def test_compare_agrees_with_naive():
    facts = _borrow_facts(with_use=True)
    compare = compute_output(facts, Algorithm.COMPARE, False)
    plain = compute_output(facts, Algorithm.NAIVE, False)
    assert compare.errors == plain.errors
    assert compare.subset_errors == plain.subset_errors