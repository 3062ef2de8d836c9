from dataclasses import FrozenInstanceError, replace

import pytest

from polonius.context import Context, InitializationContext, LivenessContext


def test_context_normalises_relations_to_sets():
    ctx = Context(
        origin_live_on_entry=[(1, 2), (1, 2), (3, 4)],
        cfg_edge=[(0, 1), (0, 1)],
        placeholder_origin=[5, 5],
    )
    assert ctx.origin_live_on_entry == frozenset({(1, 2), (3, 4)})
    assert ctx.cfg_edge == frozenset({(0, 1)})
    assert ctx.placeholder_origin == frozenset({5})


def test_context_keeps_fact_order_for_iterated_inputs():
    ctx = Context(subset_base=[(2, 1, 0), (1, 2, 0)], loan_issued_at=[(9, 8, 7)])
    assert ctx.subset_base == ((2, 1, 0), (1, 2, 0))
    assert ctx.loan_issued_at == ((9, 8, 7),)


def test_context_defaults():
    ctx = Context()
    assert ctx.potential_errors is None
    assert ctx.potential_subset_errors is None
    assert ctx.known_contains == frozenset()
    assert ctx.subset_base == ()


def test_context_potential_results_normalised_when_given():
    ctx = Context(potential_errors=[1, 1, 2], potential_subset_errors=[(1, 2)])
    assert ctx.potential_errors == frozenset({1, 2})
    assert ctx.potential_subset_errors == frozenset({(1, 2)})


def test_context_is_frozen_and_replace_works():
    ctx = Context(cfg_edge=[(0, 1)])
    with pytest.raises(FrozenInstanceError):
        ctx.cfg_edge = frozenset()
    updated = replace(ctx, potential_errors=[3])
    assert updated.potential_errors == frozenset({3})
    assert updated.cfg_edge == ctx.cfg_edge
    assert ctx.potential_errors is None


def test_initialization_context_holds_tuples():
    ctx = InitializationContext(
        child_path=[(1, 0)],
        path_is_var=[(0, 5)],
        path_moved_at_base=iter([(1, 3)]),
    )
    assert ctx.child_path == ((1, 0),)
    assert ctx.path_is_var == ((0, 5),)
    assert ctx.path_moved_at_base == ((1, 3),)
    assert ctx.path_assigned_at_base == ()
    with pytest.raises(FrozenInstanceError):
        ctx.child_path = ()


def test_liveness_context_holds_tuples():
    ctx = LivenessContext(var_used_at=[(1, 2)], drop_of_var_derefs_origin=[(1, 4)])
    assert ctx.var_used_at == ((1, 2),)
    assert ctx.drop_of_var_derefs_origin == ((1, 4),)
    assert ctx.var_defined_at == ()
    assert ctx == LivenessContext(var_used_at=((1, 2),), drop_of_var_derefs_origin=((1, 4),))