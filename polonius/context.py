"""Slices of the input facts handed to each stage of the analysis."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Iterable, Optional

Atom = Hashable


def _set(values: Iterable) -> frozenset:
    return frozenset(values)


@dataclass(frozen=True)
class InitializationContext:
    """The facts needed by the initialization analysis."""

    child_path: tuple[tuple[Atom, Atom], ...] = ()
    path_is_var: tuple[tuple[Atom, Atom], ...] = ()
    path_assigned_at_base: tuple[tuple[Atom, Atom], ...] = ()
    path_moved_at_base: tuple[tuple[Atom, Atom], ...] = ()
    path_accessed_at_base: tuple[tuple[Atom, Atom], ...] = ()

    def __post_init__(self) -> None:
        for name in (
            "child_path",
            "path_is_var",
            "path_assigned_at_base",
            "path_moved_at_base",
            "path_accessed_at_base",
        ):
            object.__setattr__(self, name, tuple(getattr(self, name)))


@dataclass(frozen=True)
class LivenessContext:
    """The facts needed by the liveness analysis."""

    var_used_at: tuple[tuple[Atom, Atom], ...] = ()
    var_defined_at: tuple[tuple[Atom, Atom], ...] = ()
    var_dropped_at: tuple[tuple[Atom, Atom], ...] = ()
    use_of_var_derefs_origin: tuple[tuple[Atom, Atom], ...] = ()
    drop_of_var_derefs_origin: tuple[tuple[Atom, Atom], ...] = ()

    def __post_init__(self) -> None:
        for name in (
            "var_used_at",
            "var_defined_at",
            "var_dropped_at",
            "use_of_var_derefs_origin",
            "drop_of_var_derefs_origin",
        ):
            object.__setattr__(self, name, tuple(getattr(self, name)))


@dataclass(frozen=True)
class Context:
    """Static inputs shared by the borrow-checking variants.

    Relations are stored as frozensets of tuples; the two inputs that the
    variants iterate over in fact order stay as tuples.
    """

    origin_live_on_entry: frozenset = frozenset()
    loan_invalidated_at: frozenset = frozenset()  # (loan, point)
    subset_base: tuple[tuple[Atom, Atom, Atom], ...] = ()
    loan_issued_at: tuple[tuple[Atom, Atom, Atom], ...] = ()
    loan_killed_at: frozenset = frozenset()
    known_contains: frozenset = frozenset()  # (origin, loan)
    placeholder_origin: frozenset = frozenset()  # origins
    placeholder_loan: frozenset = frozenset()  # (loan, origin)
    # fully transitively closed
    known_placeholder_subset: frozenset = frozenset()
    cfg_edge: frozenset = frozenset()
    potential_errors: Optional[frozenset] = None
    potential_subset_errors: Optional[frozenset] = None

    def __post_init__(self) -> None:
        for name in (
            "origin_live_on_entry",
            "loan_invalidated_at",
            "loan_killed_at",
            "known_contains",
            "placeholder_origin",
            "placeholder_loan",
            "known_placeholder_subset",
            "cfg_edge",
        ):
            object.__setattr__(self, name, _set(getattr(self, name)))
        for name in ("subset_base", "loan_issued_at"):
            object.__setattr__(self, name, tuple(getattr(self, name)))
        for name in ("potential_errors", "potential_subset_errors"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, _set(value))