"""Input facts for the borrow analysis."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Hashable

Origin = Hashable
Loan = Hashable
Point = Hashable
Variable = Hashable
Path = Hashable


@dataclass
class AllFacts:
    """The facts that are the basis of the borrow analysis.

    Every atom (origin, loan, point, variable, path) is any hashable,
    orderable value; integers are the usual choice.
    """

    # loan_issued_at(origin, loan, point): `loan` was issued at `point`,
    # creating a reference with `origin`.
    loan_issued_at: list[tuple[Origin, Loan, Point]] = field(default_factory=list)
    # universal_region(origin): a free region within the function body.
    universal_region: list[Origin] = field(default_factory=list)
    # cfg_edge(point1, point2): an edge of the control-flow graph.
    cfg_edge: list[tuple[Point, Point]] = field(default_factory=list)
    # loan_killed_at(loan, point): a prefix of the borrowed path is assigned.
    loan_killed_at: list[tuple[Loan, Point]] = field(default_factory=list)
    # subset_base(origin1, origin2, point): origin1 <= origin2 at point.
    subset_base: list[tuple[Origin, Origin, Point]] = field(default_factory=list)
    # loan_invalidated_at(point, loan): the loan is invalidated at point.
    loan_invalidated_at: list[tuple[Point, Loan]] = field(default_factory=list)
    # var_used_at(var, point): var is used for anything but a drop.
    var_used_at: list[tuple[Variable, Point]] = field(default_factory=list)
    # var_defined_at(var, point): var is overwritten at point.
    var_defined_at: list[tuple[Variable, Point]] = field(default_factory=list)
    # var_dropped_at(var, point): var is used in a drop at point.
    var_dropped_at: list[tuple[Variable, Point]] = field(default_factory=list)
    # use_of_var_derefs_origin(var, origin): using var may dereference origin.
    use_of_var_derefs_origin: list[tuple[Variable, Origin]] = field(default_factory=list)
    # drop_of_var_derefs_origin(var, origin): dropping var may dereference origin.
    drop_of_var_derefs_origin: list[tuple[Variable, Origin]] = field(default_factory=list)
    # child_path(child, parent): child is a direct child of parent.
    child_path: list[tuple[Path, Path]] = field(default_factory=list)
    # path_is_var(path, var): the root path starting in var.
    path_is_var: list[tuple[Path, Variable]] = field(default_factory=list)
    # path_assigned_at_base(path, point): path was initialized at point.
    path_assigned_at_base: list[tuple[Path, Point]] = field(default_factory=list)
    # path_moved_at_base(path, point): path was moved at point.
    path_moved_at_base: list[tuple[Path, Point]] = field(default_factory=list)
    # path_accessed_at_base(path, point): path was accessed at point.
    path_accessed_at_base: list[tuple[Path, Point]] = field(default_factory=list)
    # known_placeholder_subset(origin1, origin2): declared or implied 'a: 'b.
    known_placeholder_subset: list[tuple[Origin, Origin]] = field(default_factory=list)
    # placeholder(origin, loan): a placeholder origin and its placeholder loan.
    placeholder: list[tuple[Origin, Loan]] = field(default_factory=list)

    @classmethod
    def relation_names(cls) -> tuple[str, ...]:
        """Names of all fact relations, in declaration order."""
        return tuple(f.name for f in fields(cls))