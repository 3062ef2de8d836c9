"""Algorithm selection and the results of the borrow analysis."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Hashable, Mapping, Sequence

logger = logging.getLogger(__name__)

Atom = Hashable


class Algorithm(enum.Enum):
    """The available variants of the analysis."""

    NAIVE = "Naive"
    """Simple rules, but slower to execute."""
    DATAFROG_OPT = "DatafrogOpt"
    """Optimized variant of the rules."""
    LOCATION_INSENSITIVE = "LocationInsensitive"
    """Fast but imprecise: false positives, no false negatives."""
    COMPARE = "Compare"
    """Runs Naive and DatafrogOpt and checks they agree."""
    HYBRID = "Hybrid"
    """LocationInsensitive pre-pass followed by DatafrogOpt."""

    def __str__(self) -> str:
        return self.value


OPTIMIZED_ALGORITHMS: tuple[Algorithm, ...] = (Algorithm.DATAFROG_OPT,)
"""Optimized variants that ought to be equivalent to the naive one."""

_VALID_VALUES = "valid values: " + ", ".join(a.value for a in Algorithm)


def algorithm_names() -> list[str]:
    """Names of all algorithm variants."""
    return [a.value for a in Algorithm]


def parse_algorithm(text: str) -> Algorithm:
    """Parse an algorithm name, ignoring case."""
    wanted = text.lower()
    for algorithm in Algorithm:
        if algorithm.value.lower() == wanted:
            return algorithm
    raise ValueError(_VALID_VALUES)


class DumpDisabledError(RuntimeError):
    """Raised when debugging data is requested but was not recorded."""


@dataclass
class Output:
    """Errors found by the analysis, plus optional debugging data."""

    dump_enabled: bool = False
    errors: dict[Atom, list[Atom]] = field(default_factory=dict)
    subset_errors: dict[Atom, set[tuple[Atom, Atom]]] = field(default_factory=dict)
    move_errors: dict[Atom, list[Atom]] = field(default_factory=dict)

    # debugging data
    loan_live_at: dict[Atom, list[Atom]] = field(default_factory=dict)
    origin_contains_loan_at: dict[Atom, dict[Atom, set[Atom]]] = field(default_factory=dict)
    origin_contains_loan_anywhere: dict[Atom, set[Atom]] = field(default_factory=dict)
    origin_live_on_entry: dict[Atom, list[Atom]] = field(default_factory=dict)
    loan_invalidated_at: dict[Atom, list[Atom]] = field(default_factory=dict)
    subset: dict[Atom, dict[Atom, set[Atom]]] = field(default_factory=dict)
    subset_anywhere: dict[Atom, set[Atom]] = field(default_factory=dict)
    var_live_on_entry: dict[Atom, list[Atom]] = field(default_factory=dict)
    var_drop_live_on_entry: dict[Atom, list[Atom]] = field(default_factory=dict)
    path_maybe_initialized_on_exit: dict[Atom, list[Atom]] = field(default_factory=dict)
    path_maybe_uninitialized_on_exit: dict[Atom, list[Atom]] = field(default_factory=dict)
    known_contains: dict[Atom, set[Atom]] = field(default_factory=dict)
    var_maybe_partly_initialized_on_exit: dict[Atom, list[Atom]] = field(default_factory=dict)

    def _require_dump(self) -> None:
        if not self.dump_enabled:
            raise DumpDisabledError("debugging data was not recorded (dump disabled)")

    def errors_at(self, location: Atom) -> list[Atom]:
        """Loans with an illegal access at `location`."""
        return list(self.errors.get(location, ()))

    def loans_in_scope_at(self, location: Atom) -> list[Atom]:
        """Loans live at `location`."""
        return list(self.loan_live_at.get(location, ()))

    def origins_containing_loans_at(self, location: Atom) -> dict[Atom, set[Atom]]:
        """Loans held by each origin at `location`; needs dump data."""
        self._require_dump()
        return dict(self.origin_contains_loan_at.get(location, {}))

    def origins_live_at(self, location: Atom) -> list[Atom]:
        """Origins live on entry to `location`; needs dump data."""
        self._require_dump()
        return list(self.origin_live_on_entry.get(location, ()))

    def subsets_at(self, location: Atom) -> dict[Atom, set[Atom]]:
        """Subset relations holding at `location`; needs dump data."""
        self._require_dump()
        return dict(self.subset.get(location, {}))


def compare_errors(
    naive_errors: Mapping[Atom, Sequence[Atom]],
    opt_errors: Mapping[Atom, Sequence[Atom]],
) -> bool:
    """Return True when the two error maps differ, logging each difference."""
    differ = False
    for point in [*naive_errors, *opt_errors]:
        naive = set(naive_errors.get(point, ()))
        opt = set(opt_errors.get(point, ()))
        for err in sorted(naive - opt):
            logger.error("Error %r at %r reported by naive, but not opt.", err, point)
            differ = True
        for err in sorted(opt - naive):
            logger.error("Error %r at %r reported by opt, but not naive.", err, point)
            differ = True
    return differ