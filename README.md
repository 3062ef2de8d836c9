# polonius

A borrow-checking analysis engine. You describe a function body as a set of
input *facts* (control-flow edges, loans issued, killed and invalidated,
subset relations between origins, variable uses, definitions and drops, path
moves, assignments and accesses), and the engine computes:

- **errors**: loans that are invalidated at a point where they are still live,
- **subset errors**: subset relations between placeholder origins that were
  not declared as known,
- **move errors**: accesses to paths that may have been moved out or never
  initialized.

Atoms (origins, loans, points, variables, paths) can be any hashable,
orderable values; integers are the usual choice.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Usage

```python
from polonius.facts import AllFacts
from polonius.output import Algorithm
from polonius.compute import compute_output

facts = AllFacts()
facts.cfg_edge += [(0, 1), (1, 2)]
facts.loan_issued_at.append((10, 100, 0))      # origin 10 holds loan 100 from point 0
facts.var_used_at += [(1, 1), (1, 2)]          # variable 1 used at points 1 and 2
facts.use_of_var_derefs_origin.append((1, 10)) # using variable 1 needs origin 10
facts.loan_invalidated_at.append((2, 100))     # loan 100 invalidated at point 2

output = compute_output(facts, Algorithm.NAIVE, True)
print(output.errors_at(2))                    # [100]
print(output.loans_in_scope_at(1))            # live loans at point 1
print(output.origins_live_at(1))
print(output.subsets_at(1))
print(output.origins_containing_loans_at(1))
```

`compute_output(all_facts, algorithm=Algorithm.NAIVE, dump_enabled=False)`
returns an `Output`. Its `errors`, `subset_errors` and `move_errors`
dictionaries are keyed by point. `AllFacts.relation_names()` lists the names
of all input relations.

## Algorithms

`Algorithm` selects how errors are computed. `compute_output` also accepts
the name as a string; `parse_algorithm` reads a name case-insensitively
(raising `ValueError` for an unknown one) and `algorithm_names()` lists the
accepted names:

- `Naive`: the straightforward rules.
- `DatafrogOpt`: an optimized rule set that yields the same loan errors.
- `LocationInsensitive`: fast and imprecise; may report false positives but
  never misses an error. Its subset errors are reported at point `0`.
- `Compare`: runs `Naive` and `DatafrogOpt`; raises
  `polonius.compute.AlgorithmMismatchError` if their loan errors differ,
  otherwise returns the `Naive` results.
- `Hybrid`: runs `LocationInsensitive` first and runs `DatafrogOpt` only
  when potential errors were found.

`compare_errors(naive_errors, opt_errors)` compares two error maps keyed by
point, logs each difference and returns `True` when they differ.

## Debugging data

Passing `dump_enabled=True` records intermediate relations on the `Output`:
live origins and variables, subsets, loans contained by origins, live loans,
path and variable initialization state and known placeholder contents. The
`origins_live_at`, `subsets_at` and `origins_containing_loans_at` queries
need this data and raise `polonius.output.DumpDisabledError` without it.

The building blocks can also be used on their own:
`polonius.compute.compute_known_contains` and
`compute_known_placeholder_subset`, `polonius.initialization`,
`polonius.liveness`, and the variants in `polonius.naive`,
`polonius.datafrog_opt` and `polonius.location_insensitive`, each taking a
`polonius.context.Context`.

## What it does not do

The package is a library only. It has no command-line tool, and it does not
read or write fact files: facts are built in Python on an `AllFacts` object
and results are read from the returned `Output`.