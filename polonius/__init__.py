"""Borrow-checking analysis over input facts: loan, subset and move errors."""

__version__ = "0.13.0"

__all__ = [
    "facts",
    "output",
    "context",
    "initialization",
    "liveness",
    "location_insensitive",
    "naive",
    "datafrog_opt",
    "compute",
]