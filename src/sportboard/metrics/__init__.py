"""Numeric helpers."""

from .stats import (
    coefficient_of_variation,
    mean,
    median,
    round_half_away,
    split_paces,
)

__all__ = [
    "coefficient_of_variation",
    "mean",
    "median",
    "round_half_away",
    "split_paces",
]
