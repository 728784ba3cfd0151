"""Small numeric helpers shared by the analyzers and the exporter."""

import math
import statistics
from typing import Iterable, List, Optional, Sequence


def round_half_away(value: float) -> int:
    """
    Round to the nearest integer, ties away from zero.

    Python's built-in ``round`` uses banker's rounding (``round(2.5) == 2``);
    every user-visible number here must round 2.5 to 3 and -2.5 to -3.

    Args:
        value: Value to round

    Returns:
        Rounded integer
    """
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def median(values: Sequence[float]) -> Optional[float]:
    """Median of the values (mean of the middle pair for even counts), None if empty."""
    if not values:
        return None
    return statistics.median(values)


def mean(values: Sequence[float]) -> Optional[float]:
    """Arithmetic mean, None if empty."""
    if not values:
        return None
    return statistics.fmean(values)


def coefficient_of_variation(values: Sequence[float]) -> float:
    """
    Population coefficient of variation (std / mean).

    Returns 0 when fewer than two values are given or the mean is not positive.
    """
    if len(values) < 2:
        return 0.0
    avg = statistics.fmean(values)
    if avg <= 0:
        return 0.0
    return statistics.pstdev(values) / avg


def split_paces(splits: Iterable) -> List[float]:
    """Seconds per km of each split with positive distance (elapsed time based)."""
    paces = []
    for split in splits:
        km = split.distance / 1000
        if km > 0:
            paces.append(split.elapsed_time / km)
    return paces
