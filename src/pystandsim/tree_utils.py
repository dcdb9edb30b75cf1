"""
Tree and stand utility functions for pystandsim.

Provides common calculations used across multiple modules to avoid duplication
and ensure consistency.
"""
import math
from typing import Iterable

import numpy as np

__all__ = [
    'BASAL_AREA_FACTOR',
    'SDI_EXPONENT',
    'basal_area',
    'stand_basal_area',
    'quadratic_mean_diameter',
    'stand_density_index',
    'round_half_up',
    'round_to',
]


# Basal area constant: pi / 576 (converts DBH in inches to BA in square feet)
# Formula: BA = pi * (DBH/2)^2 / 144 = pi * DBH^2 / 576
BASAL_AREA_FACTOR = math.pi / 576.0

# Reineke's self-thinning slope
SDI_EXPONENT = 1.605


def basal_area(dbh: float) -> float:
    """Calculate basal area for a single tree.

    Args:
        dbh: Diameter at breast height in inches

    Returns:
        Basal area in square feet
    """
    return BASAL_AREA_FACTOR * dbh * dbh


def stand_basal_area(dbhs: Iterable[float]) -> float:
    """Total basal area (sq ft) for a collection of diameters."""
    arr = np.asarray(list(dbhs), dtype=float)
    if arr.size == 0:
        return 0.0
    return float(BASAL_AREA_FACTOR * np.sum(arr * arr))


def quadratic_mean_diameter(dbhs: Iterable[float]) -> float:
    """Quadratic mean diameter: the DBH of the tree of mean basal area.

    Args:
        dbhs: Diameters in inches

    Returns:
        QMD in inches, 0 for an empty collection
    """
    arr = np.asarray(list(dbhs), dtype=float)
    if arr.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(arr * arr)))


def stand_density_index(tpa: float, qmd: float) -> float:
    """Reineke's stand density index, SDI = TPA * (QMD / 10) ^ 1.605.

    Returns 0 when either input is non-positive.
    """
    if tpa <= 0 or qmd <= 0:
        return 0.0
    return tpa * (qmd / 10.0) ** SDI_EXPONENT


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded toward +infinity.

    Python's round() uses banker's rounding, which would make removal
    counts such as round(10 * 0.25) come out at 2 instead of 3.
    """
    return int(math.floor(value + 0.5))


def round_to(value: float, digits: int = 0) -> float:
    """Half-up rounding to a number of decimal places, for presentation."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor
