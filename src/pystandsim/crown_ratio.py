"""
Crown ratio dynamics for pystandsim.

Each year a tree's crown ratio moves according to its DBH rank in the
stand: dominant trees slowly build crown, intermediate trees hold steady
and suppressed trees lose crown in proportion to stand density. In open
stands every tree recovers crown.
"""
from typing import Dict, Sequence, TypeVar

from .seeding import sort_by_dbh_with_tiebreaker

__all__ = [
    'MIN_CROWN_RATIO',
    'MAX_CROWN_RATIO',
    'INITIAL_CROWN_RATIO',
    'update_crown_ratio',
    'crown_ratio_change',
    'canopy_ranks',
]

T = TypeVar('T')

MIN_CROWN_RATIO = 0.05
MAX_CROWN_RATIO = 0.95

# Crown ratio of a newly planted seedling
INITIAL_CROWN_RATIO = 0.60

DOMINANT_RANK = 0.7
SUPPRESSED_RANK = 0.3

# Below this relative density every tree gains crown
OPEN_STAND_DENSITY = 0.35
OPEN_STAND_MIN_GAIN = 0.005


def crown_ratio_change(rank: float, rel_density: float) -> float:
    """Annual crown ratio change for a tree at canopy ``rank``.

    Args:
        rank: Relative canopy position, 0 = smallest tree, 1 = largest
        rel_density: Stand relative density

    Returns:
        Signed change in crown ratio
    """
    if rank > DOMINANT_RANK:
        change = 0.005 + 0.005 * (rank - DOMINANT_RANK) / (1.0 - DOMINANT_RANK)
    elif rank > SUPPRESSED_RANK:
        change = -0.005 * rel_density
    else:
        change = -0.01 - 0.02 * rel_density * (1.0 - rank)

    if rel_density < OPEN_STAND_DENSITY:
        change = max(change, OPEN_STAND_MIN_GAIN)
    return change


def update_crown_ratio(crown_ratio: float, rank: float, rel_density: float) -> float:
    """Apply one year of crown change, clamped to [0.05, 0.95]."""
    new_cr = crown_ratio + crown_ratio_change(rank, rel_density)
    return max(MIN_CROWN_RATIO, min(MAX_CROWN_RATIO, new_cr))


def canopy_ranks(trees: Sequence[T], year: int) -> Dict[str, float]:
    """Map tree id to canopy rank in [0, 1].

    Trees are ordered by ascending DBH; equal diameters are ordered by a
    year-varying seeded key so no tree in an even-aged cohort stays
    permanently at the bottom.
    """
    ordered = sort_by_dbh_with_tiebreaker(trees, year, ascending=True)
    denom = max(1, len(ordered) - 1)
    return {t.tree_id: i / denom for i, t in enumerate(ordered)}
