"""
Seeded randomness for reproducible stand projections.

Every stochastic decision in a projection (vigor, mortality draws, DBH
tie-breaking) is a pure function of a tree id and an epoch (the simulated
year). There is no module-level RNG state, so repeated or interleaved
projections always produce identical results.

All arithmetic is 32-bit unsigned, which keeps the sequences stable across
platforms.
"""
import math
from functools import cmp_to_key
from typing import Callable, List, Sequence, TypeVar

__all__ = [
    'hash_string',
    'seeded_random',
    'mix_seed',
    'tiebreak_value',
    'vigor_multiplier',
    'sort_by_dbh_with_tiebreaker',
    'MORTALITY_YEAR_STRIDE',
    'TIEBREAK_EPOCH_STRIDE',
    'DBH_TIE_TOLERANCE',
]

T = TypeVar('T')

_MASK32 = 0xFFFFFFFF

# Seed stride per simulated year for mortality draws
MORTALITY_YEAR_STRIDE = 31

# Seed stride per epoch for DBH tie-breaking
TIEBREAK_EPOCH_STRIDE = 7919

# DBH differences at or below this (inches) count as ties
DBH_TIE_TOLERANCE = 0.01

VIGOR_SD = 0.12
VIGOR_MIN = 0.65
VIGOR_MAX = 1.35


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


def hash_string(value: object) -> int:
    """djb2 hash of a string, as an unsigned 32-bit integer.

    Characters are hashed as UTF-16 code units so ids outside the Basic
    Multilingual Plane hash the same way on every platform.
    """
    data = str(value).encode('utf-16-le')
    h = 5381
    for i in range(0, len(data), 2):
        code_unit = data[i] | (data[i + 1] << 8)
        h = (h * 33 + code_unit) & _MASK32
    return h


def seeded_random(seed: int) -> float:
    """Mulberry32 mix of an integer seed into a uniform value in [0, 1)."""
    t = (int(seed) + 0x6D2B79F5) & _MASK32
    t = _imul(t ^ (t >> 15), t | 1)
    t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
    return ((t ^ (t >> 14)) & _MASK32) / 4294967296.0


def mix_seed(tree_id: object, epoch: int, stride: int) -> int:
    """Combine a tree id and an epoch into a single seed."""
    return hash_string(tree_id) + epoch * stride


def tiebreak_value(tree_id: object, epoch: int) -> float:
    """Year-varying random key used to order trees of equal DBH."""
    return seeded_random(mix_seed(tree_id, epoch, TIEBREAK_EPOCH_STRIDE))


def vigor_multiplier(tree_id: object) -> float:
    """Persistent per-tree growth multiplier.

    A Box-Muller normal deviate from two seeded uniforms of the tree id,
    scaled to a 12% standard deviation around 1.0 and clamped to
    [0.65, 1.35]. Produces the within-cohort diameter spread seen in real
    even-aged stands.
    """
    seed = hash_string(tree_id)
    u1 = max(1e-10, seeded_random(seed))
    u2 = seeded_random(seed + 1)
    normal = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
    return max(VIGOR_MIN, min(VIGOR_MAX, 1.0 + normal * VIGOR_SD))


def sort_by_dbh_with_tiebreaker(trees: Sequence[T], epoch: int, ascending: bool = True,
                                dbh_of: Callable[[T], float] = lambda t: t.dbh,
                                id_of: Callable[[T], object] = lambda t: t.tree_id) -> List[T]:
    """Sort trees by DBH, breaking near-ties with a year-varying seeded key.

    Mixing the epoch into the tie-break means successive thinnings of an
    equal-DBH cohort pick spatially independent subsets instead of walking
    the same fixed ranking.

    Args:
        trees: Trees to sort (not modified)
        epoch: Simulated year
        ascending: Smallest first when True
        dbh_of: Accessor for a tree's DBH
        id_of: Accessor for a tree's id

    Returns:
        New sorted list
    """
    sign = 1 if ascending else -1

    def compare(a: T, b: T) -> int:
        diff = dbh_of(a) - dbh_of(b)
        if abs(diff) > DBH_TIE_TOLERANCE:
            return sign if diff > 0 else -sign
        ka = tiebreak_value(id_of(a), epoch)
        kb = tiebreak_value(id_of(b), epoch)
        if ka == kb:
            return 0
        return sign if ka > kb else -sign

    return sorted(trees, key=cmp_to_key(compare))
