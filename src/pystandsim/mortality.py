"""
Mortality model for pystandsim.

Annual survival of each tree combines:
- A species background rate
- A density-dependent addend that blends an urban curve (managed,
  irrigated plantings with little self-thinning) and a natural-forest
  self-thinning curve by a forestry context score
- A crown-ratio multiplier: suppressed, short-crowned trees die first
  (Wykoff 1986)

Death is decided by a seeded uniform draw keyed on tree id and year, so
projections are reproducible.
"""
from dataclasses import dataclass

from .seeding import MORTALITY_YEAR_STRIDE, mix_seed, seeded_random

__all__ = [
    'MortalityEvent',
    'MortalityModel',
    'infer_forestry_context',
    'context_label',
    'natural_density_mortality',
    'urban_density_mortality',
    'crown_ratio_multiplier',
    'mortality_probability',
    'check_mortality',
    'mortality_draw',
]


@dataclass(frozen=True)
class MortalityEvent:
    """A tree death recorded during a projection."""
    tree_id: str
    year: int
    species_name: str

    def to_dict(self) -> dict:
        return {'tree_id': self.tree_id, 'year': self.year, 'species_name': self.species_name}


def infer_forestry_context(tree_count: int, area_acres: float) -> float:
    """Score a planting from 0 (fully urban) to 1 (fully natural forest).

    Signals, strongest first: trees per acre (urban plantings run 15-80 TPA,
    plantations 200-600), planting area (under about 0.3 ac skews urban)
    and tree count (fewer than 20 trees is almost always residential).

    Args:
        tree_count: Number of planted trees
        area_acres: Planting area in acres

    Returns:
        Context score clamped to [0, 1]
    """
    score = 0.5
    tpa = tree_count / max(0.01, area_acres)

    if tpa < 40:
        score -= 0.3
    elif tpa < 100:
        score -= 0.15
    elif tpa > 300:
        score += 0.2
    elif tpa > 150:
        score += 0.1

    if area_acres < 0.15:
        score -= 0.15
    elif area_acres < 0.5:
        score -= 0.05
    elif area_acres > 5:
        score += 0.1

    if tree_count <= 10:
        score -= 0.15
    elif tree_count <= 30:
        score -= 0.05
    elif tree_count > 200:
        score += 0.1

    return max(0.0, min(1.0, score))


def context_label(score: float) -> str:
    if score < 0.3:
        return 'urban'
    if score < 0.6:
        return 'suburban'
    return 'natural forest'


def natural_density_mortality(rel_density: float) -> float:
    """Self-thinning addend for natural stands."""
    add = 0.0
    if rel_density > 0.25:
        add += 0.035 * ((rel_density - 0.25) / 0.75) ** 1.5
    if rel_density > 0.55:
        add += 0.07 * ((rel_density - 0.55) / 0.45) ** 2.0
    return add


def urban_density_mortality(rel_density: float) -> float:
    """Density addend for managed urban plantings."""
    add = 0.0
    if rel_density > 0.75:
        add += 0.004 * ((rel_density - 0.75) / 0.25)
    if rel_density > 0.95:
        add += 0.01 * ((rel_density - 0.95) / 0.05)
    return add


def crown_ratio_multiplier(crown_ratio: float) -> float:
    """Mortality multiplier by crown ratio: vigorous 0.7x up to suppressed 4x."""
    if crown_ratio > 0.5:
        return 0.7
    if crown_ratio > 0.3:
        return 1.0
    if crown_ratio > 0.2:
        return 2.0
    return 4.0


def mortality_probability(background_rate: float, rel_density: float,
                          context_score: float = 0.5, crown_ratio: float = 0.5) -> float:
    """Annual probability of death for one tree."""
    urban = urban_density_mortality(rel_density)
    natural = natural_density_mortality(rel_density)
    prob = background_rate + urban + (natural - urban) * context_score
    return prob * crown_ratio_multiplier(crown_ratio)


def check_mortality(background_rate: float, rel_density: float, draw: float,
                    context_score: float = 0.5, crown_ratio: float = 0.5) -> bool:
    """True if a tree with uniform ``draw`` dies this year."""
    return draw < mortality_probability(background_rate, rel_density,
                                        context_score, crown_ratio)


def mortality_draw(tree_id: str, year: int) -> float:
    """Seeded uniform draw for a tree's mortality check in ``year``."""
    return seeded_random(mix_seed(tree_id, year, MORTALITY_YEAR_STRIDE))


class MortalityModel:
    """Stand-bound mortality model.

    Holds the forestry context of one projection, computed once from the
    planted tree count and stand area.

    Attributes:
        context_score: Urban (0) to natural forest (1) blend weight
    """

    def __init__(self, tree_count: int, area_acres: float):
        self.context_score = infer_forestry_context(tree_count, area_acres)

    @property
    def context_label(self) -> str:
        return context_label(self.context_score)

    def dies(self, tree_id: str, year: int, background_rate: float,
             rel_density: float, crown_ratio: float) -> bool:
        """Decide whether a tree dies in ``year``.

        Args:
            tree_id: Tree id (seeds the draw)
            year: Simulated year
            background_rate: Species background mortality rate
            rel_density: Stand relative density at the start of the year
            crown_ratio: Tree crown ratio

        Returns:
            True if the tree dies
        """
        return check_mortality(background_rate, rel_density,
                               mortality_draw(tree_id, year),
                               self.context_score, crown_ratio)

    def __repr__(self) -> str:
        return f"MortalityModel(context_score={self.context_score:.2f})"
