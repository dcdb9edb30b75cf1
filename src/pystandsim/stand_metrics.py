"""
Stand-level density metrics for pystandsim.

Provides:
- Competition modifier: diameter growth reduction from relative density
- Stocking labels from relative density
- StandSnapshot: immutable stand summary at a projection year
"""
from dataclasses import asdict, dataclass
from typing import Any, Dict

from .mortality import context_label, infer_forestry_context
from .tree_utils import round_to

__all__ = [
    'DEFAULT_MAX_SDI',
    'competition_modifier',
    'stocking_label',
    'StandSnapshot',
]

# Max SDI reported for a stand with no standing trees
DEFAULT_MAX_SDI = 400.0


def competition_modifier(rel_density: float) -> float:
    """Diameter growth multiplier from stand relative density.

    Calibrated to even-aged diameter growth trajectories: free growth below
    0.20, a steep decline as the canopy closes, and a floor of 0.05 in
    severely overstocked stands.

    Args:
        rel_density: SDI / max SDI

    Returns:
        Multiplier in [0.05, 1.0]
    """
    if rel_density < 0.20:
        return 1.0
    if rel_density < 0.50:
        return 1.0 - 0.65 * ((rel_density - 0.20) / 0.30)
    if rel_density < 0.80:
        return 0.35 - 0.23 * ((rel_density - 0.50) / 0.30)
    return max(0.05, 0.12 - 0.07 * ((rel_density - 0.80) / 0.20))


def stocking_label(rel_density: float) -> str:
    if rel_density < 0.25:
        return 'understocked'
    if rel_density < 0.35:
        return 'low'
    if rel_density < 0.55:
        return 'fully-stocked'
    if rel_density < 0.80:
        return 'overstocked'
    return 'self-thinning'


@dataclass(frozen=True)
class StandSnapshot:
    """Stand summary over standing (alive, unharvested) trees.

    Values are unrounded; ``to_dict()`` applies presentation rounding.
    Per-acre values use the projection's stand area.
    """
    trees_per_acre: float
    basal_area_sqft: float
    sdi: float
    max_sdi: float
    rel_density: float
    qmd: float
    total_volume_bf: float
    total_biomass_lbs: float
    total_carbon_lbs: float
    total_co2_lbs: float
    alive_trees: int
    dead_trees: int
    harvested_trees: int
    total_trees: int
    area_acres: float
    stocking_level: str
    context_score: float
    context_label: str
    harvested_volume_bf: float = 0.0
    harvested_biomass_lbs: float = 0.0
    harvested_carbon_lbs: float = 0.0

    @classmethod
    def empty(cls) -> 'StandSnapshot':
        """Canonical snapshot for a stand with no trees."""
        score = infer_forestry_context(0, 1.0)
        return cls(
            trees_per_acre=0.0, basal_area_sqft=0.0, sdi=0.0,
            max_sdi=DEFAULT_MAX_SDI, rel_density=0.0, qmd=0.0,
            total_volume_bf=0.0, total_biomass_lbs=0.0,
            total_carbon_lbs=0.0, total_co2_lbs=0.0,
            alive_trees=0, dead_trees=0, harvested_trees=0, total_trees=0,
            area_acres=1.0, stocking_level='understocked',
            context_score=score, context_label=context_label(score),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Rounded, JSON-ready view of the snapshot."""
        data = asdict(self)
        for key in ('trees_per_acre', 'basal_area_sqft', 'qmd'):
            data[key] = round_to(data[key], 1)
        for key in ('rel_density', 'context_score'):
            data[key] = round_to(data[key], 2)
        for key in ('sdi', 'max_sdi', 'total_volume_bf', 'total_biomass_lbs',
                    'total_carbon_lbs', 'total_co2_lbs', 'harvested_volume_bf',
                    'harvested_biomass_lbs', 'harvested_carbon_lbs'):
            data[key] = int(round_to(data[key]))
        return data
