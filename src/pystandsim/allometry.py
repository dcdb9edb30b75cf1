"""
Allometric equations for pystandsim.

Pure, species-group-parameterized size relationships:
- Height from DBH (Chapman-Richards)
- Crown width from DBH (linear)
- Above-ground biomass (Jenkins et al. 2003) and below-ground biomass (root:shoot)
- Scribner board-foot volume, Honer (1983) pulpwood cords, total cubic feet
- Leaf area
- Annual DBH increment (peaked growth curve)

Units are inches and feet for dimensions and pounds for biomass.
"""
import math
from typing import Dict, Any

from .model_base import ParameterizedModel
from .species import DEFAULT_GROUP, SpeciesGrowthProfile

__all__ = [
    'AllometricModel',
    'get_allometric_model',
    'clear_model_cache',
    'annual_dbh_increment',
    'BREAST_HEIGHT_FT',
    'MIN_SAWLOG_DBH',
    'FULL_SAWLOG_DBH',
]

KG_TO_LB = 2.20462
CM_PER_INCH = 2.54

BREAST_HEIGHT_FT = 4.5
MIN_CROWN_WIDTH_FT = 2.0

# Board-foot volume ramps from zero at MIN_SAWLOG_DBH to the full
# equation at FULL_SAWLOG_DBH
MIN_SAWLOG_DBH = 8.0
FULL_SAWLOG_DBH = 12.0

# Peak of (r + 0.01)^0.3 * (1 - r)^2.5 on [0, 1]
_GROWTH_SHAPE_PEAK = 0.385
SMALL_TREE_DBH = 3.0
SMALL_TREE_FLOOR = 0.4


class AllometricModel(ParameterizedModel):
    """Size relationships for one species group.

    Coefficients come from ``cfg/species_groups.yaml``; an unknown group
    resolves to the 'default' group and sets ``used_fallback``.

    Attributes:
        profile: SpeciesGrowthProfile for the resolved group
    """

    COEFFICIENT_FILE = 'species_groups.yaml'
    COEFFICIENT_KEY = 'groups'
    FALLBACK_PARAMETERS: Dict[str, Dict[str, Any]] = {
        DEFAULT_GROUP: {
            'height': {'b1': 70, 'b2': 0.038, 'b3': 1.1},
            'crown': {'a': 5.0, 'b': 0.90},
            'biomass': {'b0': -2.0773, 'b1': 2.3323},
            'volume': {'b1': 0.005, 'b2': 1.88, 'b3': 1.10},
            'leaf_area': {'a': 1.5, 'b': 1.48},
            'max_increment': 0.32,
            'root_shoot_ratio': 0.24,
            'max_sdi': 400,
        },
    }

    def __init__(self, group_code: str = DEFAULT_GROUP):
        super().__init__(group_code)
        self.profile = SpeciesGrowthProfile.from_dict(self.resolved_group, self.coefficients)

    @property
    def max_sdi(self) -> float:
        return self.profile.max_sdi

    @property
    def max_increment(self) -> float:
        return self.profile.max_increment

    def height(self, dbh: float) -> float:
        """Total height (ft) from DBH (in); 4.5 ft at or below zero DBH."""
        if dbh <= 0:
            return BREAST_HEIGHT_FT
        b1, b2, b3 = self.profile.height
        return b1 * (1.0 - math.exp(-b2 * dbh)) ** b3

    def crown_width(self, dbh: float) -> float:
        """Crown width (ft), never below 2 ft."""
        a, b = self.profile.crown
        return max(MIN_CROWN_WIDTH_FT, a + b * dbh)

    def above_ground_biomass(self, dbh: float, correction: float = 1.0) -> float:
        """Above-ground dry biomass (lb).

        Jenkins: AGB(kg) = exp(b0 + b1 * ln(DBH_cm)).

        Args:
            dbh: DBH in inches
            correction: Regional multiplier (see regions.biomass_region_correction)
        """
        if dbh <= 0:
            return 0.0
        b0, b1 = self.profile.biomass
        kg = math.exp(b0 + b1 * math.log(dbh * CM_PER_INCH))
        return kg * KG_TO_LB * correction

    def below_ground_biomass(self, agb: float) -> float:
        return agb * self.profile.root_shoot_ratio

    def volume_bf(self, dbh: float, height: float) -> float:
        """Scribner board-foot volume.

        Zero below 8 in. Between 8 and 12 in the equation value is scaled
        linearly from 0 to 1, approximating the share of an 8-12 in cohort
        that actually carries a sawlog. Groups with a zero volume
        coefficient (palms) never produce volume.
        """
        b1, b2, b3 = self.profile.volume
        if dbh < MIN_SAWLOG_DBH or b1 == 0:
            return 0.0
        full = max(0.0, b1 * dbh ** b2 * height ** b3)
        if dbh < FULL_SAWLOG_DBH:
            return full * (dbh - MIN_SAWLOG_DBH) / (FULL_SAWLOG_DBH - MIN_SAWLOG_DBH)
        return full

    @staticmethod
    def pulpwood_cords(dbh: float, height: float) -> float:
        """Honer (1983) cord volume for 5-10 in stems; 0 outside that range."""
        if dbh < 5 or dbh >= 10:
            return 0.0
        return 0.0042 * dbh ** 1.9 * height ** 0.85

    @staticmethod
    def total_cubic_ft(dbh: float, height: float) -> float:
        """Approximate total stem cubic feet for stems of 5 in and up."""
        if dbh < 5:
            return 0.0
        return 0.003 * dbh * dbh * height

    def leaf_area(self, dbh: float) -> float:
        if dbh <= 0:
            return 0.0
        a, b = self.profile.leaf_area
        return a * dbh ** b


def annual_dbh_increment(dbh: float, max_dbh: float, max_increment: float,
                         site_multiplier: float = 1.0,
                         competition_modifier: float = 1.0) -> float:
    """Potential annual DBH growth (in/yr).

    The shape ``(r + 0.01)^0.3 * (1 - r)^2.5`` with ``r = dbh / max_dbh``
    rises quickly, peaks near a tenth of maximum size, then declines to zero.
    It is normalized by its peak so ``max_increment`` is the open-grown
    maximum. Trees under 3 in get at least 40% of the maximum so seedlings
    establish.

    Args:
        dbh: Current DBH (in)
        max_dbh: Species maximum DBH (in)
        max_increment: Peak annual increment (in/yr)
        site_multiplier: Site productivity multiplier
        competition_modifier: Density reduction factor in (0, 1]

    Returns:
        Increment in inches; 0 at or above max_dbh
    """
    if max_dbh <= 0 or dbh >= max_dbh:
        return 0.0
    ratio = max(0.0, dbh / max_dbh)
    shape = (ratio + 0.01) ** 0.3 * (1.0 - ratio) ** 2.5
    base = max_increment * shape / _GROWTH_SHAPE_PEAK
    floor = max_increment * SMALL_TREE_FLOOR if dbh < SMALL_TREE_DBH else 0.0
    return max(floor, base) * site_multiplier * competition_modifier


_model_cache: Dict[str, AllometricModel] = {}


def get_allometric_model(group_code: str = DEFAULT_GROUP) -> AllometricModel:
    """Return a cached AllometricModel for a group.

    Models are immutable once built, so one instance per group is shared.
    """
    model = _model_cache.get(group_code)
    if model is None:
        model = AllometricModel(group_code)
        _model_cache[group_code] = model
    return model


def clear_model_cache() -> None:
    _model_cache.clear()
