"""
Stand projection engine for pystandsim.

StandSimulator steps a planted stand forward one year at a time:

1. Stand density (TPA, QMD, SDI, relative density) from standing trees
2. Competition modifier from relative density
3. Scheduled prescription actions (harvests)
4. Seeded mortality draws for each remaining tree
5. Crown ratio update from canopy rank, then DBH growth scaled by vigor

Every stochastic decision is a pure function of (tree id, year), so a
projection is fully reproducible and ``project_stand(..., year=Y)`` equals
the year-Y point of ``project_stand_time_series``.
"""
import math
from collections.abc import Mapping as MappingABC
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union

import numpy as np

from .allometry import AllometricModel, annual_dbh_increment, get_allometric_model
from .crown_ratio import INITIAL_CROWN_RATIO, canopy_ranks, update_crown_ratio
from .exceptions import InvalidParameterError, validate_positive
from .harvest import (
    HarvestAction,
    HarvestEvent,
    HarvestTreeDetail,
    Prescription,
    select_trees_for_harvest,
)
from .logging_config import get_logger, log_fallback, log_growth_summary, log_harvest_event
from .mortality import MortalityEvent, MortalityModel
from .regions import (
    DEFAULT_BIOMASS_CORRECTION,
    biomass_region_correction,
    detect_region,
    has_region_correction,
)
from .seeding import vigor_multiplier
from .species import DEFAULT_GROUP, PlantedTree, SpeciesLookup, SpeciesRecord, as_species_lookup
from .stand_metrics import DEFAULT_MAX_SDI, StandSnapshot, competition_modifier, stocking_label
from .tree_utils import quadratic_mean_diameter, round_to, stand_basal_area, stand_density_index

__all__ = [
    'TreeState',
    'TreeResult',
    'FallbackReport',
    'ProjectionResult',
    'TimeSeriesPoint',
    'StandSimulator',
    'project_stand',
    'project_stand_time_series',
    'time_series_dataframe',
    'carbon_over_time',
    'estimate_area_acres',
    'site_index_from_soil',
    'site_index_to_multiplier',
]

logger = get_logger(__name__)

# Planting state
INITIAL_DBH = 1.0

# Species record defaults
DEFAULT_MAX_DBH = 30.0
DEFAULT_MORTALITY_RATE = 0.01
UNKNOWN_SPECIES_NAME = 'Unknown'

CARBON_FRACTION = 0.5
CO2_PER_CARBON = 3.67
LBS_TO_KG = 0.453592

SQ_M_PER_ACRE = 4046.86
METERS_PER_DEG_LAT = 111320.0
AREA_EDGE_BUFFER_M = 10.0
MIN_AREA_ACRES = 0.05
SINGLE_TREE_AREA_ACRES = 0.25


TreeInput = Union[PlantedTree, Mapping[str, Any]]


@dataclass
class TreeState:
    """Mutable per-tree state during a projection."""
    tree_id: str
    species_id: Optional[str]
    species_name: str
    lat: Optional[float]
    lng: Optional[float]
    group_code: str
    model: AllometricModel
    max_dbh: float
    max_increment: float
    background_mortality: float
    vigor: float
    biomass_correction: float
    dbh: float = INITIAL_DBH
    crown_ratio: float = INITIAL_CROWN_RATIO
    alive: bool = True
    harvested: bool = False
    died_year: Optional[int] = None
    harvested_year: Optional[int] = None

    @property
    def standing(self) -> bool:
        return self.alive and not self.harvested


@dataclass(frozen=True)
class TreeResult:
    """Per-tree metrics at the projection year (unrounded)."""
    tree_id: str
    species_id: Optional[str]
    species_name: str
    lat: Optional[float]
    lng: Optional[float]
    group_code: str
    dbh: float
    height: float
    crown_width: float
    crown_ratio: float
    ag_biomass_lbs: float
    bg_biomass_lbs: float
    total_carbon_lbs: float
    co2_stored_lbs: float
    volume_bf: float
    leaf_area: float
    alive: bool
    harvested: bool
    harvested_year: Optional[int]
    died_year: Optional[int]

    @property
    def standing(self) -> bool:
        return self.alive and not self.harvested

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ('dbh', 'height', 'crown_width'):
            data[key] = round_to(data[key], 1)
        data['crown_ratio'] = round_to(data['crown_ratio'], 2)
        for key in ('ag_biomass_lbs', 'bg_biomass_lbs', 'total_carbon_lbs',
                    'co2_stored_lbs', 'volume_bf', 'leaf_area'):
            data[key] = int(round_to(data[key]))
        return data


@dataclass
class FallbackReport:
    """Documented defaults that stood in for missing reference data."""
    missing_species: List[str] = field(default_factory=list)
    default_profile_groups: List[str] = field(default_factory=list)
    default_region_correction: bool = False

    @property
    def any(self) -> bool:
        return bool(self.missing_species or self.default_profile_groups
                    or self.default_region_correction)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ProjectionResult:
    """Stand state at a projection year."""
    year: int
    trees: List[TreeResult]
    stand: StandSnapshot
    mortality_events: List[MortalityEvent]
    harvest_events: List[HarvestEvent]
    region: Optional[str]
    fallbacks: FallbackReport = field(default_factory=FallbackReport)

    def standing_trees(self) -> List[TreeResult]:
        return [t for t in self.trees if t.standing]

    def to_dict(self, include_trees: bool = True) -> Dict[str, Any]:
        """Rounded, JSON-ready view of the result."""
        data = {
            'year': self.year,
            'region': self.region,
            'stand': self.stand.to_dict(),
            'mortality_events': [e.to_dict() for e in self.mortality_events],
            'harvest_events': [e.to_dict() for e in self.harvest_events],
            'fallbacks': self.fallbacks.to_dict(),
        }
        if include_trees:
            data['trees'] = [t.to_dict() for t in self.trees]
        return data

    def trees_dataframe(self):
        """Get the per-tree results as a pandas DataFrame.

        Returns:
            pandas DataFrame with one rounded row per tree

        Raises:
            ImportError: If pandas is not available
        """
        try:
            import pandas as pd
        except ImportError:
            raise ImportError("pandas is required for DataFrame output. "
                              "Install with: pip install pandas")

        rows = [t.to_dict() for t in self.trees]
        if not rows:
            return pd.DataFrame(columns=list(TreeResult.__dataclass_fields__))
        return pd.DataFrame(rows)


# Each point of a time series is the full projection result at that year
TimeSeriesPoint = ProjectionResult


# =============================================================================
# Site and area helpers
# =============================================================================

def site_index_to_multiplier(numeric_si: float) -> float:
    """Convert a numeric site index (base 70) to a growth multiplier.

    Each 10 points of site index moves the multiplier by 0.15.
    """
    return 1.0 + (numeric_si - 70.0) * 0.015


def site_index_from_soil(soil_texture: Optional[str]) -> float:
    """Growth multiplier (0.7-1.2) from a soil texture description."""
    if not soil_texture:
        return 1.0
    t = soil_texture.lower()
    if 'loam' in t and 'sandy' not in t and 'clay' not in t:
        return 1.2
    if 'silt loam' in t or 'silty' in t:
        return 1.15
    if 'sandy loam' in t:
        return 1.05
    if 'loam' in t:
        return 1.1
    if 'clay' in t:
        return 0.85
    if 'sand' in t:
        return 0.80
    if 'rocky' in t or 'gravel' in t:
        return 0.70
    if 'muck' in t or 'peat' in t:
        return 0.90
    return 1.0


def estimate_area_acres(trees: Sequence[PlantedTree]) -> float:
    """Estimate planting area from the bounding box of tree positions.

    The box is padded by 10 m on every side for canopy edge. Trees without
    coordinates are ignored.

    Returns:
        Area in acres, at least 0.05; 0.25 for a single tree
    """
    located = [t for t in trees if t.lat is not None and t.lng is not None]
    if len(trees) <= 1 or not located:
        return SINGLE_TREE_AREA_ACRES

    lats = [t.lat for t in located]
    lngs = [t.lng for t in located]
    center_lat = (min(lats) + max(lats)) / 2.0
    meters_per_deg_lng = METERS_PER_DEG_LAT * math.cos(math.radians(center_lat))

    buffer_deg = AREA_EDGE_BUFFER_M / METERS_PER_DEG_LAT
    width_m = (max(lngs) - min(lngs) + buffer_deg * 2) * meters_per_deg_lng
    height_m = (max(lats) - min(lats) + buffer_deg * 2) * METERS_PER_DEG_LAT

    return max(MIN_AREA_ACRES, width_m * height_m / SQ_M_PER_ACRE)


def _normalize_trees(trees: Any) -> List[PlantedTree]:
    if isinstance(trees, (str, bytes, MappingABC)) or not isinstance(trees, Sequence):
        raise InvalidParameterError('trees', type(trees).__name__,
                                    "expected a sequence of trees")
    planted = []
    for idx, tree in enumerate(trees):
        if isinstance(tree, MappingABC):
            tree = PlantedTree.from_mapping(tree)
        elif not isinstance(tree, PlantedTree):
            raise InvalidParameterError(f'trees[{idx}]', type(tree).__name__,
                                        "expected a PlantedTree or a mapping")
        planted.append(tree)
    return planted


def _as_prescription(prescription: Any) -> Optional[Prescription]:
    if prescription is None or isinstance(prescription, Prescription):
        return prescription
    if isinstance(prescription, MappingABC):
        return Prescription.from_dict(prescription)
    raise InvalidParameterError('prescription', type(prescription).__name__,
                                "expected a Prescription or a mapping")


# =============================================================================
# Simulator
# =============================================================================

class StandSimulator:
    """Annual time-stepping engine for one planted stand.

    The simulator owns all per-tree state of one projection. Construct it,
    advance with ``run_to(year)`` (or ``step()``), and read results with
    ``result()``. Years only move forward.

    Attributes:
        year: Current simulated year (0 = planting)
        area_acres: Stand area used for per-acre metrics
        region: Region code from the first tree's coordinates
        rel_density: Relative density at the start of the last simulated year
    """

    def __init__(self, trees: Sequence[TreeInput],
                 species_lookup: Union[SpeciesLookup, Mapping[str, Any]],
                 site_index: float = 1.0,
                 area_acres: Optional[float] = None,
                 prescription: Optional[Union[Prescription, Mapping[str, Any]]] = None):
        """Initialize planted trees at year 0.

        Args:
            trees: PlantedTree objects or mappings with id, species_id, lat, lng
            species_lookup: SpeciesLookup or a mapping of species id to record
            site_index: Site productivity multiplier (about 0.7-1.3)
            area_acres: Stand area; estimated from tree positions when None
            prescription: Optional Prescription (or mapping) of harvest actions

        Raises:
            InvalidParameterError: On structurally invalid input
        """
        planted = _normalize_trees(trees)
        self.lookup = as_species_lookup(species_lookup)
        self.site_index = float(site_index)
        if area_acres is None:
            self.area_acres = estimate_area_acres(planted)
        else:
            self.area_acres = float(validate_positive(area_acres, 'area_acres'))
        self.prescription = _as_prescription(prescription)
        self._actions_by_year: Dict[int, List[HarvestAction]] = (
            self.prescription.actions_by_year() if self.prescription else {}
        )

        self.year = 0
        self.rel_density = 0.0
        self.mortality_events: List[MortalityEvent] = []
        self.harvest_events: List[HarvestEvent] = []
        self.fallbacks = FallbackReport()

        ref = planted[0] if planted else None
        self.region = detect_region(ref.lat, ref.lng) if ref else None
        if self.region is not None and not has_region_correction(self.region):
            self.fallbacks.default_region_correction = True
            log_fallback(logger, 'biomass correction', self.region, DEFAULT_BIOMASS_CORRECTION)

        self.mortality = MortalityModel(len(planted), self.area_acres)
        self.states = self._initialize_states(planted)

    def _initialize_states(self, planted: List[PlantedTree]) -> List[TreeState]:
        states = []
        seen = set()
        for idx, tree in enumerate(planted):
            tree_id = tree.tree_id or f"tree-{idx}"
            if tree_id in seen:
                raise InvalidParameterError('tree_id', tree_id, "tree ids must be unique")
            seen.add(tree_id)
            states.append(self._initial_state(tree, tree_id))
        return states

    def _resolve_species(self, species_id: Optional[str]) -> SpeciesRecord:
        record = self.lookup.get_species(species_id) if species_id is not None else None
        if record is None:
            key = str(species_id)
            if key not in self.fallbacks.missing_species:
                self.fallbacks.missing_species.append(key)
                log_fallback(logger, 'species record', species_id, DEFAULT_GROUP)
            return SpeciesRecord(id=key)
        return record

    def _initial_state(self, tree: PlantedTree, tree_id: str) -> TreeState:
        record = self._resolve_species(tree.species_id)
        group = record.species_group or DEFAULT_GROUP
        model = get_allometric_model(group)
        if model.used_fallback and group not in self.fallbacks.default_profile_groups:
            self.fallbacks.default_profile_groups.append(group)
            log_fallback(logger, 'species group profile', group, model.resolved_group)

        max_increment = record.typical_dbh_increment
        if max_increment is None:
            max_increment = model.max_increment
        mortality_rate = record.mortality_rate
        if mortality_rate is None:
            mortality_rate = DEFAULT_MORTALITY_RATE

        return TreeState(
            tree_id=tree_id,
            species_id=tree.species_id,
            species_name=record.name or UNKNOWN_SPECIES_NAME,
            lat=tree.lat,
            lng=tree.lng,
            group_code=model.resolved_group,
            model=model,
            max_dbh=float(record.max_dbh or DEFAULT_MAX_DBH),
            max_increment=float(max_increment),
            background_mortality=float(mortality_rate),
            vigor=vigor_multiplier(tree_id),
            biomass_correction=biomass_region_correction(model.resolved_group, self.region),
        )

    def standing(self) -> List[TreeState]:
        """Alive, unharvested trees in planting order."""
        return [t for t in self.states if t.standing]

    def run_to(self, year: int) -> 'StandSimulator':
        """Advance the simulation to ``year``.

        Stops changing state early once every tree is dead or harvested;
        the simulator still reports ``year``.

        Raises:
            InvalidParameterError: If year is negative or earlier than the current year
        """
        if year < 0:
            raise InvalidParameterError('year', year, "must be non-negative")
        if year < self.year:
            raise InvalidParameterError('year', year,
                                        f"simulator is already at year {self.year}")
        for y in range(self.year + 1, year + 1):
            if not self._simulate_year(y):
                break
        self.year = year
        return self

    def step(self) -> bool:
        """Advance one year. Returns False once no trees are standing."""
        advanced = self._simulate_year(self.year + 1)
        self.year += 1
        return advanced

    def _simulate_year(self, y: int) -> bool:
        """Grow the stand through year ``y``.

        Density and the competition modifier are taken before the year's
        harvests. Canopy ranks for the crown-ratio update are taken after
        them, among the survivors only, so in thinning years crown ratios
        differ from a model that ranks the pre-harvest stand.
        """
        standing = self.standing()
        if not standing:
            return False

        area = max(0.01, self.area_acres)
        tpa = len(standing) / area
        qmd = quadratic_mean_diameter(t.dbh for t in standing)
        sdi = stand_density_index(tpa, qmd)
        avg_max_sdi = float(np.mean([t.model.max_sdi for t in standing]))
        rel_density = sdi / avg_max_sdi
        comp_mod = competition_modifier(rel_density)
        self.rel_density = rel_density

        for action in self._actions_by_year.get(y, []):
            self._execute_action(action, y)

        survivors = self.standing()
        ranks = canopy_ranks(survivors, y)
        deaths = 0
        for ts in survivors:
            if self.mortality.dies(ts.tree_id, y, ts.background_mortality,
                                   rel_density, ts.crown_ratio):
                ts.alive = False
                ts.died_year = y
                self.mortality_events.append(MortalityEvent(ts.tree_id, y, ts.species_name))
                deaths += 1
                continue

            ts.crown_ratio = update_crown_ratio(ts.crown_ratio, ranks.get(ts.tree_id, 0.5),
                                                rel_density)
            increment = annual_dbh_increment(ts.dbh, ts.max_dbh, ts.max_increment,
                                             self.site_index, comp_mod) * ts.vigor
            ts.dbh = min(ts.max_dbh, ts.dbh + increment)

        log_growth_summary(logger, y, len(survivors) - deaths, deaths, rel_density)
        return True

    def _execute_action(self, action: HarvestAction, y: int) -> None:
        removed = select_trees_for_harvest(action, self.standing(), y)
        if not removed:
            return

        volume = 0.0
        biomass = 0.0
        details = []
        for ts in removed:
            ts.harvested = True
            ts.alive = False
            ts.harvested_year = y

            height = ts.model.height(ts.dbh)
            vol = ts.model.volume_bf(ts.dbh, height)
            agb = ts.model.above_ground_biomass(ts.dbh, ts.biomass_correction)
            if ts.dbh >= action.min_merch_dbh:
                volume += vol
            biomass += agb
            details.append(HarvestTreeDetail(
                tree_id=ts.tree_id,
                dbh=round_to(ts.dbh, 1),
                height=round_to(height, 1),
                ag_biomass_lbs=round_to(agb),
                volume_bf=round_to(vol),
                group_code=ts.group_code,
            ))

        event = HarvestEvent(
            year=y,
            action_type=action.action_type.value,
            label=action.display_label,
            trees_removed=len(removed),
            volume_bf=volume,
            biomass_lbs=biomass,
            carbon_released_lbs=biomass * CARBON_FRACTION,
            tree_details=details,
        )
        self.harvest_events.append(event)
        log_harvest_event(logger, y, event.action_type, event.trees_removed, volume)

    def _tree_result(self, ts: TreeState) -> TreeResult:
        model = ts.model
        height = model.height(ts.dbh)
        agb = model.above_ground_biomass(ts.dbh, ts.biomass_correction)
        bgb = model.below_ground_biomass(agb)
        carbon = (agb + bgb) * CARBON_FRACTION
        return TreeResult(
            tree_id=ts.tree_id,
            species_id=ts.species_id,
            species_name=ts.species_name,
            lat=ts.lat,
            lng=ts.lng,
            group_code=ts.group_code,
            dbh=ts.dbh,
            height=height,
            crown_width=model.crown_width(ts.dbh),
            crown_ratio=ts.crown_ratio,
            ag_biomass_lbs=agb,
            bg_biomass_lbs=bgb,
            total_carbon_lbs=carbon,
            co2_stored_lbs=carbon * CO2_PER_CARBON,
            volume_bf=model.volume_bf(ts.dbh, height),
            leaf_area=model.leaf_area(ts.dbh),
            alive=ts.alive,
            harvested=ts.harvested,
            harvested_year=ts.harvested_year,
            died_year=ts.died_year,
        )

    def snapshot(self, tree_results: Optional[List[TreeResult]] = None) -> StandSnapshot:
        """Stand summary over the current standing trees."""
        if not self.states:
            return StandSnapshot.empty()
        if tree_results is None:
            tree_results = [self._tree_result(ts) for ts in self.states]

        standing = [t for t in tree_results if t.standing]
        area = max(0.01, self.area_acres)
        dbhs = [t.dbh for t in standing]
        tpa = len(standing) / area
        qmd = quadratic_mean_diameter(dbhs)
        sdi = stand_density_index(tpa, qmd)
        max_sdis = [ts.model.max_sdi for ts in self.states if ts.standing]
        max_sdi = float(np.mean(max_sdis)) if max_sdis else DEFAULT_MAX_SDI
        rel_density = sdi / max_sdi

        harvested_biomass = sum(e.biomass_lbs for e in self.harvest_events)
        return StandSnapshot(
            trees_per_acre=tpa,
            basal_area_sqft=stand_basal_area(dbhs) / area,
            sdi=sdi,
            max_sdi=max_sdi,
            rel_density=rel_density,
            qmd=qmd,
            total_volume_bf=sum(t.volume_bf for t in standing),
            total_biomass_lbs=sum(t.ag_biomass_lbs + t.bg_biomass_lbs for t in standing),
            total_carbon_lbs=sum(t.total_carbon_lbs for t in standing),
            total_co2_lbs=sum(t.co2_stored_lbs for t in standing),
            alive_trees=len(standing),
            dead_trees=sum(1 for t in tree_results if not t.alive and not t.harvested),
            harvested_trees=sum(e.trees_removed for e in self.harvest_events),
            total_trees=len(tree_results),
            area_acres=self.area_acres,
            stocking_level=stocking_label(rel_density),
            context_score=self.mortality.context_score,
            context_label=self.mortality.context_label,
            harvested_volume_bf=sum(e.volume_bf for e in self.harvest_events),
            harvested_biomass_lbs=harvested_biomass,
            harvested_carbon_lbs=harvested_biomass * CARBON_FRACTION,
        )

    def result(self) -> ProjectionResult:
        """Projection result at the current year."""
        if not self.states:
            return ProjectionResult(
                year=self.year, trees=[], stand=StandSnapshot.empty(),
                mortality_events=[], harvest_events=[], region=None,
                fallbacks=FallbackReport(),
            )
        tree_results = [self._tree_result(ts) for ts in self.states]
        return ProjectionResult(
            year=self.year,
            trees=tree_results,
            stand=self.snapshot(tree_results),
            mortality_events=list(self.mortality_events),
            harvest_events=list(self.harvest_events),
            region=self.region,
            fallbacks=FallbackReport(
                missing_species=list(self.fallbacks.missing_species),
                default_profile_groups=list(self.fallbacks.default_profile_groups),
                default_region_correction=self.fallbacks.default_region_correction,
            ),
        )

    def __repr__(self) -> str:
        return (f"StandSimulator(year={self.year}, trees={len(self.states)}, "
                f"area_acres={self.area_acres:.2f}, region={self.region!r})")


# =============================================================================
# Module-level API
# =============================================================================

def project_stand(trees: Sequence[TreeInput],
                  species_lookup: Union[SpeciesLookup, Mapping[str, Any]],
                  year: int,
                  site_index: float = 1.0,
                  area_acres: Optional[float] = None,
                  prescription: Optional[Union[Prescription, Mapping[str, Any]]] = None
                  ) -> ProjectionResult:
    """Project a planted stand to ``year``.

    Args:
        trees: PlantedTree objects or mappings with id, species_id, lat, lng
        species_lookup: SpeciesLookup or mapping of species id to record
        year: Projection year (0 = planting)
        site_index: Site productivity multiplier
        area_acres: Stand area; estimated from tree positions when None
        prescription: Optional harvest prescription

    Returns:
        ProjectionResult at ``year``. An empty tree list gives the canonical
        empty stand.
    """
    if year < 0:
        raise InvalidParameterError('year', year, "must be non-negative")
    simulator = StandSimulator(trees, species_lookup, site_index, area_acres, prescription)
    return simulator.run_to(year).result()


def project_stand_time_series(trees: Sequence[TreeInput],
                              species_lookup: Union[SpeciesLookup, Mapping[str, Any]],
                              max_year: int,
                              site_index: float = 1.0,
                              area_acres: Optional[float] = None,
                              prescription: Optional[Union[Prescription, Mapping[str, Any]]] = None,
                              step_years: int = 5) -> Iterator[TimeSeriesPoint]:
    """Yield projection results at years 0, step, 2*step, ... up to max_year.

    One simulation runs sequentially underneath, so the whole series costs
    the same as a single projection to ``max_year``. The generator is
    finite and not restartable.
    """
    if max_year < 0:
        raise InvalidParameterError('max_year', max_year, "must be non-negative")
    validate_positive(step_years, 'step_years')
    simulator = StandSimulator(trees, species_lookup, site_index, area_acres, prescription)
    for year in range(0, max_year + 1, step_years):
        yield simulator.run_to(year).result()


def time_series_dataframe(points):
    """Stand snapshots of a time series as a pandas DataFrame, one row per year.

    Raises:
        ImportError: If pandas is not available
    """
    try:
        import pandas as pd
    except ImportError:
        raise ImportError("pandas is required for DataFrame output. "
                          "Install with: pip install pandas")

    rows = [{'year': p.year, **p.stand.to_dict()} for p in points]
    return pd.DataFrame(rows)


def carbon_over_time(trees: Sequence[TreeInput],
                     species_lookup: Union[SpeciesLookup, Mapping[str, Any]],
                     site_index: float = 1.0,
                     area_acres: Optional[float] = None,
                     prescription: Optional[Union[Prescription, Mapping[str, Any]]] = None,
                     decades: Sequence[int] = (10, 20, 30, 40, 50, 60, 70, 80)
                     ) -> List[Dict[str, Any]]:
    """Stored CO2 by decade, in kilograms.

    Returns:
        One entry per decade with ``year``, ``cumulative_kg`` (CO2 stored in
        standing trees) and ``annual_kg`` (mean yearly change over the
        preceding decade)
    """
    simulator = StandSimulator(trees, species_lookup, site_index, area_acres, prescription)
    series = []
    previous_lbs = 0.0
    for year in sorted(decades):
        co2_lbs = simulator.run_to(year).snapshot().total_co2_lbs
        series.append({
            'year': year,
            'annual_kg': int(round_to((co2_lbs - previous_lbs) / 10.0 * LBS_TO_KG)),
            'cumulative_kg': int(round_to(co2_lbs * LBS_TO_KG)),
        })
        previous_lbs = co2_lbs
    return series
