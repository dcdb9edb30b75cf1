"""
Benchmark validation for pystandsim.

Builds synthetic one-acre stands matching published yield-table benchmarks
(``cfg/benchmarks.yaml``), projects them without management and compares
modeled basal area, QMD, TPA, board-foot volume and above-ground biomass
to the published values decade by decade.

Deviation is signed: positive means the model overestimates.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence

import numpy as np

from .config_loader import load_coefficient_file
from .logging_config import get_logger
from .regions import DEFAULT_COORDINATES
from .species import MappingSpeciesLookup, PlantedTree, SpeciesRecord
from .stand import ProjectionResult, StandSimulator
from .tree_utils import round_to

__all__ = [
    'METRIC_KEYS',
    'Benchmark',
    'DecadeComparison',
    'BenchmarkResult',
    'Grade',
    'load_benchmarks',
    'generate_synthetic_trees',
    'build_species_lookup',
    'extract_metrics',
    'pct_deviation',
    'run_benchmark',
    'run_validation',
    'overall_accuracy_score',
    'accuracy_grade',
    'deviation_band',
    'results_dataframe',
]

logger = get_logger(__name__)

METRIC_KEYS = ('ba', 'qmd', 'tpa', 'vol_bf', 'biomass_tons')

SQ_FT_PER_ACRE = 43560.0
# Rough feet-to-degrees conversion at mid-latitudes
FT_TO_DEG = 1.0 / 364000.0

VALIDATION_AREA_ACRES = 1.0


@dataclass(frozen=True)
class Benchmark:
    """A published benchmark stand."""
    id: str
    name: str
    region: str
    description: str
    species_id: str
    species_group: str
    species_label: str
    initial_tpa: int
    numeric_si: float
    site_index: float
    decades: tuple

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Benchmark':
        return cls(
            id=data['id'],
            name=data['name'],
            region=str(data['region']).lower(),
            description=data.get('description', ''),
            species_id=data['species_id'],
            species_group=data['species_group'],
            species_label=data.get('species_label', data['species_id']),
            initial_tpa=int(data['initial_tpa']),
            numeric_si=float(data.get('numeric_si', 70)),
            site_index=float(data['site_index']),
            decades=tuple(dict(d) for d in data['decades']),
        )


@dataclass
class DecadeComparison:
    """Published vs modeled metrics at one benchmark year."""
    year: int
    published: Dict[str, float]
    modeled: Dict[str, float]
    deviation: Dict[str, Optional[float]]


@dataclass
class BenchmarkResult:
    """Comparison of one benchmark across its decades."""
    benchmark: Benchmark
    decades: List[DecadeComparison] = field(default_factory=list)
    by_metric: Dict[str, Optional[float]] = field(default_factory=dict)
    overall_mean_deviation: float = 0.0
    overall_score: float = 0.0

    @property
    def grade(self) -> 'Grade':
        return accuracy_grade(self.overall_score)


class Grade(NamedTuple):
    letter: str
    label: str
    color: str


def _benchmark_data() -> Dict[str, Any]:
    return load_coefficient_file('benchmarks.yaml')


def load_benchmarks() -> List[Benchmark]:
    """Bundled benchmarks in file order."""
    return [Benchmark.from_dict(b) for b in _benchmark_data().get('benchmarks', [])]


def generate_synthetic_trees(benchmark: Benchmark) -> List[PlantedTree]:
    """Uniform square grid of ``initial_tpa`` trees on one acre.

    The grid is anchored at the benchmark region's reference coordinates
    so the projection picks up that region's biomass correction.
    """
    n = benchmark.initial_tpa
    coords = _benchmark_data().get('region_coordinates', {})
    base_lat, base_lng = coords.get(benchmark.region, DEFAULT_COORDINATES)
    cols = math.ceil(math.sqrt(n))
    spacing_ft = math.sqrt(SQ_FT_PER_ACRE / n)

    trees = []
    for i in range(n):
        row, col = divmod(i, cols)
        trees.append(PlantedTree(
            species_id=benchmark.species_id,
            lat=base_lat + row * spacing_ft * FT_TO_DEG,
            lng=base_lng + col * spacing_ft * FT_TO_DEG,
            tree_id=f"{benchmark.id}-{i}",
        ))
    return trees


def build_species_lookup(benchmark: Benchmark) -> MappingSpeciesLookup:
    """One-species lookup from group defaults plus per-species overrides."""
    data = _benchmark_data()
    defaults = data.get('species_defaults', {})
    base = defaults.get(benchmark.species_group, defaults.get('fallback', {}))
    overrides = data.get('species_overrides', {}).get(benchmark.species_id, {})
    params = {**base, **overrides}

    record = SpeciesRecord(
        id=benchmark.species_id,
        name=benchmark.species_label,
        species_group=benchmark.species_group,
        max_dbh=params.get('max_dbh', 40),
        typical_dbh_increment=params.get('increment', 0.42),
        mortality_rate=params.get('mortality', 0.008),
        leaf_area_index=params.get('lai', 4.0),
        wood_density=params.get('density', 35),
    )
    return MappingSpeciesLookup({benchmark.species_id: record})


def extract_metrics(result: ProjectionResult, area_acres: float) -> Dict[str, float]:
    """Benchmark-comparable metrics, rounded like the published tables."""
    area = max(0.01, area_acres)
    stand = result.stand
    ag_lbs = sum(t.ag_biomass_lbs for t in result.standing_trees())
    return {
        'ba': round_to(stand.basal_area_sqft, 1),
        'qmd': round_to(stand.qmd, 1),
        'tpa': round_to(stand.trees_per_acre, 1),
        'vol_bf': round_to(stand.total_volume_bf / area),
        'biomass_tons': round_to(ag_lbs / 2000.0 / area, 1),
    }


def pct_deviation(model: float, published: float) -> Optional[float]:
    """Signed percent deviation of model from published.

    Returns 0 when both are zero and None when only the published value is.
    """
    if published == 0 and model == 0:
        return 0.0
    if published == 0:
        return None
    return round_to((model - published) / published * 100.0, 1)


def run_benchmark(benchmark: Benchmark, max_year: Optional[int] = None) -> BenchmarkResult:
    """Project one benchmark stand and score it against the published decades."""
    trees = generate_synthetic_trees(benchmark)
    lookup = build_species_lookup(benchmark)
    simulator = StandSimulator(trees, lookup, benchmark.site_index,
                               VALIDATION_AREA_ACRES, prescription=None)

    result = BenchmarkResult(benchmark=benchmark)
    for published in sorted(benchmark.decades, key=lambda d: d['year']):
        year = int(published['year'])
        if max_year is not None and year > max_year:
            break
        modeled = extract_metrics(simulator.run_to(year).result(), VALIDATION_AREA_ACRES)
        deviation = {k: pct_deviation(modeled[k], published[k]) for k in METRIC_KEYS}
        result.decades.append(DecadeComparison(year, dict(published), modeled, deviation))

    for key in METRIC_KEYS:
        devs = [d.deviation[key] for d in result.decades if d.deviation[key] is not None]
        result.by_metric[key] = round_to(float(np.mean(np.abs(devs))), 1) if devs else None

    metric_means = [v for v in result.by_metric.values() if v is not None]
    mean_dev = float(np.mean(metric_means)) if metric_means else 0.0
    result.overall_mean_deviation = round_to(mean_dev, 1)
    result.overall_score = max(0.0, round_to(100.0 - mean_dev, 1))

    logger.info(f"Benchmark {benchmark.id}: score {result.overall_score:.1f} "
                f"over {len(result.decades)} decades")
    return result


def run_validation(max_year: Optional[int] = None,
                   benchmarks: Optional[Sequence[Benchmark]] = None) -> List[BenchmarkResult]:
    """Run every benchmark, optionally only through ``max_year``."""
    if benchmarks is None:
        benchmarks = load_benchmarks()
    return [run_benchmark(b, max_year) for b in benchmarks]


def overall_accuracy_score(results: Sequence[BenchmarkResult]) -> float:
    """Mean benchmark score, 0 when there are no results."""
    if not results:
        return 0.0
    return round_to(float(np.mean([r.overall_score for r in results])), 1)


def accuracy_grade(score: float) -> Grade:
    if score >= 90:
        return Grade('A', 'Excellent', 'green')
    if score >= 80:
        return Grade('B', 'Good', 'chartreuse3')
    if score >= 70:
        return Grade('C', 'Fair', 'yellow')
    if score >= 60:
        return Grade('D', 'Below Average', 'dark_orange')
    return Grade('F', 'Poor', 'red')


def deviation_band(dev: Optional[float]) -> str:
    """Closeness band of a percent deviation: close, good, fair, poor, bad or n/a."""
    if dev is None:
        return 'n/a'
    magnitude = abs(dev)
    if magnitude <= 10:
        return 'close'
    if magnitude <= 20:
        return 'good'
    if magnitude <= 35:
        return 'fair'
    if magnitude <= 50:
        return 'poor'
    return 'bad'


def results_dataframe(results: Sequence[BenchmarkResult]):
    """Long-form comparison table: one row per benchmark, year and metric.

    Raises:
        ImportError: If pandas is not available
    """
    try:
        import pandas as pd
    except ImportError:
        raise ImportError("pandas is required for DataFrame output. "
                          "Install with: pip install pandas")

    rows = []
    for r in results:
        for d in r.decades:
            for key in METRIC_KEYS:
                rows.append({
                    'benchmark': r.benchmark.id,
                    'year': d.year,
                    'metric': key,
                    'published': d.published[key],
                    'modeled': d.modeled[key],
                    'deviation_pct': d.deviation[key],
                })
    return pd.DataFrame(rows, columns=['benchmark', 'year', 'metric', 'published',
                                       'modeled', 'deviation_pct'])
