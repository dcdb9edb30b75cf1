"""
pystandsim: deterministic planted-stand growth simulation for Python

Projects individual planted trees forward in annual steps with
density-dependent diameter growth, crown dynamics and seeded mortality,
applies timed silvicultural prescriptions, values harvests at stumpage
prices and scores itself against published yield tables.

Quick Start:
    >>> from pystandsim import PlantedTree, SpeciesRecord, project_stand
    >>> species = {'pita': SpeciesRecord(id='pita', name='Loblolly pine',
    ...                                  species_group='pine-hard')}
    >>> trees = [PlantedTree('pita', 33.0, -85.0 + i * 1e-4, f't{i}') for i in range(50)]
    >>> result = project_stand(trees, species, year=25, area_acres=0.25)
    >>> print(result.stand.to_dict())
"""

# =============================================================================
# Package Metadata
# =============================================================================
__version__ = "0.1.0"
__author__ = "pystandsim Development Team"

# =============================================================================
# Core Projection API
# =============================================================================
from .stand import (
    StandSimulator,
    ProjectionResult,
    TimeSeriesPoint,
    TreeResult,
    FallbackReport,
    project_stand,
    project_stand_time_series,
    time_series_dataframe,
    carbon_over_time,
    estimate_area_acres,
    site_index_from_soil,
    site_index_to_multiplier,
)
from .stand_metrics import StandSnapshot, competition_modifier, stocking_label

# =============================================================================
# Species and Trees
# =============================================================================
from .species import (
    PlantedTree,
    SpeciesRecord,
    SpeciesLookup,
    MappingSpeciesLookup,
    SpeciesGrowthProfile,
    group_for_genus,
    group_for_scientific_name,
)

# =============================================================================
# Growth Models
# =============================================================================
from .allometry import AllometricModel, annual_dbh_increment, get_allometric_model
from .crown_ratio import update_crown_ratio, canopy_ranks
from .mortality import MortalityEvent, MortalityModel, infer_forestry_context

# =============================================================================
# Regions
# =============================================================================
from .regions import detect_region, biomass_region_correction

# =============================================================================
# Harvest and Prescriptions
# =============================================================================
from .harvest import (
    ActionType,
    HarvestAction,
    HarvestEvent,
    Prescription,
    select_trees_for_harvest,
    load_prescriptions,
    get_prescription,
    get_prescriptions_by_category,
)

# =============================================================================
# Finance
# =============================================================================
from .finance import (
    ManagementCosts,
    InvestmentSummary,
    CashFlow,
    analyze_investment,
    enrich_harvest_event,
    classify_product,
    calculate_npv,
    calculate_lev,
    calculate_irr,
)

# =============================================================================
# Validation
# =============================================================================
from .validation import (
    Benchmark,
    BenchmarkResult,
    load_benchmarks,
    run_validation,
    overall_accuracy_score,
    accuracy_grade,
    deviation_band,
)

# =============================================================================
# Configuration and Logging
# =============================================================================
from .config_loader import ConfigLoader, get_config_loader
from .logging_config import get_logger, setup_logging

# =============================================================================
# Exceptions
# =============================================================================
from .exceptions import (
    StandSimError,
    ConfigurationError,
    ParameterError,
    InvalidParameterError,
    DataError,
    InvalidDataError,
)

# =============================================================================
# Base Classes (for extension)
# =============================================================================
from .model_base import ParameterizedModel

__all__ = [
    # Metadata
    '__version__',
    # Core projection
    'StandSimulator',
    'ProjectionResult',
    'TimeSeriesPoint',
    'TreeResult',
    'FallbackReport',
    'StandSnapshot',
    'project_stand',
    'project_stand_time_series',
    'time_series_dataframe',
    'carbon_over_time',
    'estimate_area_acres',
    'site_index_from_soil',
    'site_index_to_multiplier',
    'competition_modifier',
    'stocking_label',
    # Species
    'PlantedTree',
    'SpeciesRecord',
    'SpeciesLookup',
    'MappingSpeciesLookup',
    'SpeciesGrowthProfile',
    'group_for_genus',
    'group_for_scientific_name',
    # Growth models
    'AllometricModel',
    'annual_dbh_increment',
    'get_allometric_model',
    'update_crown_ratio',
    'canopy_ranks',
    'MortalityEvent',
    'MortalityModel',
    'infer_forestry_context',
    # Regions
    'detect_region',
    'biomass_region_correction',
    # Harvest
    'ActionType',
    'HarvestAction',
    'HarvestEvent',
    'Prescription',
    'select_trees_for_harvest',
    'load_prescriptions',
    'get_prescription',
    'get_prescriptions_by_category',
    # Finance
    'ManagementCosts',
    'InvestmentSummary',
    'CashFlow',
    'analyze_investment',
    'enrich_harvest_event',
    'classify_product',
    'calculate_npv',
    'calculate_lev',
    'calculate_irr',
    # Validation
    'Benchmark',
    'BenchmarkResult',
    'load_benchmarks',
    'run_validation',
    'overall_accuracy_score',
    'accuracy_grade',
    'deviation_band',
    # Configuration and logging
    'ConfigLoader',
    'get_config_loader',
    'get_logger',
    'setup_logging',
    # Exceptions
    'StandSimError',
    'ConfigurationError',
    'ParameterError',
    'InvalidParameterError',
    'DataError',
    'InvalidDataError',
    # Base classes
    'ParameterizedModel',
]
