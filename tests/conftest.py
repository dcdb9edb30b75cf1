"""
Shared pytest fixtures for pystandsim tests.

Provides species lookups and planted-tree layouts used across the test
modules.
"""
import math

import pytest

from pystandsim.allometry import clear_model_cache
from pystandsim.config_loader import get_config_loader
from pystandsim.species import MappingSpeciesLookup, PlantedTree, SpeciesRecord


# Feet-to-degrees conversion used for synthetic grids
FT_TO_DEG = 1.0 / 364000.0


def make_grid(n, species_id='loblolly', lat=33.0, lng=-85.0, area_acres=1.0, prefix='t'):
    """Square planting grid of ``n`` trees spread over ``area_acres``."""
    cols = math.ceil(math.sqrt(n))
    spacing_ft = math.sqrt(43560.0 * area_acres / n) if n else 0.0
    trees = []
    for i in range(n):
        row, col = divmod(i, cols)
        trees.append(PlantedTree(
            species_id=species_id,
            lat=lat + row * spacing_ft * FT_TO_DEG,
            lng=lng + col * spacing_ft * FT_TO_DEG,
            tree_id=f"{prefix}-{i}",
        ))
    return trees


# =============================================================================
# Cache Isolation
# =============================================================================

@pytest.fixture(autouse=True)
def _fresh_caches():
    """Each test starts from freshly loaded configuration."""
    get_config_loader().clear_coefficient_cache()
    clear_model_cache()
    yield


# =============================================================================
# Species Fixtures
# =============================================================================

@pytest.fixture
def loblolly():
    """Loblolly pine record with the calibrated benchmark parameters."""
    return SpeciesRecord(
        id='loblolly',
        name='Loblolly Pine',
        species_group='pine-hard',
        max_dbh=40,
        typical_dbh_increment=0.60,
        mortality_rate=0.006,
        leaf_area_index=3.5,
        wood_density=32,
    )


@pytest.fixture
def red_oak():
    return SpeciesRecord(
        id='red-oak',
        name='Northern Red Oak',
        species_group='oak',
        max_dbh=48,
        typical_dbh_increment=0.42,
        mortality_rate=0.005,
    )


@pytest.fixture
def species_lookup(loblolly, red_oak):
    """Lookup holding loblolly pine and northern red oak."""
    return MappingSpeciesLookup({'loblolly': loblolly, 'red-oak': red_oak})


# =============================================================================
# Planting Fixtures
# =============================================================================

@pytest.fixture
def plantation_300():
    """300 loblolly pines on one acre in the Southern region."""
    return make_grid(300)


@pytest.fixture
def small_plantation():
    """40 loblolly pines on a tenth of an acre."""
    return make_grid(40, area_acres=0.1)


@pytest.fixture
def mixed_planting():
    """Alternating pine and oak, 60 trees."""
    trees = make_grid(60)
    return [
        PlantedTree(
            species_id='red-oak' if i % 2 else 'loblolly',
            lat=t.lat, lng=t.lng, tree_id=t.tree_id,
        )
        for i, t in enumerate(trees)
    ]
