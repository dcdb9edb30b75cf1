"""
Regional corrections for stand projections.

Jenkins et al. (2003) national biomass equations overestimate the
component-ratio (CRM) biomass that FIA reports by 10-22% depending on
region and wood type. Projections pick a region from tree coordinates and
scale above-ground biomass by a per-region softwood/hardwood multiplier.

Region codes follow the FVS variant boundaries:
    pn - Pacific Northwest       ca - California
    ci - Central Idaho / Inland  cr - Central Rockies
    sn - Southern                ne - Northeast / Lake States
"""
from typing import Any, Dict, FrozenSet, Optional, Tuple

from .config_loader import load_coefficient_file
from .exceptions import FileNotFoundError as StandSimFileNotFoundError

__all__ = [
    'REGIONS',
    'DEFAULT_COORDINATES',
    'DEFAULT_BIOMASS_CORRECTION',
    'SOFTWOOD_GROUPS',
    'detect_region',
    'is_softwood',
    'biomass_region_correction',
    'has_region_correction',
]

REGIONS = ('sn', 'ne', 'pn', 'cr', 'ci', 'ca')

# Used when a stand's reference tree has no coordinates (central US)
DEFAULT_COORDINATES: Tuple[float, float] = (38.0, -97.0)

# Used when biomass_corrections.json is missing or omits these keys
DEFAULT_BIOMASS_CORRECTION = 0.85

SOFTWOOD_GROUPS: FrozenSet[str] = frozenset({
    'pine-hard', 'pine-soft', 'spruce', 'fir', 'cedar', 'cypress', 'redwood',
})

_FALLBACK_CORRECTIONS: Dict[str, Dict[str, float]] = {
    'sn': {'softwood': 0.87, 'hardwood': 0.90},
    'ne': {'softwood': 0.85, 'hardwood': 0.90},
    'pn': {'softwood': 0.78, 'hardwood': 0.85},
    'cr': {'softwood': 0.82, 'hardwood': 0.87},
    'ci': {'softwood': 0.82, 'hardwood': 0.87},
    'ca': {'softwood': 0.80, 'hardwood': 0.85},
}


def detect_region(lat: Optional[float], lng: Optional[float]) -> str:
    """Infer a region code from coordinates.

    Missing coordinates fall back to DEFAULT_COORDINATES.

    Args:
        lat: Latitude in decimal degrees
        lng: Longitude in decimal degrees

    Returns:
        Region code
    """
    if lat is None or lng is None:
        lat, lng = DEFAULT_COORDINATES

    # West coast
    if lng < -120 and lat >= 42:
        return 'pn'
    if lng < -119 and 34 <= lat < 42:
        return 'ca'
    if lng < -120 and lat < 34:
        return 'ca'
    # Interior west
    if lng <= -115:
        return 'ci' if lat >= 42 else 'ca'
    if lng < -104:
        return 'cr'
    # East
    if lat < 37 and lng >= -100:
        return 'sn'
    if lng < -100:
        return 'cr'
    return 'ne'


def _correction_data() -> Dict[str, Any]:
    try:
        return load_coefficient_file('biomass_corrections.json')
    except StandSimFileNotFoundError:
        return {}


def is_softwood(group_code: str) -> bool:
    """True for groups listed under ``softwood_groups`` in the correction file."""
    groups = _correction_data().get('softwood_groups')
    return group_code in (SOFTWOOD_GROUPS if groups is None else groups)


def _correction_table() -> Dict[str, Any]:
    return _correction_data().get('regions', _FALLBACK_CORRECTIONS)


def has_region_correction(region: str) -> bool:
    """True when a calibrated correction exists for ``region``."""
    return region in _correction_table()


def biomass_region_correction(group_code: str, region: str) -> float:
    """Multiplier converting Jenkins biomass to a CRM-equivalent estimate.

    Args:
        group_code: Species group
        region: Region code from detect_region()

    Returns:
        Multiplier below 1.0; the file's ``default_correction`` (or
        DEFAULT_BIOMASS_CORRECTION) for unknown regions
    """
    entry = _correction_table().get(region)
    if entry is None:
        return float(_correction_data().get('default_correction', DEFAULT_BIOMASS_CORRECTION))
    return float(entry['softwood' if is_softwood(group_code) else 'hardwood'])
