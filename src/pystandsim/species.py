"""
Species data for stand projections.

The engine never owns a species database. Hosts supply one through the
narrow ``SpeciesLookup`` capability (a single ``get_species(id)`` method);
plain mappings are adapted with ``MappingSpeciesLookup``.

Usage:
    from pystandsim.species import SpeciesRecord, MappingSpeciesLookup

    lookup = MappingSpeciesLookup({
        'loblolly-pine': SpeciesRecord(
            id='loblolly-pine', name='Loblolly Pine',
            species_group='pine-hard', max_dbh=40,
            typical_dbh_increment=0.60, mortality_rate=0.006,
        ),
    })
    lookup.get_species('loblolly-pine')
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable

from .exceptions import InvalidParameterError

__all__ = [
    'DEFAULT_GROUP',
    'SpeciesGrowthProfile',
    'SpeciesRecord',
    'PlantedTree',
    'SpeciesLookup',
    'MappingSpeciesLookup',
    'as_species_lookup',
    'GENUS_TO_GROUP',
    'group_for_genus',
    'group_for_scientific_name',
]

DEFAULT_GROUP = 'default'


@dataclass(frozen=True)
class SpeciesGrowthProfile:
    """Allometric coefficients for one species group.

    Attributes:
        group_code: Species group (e.g. 'oak', 'pine-hard')
        height: Chapman-Richards (b1, b2, b3)
        crown: Linear crown width (a, b)
        biomass: Jenkins log-linear (b0, b1)
        volume: Board-foot power model (b1, b2, b3); all zero for groups without sawlogs
        leaf_area: Power model (a, b)
        max_increment: Peak annual DBH increment (in/yr)
        root_shoot_ratio: Below-ground to above-ground biomass ratio
        max_sdi: Maximum stand density index
    """
    group_code: str
    height: Tuple[float, float, float]
    crown: Tuple[float, float]
    biomass: Tuple[float, float]
    volume: Tuple[float, float, float]
    leaf_area: Tuple[float, float]
    max_increment: float
    root_shoot_ratio: float
    max_sdi: float

    @classmethod
    def from_dict(cls, group_code: str, data: Mapping[str, Any]) -> 'SpeciesGrowthProfile':
        """Build a profile from a species_groups.yaml entry."""
        h, cw, bio, vol, la = (data['height'], data['crown'], data['biomass'],
                               data['volume'], data['leaf_area'])
        return cls(
            group_code=group_code,
            height=(float(h['b1']), float(h['b2']), float(h['b3'])),
            crown=(float(cw['a']), float(cw['b'])),
            biomass=(float(bio['b0']), float(bio['b1'])),
            volume=(float(vol['b1']), float(vol['b2']), float(vol['b3'])),
            leaf_area=(float(la['a']), float(la['b'])),
            max_increment=float(data['max_increment']),
            root_shoot_ratio=float(data['root_shoot_ratio']),
            max_sdi=float(data['max_sdi']),
        )


# Alternate key spellings accepted by SpeciesRecord.from_mapping
_RECORD_KEYS = {
    'id': ('id', 'species_id', 'speciesId'),
    'name': ('name',),
    'species_group': ('species_group', 'speciesGroup', 'group'),
    'max_dbh': ('max_dbh', 'maxDbhInches', 'max_dbh_inches'),
    'typical_dbh_increment': ('typical_dbh_increment', 'typicalDbhIncrement'),
    'mortality_rate': ('mortality_rate', 'mortalityRate'),
    'leaf_area_index': ('leaf_area_index', 'leafAreaIndex'),
    'wood_density': ('wood_density', 'woodDensityLbsPerCuFt', 'wood_density_lbs_per_cuft'),
}


@dataclass(frozen=True)
class SpeciesRecord:
    """Host-supplied growth parameters for one species.

    Missing values resolve to documented defaults when a tree is initialized:
    max DBH 30 in, the group's peak increment, 1% background mortality.
    """
    id: str
    name: Optional[str] = None
    species_group: str = DEFAULT_GROUP
    max_dbh: Optional[float] = None
    typical_dbh_increment: Optional[float] = None
    mortality_rate: Optional[float] = None
    leaf_area_index: Optional[float] = None
    wood_density: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], species_id: Optional[str] = None) -> 'SpeciesRecord':
        """Build a record from a mapping using snake_case or camelCase keys."""
        values: Dict[str, Any] = {}
        for attr, keys in _RECORD_KEYS.items():
            for key in keys:
                if data.get(key) is not None:
                    values[attr] = data[key]
                    break
        values.setdefault('id', species_id)
        if values['id'] is None:
            raise InvalidParameterError('species', dict(data), "record has no id")
        values.setdefault('species_group', DEFAULT_GROUP)
        return cls(**values)


@dataclass(frozen=True)
class PlantedTree:
    """A tree position supplied by the host. ``tree_id`` may be omitted."""
    species_id: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    tree_id: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'PlantedTree':
        species_id = data.get('species_id', data.get('speciesId'))
        if species_id is None and isinstance(data.get('species'), Mapping):
            species_id = data['species'].get('id')
        tree_id = data.get('id', data.get('tree_id'))
        return cls(
            species_id=species_id,
            lat=data.get('lat'),
            lng=data.get('lng'),
            tree_id=str(tree_id) if tree_id not in (None, '') else None,
        )


@runtime_checkable
class SpeciesLookup(Protocol):
    """Capability to resolve a species id to its growth parameters."""

    def get_species(self, species_id: str) -> Optional[SpeciesRecord]:
        ...


@dataclass
class MappingSpeciesLookup:
    """Adapts a plain mapping of id -> SpeciesRecord (or dict) to SpeciesLookup."""
    records: Mapping[str, Union[SpeciesRecord, Mapping[str, Any]]] = field(default_factory=dict)

    def get_species(self, species_id: str) -> Optional[SpeciesRecord]:
        record = self.records.get(species_id)
        if record is None or isinstance(record, SpeciesRecord):
            return record
        return SpeciesRecord.from_mapping(record, species_id=species_id)


def as_species_lookup(species: Union[SpeciesLookup, Mapping[str, Any]]) -> SpeciesLookup:
    """Return ``species`` as a SpeciesLookup, adapting mappings.

    Raises:
        InvalidParameterError: If ``species`` is neither a lookup nor a mapping
    """
    if isinstance(species, SpeciesLookup):
        return species
    if isinstance(species, Mapping):
        return MappingSpeciesLookup(species)
    raise InvalidParameterError('species_lookup', type(species).__name__,
                                "expected a SpeciesLookup or a mapping")


# Genus -> species group
GENUS_TO_GROUP: Dict[str, str] = {
    # Oaks and chestnut
    'quercus': 'oak', 'castanea': 'oak',
    # Maples and similar broad-crowned hardwoods
    'acer': 'maple', 'tilia': 'maple', 'ginkgo': 'maple', 'aesculus': 'maple',
    'ulmus': 'elm', 'celtis': 'elm', 'zelkova': 'elm',
    'betula': 'birch',
    'fraxinus': 'ash',
    'fagus': 'beech',
    'platanus': 'sycamore',
    # Fast-growing, light-wooded hardwoods
    'liriodendron': 'poplar', 'populus': 'poplar', 'salix': 'poplar',
    'robinia': 'poplar', 'gleditsia': 'poplar', 'catalpa': 'poplar',
    'ailanthus': 'poplar', 'paulownia': 'poplar', 'albizia': 'poplar',
    'triadica': 'poplar', 'gymnocladus': 'poplar', 'alnus': 'poplar',
    'juglans': 'walnut',
    'carya': 'hickory',
    'liquidambar': 'sweetgum', 'nyssa': 'sweetgum',
    # Conifers
    'pinus': 'pine-hard',
    'picea': 'spruce',
    'abies': 'fir', 'pseudotsuga': 'fir', 'tsuga': 'fir', 'larix': 'fir',
    'cedrus': 'cedar', 'thuja': 'cedar', 'juniperus': 'cedar', 'calocedrus': 'cedar',
    'taxodium': 'cypress', 'metasequoia': 'cypress',
    'sequoia': 'redwood', 'sequoiadendron': 'redwood',
    'roystonea': 'palm', 'sabal': 'palm', 'phoenix': 'palm', 'washingtonia': 'palm',
    # Understory and ornamental
    'cornus': 'small-deciduous', 'cercis': 'small-deciduous',
    'lagerstroemia': 'small-deciduous', 'magnolia': 'small-deciduous',
    'chilopsis': 'small-deciduous', 'sassafras': 'small-deciduous',
    'maclura': 'small-deciduous', 'arbutus': 'small-deciduous',
    'elaeagnus': 'small-deciduous',
    'malus': 'fruit', 'prunus': 'fruit', 'pyrus': 'fruit',
    'diospyros': 'fruit', 'asimina': 'fruit',
}


def group_for_genus(genus: str) -> str:
    """Species group for a genus name, or DEFAULT_GROUP if unmapped."""
    return GENUS_TO_GROUP.get((genus or '').strip().lower(), DEFAULT_GROUP)


def group_for_scientific_name(scientific_name: str) -> str:
    """Species group from a binomial such as 'Quercus alba'."""
    parts = (scientific_name or '').split()
    return group_for_genus(parts[0]) if parts else DEFAULT_GROUP
