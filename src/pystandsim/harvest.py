"""
Harvest scheduling for pystandsim.

Silvicultural prescriptions are timed lists of harvest actions. Each
action type maps to exactly one tree-selection policy:

    pct, thin-below, sanitation    remove the smallest stems (low thinning)
    thin-above, shelterwood-seed   keep the largest 20%, remove from the next tier
    selection                      remove the largest stems
    clearcut, shelterwood-removal  remove (almost) everything, in seeded random order
    thin-mechanical                remove every n-th tree in planting order

Equal diameters are ordered by a year-varying seeded key, so successive
entries into an even-aged cohort select spatially independent subsets.
"""
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .config_loader import load_coefficient_file
from .exceptions import ConfigurationError, InvalidParameterError, validate_proportion
from .logging_config import get_logger, log_fallback
from .seeding import sort_by_dbh_with_tiebreaker, tiebreak_value
from .tree_utils import round_half_up, round_to

__all__ = [
    'ActionType',
    'COMMERCIAL_ACTION_TYPES',
    'HarvestAction',
    'Prescription',
    'HarvestTreeDetail',
    'HarvestEvent',
    'select_trees_for_harvest',
    'removal_count',
    'load_prescriptions',
    'get_prescription',
    'get_prescriptions_by_category',
    'DEFAULT_PRESCRIPTION_ID',
]

logger = get_logger(__name__)

DEFAULT_PRESCRIPTION_ID = 'no-management'

# Share of the largest stems kept by crown thinning
THIN_ABOVE_RESERVE = 0.20


class ActionType(str, Enum):
    """Harvest action types. Members compare equal to their string value."""

    PCT = 'pct'
    """Pre-commercial thinning; no merchantable volume goal."""

    THIN_BELOW = 'thin-below'
    SANITATION = 'sanitation'
    THIN_ABOVE = 'thin-above'
    SHELTERWOOD_SEED = 'shelterwood-seed'
    SELECTION = 'selection'
    CLEARCUT = 'clearcut'
    SHELTERWOOD_REMOVAL = 'shelterwood-removal'
    THIN_MECHANICAL = 'thin-mechanical'

    @classmethod
    def from_string(cls, value: str) -> 'ActionType':
        """Convert a string to an ActionType.

        Raises:
            InvalidParameterError: If the value names no action type
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidParameterError(
                'action_type', value,
                f"expected one of {', '.join(m.value for m in cls)}"
            ) from None


# Action types whose candidates are limited by min_merch_dbh
COMMERCIAL_ACTION_TYPES = frozenset({
    ActionType.THIN_BELOW,
    ActionType.THIN_ABOVE,
    ActionType.SHELTERWOOD_SEED,
    ActionType.SELECTION,
    ActionType.CLEARCUT,
    ActionType.SHELTERWOOD_REMOVAL,
})


def _first(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


@dataclass(frozen=True)
class HarvestAction:
    """One scheduled entry of a prescription.

    Attributes:
        year: Projection year the action runs in
        action_type: Selection policy
        remove_pct: Fraction of alive trees to remove
        min_merch_dbh: Minimum DBH (in) for commercial candidates and for
            counting harvested volume
        label: Display label
    """
    year: int
    action_type: ActionType
    remove_pct: float
    min_merch_dbh: float = 0.0
    label: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'action_type', ActionType.from_string(self.action_type))
        validate_proportion(self.remove_pct, 'remove_pct')

    @property
    def display_label(self) -> str:
        return self.label or self.action_type.value

    @property
    def is_commercial(self) -> bool:
        return self.action_type in COMMERCIAL_ACTION_TYPES

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'HarvestAction':
        """Build an action from a mapping (snake_case or camelCase keys)."""
        action_type = _first(data, 'action_type', 'type')
        if action_type is None:
            raise InvalidParameterError('action_type', None, "harvest action has no type")
        return cls(
            year=int(data['year']),
            action_type=action_type,
            remove_pct=float(_first(data, 'remove_pct', 'removePct', default=0.0)),
            min_merch_dbh=float(_first(data, 'min_merch_dbh', 'minMerchDbh', default=0.0)),
            label=data.get('label'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'year': self.year,
            'type': self.action_type.value,
            'remove_pct': self.remove_pct,
            'min_merch_dbh': self.min_merch_dbh,
            'label': self.display_label,
        }


@dataclass(frozen=True)
class Prescription:
    """A named management regime."""
    id: str
    name: str
    category: str = 'custom'
    description: str = ''
    actions: Tuple[HarvestAction, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Prescription':
        """Build a prescription from a catalog entry or an inline mapping.

        Inline prescriptions may omit ``id``; they are named 'custom'.
        """
        prescription_id = str(data.get('id', 'custom'))
        actions = tuple(
            a if isinstance(a, HarvestAction) else HarvestAction.from_dict(a)
            for a in data.get('actions') or ()
        )
        return cls(
            id=prescription_id,
            name=str(data.get('name', prescription_id)),
            category=str(data.get('category', 'custom')),
            description=str(data.get('description', '')).strip(),
            actions=actions,
        )

    def actions_by_year(self) -> Dict[int, List[HarvestAction]]:
        """Group actions by year, keeping declaration order within a year."""
        by_year: Dict[int, List[HarvestAction]] = {}
        for action in self.actions:
            by_year.setdefault(action.year, []).append(action)
        return by_year

    @property
    def last_action_year(self) -> int:
        return max((a.year for a in self.actions), default=0)


@dataclass(frozen=True)
class HarvestTreeDetail:
    """Dimensions of one harvested tree, rounded as reported."""
    tree_id: str
    dbh: float
    height: float
    ag_biomass_lbs: float
    volume_bf: float
    group_code: str


@dataclass
class HarvestEvent:
    """An executed harvest action.

    Revenue fields are filled in by ``finance.enrich_harvest_event``.
    """
    year: int
    action_type: str
    label: str
    trees_removed: int
    volume_bf: float
    biomass_lbs: float
    carbon_released_lbs: float
    tree_details: List[HarvestTreeDetail] = field(default_factory=list)
    revenue: Optional[float] = None
    product_breakdown: Optional[Dict[str, float]] = None
    product_counts: Optional[Dict[str, int]] = None

    @property
    def is_enriched(self) -> bool:
        return self.revenue is not None

    def with_revenue(self, revenue: float, breakdown: Dict[str, float],
                     counts: Dict[str, int]) -> 'HarvestEvent':
        return replace(self, revenue=revenue, product_breakdown=breakdown,
                       product_counts=counts)

    def to_dict(self, include_trees: bool = True) -> Dict[str, Any]:
        data = asdict(self)
        data['volume_bf'] = int(round_to(self.volume_bf))
        data['biomass_lbs'] = int(round_to(self.biomass_lbs))
        data['carbon_released_lbs'] = int(round_to(self.carbon_released_lbs))
        if not include_trees:
            data.pop('tree_details')
        if self.revenue is None:
            for key in ('revenue', 'product_breakdown', 'product_counts'):
                data.pop(key)
        return data


# =============================================================================
# Selection policies
# =============================================================================

SelectionPolicy = Callable[[Sequence[Any], HarvestAction, int], List[Any]]


def _smallest_first(trees, action, year):
    return sort_by_dbh_with_tiebreaker(trees, year, ascending=True)


def _largest_first(trees, action, year):
    return sort_by_dbh_with_tiebreaker(trees, year, ascending=False)


def _below_reserve(trees, action, year):
    ordered = sort_by_dbh_with_tiebreaker(trees, year, ascending=False)
    skip_top = max(1, round_half_up(len(trees) * THIN_ABOVE_RESERVE))
    return ordered[skip_top:]


def _random_order(trees, action, year):
    return sorted(trees, key=lambda t: tiebreak_value(t.tree_id, year))


def _every_nth(trees, action, year):
    """Every n-th tree in planting order; later offsets fill any shortfall."""
    n = max(2, round_half_up(1.0 / action.remove_pct)) if action.remove_pct > 0 else 4
    return [trees[i] for offset in range(n) for i in range(offset, len(trees), n)]


_SELECTION_POLICIES: Dict[ActionType, SelectionPolicy] = {
    ActionType.PCT: _smallest_first,
    ActionType.THIN_BELOW: _smallest_first,
    ActionType.SANITATION: _smallest_first,
    ActionType.THIN_ABOVE: _below_reserve,
    ActionType.SHELTERWOOD_SEED: _below_reserve,
    ActionType.SELECTION: _largest_first,
    ActionType.CLEARCUT: _random_order,
    ActionType.SHELTERWOOD_REMOVAL: _random_order,
    ActionType.THIN_MECHANICAL: _every_nth,
}

_unmapped = set(ActionType) - set(_SELECTION_POLICIES)
if _unmapped:
    raise ConfigurationError(
        f"No selection policy for action types: {sorted(a.value for a in _unmapped)}"
    )


def removal_count(alive_count: int, remove_pct: float) -> int:
    """Number of trees an action removes: round(alive * pct), within [0, alive]."""
    return max(0, min(alive_count, round_half_up(alive_count * remove_pct)))


def select_trees_for_harvest(action: HarvestAction, alive: Sequence[Any], year: int) -> List[Any]:
    """Pick the trees an action removes.

    Args:
        action: Harvest action
        alive: Alive, unharvested trees in planting order; each needs
            ``tree_id`` and ``dbh`` attributes
        year: Simulated year (seeds tie-breaking)

    Returns:
        Trees to remove, at most ``removal_count(len(alive), remove_pct)``.
        Commercial actions with ``min_merch_dbh`` only take trees at or
        above that DBH.
    """
    to_remove = removal_count(len(alive), action.remove_pct)
    if to_remove <= 0:
        return []

    ordered = _SELECTION_POLICIES[action.action_type](alive, action, year)
    if action.is_commercial and action.min_merch_dbh > 0:
        ordered = [t for t in ordered if t.dbh >= action.min_merch_dbh]
    return ordered[:to_remove]


# =============================================================================
# Prescription catalog
# =============================================================================

def load_prescriptions() -> Dict[str, Prescription]:
    """Load the bundled prescription catalog keyed by id, in file order."""
    data = load_coefficient_file('prescriptions.yaml')
    return {p['id']: Prescription.from_dict(p) for p in data.get('prescriptions', [])}


def get_prescription(prescription_id: Optional[str]) -> Prescription:
    """Get a catalog prescription; unknown ids fall back to no-management."""
    catalog = load_prescriptions()
    if prescription_id in catalog:
        return catalog[prescription_id]
    if prescription_id is None:
        return catalog[DEFAULT_PRESCRIPTION_ID]
    log_fallback(logger, 'prescription', prescription_id, DEFAULT_PRESCRIPTION_ID)
    return catalog[DEFAULT_PRESCRIPTION_ID]


def get_prescriptions_by_category(category: Optional[str] = None) -> List[Prescription]:
    """Catalog prescriptions in a category, or all of them when None."""
    prescriptions = list(load_prescriptions().values())
    if not category:
        return prescriptions
    return [p for p in prescriptions if p.category == category]
