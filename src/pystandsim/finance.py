"""
Forest finance for pystandsim.

Timber product classification, stumpage pricing by species group,
management cost assumptions and investment analysis (NPV, LEV, IRR).

Prices (``cfg/stumpage_prices.json``) are rough US-wide averages from
Timber Mart-South, northeastern timber price reports and Pacific Northwest
state agency reports. Sawtimber and veneer are priced in $/MBF (Scribner),
poletimber and pulpwood in $/ton green weight.
"""
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .config_loader import load_coefficient_file
from .exceptions import FileNotFoundError as StandSimFileNotFoundError
from .exceptions import InvalidParameterError, validate_range
from .harvest import ActionType, HarvestEvent
from .regions import is_softwood
from .tree_utils import round_to

__all__ = [
    'PRODUCT_CLASSES',
    'VENEER_GROUPS',
    'classify_product',
    'get_stumpage_price',
    'TreeHarvestValue',
    'tree_harvest_value',
    'enrich_harvest_event',
    'ManagementCosts',
    'CashFlow',
    'InvestmentSummary',
    'calculate_npv',
    'calculate_lev',
    'calculate_irr',
    'analyze_investment',
]

PRODUCT_CLASSES = ('veneer', 'sawtimber', 'poletimber', 'pulpwood')
NON_MERCHANTABLE = 'non-merchantable'

# High-quality hardwoods with veneer markets
VENEER_GROUPS = frozenset({'oak', 'walnut', 'maple', 'hickory', 'birch'})

VENEER_MIN_DBH = 18.0
SOFTWOOD_SAWTIMBER_DBH = 9.0
HARDWOOD_SAWTIMBER_DBH = 11.0
POLETIMBER_MIN_DBH = 7.0
PULPWOOD_MIN_DBH = 5.0

# Green tons per cord
TONS_PER_CORD = 2.5

IRR_LOW = -0.5
IRR_HIGH = 2.0
IRR_MAX_ITERATIONS = 100
IRR_TOLERANCE = 0.01
IRR_ACCEPT_TOLERANCE = 100.0

_FALLBACK_PRICES: Dict[str, Dict[str, float]] = {
    'default': {'veneer': 0, 'sawtimber': 180, 'poletimber': 25, 'pulpwood': 8},
}


def classify_product(dbh: float, group_code: str) -> str:
    """Highest-value product class a tree qualifies for.

    Thresholds (conservative national averages):
        veneer       >= 18 in, veneer hardwood groups only
        sawtimber    >= 9 in softwood, >= 11 in hardwood
        poletimber   >= 7 in
        pulpwood     >= 5 in
    """
    if dbh >= VENEER_MIN_DBH and group_code in VENEER_GROUPS:
        return 'veneer'
    sawtimber_dbh = SOFTWOOD_SAWTIMBER_DBH if is_softwood(group_code) else HARDWOOD_SAWTIMBER_DBH
    if dbh >= sawtimber_dbh:
        return 'sawtimber'
    if dbh >= POLETIMBER_MIN_DBH:
        return 'poletimber'
    if dbh >= PULPWOOD_MIN_DBH:
        return 'pulpwood'
    return NON_MERCHANTABLE


def _price_table() -> Dict[str, Dict[str, float]]:
    try:
        return load_coefficient_file('stumpage_prices.json').get('prices', _FALLBACK_PRICES)
    except StandSimFileNotFoundError:
        return _FALLBACK_PRICES


def get_stumpage_price(group_code: str, product_class: str,
                       price_table: Optional[Mapping[str, Mapping[str, float]]] = None) -> float:
    """Stumpage price for a group and product; the 'default' row for unknown groups."""
    table = price_table if price_table is not None else _price_table()
    prices = table.get(group_code) or table.get('default') or {}
    return float(prices.get(product_class, 0) or 0)


@dataclass(frozen=True)
class TreeHarvestValue:
    """Stumpage value of one harvested tree."""
    product_class: str
    volume_bf: float
    cords: float
    tons: float
    price_unit: str
    unit_price: float
    revenue: float


def tree_harvest_value(dbh: float, height: Optional[float], group_code: str,
                       volume_bf: float,
                       price_table: Optional[Mapping[str, Mapping[str, float]]] = None
                       ) -> TreeHarvestValue:
    """Value a tree at its harvest dimensions.

    Sawtimber and veneer are priced per MBF from board-foot volume.
    Poletimber and pulpwood use Honer (1983) cord volume priced per cord
    (ton price x 2.5).
    """
    product = classify_product(dbh, group_code)
    if product == NON_MERCHANTABLE:
        return TreeHarvestValue(product, 0.0, 0.0, 0.0, '-', 0.0, 0.0)

    unit_price = get_stumpage_price(group_code, product, price_table)

    if product in ('sawtimber', 'veneer'):
        volume = volume_bf or 0.0
        return TreeHarvestValue(
            product_class=product,
            volume_bf=volume,
            cords=0.0,
            tons=0.0,
            price_unit='$/MBF',
            unit_price=unit_price,
            revenue=round_to(volume / 1000.0 * unit_price, 2),
        )

    # Clamped Honer volume: poletimber above 10 in is still priced by the cord,
    # unlike AllometricModel.pulpwood_cords which reports 5-10 in stems only
    cords = 0.0042 * max(5.0, dbh) ** 1.9 * max(20.0, height or 30.0) ** 0.85
    cord_price = unit_price * TONS_PER_CORD
    return TreeHarvestValue(
        product_class=product,
        volume_bf=0.0,
        cords=round_to(cords, 3),
        tons=round_to(cords * TONS_PER_CORD, 2),
        price_unit='$/cord',
        unit_price=round_to(cord_price),
        revenue=round_to(cords * cord_price, 2),
    )


def enrich_harvest_event(event: HarvestEvent,
                         price_table: Optional[Mapping[str, Mapping[str, float]]] = None
                         ) -> HarvestEvent:
    """Return a copy of ``event`` with revenue and product breakdown."""
    breakdown = {p: 0.0 for p in PRODUCT_CLASSES}
    counts = {p: 0 for p in PRODUCT_CLASSES + (NON_MERCHANTABLE,)}
    total = 0.0
    for tree in event.tree_details:
        value = tree_harvest_value(tree.dbh, tree.height, tree.group_code,
                                   tree.volume_bf, price_table)
        if value.product_class in breakdown:
            breakdown[value.product_class] += value.revenue
        counts[value.product_class] += 1
        total += value.revenue
    return event.with_revenue(round_to(total, 2), breakdown, counts)


@dataclass(frozen=True)
class ManagementCosts:
    """Silvicultural cost assumptions ($/acre unless noted, US averages)."""
    site_prep: float = 250.0
    planting: float = 350.0
    pct: float = 200.0
    commercial_thin_harvest_cost: float = 0.0
    clearcut_harvest_cost: float = 0.0
    annual_property_tax: float = 8.0
    annual_management: float = 5.0
    # One-time plan preparation, not per acre
    forest_management_plan_cost: float = 1500.0
    cruising: float = 50.0

    @classmethod
    def defaults(cls) -> 'ManagementCosts':
        """Costs from cfg/stumpage_prices.json, or the built-in defaults."""
        try:
            data = load_coefficient_file('stumpage_prices.json').get('management_costs', {})
        except StandSimFileNotFoundError:
            data = {}
        return cls().with_overrides(data)

    def with_overrides(self, overrides: Optional[Mapping[str, float]]) -> 'ManagementCosts':
        """Copy with some costs replaced.

        Raises:
            InvalidParameterError: For unknown cost names
        """
        if not overrides:
            return self
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise InvalidParameterError('cost_overrides', sorted(unknown),
                                        f"known costs: {', '.join(sorted(known))}")
        return replace(self, **{k: float(v) for k, v in overrides.items()})


@dataclass(frozen=True)
class CashFlow:
    year: int
    amount: float
    label: str


@dataclass
class InvestmentSummary:
    """Financial analysis of one rotation. Monetary values are unrounded."""
    cash_flows: List[CashFlow]
    npv: float
    npv_per_acre: float
    lev: float
    lev_per_acre: float
    irr: Optional[float]
    total_revenue: float
    total_costs: float
    net_income: float
    establishment_cost: float
    annual_cost_per_acre: float
    discount_rate: float
    rotation_length: int
    area_acres: float
    harvest_events: List[HarvestEvent] = field(default_factory=list)

    @property
    def irr_percent(self) -> Optional[float]:
        return None if self.irr is None else round_to(self.irr * 100, 1)

    def to_dict(self) -> Dict[str, Any]:
        """Rounded, JSON-ready view."""
        return {
            'cash_flows': [asdict(cf) for cf in self.cash_flows],
            'npv': int(round_to(self.npv)),
            'npv_per_acre': int(round_to(self.npv_per_acre)),
            'lev': int(round_to(self.lev)),
            'lev_per_acre': int(round_to(self.lev_per_acre)),
            'irr': self.irr,
            'irr_percent': self.irr_percent,
            'total_revenue': int(round_to(self.total_revenue)),
            'total_costs': int(round_to(self.total_costs)),
            'net_income': int(round_to(self.net_income)),
            'establishment_cost': int(round_to(self.establishment_cost)),
            'annual_cost_per_acre': int(round_to(self.annual_cost_per_acre)),
            'discount_rate': self.discount_rate,
            'rotation_length': self.rotation_length,
            'area_acres': self.area_acres,
        }


def calculate_npv(cash_flows: Sequence[CashFlow], rate: float) -> float:
    """Net present value: sum of amount / (1 + rate) ^ year."""
    return sum(cf.amount / (1.0 + rate) ** cf.year for cf in cash_flows)


def calculate_lev(npv: float, rotation_length: int, rate: float) -> float:
    """Land expectation value (Faustmann): NPV of an infinite series of rotations.

    LEV = NPV / (1 - (1 + rate) ^ -T). Returns ``npv`` unchanged when the
    rate or rotation is non-positive.
    """
    if rate <= 0 or rotation_length <= 0:
        return npv
    denominator = 1.0 - (1.0 + rate) ** -rotation_length
    if denominator <= 0:
        return npv
    return npv / denominator


def calculate_irr(cash_flows: Sequence[CashFlow]) -> Optional[float]:
    """Internal rate of return by bisection on [-0.5, 2.0].

    The search stops once |NPV| falls below IRR_TOLERANCE dollars. That
    tolerance is absolute, so for cash flows of a few dollars the result
    can be off by several tenths of a percent.

    Returns:
        IRR rounded to 4 decimals, or None when cash flows are all one sign
        or the search does not converge
    """
    if not any(cf.amount > 0 for cf in cash_flows) or not any(cf.amount < 0 for cf in cash_flows):
        return None

    lo, hi = IRR_LOW, IRR_HIGH
    for _ in range(IRR_MAX_ITERATIONS):
        mid = (lo + hi) / 2.0
        npv = calculate_npv(cash_flows, mid)
        if abs(npv) < IRR_TOLERANCE:
            return round(mid, 4)
        if npv > 0:
            lo = mid
        else:
            hi = mid

    final = (lo + hi) / 2.0
    if abs(calculate_npv(cash_flows, final)) < IRR_ACCEPT_TOLERANCE:
        return round(final, 4)
    return None


def analyze_investment(harvest_events: Sequence[HarvestEvent], area_acres: float,
                       rotation_length: int,
                       cost_overrides: Optional[Mapping[str, float]] = None,
                       discount_rate: float = 0.04,
                       price_table: Optional[Mapping[str, Mapping[str, float]]] = None
                       ) -> InvestmentSummary:
    """Build the cash-flow timeline of one rotation and evaluate it.

    Cash flows:
        year 0          establishment (site prep + planting)
        years 1..T      annual property tax + management
        pct             cost of PCT per acre
        sanitation      half the PCT cost
        other actions   timber cruise cost, then stumpage revenue

    Args:
        harvest_events: Events from a projection; enriched here if needed
        area_acres: Stand area (floored at 0.01 ac)
        rotation_length: Rotation in years
        cost_overrides: Replacement values for ManagementCosts fields
        discount_rate: Real annual discount rate
        price_table: Optional stumpage price table

    Returns:
        InvestmentSummary

    Raises:
        InvalidParameterError: If discount_rate is outside [0, 1]
    """
    validate_range(discount_rate, 0.0, 1.0, 'discount_rate')
    costs = ManagementCosts.defaults().with_overrides(cost_overrides)
    area = max(0.01, area_acres)
    events = [e if e.is_enriched else enrich_harvest_event(e, price_table)
              for e in harvest_events]

    establishment = (costs.site_prep + costs.planting) * area
    annual = (costs.annual_property_tax + costs.annual_management) * area
    cash_flows = [CashFlow(0, -establishment, 'Establishment')]
    cash_flows.extend(CashFlow(y, -annual, 'Annual costs')
                      for y in range(1, int(rotation_length) + 1))

    for event in events:
        if event.action_type == ActionType.PCT.value:
            cash_flows.append(CashFlow(event.year, -(costs.pct * area), event.label))
        elif event.action_type == ActionType.SANITATION.value:
            cash_flows.append(CashFlow(event.year, -(costs.pct * area * 0.5), event.label))
        else:
            cash_flows.append(CashFlow(event.year, -(costs.cruising * area),
                                       f"Cruise for {event.label}"))
            cash_flows.append(CashFlow(event.year, event.revenue or 0.0, event.label))

    npv = calculate_npv(cash_flows, discount_rate)
    lev = calculate_lev(npv, rotation_length, discount_rate)
    total_revenue = sum(e.revenue or 0.0 for e in events)
    total_costs = sum(-cf.amount for cf in cash_flows if cf.amount < 0)

    return InvestmentSummary(
        cash_flows=cash_flows,
        npv=npv,
        npv_per_acre=npv / area,
        lev=lev,
        lev_per_acre=lev / area,
        irr=calculate_irr(cash_flows),
        total_revenue=total_revenue,
        total_costs=total_costs,
        net_income=total_revenue - total_costs,
        establishment_cost=establishment,
        annual_cost_per_acre=annual / area,
        discount_rate=discount_rate,
        rotation_length=rotation_length,
        area_acres=area,
        harvest_events=events,
    )
