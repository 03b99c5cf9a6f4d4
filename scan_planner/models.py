# scan_planner/models.py
import copy
import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

class ClusterStatus(enum.Enum):
    """Workflow status of a promotion cluster.
    
    Values:
        DRAFT ('draft'): Being planned by the commercial team
        REVIEW ('review'): Submitted, waiting for finance approval
        APPROVED ('approved'): Approved by finance
    """
    DRAFT = 'draft'
    REVIEW = 'review'
    APPROVED = 'approved'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @classmethod
    def from_string(cls, value) -> 'ClusterStatus':
        """Create a ClusterStatus from a string value.
        
        Args:
            value: String value ('draft', 'review', 'approved') or a ClusterStatus
            
        Returns:
            ClusterStatus enum value
            
        Raises:
            ValueError if the string value is not valid
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid cluster status: {value}. Valid values are: draft, review, approved")

class PlannerMode(enum.Enum):
    """Planning mode: building the annual budget or re-forecasting."""
    BUDGET = 'budget'
    FORECAST = 'forecast'

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, value) -> 'PlannerMode':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid planner mode: {value}. Valid values are: budget, forecast")

class UserRole(enum.Enum):
    """Role of the user driving the planner."""
    COMMERCIAL = 'commercial'
    FINANCE = 'finance'

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, value) -> 'UserRole':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid user role: {value}. Valid values are: commercial, finance")

class WorkflowAction(enum.Enum):
    PUBLISH = 'publish'
    REJECT = 'reject'

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, value) -> 'WorkflowAction':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid workflow action: {value}. Valid values are: publish, reject")

@dataclass(frozen=True)
class ProductReference:
    """Catalog entry for a sellable product.
    
    Attributes:
        name: Display name, e.g. 'Scotch - Glenfiddich 12YR 750ML'
        pack_desc: Pack descriptor, e.g. '6x750' (bottles x ml)
        case_equivalent_factor: 9L case equivalents per pack
    """
    name: str
    pack_desc: str = ''
    case_equivalent_factor: float = 1.0

    @property
    def pack_bottles(self) -> int:
        """Bottles per pack parsed from the pack descriptor (1 if unparseable)."""
        head = (self.pack_desc or '').lower().split('x')[0].strip()
        try:
            bottles = int(head)
        except ValueError:
            return 1
        return bottles or 1

    @property
    def scan_factor_per_9l(self) -> float:
        """Bottles per 9L case equivalent."""
        return self.pack_bottles / (self.case_equivalent_factor or 1)

@dataclass(frozen=True)
class Market:
    name: str
    abbr: str

@dataclass(frozen=True)
class TrendPoint:
    """One month of the cached Nielsen trend series."""
    month: str
    value: float

@dataclass
class ScanEvent:
    """A scheduled scan (retail price promotion) for one product in one week.
    
    Everything after scan_amount is cached derived data. Projection outputs
    are refreshed when the amount or growth rate changes; the placeholder
    metrics (projected_retail, qd, retailer_margin, loyalty) are generated
    once and kept.
    """
    week: str
    scan_amount: float
    projected_scan: Optional[float] = None
    projected_retail: Optional[float] = None
    qd: Optional[float] = None
    retailer_margin: Optional[float] = None
    loyalty: Optional[float] = None
    projected_volume: Optional[float] = None
    volume_lift: Optional[float] = None
    volume_lift_pct: Optional[float] = None

    @property
    def has_projection(self) -> bool:
        return (
            self.projected_scan is not None
            and self.projected_volume is not None
            and self.volume_lift is not None
            and self.volume_lift_pct is not None
        )

    @property
    def has_placeholder_metrics(self) -> bool:
        return None not in (self.projected_retail, self.qd, self.retailer_margin, self.loyalty)

@dataclass
class ProductEntry:
    """A product scheduled inside a cluster, with its scans.
    
    The trend series is filled once when the product enters the store and
    never regenerated, so projections stay stable across edits.
    """
    name: str
    scans: List[ScanEvent] = field(default_factory=list)
    growth_rate: float = 0.0
    trend: Optional[List[TrendPoint]] = None

    def trend_value(self, month_index: int) -> float:
        """Trend value for a zero-based month index (0 when no trend is cached)."""
        if not self.trend or month_index < 0 or month_index >= len(self.trend):
            return 0.0
        return self.trend[month_index].value

@dataclass
class Cluster:
    """A planned promotion: one market, one account and its products."""
    cluster_id: str
    market: str
    account: str
    products: List[ProductEntry] = field(default_factory=list)
    status: ClusterStatus = ClusterStatus.DRAFT

    def copy(self) -> 'Cluster':
        return copy.deepcopy(self)

    @property
    def scan_count(self) -> int:
        return sum(len(p.scans) for p in self.products)

@dataclass(frozen=True)
class Projection:
    """Projection engine output for one (product, week, scan amount)."""
    month_index: int
    trend_value: float
    projected_monthly: float
    scan_dollars_per_9l: float
    projected_scan_dollars: float
    baseline_weekly: float
    projected_volume: float
    volume_lift: float
    volume_lift_percent: float

@dataclass(frozen=True)
class PlannerRow:
    """One flattened (cluster, product, scan) row."""
    id: str
    cluster_id: str
    market: str
    account: str
    brand: str
    product: str
    week: str
    month: str
    scan_amount: float
    projected_scan: float
    projected_retail: Optional[float]
    qd: Optional[float]
    retailer_margin: Optional[float]
    loyalty: Optional[float]
    projected_volume: float
    volume_lift: float
    volume_lift_pct: float
    growth_rate: float
    status: ClusterStatus

    def to_record(self) -> Dict:
        """Flat field-keyed record for table and export surfaces."""
        return {
            'id': self.id,
            'cluster_id': self.cluster_id,
            'market': self.market,
            'account': self.account,
            'brand': self.brand,
            'product': self.product,
            'week': self.week,
            'month': self.month,
            'scan_amount': self.scan_amount,
            'projected_scan': self.projected_scan,
            'projected_retail': self.projected_retail,
            'qd': self.qd,
            'retailer_margin': self.retailer_margin,
            'loyalty': self.loyalty,
            'projected_volume': self.projected_volume,
            'volume_lift': self.volume_lift,
            'volume_lift_pct': self.volume_lift_pct,
            'growth_rate': self.growth_rate,
            'status': self.status.value,
        }

@dataclass
class SummaryRow:
    """Market x brand monthly rollup of projected scan dollars."""
    id: str
    market: str
    brand: str
    months: Dict[str, float]
    total: float = 0.0
    ty_bud: float = 0.0

    def to_record(self) -> Dict:
        record = {
            'id': self.id,
            'market': self.market,
            'brand': self.brand,
        }
        record.update(self.months)
        record['total'] = self.total
        record['ty_bud'] = self.ty_bud
        return record

@dataclass(frozen=True)
class WorkflowEvent:
    """Audit record of one status transition."""
    cluster_id: str
    action: WorkflowAction
    from_status: ClusterStatus
    to_status: ClusterStatus
    role: UserRole
    mode: PlannerMode
    comment: str = ''
    timestamp: datetime = field(default_factory=datetime.now)
