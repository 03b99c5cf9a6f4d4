# scan_planner/core/projection.py
from dataclasses import replace
from typing import Mapping, Optional

from scan_planner.catalog import get_scan_factor_per_9l
from scan_planner.config import config
from scan_planner.core.metrics import generate_scan_metrics
from scan_planner.exceptions import ValidationError
from scan_planner.models import ProductEntry, ProductReference, Projection, ScanEvent
from scan_planner.utils.date_utils import format_week, get_month_index, WeekValue
from scan_planner.utils.math_utils import round_half_up
from scan_planner.utils.validation import validate_scan_amount

def get_projected_scan_dollars(
    product_name: str,
    scan_per_bottle: float,
    catalog: Optional[Mapping[str, ProductReference]] = None
) -> float:
    """Convert scan dollars per bottle into scan dollars per 9L case equivalent.
    
    Args:
        product_name: Product display name
        scan_per_bottle: Scan dollars per bottle
        catalog: Optional catalog mapping
        
    Returns:
        Scan dollars per 9L case equivalent
    """
    return get_scan_factor_per_9l(product_name, catalog) * scan_per_bottle

def calculate_lift_pct(scan_amount: float) -> float:
    """Volume lift (as a fraction) for a scan amount, linear and capped."""
    planner = config.planner_config
    return min(planner['max_lift_pct'], scan_amount * planner['lift_per_dollar'])

def project(
    product: ProductEntry,
    week: WeekValue,
    scan_amount: float,
    catalog: Optional[Mapping[str, ProductReference]] = None
) -> Projection:
    """Project scan dollars and volume for one scan of a product.
    
    The product's trend series must already be cached; a missing trend
    projects from a zero baseline.
    
    Args:
        product: Product entry carrying trend and growth rate
        week: Scan week
        scan_amount: Scan dollars per bottle
        catalog: Optional catalog mapping for the 9L conversion
        
    Returns:
        Projection
        
    Raises:
        InvalidDateError: If the week does not parse
        ValidationError: If the scan amount is not positive
    """
    amount_error = validate_scan_amount(scan_amount)
    if amount_error:
        raise ValidationError(amount_error, code='INVALID_SCAN_AMOUNT', details={'scan_amount': scan_amount})
    
    scan_amount = float(scan_amount)
    month_index = get_month_index(week)
    trend_value = product.trend_value(month_index)
    
    # Scan dollars
    projected_monthly = round_half_up(trend_value * (1 + (product.growth_rate or 0)), 1)
    scan_dollars_per_9l = get_projected_scan_dollars(product.name, scan_amount, catalog)
    projected_scan_dollars = projected_monthly * scan_dollars_per_9l
    
    # Volume, simple elasticity on a weekly baseline
    baseline_weekly = trend_value / config.planner_config['weeks_per_month']
    lift_pct = calculate_lift_pct(scan_amount)
    projected_volume = round_half_up(baseline_weekly * (1 + lift_pct))
    volume_lift = projected_volume - baseline_weekly
    volume_lift_percent = round_half_up(lift_pct * 100, 1)
    
    return Projection(
        month_index=month_index,
        trend_value=trend_value,
        projected_monthly=projected_monthly,
        scan_dollars_per_9l=scan_dollars_per_9l,
        projected_scan_dollars=projected_scan_dollars,
        baseline_weekly=baseline_weekly,
        projected_volume=projected_volume,
        volume_lift=volume_lift,
        volume_lift_percent=volume_lift_percent
    )

def reproject_scan(
    product: ProductEntry,
    scan: ScanEvent,
    catalog: Optional[Mapping[str, ProductReference]] = None
) -> ScanEvent:
    """Return a copy of a scan with fresh projection outputs.
    
    Placeholder metrics already cached on the scan are kept as they are.
    """
    projection = project(product, scan.week, scan.scan_amount, catalog)
    return replace(
        scan,
        projected_scan=projection.projected_scan_dollars,
        projected_volume=projection.projected_volume,
        volume_lift=projection.volume_lift,
        volume_lift_pct=projection.volume_lift_percent
    )

def price_scan(
    product: ProductEntry,
    week: WeekValue,
    scan_amount: float,
    rng=None,
    catalog: Optional[Mapping[str, ProductReference]] = None
) -> ScanEvent:
    """Build a scan with every derived metric cached.
    
    Args:
        product: Product entry the scan belongs to
        week: Scan week
        scan_amount: Scan dollars per bottle
        rng: Optional numpy Generator for the placeholder metrics
        catalog: Optional catalog mapping
        
    Returns:
        ScanEvent
    """
    week_label = week if isinstance(week, str) else format_week(week)
    scan = reproject_scan(product, ScanEvent(week=week_label, scan_amount=float(scan_amount)), catalog)
    return fill_placeholder_metrics(scan, rng)

def fill_placeholder_metrics(scan: ScanEvent, rng=None) -> ScanEvent:
    """Generate placeholder metrics for a scan that has none cached."""
    if scan.has_placeholder_metrics:
        return scan
    
    generated = generate_scan_metrics(rng)
    return replace(
        scan,
        projected_retail=scan.projected_retail if scan.projected_retail is not None else generated['projected_retail'],
        qd=scan.qd if scan.qd is not None else generated['qd'],
        retailer_margin=scan.retailer_margin if scan.retailer_margin is not None else generated['retailer_margin'],
        loyalty=scan.loyalty if scan.loyalty is not None else generated['loyalty']
    )
