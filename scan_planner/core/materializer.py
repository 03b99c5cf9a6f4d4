# scan_planner/core/materializer.py
from typing import List, Mapping, Optional

from scan_planner.core.projection import project
from scan_planner.exceptions import ValidationError
from scan_planner.logging_setup import get_logger
from scan_planner.models import Cluster, PlannerRow, ProductReference, Projection
from scan_planner.utils.date_utils import MONTH_NAMES, try_parse_week

logger = get_logger(__name__)

def derive_brand(product_name: str) -> str:
    """Derive the brand from a product display name.
    
    The brand is the token right after ' - ', e.g.
    'Scotch - Glenfiddich 12YR 750ML' -> 'Glenfiddich'. Names without the
    separator are returned unchanged. Best effort only: it relies on the
    catalog naming convention.
    """
    if not product_name:
        return ''
    
    parts = product_name.split(' - ')
    if len(parts) >= 2:
        brand = parts[1].strip().split(' ')[0]
        if brand:
            return brand
    return product_name

def build_row_id(cluster_id: str, product_index: int, scan_index: int) -> str:
    return f"{cluster_id}|{product_index}|{scan_index}"

def _projection_metrics(scan, projection: Optional[Projection]) -> dict:
    """Cached projection outputs of a scan, falling back to a fresh projection."""
    computed = {}
    if projection is not None:
        computed = {
            'projected_scan': projection.projected_scan_dollars,
            'projected_volume': projection.projected_volume,
            'volume_lift': projection.volume_lift,
            'volume_lift_pct': projection.volume_lift_percent,
        }

    return {
        key: getattr(scan, key) if getattr(scan, key) is not None else computed.get(key)
        for key in ('projected_scan', 'projected_volume', 'volume_lift', 'volume_lift_pct')
    }

def build_rows(
    cluster: Cluster,
    catalog: Optional[Mapping[str, ProductReference]] = None
) -> List[PlannerRow]:
    """Flatten a cluster into one planner row per (product, scan).
    
    Products without scans and scans whose week does not parse are skipped,
    since clusters under edit may be incomplete. Cached projection outputs
    on a scan are reused; missing ones are computed but never written back
    onto the scan.
    
    Args:
        cluster: Cluster to flatten
        catalog: Optional catalog mapping for projections
        
    Returns:
        List of PlannerRow
    """
    rows = []
    
    for p_idx, product in enumerate(cluster.products):
        if not product.scans:
            logger.debug(f"Cluster {cluster.cluster_id}: skipping product '{product.name}' with no scans")
            continue
        
        brand = derive_brand(product.name)
        
        for s_idx, scan in enumerate(product.scans):
            week_date = try_parse_week(scan.week)
            if week_date is None:
                logger.debug(f"Cluster {cluster.cluster_id}: skipping scan with invalid week {scan.week!r}")
                continue
            
            projection: Optional[Projection] = None
            if not scan.has_projection:
                try:
                    projection = project(product, week_date, scan.scan_amount, catalog)
                except ValidationError as e:
                    logger.debug(f"Cluster {cluster.cluster_id}: skipping scan {scan.week}: {e}")
                    continue
            
            metrics = _projection_metrics(scan, projection)

            rows.append(PlannerRow(
                id=build_row_id(cluster.cluster_id, p_idx, s_idx),
                cluster_id=cluster.cluster_id,
                market=cluster.market,
                account=cluster.account,
                brand=brand,
                product=product.name,
                week=scan.week,
                month=MONTH_NAMES[week_date.month - 1],
                scan_amount=scan.scan_amount,
                projected_scan=metrics['projected_scan'],
                projected_retail=scan.projected_retail,
                qd=scan.qd,
                retailer_margin=scan.retailer_margin,
                loyalty=scan.loyalty,
                projected_volume=metrics['projected_volume'],
                volume_lift=metrics['volume_lift'],
                volume_lift_pct=metrics['volume_lift_pct'],
                growth_rate=product.growth_rate or 0.0,
                status=cluster.status
            ))
    
    return rows
