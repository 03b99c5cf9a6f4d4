# scan_planner/core/analysis.py
from typing import Dict, List, Mapping, Optional

from scan_planner.core.materializer import derive_brand
from scan_planner.core.projection import project
from scan_planner.exceptions import InvalidDateError, NotFoundError, ValidationError
from scan_planner.models import ProductEntry, ProductReference, ScanEvent
from scan_planner.utils.math_utils import percent_change

def _scan_values(
    product: ProductEntry,
    scan: ScanEvent,
    catalog: Optional[Mapping[str, ProductReference]] = None
) -> Optional[Dict[str, float]]:
    """Projected scan dollars and volumes of a scan, cached or computed.
    
    Returns None for scans that cannot be projected (bad week or amount).
    """
    if scan.has_projection:
        return {
            'projected_scan': scan.projected_scan,
            'projected_volume': scan.projected_volume,
            'volume_lift': scan.volume_lift,
            'volume_lift_pct': scan.volume_lift_pct,
        }
    
    try:
        projection = project(product, scan.week, scan.scan_amount, catalog)
    except (InvalidDateError, ValidationError):
        return None
    
    return {
        'projected_scan': projection.projected_scan_dollars,
        'projected_volume': projection.projected_volume,
        'volume_lift': projection.volume_lift,
        'volume_lift_pct': projection.volume_lift_percent,
    }

def analyze_products(
    products: List[ProductEntry],
    product_index: int,
    scan_index: Optional[int] = None,
    catalog: Optional[Mapping[str, ProductReference]] = None
) -> Dict:
    """Financial analysis for the selected product and scan of a cluster.
    
    Account figures cover every scan in the cluster; brand figures cover
    the scans of products sharing the selected product's brand.
    
    Args:
        products: Product entries of the cluster
        product_index: Index of the selected product
        scan_index: Index of the selected scan, or None
        catalog: Optional catalog mapping
        
    Returns:
        Dictionary with scan, brand and account level figures
        
    Raises:
        NotFoundError: If the product or scan index is out of range
    """
    if product_index < 0 or product_index >= len(products):
        raise NotFoundError(f"No product at index {product_index}")
    
    product = products[product_index]
    brand = derive_brand(product.name)
    
    scan = None
    if scan_index is not None:
        if scan_index < 0 or scan_index >= len(product.scans):
            raise NotFoundError(f"No scan at index {scan_index} for product '{product.name}'")
        scan = product.scans[scan_index]
    
    # Selected scan
    selected = {
        'week': None,
        'scan_amount': 0.0,
        'projected_scan': 0.0,
        'projected_retail': 0.0,
        'qd': 0.0,
        'retailer_margin': 0.0,
        'loyalty': 0.0,
        'projected_volume': 0.0,
        'volume_lift': 0.0,
        'volume_lift_pct': 0.0,
    }
    if scan is not None:
        selected.update({
            'week': scan.week,
            'scan_amount': scan.scan_amount,
            'projected_retail': scan.projected_retail or 0.0,
            'qd': scan.qd or 0.0,
            'retailer_margin': scan.retailer_margin or 0.0,
            'loyalty': scan.loyalty or 0.0,
        })
        values = _scan_values(product, scan, catalog)
        if values:
            selected.update(values)
    
    # Account and brand rollups
    account_projected = 0.0
    brand_projected = 0.0
    account_volume = 0.0
    account_baseline = 0.0
    
    for p in products:
        same_brand = derive_brand(p.name) == brand
        for s in p.scans:
            values = _scan_values(p, s, catalog)
            if values is None:
                continue
            account_projected += values['projected_scan']
            if same_brand:
                brand_projected += values['projected_scan']
            account_volume += values['projected_volume']
            account_baseline += values['projected_volume'] - values['volume_lift']
    
    account_lift = account_volume - account_baseline
    
    return {
        'product': product.name,
        'brand': brand,
        'growth_rate': product.growth_rate or 0.0,
        'scan': selected,
        'brand_projected_scan': brand_projected,
        'account_projected_scan': account_projected,
        'account_projected_volume': account_volume,
        'account_baseline_volume': account_baseline,
        'account_volume_lift': account_lift,
        'account_volume_lift_pct': percent_change(account_volume, account_baseline),
    }
