# scan_planner/catalog.py
"""Static reference data for the scan planner: products, accounts, markets
and weekly calendar buckets. Read-only at runtime."""
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional

from scan_planner.config import config
from scan_planner.models import Market, ProductReference
from scan_planner.utils.date_utils import format_week, get_planning_weeks, week_key

SCAN_PRODUCTS: List[ProductReference] = [
    ProductReference("Scotch - Glenfiddich 12YR 750ML", "6x750", 0.5),
    ProductReference("Scotch - Glenfiddich 15YR 750ML", "6x750", 0.5),
    ProductReference("Scotch - Glenfiddich 18YR 750ML", "6x750", 0.5),
    ProductReference("Scotch - Balvenie 12YR DoubleWood 750ML", "6x750", 0.5),
    ProductReference("Scotch - Balvenie 14YR Caribbean Cask 750ML", "6x750", 0.5),
    ProductReference("Scotch - Monkey Shoulder 750ML", "12x750", 1.0),
    ProductReference("Scotch - Grants Family Reserve 1.75L", "6x1750", 1.1667),
    ProductReference("Gin - Hendricks 750ML", "12x750", 1.0),
    ProductReference("Gin - Hendricks 1.75L", "6x1750", 1.1667),
    ProductReference("Tequila - Milagro Silver 750ML", "12x750", 1.0),
    ProductReference("Tequila - Milagro Reposado 750ML", "12x750", 1.0),
    ProductReference("Rum - Sailor Jerry 750ML", "12x750", 1.0),
    ProductReference("Rum - Sailor Jerry 1.75L", "6x1750", 1.1667),
    ProductReference("Vodka - Reyka 750ML", "12x750", 1.0),
]

SCAN_ACCOUNTS: List[str] = [
    "Costco",
    "Safeway",
    "HEB",
    "Wegmans",
    "Kroger",
    "Publix",
    "Total Wine",
    "BevMo",
]

SCAN_MARKETS: List[Market] = [
    Market("New York", "NY"),
    Market("California", "CA"),
    Market("Texas", "TX"),
    Market("Florida", "FL"),
    Market("Illinois", "IL"),
    Market("New Jersey", "NJ"),
]

PRODUCT_INDEX: Dict[str, ProductReference] = {p.name: p for p in SCAN_PRODUCTS}

def get_default_scan_factor() -> float:
    """Bottles per 9L used when a product is not in the catalog."""
    return config.planner_config['default_scan_factor']

def find_product(
    name: str,
    catalog: Optional[Mapping[str, ProductReference]] = None
) -> Optional[ProductReference]:
    """Look up a product by exact display name."""
    lookup = PRODUCT_INDEX if catalog is None else catalog
    return lookup.get(name)

def get_scan_factor_per_9l(
    name: str,
    catalog: Optional[Mapping[str, ProductReference]] = None
) -> float:
    """Bottles per 9L case equivalent for a product.
    
    Args:
        name: Product display name
        catalog: Optional catalog mapping (defaults to the built-in catalog)
        
    Returns:
        Pack bottles divided by case-equivalent factor, or the default
        factor (12) when the product is not found
    """
    product = find_product(name, catalog)
    if product is None:
        return get_default_scan_factor()
    return product.scan_factor_per_9l

def get_market_names() -> List[str]:
    return [m.name for m in SCAN_MARKETS]

def get_scan_weeks(year: Optional[int] = None) -> List[date]:
    """Weekly calendar buckets for the planning year."""
    if year is None:
        year = config.planner_config['planning_year']
    return get_planning_weeks(year)

def available_weeks(used_weeks: Iterable = (), year: Optional[int] = None) -> List[str]:
    """Weeks (as M/D/YYYY) not yet used by a product's scans."""
    used = {week_key(w) for w in used_weeks}
    return [
        format_week(w) for w in get_scan_weeks(year)
        if w.isoformat() not in used
    ]
