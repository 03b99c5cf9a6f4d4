from .metrics import (
    generate_price, generate_qd, generate_retailer_margin, generate_loyalty,
    generate_nielsen_trend, generate_scan_metrics
)
from .projection import project, price_scan, reproject_scan, get_projected_scan_dollars
from .materializer import build_rows, derive_brand
from .aggregation import aggregate, filter_rows, filter_summary
from .workflow import can_edit, require_edit, next_status, allowed_actions
from .analysis import analyze_products

__all__ = [
    'generate_price',
    'generate_qd',
    'generate_retailer_margin',
    'generate_loyalty',
    'generate_nielsen_trend',
    'generate_scan_metrics',
    'project',
    'price_scan',
    'reproject_scan',
    'get_projected_scan_dollars',
    'build_rows',
    'derive_brand',
    'aggregate',
    'filter_rows',
    'filter_summary',
    'can_edit',
    'require_edit',
    'next_status',
    'allowed_actions',
    'analyze_products'
]
