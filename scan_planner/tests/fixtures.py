"""Shared builders for scan planner tests."""
import numpy as np

from scan_planner.models import (
    ClusterStatus, PlannerRow, ProductEntry, ProductReference, ScanEvent, TrendPoint
)
from scan_planner.utils.date_utils import MONTH_NAMES

GLENFIDDICH = "Scotch - Glenfiddich 12YR 750ML"
BALVENIE = "Scotch - Balvenie 12YR DoubleWood 750ML"
HENDRICKS = "Gin - Hendricks 750ML"

# 6 bottles per 9L case for every product
TEST_CATALOG = {
    name: ProductReference(name, "6x750", 1.0)
    for name in (GLENFIDDICH, BALVENIE, HENDRICKS)
}

def flat_trend(value=100.0):
    return [TrendPoint(month, value) for month in MONTH_NAMES]

def make_product(name=GLENFIDDICH, weeks=("2025-03-03",), amount=2.0, growth_rate=0.05, trend_value=100.0):
    return ProductEntry(
        name=name,
        scans=[ScanEvent(week=w, scan_amount=amount) for w in weeks],
        growth_rate=growth_rate,
        trend=flat_trend(trend_value)
    )

def make_rng(seed=42):
    return np.random.default_rng(seed)

def make_row(market="New York", brand="Glenfiddich", month="MAR", projected_scan=0.0,
             account="Costco", product=GLENFIDDICH, row_id=None):
    return PlannerRow(
        id=row_id or f"{market}|{brand}|{month}|{projected_scan}",
        cluster_id="cluster-test",
        market=market,
        account=account,
        brand=brand,
        product=product,
        week="3/3/2025",
        month=month,
        scan_amount=2.0,
        projected_scan=projected_scan,
        projected_retail=59.99,
        qd=2.0,
        retailer_margin=30.0,
        loyalty=1.0,
        projected_volume=28.0,
        volume_lift=3.0,
        volume_lift_pct=10.0,
        growth_rate=0.05,
        status=ClusterStatus.DRAFT
    )
