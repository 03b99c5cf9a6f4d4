# scan_planner/seed.py
"""Demo scan plan built from the catalog, for the CLI and manual testing."""
from typing import List, Optional

import numpy as np

from scan_planner.catalog import SCAN_ACCOUNTS, SCAN_PRODUCTS, available_weeks, get_market_names
from scan_planner.logging_setup import get_logger
from scan_planner.models import ProductEntry, ScanEvent
from scan_planner.services.cluster_store import ClusterStore

logger = get_logger(__name__)

SCAN_AMOUNTS = [1.0, 1.5, 2.0, 2.5, 3.0, 4.0, 5.0]

def build_demo_products(
    rng: np.random.Generator,
    max_products: int = 3,
    max_scans: int = 4,
    year: Optional[int] = None
) -> List[ProductEntry]:
    """Pick a few catalog products with random scan weeks and amounts."""
    count = int(rng.integers(1, max_products + 1))
    picks = rng.choice(len(SCAN_PRODUCTS), size=count, replace=False)
    
    products = []
    for idx in sorted(picks):
        weeks = available_weeks(year=year)
        n_scans = int(rng.integers(1, max_scans + 1))
        chosen = sorted(rng.choice(len(weeks), size=n_scans, replace=False))
        amount = float(rng.choice(SCAN_AMOUNTS))
        products.append(ProductEntry(
            name=SCAN_PRODUCTS[idx].name,
            scans=[ScanEvent(week=weeks[w], scan_amount=amount) for w in chosen],
            growth_rate=float(round(rng.uniform(0, 0.1), 2))
        ))
    return products

def build_demo_store(clusters: int = 6, seed: Optional[int] = None, year: Optional[int] = None) -> ClusterStore:
    """Build a store with demo clusters, one market after another.
    
    Args:
        clusters: Number of clusters to create
        seed: Random seed for reproducible plans
        year: Planning year (defaults to config)
        
    Returns:
        ClusterStore
    """
    rng = np.random.default_rng(seed)
    store = ClusterStore(rng=rng)
    markets = get_market_names()
    
    for i in range(clusters):
        market = markets[i % len(markets)]
        account = SCAN_ACCOUNTS[int(rng.integers(len(SCAN_ACCOUNTS)))]
        store.create_cluster(market, account, build_demo_products(rng, year=year))
    
    logger.info(f"Seeded demo store with {len(store)} clusters (seed={seed})")
    return store
