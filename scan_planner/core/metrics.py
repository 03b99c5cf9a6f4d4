# scan_planner/core/metrics.py
"""Synthetic stand-ins for the retail analytics feed.

Price, quantity discount, retailer margin and loyalty are random
placeholders; callers generate them once per scan and cache them.
"""
from typing import Dict, List, Optional

import numpy as np

from scan_planner.config import config
from scan_planner.models import TrendPoint
from scan_planner.utils.date_utils import MONTH_NAMES
from scan_planner.utils.math_utils import round_half_up, split_evenly

WEEKS_PER_YEAR = 52

_default_rng = None

def get_rng(rng: Optional[np.random.Generator] = None) -> np.random.Generator:
    """Return the given generator or the shared, optionally seeded, default."""
    global _default_rng
    if rng is not None:
        return rng
    if _default_rng is None:
        _default_rng = np.random.default_rng(config.planner_config['random_seed'])
    return _default_rng

def reseed(seed: Optional[int]) -> None:
    """Reset the shared generator, e.g. for a reproducible demo session."""
    global _default_rng
    _default_rng = np.random.default_rng(seed)

def get_random_between(
    minimum: float,
    maximum: float,
    decimals: int = 0,
    rng: Optional[np.random.Generator] = None
) -> float:
    """Uniform random value in [minimum, maximum) rounded to decimals."""
    value = get_rng(rng).uniform(minimum, maximum)
    return float(round(value, decimals))

def generate_price(rng=None) -> float:
    """Retail price between $49.99 and $79.99."""
    return get_random_between(49.99, 79.99, 2, rng)

def generate_qd(rng=None) -> float:
    """Quantity discount between $1 and $4, whole dollars."""
    return get_random_between(1, 4, 0, rng)

def generate_loyalty(rng=None) -> float:
    """Loyalty dollars between $0.00 and $2.00."""
    return get_random_between(0, 2, 2, rng)

def generate_retailer_margin(rng=None) -> float:
    """Retailer margin percentage between 25% and 35%."""
    return get_random_between(25, 35, 1, rng)

def generate_scan_metrics(rng=None) -> Dict[str, float]:
    """Placeholder metrics cached on a scan when it is first priced."""
    return {
        'projected_retail': generate_price(rng),
        'qd': generate_qd(rng),
        'retailer_margin': generate_retailer_margin(rng),
        'loyalty': generate_loyalty(rng),
    }

def weekly_to_monthly(weekly: List[float]) -> List[float]:
    """Average weekly samples into 12 monthly values.
    
    Weeks are split as evenly as possible, earlier months taking the extra
    week (52 weeks gives 5,5,5,5,4,4,4,4,4,4,4,4). Each month is rounded
    to one decimal.
    
    Args:
        weekly: Weekly samples, oldest first
        
    Returns:
        List of 12 monthly averages
    """
    monthly = []
    start = 0
    for size in split_evenly(len(weekly), len(MONTH_NAMES)):
        chunk = weekly[start:start + size]
        start += size
        avg = sum(chunk) / len(chunk) if chunk else 0.0
        monthly.append(round_half_up(avg, 1))
    return monthly

def generate_nielsen_trend(rng=None) -> List[TrendPoint]:
    """Generate a last-year Nielsen trend from 52 weekly samples.
    
    Returns:
        12 TrendPoints JAN..DEC
    """
    generator = get_rng(rng)
    weekly = [float(v) for v in np.round(generator.uniform(50, 100, WEEKS_PER_YEAR))]
    return [
        TrendPoint(month, value)
        for month, value in zip(MONTH_NAMES, weekly_to_monthly(weekly))
    ]
