# scan_planner/utils/math_utils.py
import math
from typing import List

def round_half_up(value: float, decimals: int = 0) -> float:
    """Round with halves going up, the way the planner UI rounds.
    
    Python's round() uses banker's rounding (round(0.5) == 0), which would
    shift projected values by a tenth on exact halves.
    
    Args:
        value: Value to round
        decimals: Number of decimal places
        
    Returns:
        Rounded value
    """
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor

def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning a default when the denominator is zero."""
    if not denominator:
        return default
    return numerator / denominator

def split_evenly(total: int, parts: int) -> List[int]:
    """Split a count into parts whose sizes differ by at most one.
    
    Larger parts come first, e.g. 52 weeks into 12 months gives
    four months of 5 weeks followed by eight months of 4 weeks.
    """
    if parts <= 0:
        return []
    
    base, extra = divmod(total, parts)
    return [base + (1 if i < extra else 0) for i in range(parts)]

def percent_change(new_value: float, base_value: float) -> float:
    """Percentage change from base to new value (0 when base is 0)."""
    return safe_divide(new_value - base_value, base_value) * 100.0
