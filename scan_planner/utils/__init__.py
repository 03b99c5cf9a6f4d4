from .date_utils import parse_week, try_parse_week, get_month_index, get_month_name, week_key
from .math_utils import round_half_up, safe_divide, split_evenly
from .validation import validate_cluster, validate_scan_amount, ensure_valid_cluster, find_duplicate_weeks

__all__ = [
    'parse_week',
    'try_parse_week',
    'get_month_index',
    'get_month_name',
    'week_key',
    'round_half_up',
    'safe_divide',
    'split_evenly',
    'validate_cluster',
    'validate_scan_amount',
    'ensure_valid_cluster',
    'find_duplicate_weeks'
]
