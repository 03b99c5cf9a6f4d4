# scan_planner/utils/date_utils.py
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

from scan_planner.exceptions import InvalidDateError

MONTH_NAMES = [
    "JAN", "FEB", "MAR", "APR", "MAY", "JUN",
    "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"
]

MONTH_KEYS = [m.lower() for m in MONTH_NAMES]

# Locale style (1/8/2025) is what the planner UI stores; ISO is what exports use
WEEK_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%Y/%m/%d")

WeekValue = Union[str, date, datetime]

def parse_week(value: WeekValue) -> date:
    """Parse a scan week into a date.
    
    Args:
        value: Week as a date, datetime or string (ISO or M/D/YYYY)
        
    Returns:
        Date object
        
    Raises:
        InvalidDateError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return value.date()
    
    if isinstance(value, date):
        return value
    
    if not isinstance(value, str) or not value.strip():
        raise InvalidDateError(
            f"Invalid scan week: {value!r}",
            details={'week': value}
        )
    
    text = value.strip()
    for fmt in WEEK_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    
    raise InvalidDateError(f"Invalid scan week: {value!r}", details={'week': value})

def try_parse_week(value: WeekValue) -> Optional[date]:
    """Parse a scan week, returning None instead of raising."""
    try:
        return parse_week(value)
    except InvalidDateError:
        return None

def get_month_index(value: WeekValue) -> int:
    """Get the zero-based calendar month index (0=JAN) for a week."""
    return parse_week(value).month - 1

def get_month_name(value: WeekValue) -> str:
    """Get the upper-case month abbreviation (JAN-DEC) for a week."""
    return MONTH_NAMES[get_month_index(value)]

def month_key(month: Optional[str]) -> Optional[str]:
    """Normalize a month label to its lower-case 3-letter key.
    
    Args:
        month: Month label such as 'MAR', 'Mar' or 'march'
        
    Returns:
        Key such as 'mar', or None if the label is not a month
    """
    if not month:
        return None
    
    key = str(month).strip().lower()[:3]
    return key if key in MONTH_KEYS else None

def week_key(value: WeekValue) -> str:
    """Key used to compare scan weeks.
    
    Parseable weeks compare by calendar date, so '1/6/2025' and
    '2025-01-06' are the same week. Unparseable weeks compare by text.
    """
    parsed = try_parse_week(value)
    if parsed is not None:
        return parsed.isoformat()
    return str(value).strip()

def format_week(value: WeekValue) -> str:
    """Format a week the way the planner displays it (M/D/YYYY)."""
    d = parse_week(value)
    return f"{d.month}/{d.day}/{d.year}"

def get_first_monday(year: int) -> date:
    """Get the first Monday of a year."""
    jan1 = date(year, 1, 1)
    return jan1 + timedelta(days=(7 - jan1.weekday()) % 7)

def get_planning_weeks(year: int, weeks: int = 52) -> List[date]:
    """Get the weekly calendar buckets (Mondays) for a planning year.
    
    Args:
        year: Planning year
        weeks: Number of weekly buckets
        
    Returns:
        List of week start dates
    """
    start = get_first_monday(year)
    return [start + timedelta(weeks=i) for i in range(weeks)]
