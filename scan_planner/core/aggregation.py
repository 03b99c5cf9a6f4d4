# scan_planner/core/aggregation.py
import math
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from scan_planner.models import PlannerRow, SummaryRow
from scan_planner.utils.date_utils import MONTH_KEYS, month_key

def build_summary_id(market: str, brand: str) -> str:
    return f"{market}|{brand}"

def aggregate(rows: Iterable[PlannerRow]) -> List[SummaryRow]:
    """Roll planner rows up into market x brand monthly summaries.
    
    Projected scan dollars are summed into the month bucket of each row.
    Rows without a recognizable month are ignored. Each bucket is summed
    with math.fsum so the result does not depend on row order.
    
    Args:
        rows: Planner rows
        
    Returns:
        List of SummaryRow sorted by market and brand
    """
    buckets: Dict[tuple, Dict[str, List[float]]] = defaultdict(lambda: defaultdict(list))
    
    for row in rows:
        key = month_key(row.month)
        if key is None:
            continue
        buckets[(row.market, row.brand)][key].append(row.projected_scan or 0.0)
    
    summary = []
    for (market, brand) in sorted(buckets):
        values = buckets[(market, brand)]
        months = {m: math.fsum(values.get(m, [])) for m in MONTH_KEYS}
        total = math.fsum(v for m in MONTH_KEYS for v in values.get(m, []))
        summary.append(SummaryRow(
            id=build_summary_id(market, brand),
            market=market,
            brand=brand,
            months=months,
            total=total,
            # No budget feed yet, this year's budget mirrors the plan total
            ty_bud=total
        ))
    
    return summary

def _matches(value: str, selected: Optional[Sequence[str]]) -> bool:
    return not selected or value in selected

def filter_rows(
    rows: Iterable[PlannerRow],
    markets: Optional[Sequence[str]] = None,
    accounts: Optional[Sequence[str]] = None,
    products: Optional[Sequence[str]] = None
) -> List[PlannerRow]:
    """Filter planner rows; an empty selection matches everything."""
    return [
        r for r in rows
        if _matches(r.market, markets)
        and _matches(r.account, accounts)
        and _matches(r.product, products)
    ]

def filter_summary(
    summary: Iterable[SummaryRow],
    markets: Optional[Sequence[str]] = None,
    brands: Optional[Sequence[str]] = None
) -> List[SummaryRow]:
    """Filter summary rows; an empty selection matches everything."""
    return [
        s for s in summary
        if _matches(s.market, markets) and _matches(s.brand, brands)
    ]

def unique_values(records: Iterable, attribute: str) -> List[str]:
    """Sorted distinct values of an attribute, for filter option lists."""
    return sorted({getattr(r, attribute) for r in records if getattr(r, attribute)})

def summary_totals(summary: Iterable[SummaryRow]) -> Dict[str, float]:
    """Grand totals per month across summary rows, plus 'total'."""
    summary = list(summary)
    totals = {m: math.fsum(s.months.get(m, 0.0) for s in summary) for m in MONTH_KEYS}
    totals['total'] = math.fsum(s.total for s in summary)
    return totals
