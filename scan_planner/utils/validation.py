from typing import Dict, Iterable, List, Optional

from scan_planner.models import ProductEntry
from scan_planner.exceptions import ValidationError, DuplicateScanWeekError
from scan_planner.utils.date_utils import week_key

def validate_scan_amount(scan_amount) -> Optional[str]:
    """Validate a scan dollar amount.
    
    Args:
        scan_amount: Scan dollars per bottle
        
    Returns:
        Error message, or None if the amount is valid
    """
    if isinstance(scan_amount, bool):
        return 'Scan amount must be a valid number'
    
    try:
        amount = float(scan_amount)
    except (TypeError, ValueError):
        return 'Scan amount must be a valid number'
    
    if amount != amount or amount <= 0:
        return 'Scan amount must be greater than zero'
    
    return None

def find_duplicate_weeks(weeks: Iterable) -> List[str]:
    """Find weeks that occur more than once.
    
    Args:
        weeks: Scan weeks
        
    Returns:
        Sorted list of duplicated week keys
    """
    seen = set()
    duplicates = set()
    for week in weeks:
        key = week_key(week)
        if key in seen:
            duplicates.add(key)
        seen.add(key)
    return sorted(duplicates)

def validate_cluster(market: str, account: str, products: List[ProductEntry]) -> Dict[str, str]:
    """Validate a cluster before it is saved.
    
    A cluster can be saved once market and account are set, it has at
    least one product, and every product has at least one valid scan.
    
    Args:
        market: Market name
        account: Account (retailer) name
        products: Product entries
        
    Returns:
        Dictionary with validation errors
    """
    errors = {}
    
    if not market or not str(market).strip():
        errors['market'] = 'Market is required'
    
    if not account or not str(account).strip():
        errors['account'] = 'Account is required'
    
    if not products:
        errors['products'] = 'At least one product is required'
    
    seen_names = set()
    for idx, product in enumerate(products or []):
        if not product.name or not product.name.strip():
            errors[f'products[{idx}].name'] = 'Product name is required'
        elif product.name in seen_names:
            errors[f'products[{idx}].name'] = f"Product '{product.name}' is listed more than once"
        seen_names.add(product.name)

        if not product.scans:
            errors[f'products[{idx}].scans'] = f"Product '{product.name}' has no scans"
            continue
        
        for s_idx, scan in enumerate(product.scans):
            amount_error = validate_scan_amount(scan.scan_amount)
            if amount_error:
                errors[f'products[{idx}].scans[{s_idx}].scan_amount'] = amount_error
    
    return errors

def is_cluster_saveable(market: str, account: str, products: List[ProductEntry]) -> bool:
    """Whether the save action should be enabled for a cluster."""
    return not validate_cluster(market, account, products)

def ensure_valid_cluster(market: str, account: str, products: List[ProductEntry]) -> None:
    """Raise ValidationError if the cluster is not saveable.
    
    Raises:
        ValidationError: With the per-field errors in details
        DuplicateScanWeekError: If a product has two scans in the same week
    """
    errors = validate_cluster(market, account, products)
    if errors:
        raise ValidationError(
            f"Cluster is not valid: {'; '.join(errors.values())}",
            code='INVALID_CLUSTER',
            details=errors
        )
    
    for product in products:
        duplicates = find_duplicate_weeks(scan.week for scan in product.scans)
        if duplicates:
            raise DuplicateScanWeekError(
                f"Product '{product.name}' has more than one scan in week(s): {', '.join(duplicates)}",
                code='DUPLICATE_SCAN_WEEK',
                details={'product': product.name, 'weeks': duplicates}
            )
