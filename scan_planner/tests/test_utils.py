"""
Unit tests for date, validation and catalog helpers.
"""
import unittest
from datetime import date, datetime

from scan_planner.catalog import (
    PRODUCT_INDEX,
    available_weeks,
    find_product,
    get_market_names,
    get_scan_factor_per_9l,
    get_scan_weeks
)
from scan_planner.exceptions import (
    EditNotAllowedError, InvalidDateError, InvalidTransitionError, NotFoundError,
    ScanPlannerError, ValidationError
)
from scan_planner.models import ClusterStatus, ProductEntry, ProductReference, ScanEvent
from scan_planner.tests.fixtures import GLENFIDDICH, make_product
from scan_planner.utils.date_utils import (
    format_week,
    get_month_name,
    month_key,
    parse_week,
    try_parse_week,
    week_key
)
from scan_planner.utils.validation import (
    find_duplicate_weeks,
    is_cluster_saveable,
    validate_cluster,
    validate_scan_amount
)

class TestDateUtils(unittest.TestCase):
    """Test cases for week parsing and formatting."""
    
    def test_parse_formats(self):
        expected = date(2025, 3, 10)
        for value in ("2025-03-10", "3/10/2025", "03/10/25", "2025/03/10", " 3/10/2025 ",
                      expected, datetime(2025, 3, 10, 12, 30)):
            with self.subTest(value=value):
                self.assertEqual(parse_week(value), expected)
    
    def test_parse_invalid(self):
        for value in ("", "March", "2025-13-01", None, 42):
            with self.subTest(value=value):
                with self.assertRaises(InvalidDateError):
                    parse_week(value)
        self.assertIsNone(try_parse_week("soon"))
    
    def test_month_helpers(self):
        self.assertEqual(get_month_name("2025-03-10"), "MAR")
        self.assertEqual(month_key("Mar"), "mar")
        self.assertEqual(month_key("MARCH"), "mar")
        self.assertIsNone(month_key("Q1"))
        self.assertIsNone(month_key(None))
    
    def test_week_key_and_format(self):
        self.assertEqual(week_key("3/10/2025"), week_key("2025-03-10"))
        self.assertEqual(week_key(" TBD "), "TBD")
        self.assertEqual(format_week(date(2025, 1, 6)), "1/6/2025")

class TestValidation(unittest.TestCase):
    """Test cases for cluster validation helpers."""
    
    def test_scan_amount(self):
        self.assertIsNone(validate_scan_amount(2))
        self.assertIsNone(validate_scan_amount("1.5"))
        for bad in (0, -1, "abc", None, True, float('nan')):
            with self.subTest(value=bad):
                self.assertIsNotNone(validate_scan_amount(bad))
    
    def test_duplicate_weeks(self):
        self.assertEqual(find_duplicate_weeks(["2025-03-03", "3/3/2025", "2025-03-10"]), ["2025-03-03"])
        self.assertEqual(find_duplicate_weeks(["2025-03-03", "2025-03-10"]), [])
    
    def test_validate_cluster(self):
        self.assertEqual(validate_cluster("New York", "Costco", [make_product()]), {})
        self.assertTrue(is_cluster_saveable("New York", "Costco", [make_product()]))
        
        errors = validate_cluster("New York", "Costco", [
            ProductEntry(name=GLENFIDDICH),
            ProductEntry(name="Gin - Hendricks 750ML", scans=[ScanEvent("2025-03-03", 0)]),
        ])
        self.assertIn('products[0].scans', errors)
        self.assertIn('products[1].scans[0].scan_amount', errors)
        self.assertFalse(is_cluster_saveable("", "Costco", [make_product()]))

class TestCatalog(unittest.TestCase):
    """Test cases for catalog lookups."""
    
    def test_find_product(self):
        self.assertEqual(find_product(GLENFIDDICH).pack_desc, "6x750")
        self.assertIsNone(find_product("scotch - glenfiddich 12yr 750ml"))
        self.assertEqual(len(PRODUCT_INDEX), 14)
    
    def test_scan_factor(self):
        self.assertEqual(get_scan_factor_per_9l(GLENFIDDICH), 12.0)
        self.assertEqual(get_scan_factor_per_9l("Gin - Hendricks 750ML"), 12.0)
        self.assertEqual(get_scan_factor_per_9l("Not A Product"), 12.0)
    
    def test_pack_parsing(self):
        self.assertEqual(ProductReference("X", "6x750", 1.0).scan_factor_per_9l, 6.0)
        self.assertEqual(ProductReference("X", "", 1.0).pack_bottles, 1)
        self.assertEqual(ProductReference("X", "case", 0).scan_factor_per_9l, 1.0)
    
    def test_markets(self):
        names = get_market_names()
        self.assertIn("Texas", names)
        self.assertNotIn("Ontario", names)
    
    def test_weeks(self):
        weeks = get_scan_weeks(2025)
        
        self.assertEqual(len(weeks), 52)
        self.assertEqual(weeks[0], date(2025, 1, 6))
        self.assertTrue(all(w.weekday() == 0 for w in weeks))
        
        available = available_weeks(["2025-01-06", "1/13/2025"], year=2025)
        self.assertEqual(len(available), 50)
        self.assertEqual(available[0], "1/20/2025")

class TestExceptions(unittest.TestCase):
    """Test cases for the exception hierarchy."""
    
    def test_to_dict(self):
        error = ValidationError("Cluster is not valid", code='INVALID_CLUSTER', details={'market': 'Market is required'})
        
        self.assertIsInstance(error, ScanPlannerError)
        self.assertEqual(str(error), "[INVALID_CLUSTER] Cluster is not valid")
        self.assertEqual(error.to_dict(), {
            'error': 'ValidationError',
            'message': 'Cluster is not valid',
            'code': 'INVALID_CLUSTER',
            'details': {'market': 'Market is required'}
        })
    
    def test_default_message(self):
        error = EditNotAllowedError(code='CREATE_NOT_ALLOWED')
        
        self.assertIsInstance(error, InvalidTransitionError)
        self.assertEqual(str(error), "[CREATE_NOT_ALLOWED] Cluster is not editable")
        self.assertEqual(NotFoundError().to_dict(), {'error': 'NotFoundError', 'message': 'Resource not found'})
    
    def test_enum_parsing(self):
        self.assertEqual(ClusterStatus.from_string(" Review "), ClusterStatus.REVIEW)
        self.assertEqual(str(ClusterStatus.APPROVED), "approved")
        with self.assertRaises(ValueError):
            ClusterStatus.from_string("rejected")

if __name__ == '__main__':
    unittest.main()
