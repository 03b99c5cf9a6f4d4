"""
Unit tests for planner row materialization.
"""
import unittest
from unittest.mock import patch

from scan_planner.core.materializer import build_rows, derive_brand
from scan_planner.models import Cluster, ClusterStatus, ProductEntry, ScanEvent
from scan_planner.tests.fixtures import BALVENIE, GLENFIDDICH, HENDRICKS, TEST_CATALOG, make_product

class TestDeriveBrand(unittest.TestCase):
    """Test cases for brand derivation from product names."""
    
    def test_brand_after_separator(self):
        self.assertEqual(derive_brand("Scotch - Glenfiddich 12YR 750ML"), "Glenfiddich")
        self.assertEqual(derive_brand("Gin - Hendricks 1.75L"), "Hendricks")
    
    def test_name_without_separator(self):
        self.assertEqual(derive_brand("Glenfiddich"), "Glenfiddich")
        self.assertEqual(derive_brand(""), "")

class TestBuildRows(unittest.TestCase):
    """Test cases for build_rows."""
    
    def setUp(self):
        self.cluster = Cluster(
            cluster_id="cluster-1",
            market="New York",
            account="Costco",
            products=[
                make_product(GLENFIDDICH, weeks=("2025-03-03", "2025-03-10", "2025-04-07")),
                make_product(BALVENIE, weeks=("2025-05-05",)),
                make_product(HENDRICKS, weeks=("2025-06-02", "2025-06-09")),
            ],
            status=ClusterStatus.REVIEW
        )
    
    def test_one_row_per_scan(self):
        rows = build_rows(self.cluster, TEST_CATALOG)
        
        self.assertEqual(len(rows), 6)
        self.assertEqual(len({r.id for r in rows}), 6)
    
    def test_row_fields(self):
        row = build_rows(self.cluster, TEST_CATALOG)[0]
        
        self.assertEqual(row.id, "cluster-1|0|0")
        self.assertEqual(row.market, "New York")
        self.assertEqual(row.account, "Costco")
        self.assertEqual(row.brand, "Glenfiddich")
        self.assertEqual(row.month, "MAR")
        self.assertAlmostEqual(row.projected_scan, 1260.0)
        self.assertEqual(row.status, ClusterStatus.REVIEW)
        self.assertEqual(row.to_record()['status'], 'review')
    
    def test_skips_products_without_scans(self):
        self.cluster.products.append(ProductEntry(name="Vodka - Reyka 750ML"))
        
        rows = build_rows(self.cluster, TEST_CATALOG)
        
        self.assertEqual(len(rows), 6)
        self.assertNotIn("Vodka - Reyka 750ML", {r.product for r in rows})
    
    def test_skips_unparseable_weeks(self):
        self.cluster.products[1].scans.append(ScanEvent(week="sometime in May", scan_amount=2.0))
        
        with patch('scan_planner.core.materializer.logger') as mock_logger:
            rows = build_rows(self.cluster, TEST_CATALOG)
        
        self.assertEqual(len(rows), 6)
        mock_logger.debug.assert_called()
    
    def test_uses_cached_outputs(self):
        scan = self.cluster.products[0].scans[0]
        scan.projected_scan = 999.0
        scan.projected_volume = 30.0
        scan.volume_lift = 5.0
        scan.volume_lift_pct = 10.0
        
        row = build_rows(self.cluster, TEST_CATALOG)[0]
        
        self.assertEqual(row.projected_scan, 999.0)
        self.assertEqual(row.projected_volume, 30.0)
    
    def test_does_not_write_back(self):
        build_rows(self.cluster, TEST_CATALOG)
        
        for product in self.cluster.products:
            for scan in product.scans:
                self.assertIsNone(scan.projected_scan)
                self.assertIsNone(scan.projected_volume)
    
    def test_placeholders_not_generated(self):
        row = build_rows(self.cluster, TEST_CATALOG)[0]
        
        self.assertIsNone(row.projected_retail)
        self.assertIsNone(row.qd)

if __name__ == '__main__':
    unittest.main()
