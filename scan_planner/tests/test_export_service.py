"""
Unit tests for CSV and workbook exports.
"""
import csv
import shutil
import tempfile
import unittest
from datetime import date
from pathlib import Path

from openpyxl import load_workbook

from scan_planner.exceptions import ExportError, ValidationError
from scan_planner.services.cluster_store import ClusterStore
from scan_planner.services.export_service import (
    ExportService,
    SUMMARY_EXPORT_FIELDS,
    scan_records,
    summary_records
)
from scan_planner.services.planner_service import ScanPlannerService
from scan_planner.tests.fixtures import (
    BALVENIE, GLENFIDDICH, HENDRICKS, TEST_CATALOG, make_product, make_rng, make_row
)

class ExportTestCase(unittest.TestCase):
    """Base class with a temporary export directory and a two-market plan."""
    
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.exporter = ExportService(output_dir=self.tmp_dir)
        self.store = ClusterStore(catalog=TEST_CATALOG, rng=make_rng())
        self.service = ScanPlannerService(self.store, mode='forecast', role='commercial', exporter=self.exporter)
        
        self.ny_id = self.service.create_cluster(
            "New York",
            "Costco",
            [
                make_product(GLENFIDDICH, weeks=("2025-03-03", "2025-03-10")),
                make_product(HENDRICKS, weeks=("2025-06-02",)),
            ]
        )
        self.tx_id = self.service.create_cluster("Texas", "HEB", [make_product(BALVENIE, weeks=("2025-05-05",))])
        # Second March scan of Glenfiddich at $3
        self.store.update_scan_amount(self.ny_id, 0, 1, 3.0)
    
    def tearDown(self):
        self.exporter.shutdown()
        shutil.rmtree(self.tmp_dir)

class TestRecords(ExportTestCase):
    """Test cases for export record builders."""
    
    def test_scan_records(self):
        records = scan_records(self.service.rows())
        
        self.assertEqual(len(records), 4)
        self.assertEqual(list(records[0]), [
            'market', 'account', 'brand', 'product', 'week', 'scan_amount',
            'projected_scan', 'projected_retail', 'qd', 'retailer_margin', 'loyalty', 'status'
        ])
        self.assertEqual(records[0]['brand'], "Glenfiddich")
        self.assertEqual(records[0]['status'], "draft")
    
    def test_summary_records(self):
        records = summary_records(self.service.summary())
        
        self.assertEqual(list(records[0]), SUMMARY_EXPORT_FIELDS)
        self.assertAlmostEqual(records[0]['mar'], 1260.0 + 105.0 * 18)

class TestCsvExport(ExportTestCase):
    """Test cases for CSV exports."""
    
    def test_rows_csv(self):
        path = self.service.export_rows_csv("rows.csv", markets=["New York"])
        
        self.assertEqual(path, Path(self.tmp_dir) / "rows.csv")
        with open(path, newline='') as f:
            reader = list(csv.reader(f))
        
        self.assertEqual(reader[0][:6], ['Market', 'Account', 'Brand', 'Product', 'Week', 'Scan $'])
        self.assertEqual(len(reader), 4)
        self.assertEqual(reader[1][0], "New York")
    
    def test_text_with_commas_is_quoted(self):
        path = self.exporter.export_rows_csv([make_row(account="Smith, Jones & Co")], "quoted.csv")
        
        content = Path(path).read_text()
        self.assertIn('"Smith, Jones & Co"', content)
        with open(path, newline='') as f:
            self.assertEqual(list(csv.reader(f))[1][1], "Smith, Jones & Co")
    
    def test_summary_csv(self):
        path = self.service.export_summary_csv("summary.csv", brands=["Glenfiddich"])
        
        with open(path, newline='') as f:
            reader = list(csv.reader(f))
        
        self.assertEqual(reader[0], ['Market', 'Brand', 'JAN', 'FEB', 'MAR', 'APR', 'MAY', 'JUN',
                                     'JUL', 'AUG', 'SEP', 'OCT', 'NOV', 'DEC', 'Total'])
        self.assertEqual(len(reader), 2)
        self.assertAlmostEqual(float(reader[1][4]), 3150.0)

class TestScanPlanWorkbook(ExportTestCase):
    """Test cases for the quick Scan Plan workbook."""
    
    def test_workbook(self):
        path = self.service.export_scan_plan("plan.xlsx")
        
        ws = load_workbook(path)['Scan Plan']
        self.assertEqual(
            [c.value for c in ws[1]],
            ['Market', 'Account', 'Brand', 'Product', 'Week', 'Scan $', 'Projected Scan Vol']
        )
        self.assertTrue(ws['A1'].font.bold)
        self.assertEqual(ws.max_row, 5)
        self.assertEqual(ws['F2'].value, 2.0)
        self.assertEqual(ws['F2'].number_format, '"$"#,##0.00')
        self.assertAlmostEqual(ws['G2'].value, 1260.0)
    
    def test_empty(self):
        with self.assertRaises(ExportError):
            self.service.export_scan_plan("empty.xlsx", markets=["Florida"])

class TestFinanceWorkbook(ExportTestCase):
    """Test cases for the finance workbook."""
    
    def export(self, **kwargs):
        self.service.publish(self.ny_id, "Q1 push")
        path = self.service.export_finance("finance.xlsx", as_of=date(2025, 1, 15), **kwargs)
        return load_workbook(path)
    
    def test_sheet_per_market(self):
        wb = self.export()
        
        self.assertEqual(wb.sheetnames, ["New York Market", "Texas Market"])
        self.assertEqual(wb["New York Market"]['A1'].value, "New York Market - Costco - 01/15/25")
        self.assertTrue(wb["New York Market"]['A1'].font.bold)
    
    def test_product_blocks(self):
        ws = self.export()["New York Market"]
        
        self.assertEqual(ws['A3'].value, GLENFIDDICH.upper())
        self.assertEqual([c.value for c in ws[3]][1:], [
            'JAN', 'FEB', 'MAR', 'APR', 'MAY', 'JUN', 'JUL', 'AUG', 'SEP', 'OCT', 'NOV', 'DEC'
        ])
        self.assertEqual(
            [ws.cell(row=r, column=1).value for r in range(4, 13)],
            ['BOTTLE COST', 'FRONTLINE SRP', 'FRONTLINE MARGIN %', 'SCAN', 'PROMO SRP',
             'PROMO MARGIN %', 'LOYALTY PER BOTTLE', 'LOYALTY OFFER', 'COMMENT']
        )
        # Blank separator, then the next product
        self.assertIsNone(ws['A13'].value)
        self.assertEqual(ws['A14'].value, HENDRICKS.upper())
    
    def test_cell_values_and_formats(self):
        ws = self.export()["New York Market"]
        scan = self.store.get_cluster(self.ny_id).products[0].scans[1]
        
        # Latest March scan wins
        self.assertEqual(ws['D7'].value, 3.0)
        self.assertEqual(ws['D7'].number_format, '"$"#,##0.00')
        self.assertAlmostEqual(ws['D6'].value, scan.retailer_margin / 100)
        self.assertEqual(ws['D6'].number_format, '0.0%')
        self.assertEqual(ws['D12'].value, "Q1 push")
        # No scan in January
        self.assertIsNone(ws['B7'].value)
        self.assertIsNone(ws['B12'].value)
    
    def test_field_selection_and_filters(self):
        wb = self.export(fields=['scan', 'comment'], markets=["New York"], retailers=["Costco"])
        
        self.assertEqual(wb.sheetnames, ["New York Market"])
        ws = wb["New York Market"]
        self.assertEqual(ws['A4'].value, 'SCAN')
        self.assertEqual(ws['A5'].value, 'COMMENT')
        self.assertEqual(ws['A7'].value, HENDRICKS.upper())
    
    def test_unknown_field(self):
        with self.assertRaises(ExportError) as ctx:
            self.export(fields=['margin_of_error'])
        self.assertEqual(ctx.exception.code, 'UNKNOWN_FIELD')
    
    def test_no_matching_rows(self):
        with self.assertRaises(ExportError):
            self.export(retailers=["BevMo"])

class TestBackgroundExport(ExportTestCase):
    """Test cases for exports run over a snapshot."""
    
    def test_export_uses_snapshot(self):
        future = self.service.submit_export('csv', "snapshot.csv")
        self.store.delete_cluster(self.tx_id)
        self.store.delete_cluster(self.ny_id)
        
        path = future.result(timeout=30)
        with open(path, newline='') as f:
            self.assertEqual(len(list(csv.reader(f))), 5)
    
    def test_finance_in_background(self):
        future = self.service.submit_export('finance', "bg.xlsx", as_of=date(2025, 1, 15))
        
        wb = load_workbook(future.result(timeout=30))
        self.assertEqual(wb.sheetnames, ["New York Market", "Texas Market"])
    
    def test_unknown_kind(self):
        with self.assertRaises(ValidationError):
            self.service.submit_export('pdf', "plan.pdf")

if __name__ == '__main__':
    unittest.main()
