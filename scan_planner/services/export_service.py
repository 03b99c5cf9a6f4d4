# scan_planner/services/export_service.py
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from scan_planner.config import config
from scan_planner.exceptions import ExportError
from scan_planner.logging_setup import get_logger, logger as log_manager
from scan_planner.models import PlannerRow, SummaryRow
from scan_planner.utils.date_utils import MONTH_KEYS, MONTH_NAMES, try_parse_week

# Set up logging
logger = get_logger(__name__)

SCAN_EXPORT_FIELDS = [
    'market', 'account', 'brand', 'product', 'week', 'scan_amount',
    'projected_scan', 'projected_retail', 'qd', 'retailer_margin', 'loyalty', 'status'
]

SCAN_FIELD_LABELS = {
    'market': 'Market',
    'account': 'Account',
    'brand': 'Brand',
    'product': 'Product',
    'week': 'Week',
    'scan_amount': 'Scan $',
    'projected_scan': 'Projected Scan',
    'projected_retail': 'Projected Retail',
    'qd': 'QD',
    'retailer_margin': 'Retailer Margin %',
    'loyalty': 'Loyalty',
    'status': 'Status',
}

SUMMARY_EXPORT_FIELDS = ['market', 'brand'] + MONTH_KEYS + ['total']

SUMMARY_FIELD_LABELS = dict(
    [('market', 'Market'), ('brand', 'Brand')]
    + [(key, name) for key, name in zip(MONTH_KEYS, MONTH_NAMES)]
    + [('total', 'Total')]
)

# Finance workbook: label, source attribute on the planner row, cell type, label fill
FINANCE_FIELDS = {
    'bottle_cost': ('BOTTLE COST', 'projected_retail', 'currency', 'FFF0F0F0'),
    'frontline_srp': ('FRONTLINE SRP', 'projected_retail', 'currency', 'FFF0F0F0'),
    'frontline_margin': ('FRONTLINE MARGIN %', 'retailer_margin', 'percent', 'FFF0F0F0'),
    'scan': ('SCAN', 'scan_amount', 'currency', 'FF87CEEB'),
    'promo_srp': ('PROMO SRP', 'projected_scan', 'currency', 'FF87CEEB'),
    'promo_margin': ('PROMO MARGIN %', 'retailer_margin', 'percent', 'FF87CEEB'),
    'loyalty_per_bottle': ('LOYALTY PER BOTTLE', 'loyalty', 'currency', 'FFDA70D6'),
    'loyalty_offer': ('LOYALTY OFFER', 'comment', 'text', 'FFDA70D6'),
    'comment': ('COMMENT', 'comment', 'text', 'FFDA70D6'),
}

DEFAULT_FINANCE_FIELDS = list(FINANCE_FIELDS)

THIN = Side(style='thin', color='FF000000')
BORDER = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)
MAX_SHEET_TITLE = 31

PathLike = Union[str, Path]

def scan_records(rows: Iterable[PlannerRow]) -> List[Dict]:
    """Scan-level export records (one per planner row)."""
    records = []
    for row in rows:
        record = row.to_record()
        records.append({f: record[f] for f in SCAN_EXPORT_FIELDS})
    return records

def summary_records(summary: Iterable[SummaryRow]) -> List[Dict]:
    """Summary-level export records (one per market x brand)."""
    records = []
    for s in summary:
        record = s.to_record()
        records.append({f: record[f] for f in SUMMARY_EXPORT_FIELDS})
    return records

def records_to_frame(
    records: List[Dict],
    columns: Sequence[str],
    labels: Optional[Mapping[str, str]] = None
) -> pd.DataFrame:
    """Build a DataFrame with the given column order and display headers."""
    frame = pd.DataFrame.from_records(records, columns=list(columns))
    if labels:
        frame = frame.rename(columns=labels)
    return frame

class ExportService:
    """Service writing planner and summary rows to CSV and Excel files."""
    
    def __init__(self, output_dir: Optional[PathLike] = None, max_workers: int = 1):
        """Initialize the export service.
        
        Args:
            output_dir: Directory for relative file names (defaults to config)
            max_workers: Worker threads for background exports
        """
        self.output_dir = Path(output_dir or config.export_config['directory'])
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
    
    def _resolve_path(self, path: PathLike) -> Path:
        path = Path(path)
        if not path.is_absolute():
            path = self.output_dir / path
        path.parent.mkdir(parents=True, exist_ok=True)
        return path
    
    # ------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------
    
    def export_csv(
        self,
        records: List[Dict],
        path: PathLike,
        columns: Sequence[str],
        labels: Optional[Mapping[str, str]] = None
    ) -> Path:
        """Write records as CSV with a header row.
        
        Text containing commas or quotes is double-quoted.
        
        Returns:
            Path of the written file
        """
        target = self._resolve_path(path)
        frame = records_to_frame(records, columns, labels)
        frame.to_csv(target, index=False)
        logger.info(f"Wrote {len(frame)} rows to {target}")
        return target
    
    def export_rows_csv(self, rows: Iterable[PlannerRow], path: PathLike) -> Path:
        return self.export_csv(scan_records(rows), path, SCAN_EXPORT_FIELDS, SCAN_FIELD_LABELS)
    
    def export_summary_csv(self, summary: Iterable[SummaryRow], path: PathLike) -> Path:
        return self.export_csv(summary_records(summary), path, SUMMARY_EXPORT_FIELDS, SUMMARY_FIELD_LABELS)
    
    # ------------------------------------------------------------------
    # Excel
    # ------------------------------------------------------------------
    
    def export_scan_plan(self, rows: Sequence[PlannerRow], path: PathLike) -> Path:
        """Write the quick 'Scan Plan' workbook: one sheet, one line per row.
        
        Raises:
            ExportError: If there are no rows
        """
        if not rows:
            raise ExportError("No scan plan rows to export", code='EMPTY_EXPORT')
        
        currency_format = config.export_config['currency_format']
        log_info = log_manager.operation_start_log('export_scan_plan', {'rows': len(rows)})
        
        wb = Workbook()
        ws = wb.active
        ws.title = 'Scan Plan'
        
        ws.append(['Market', 'Account', 'Brand', 'Product', 'Week', 'Scan $', 'Projected Scan Vol'])
        for cell in ws[1]:
            cell.font = Font(bold=True)
        
        for row in rows:
            ws.append([row.market, row.account, row.brand, row.product, row.week, row.scan_amount, row.projected_scan])
            ws.cell(row=ws.max_row, column=6).number_format = currency_format
            ws.cell(row=ws.max_row, column=7).number_format = '#,##0.0'
        
        for idx, width in enumerate([15, 20, 15, 25, 15, 12, 18], 1):
            ws.column_dimensions[get_column_letter(idx)].width = width
        
        target = self._save(wb, path, log_info)
        return target
    
    def export_finance(
        self,
        rows: Sequence[PlannerRow],
        path: PathLike,
        fields: Optional[Sequence[str]] = None,
        markets: Optional[Sequence[str]] = None,
        retailers: Optional[Sequence[str]] = None,
        comments: Optional[Mapping[str, str]] = None,
        as_of: Optional[date] = None
    ) -> Path:
        """Write the finance workbook: one sheet per market, one block per product.
        
        Each product block has a header row (product name and JAN..DEC) and
        one row per selected field. A month with no scan is left blank; with
        several scans in a month the latest week is shown.
        
        Args:
            rows: Planner rows
            path: Output file
            fields: Finance field keys (defaults to all)
            markets: Markets to include (all when empty)
            retailers: Accounts to include (all when empty)
            comments: Text per cluster id for the comment fields
            as_of: Date printed in the sheet titles (defaults to today)
            
        Returns:
            Path of the written file
            
        Raises:
            ExportError: If a field is unknown or no rows are left to export
        """
        fields = list(fields or DEFAULT_FINANCE_FIELDS)
        unknown = [f for f in fields if f not in FINANCE_FIELDS]
        if unknown:
            raise ExportError(f"Unknown finance export field(s): {', '.join(unknown)}", code='UNKNOWN_FIELD')
        
        selected = [
            r for r in rows
            if (not markets or r.market in markets) and (not retailers or r.account in retailers)
        ]
        if not selected:
            raise ExportError("No rows match the selected markets and retailers", code='EMPTY_EXPORT')
        
        export_cfg = config.export_config
        stamp = (as_of or date.today()).strftime(export_cfg['date_stamp_format'])
        comments = comments or {}
        log_info = log_manager.operation_start_log('export_finance', {
            'rows': len(selected), 'fields': fields, 'markets': markets, 'retailers': retailers
        })
        
        by_market: Dict[str, List[PlannerRow]] = {}
        for row in selected:
            by_market.setdefault(row.market, []).append(row)
        
        wb = Workbook()
        wb.remove(wb.active)
        
        for market, market_rows in by_market.items():
            ws = wb.create_sheet(title=f"{market} Market"[:MAX_SHEET_TITLE])
            
            accounts = list(dict.fromkeys(r.account for r in market_rows))
            retailer_text = accounts[0] if len(accounts) == 1 else f"{len(accounts)} Retailers"
            
            ws.append([f"{market} Market - {retailer_text} - {stamp}"])
            title = ws.cell(row=1, column=1)
            title.font = Font(bold=True, size=14, color='FF000000')
            title.alignment = Alignment(horizontal='center', vertical='center')
            ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=1 + len(MONTH_NAMES))
            ws.append([])
            
            by_product: Dict[str, List[PlannerRow]] = {}
            for row in market_rows:
                by_product.setdefault(row.product, []).append(row)
            
            for block_idx, (product, product_rows) in enumerate(by_product.items()):
                if block_idx > 0:
                    ws.append([])
                self._write_product_block(ws, product, product_rows, fields, comments, export_cfg)
            
            ws.column_dimensions['A'].width = 20
            for col in range(2, 2 + len(MONTH_NAMES)):
                ws.column_dimensions[get_column_letter(col)].width = 11
            for row_idx in range(1, ws.max_row + 1):
                ws.row_dimensions[row_idx].height = 18
        
        return self._save(wb, path, log_info)
    
    @staticmethod
    def _write_product_block(ws, product, product_rows, fields, comments, export_cfg) -> None:
        ws.append([product.upper()] + MONTH_NAMES)
        for cell in ws[ws.max_row]:
            cell.font = Font(bold=True, color='FFFFFFFF', size=11)
            cell.fill = PatternFill(start_color='FF333333', end_color='FF333333', fill_type='solid')
            cell.alignment = Alignment(horizontal='center', vertical='center')
            cell.border = BORDER
        
        # Latest scan per month wins
        month_map: Dict[int, PlannerRow] = {}
        for row in sorted(product_rows, key=lambda r: try_parse_week(r.week) or date.min):
            week_date = try_parse_week(row.week)
            if week_date is not None:
                month_map[week_date.month - 1] = row
        
        for field in fields:
            label, source, cell_type, color = FINANCE_FIELDS[field]
            values = []
            for month_idx in range(len(MONTH_NAMES)):
                data = month_map.get(month_idx)
                if data is None:
                    values.append(None)
                    continue
                
                if source == 'comment':
                    value = comments.get(data.cluster_id)
                else:
                    value = getattr(data, source)
                
                if cell_type == 'currency':
                    values.append(value if isinstance(value, (int, float)) and value != 0 else None)
                elif cell_type == 'percent':
                    values.append(value / 100 if isinstance(value, (int, float)) and value != 0 else None)
                else:
                    values.append(value if value not in (None, '') else None)
            
            ws.append([label] + values)
            row_idx = ws.max_row
            
            label_cell = ws.cell(row=row_idx, column=1)
            label_cell.font = Font(bold=True, size=10, color='FF000000')
            label_cell.fill = PatternFill(start_color=color, end_color=color, fill_type='solid')
            label_cell.alignment = Alignment(horizontal='left', vertical='center')
            label_cell.border = BORDER
            
            for col in range(2, 2 + len(MONTH_NAMES)):
                cell = ws.cell(row=row_idx, column=col)
                cell.font = Font(size=10, color='FF000000')
                cell.alignment = Alignment(horizontal='left' if cell_type == 'text' else 'right', vertical='center')
                cell.border = BORDER
                if cell.value is None:
                    continue
                if cell_type == 'currency':
                    cell.number_format = export_cfg['currency_format']
                elif cell_type == 'percent':
                    cell.number_format = export_cfg['percent_format']
    
    def _save(self, wb: Workbook, path: PathLike, log_info: Dict) -> Path:
        target = self._resolve_path(path)
        try:
            wb.save(target)
        except OSError as e:
            log_manager.operation_end_log(log_info, success=False, result_info={'error': str(e)})
            raise ExportError(f"Could not write {target}: {e}", code='WRITE_FAILED') from e
        
        log_manager.operation_end_log(log_info, success=True, result_info={'path': str(target)})
        return target
    
    # ------------------------------------------------------------------
    # Background exports
    # ------------------------------------------------------------------
    
    def submit(self, export_fn, *args, **kwargs) -> Future:
        """Run an export method in a worker thread.
        
        Pass an immutable snapshot of rows (e.g. ClusterStore.snapshot())
        so later store mutations do not affect the running export.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix='export')
        return self._executor.submit(export_fn, *args, **kwargs)
    
    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
