# scan_planner/main.py
import argparse
import sys

from tabulate import tabulate

from scan_planner.exceptions import ScanPlannerError
from scan_planner.logging_setup import logger, get_logger
from scan_planner.seed import build_demo_store
from scan_planner.services.export_service import DEFAULT_FINANCE_FIELDS
from scan_planner.services.planner_service import ScanPlannerService
from scan_planner.utils.date_utils import MONTH_KEYS, MONTH_NAMES

def init_session(args) -> ScanPlannerService:
    """Build a planner session over a seeded demo store."""
    store = build_demo_store(clusters=args.clusters, seed=args.seed)
    session = ScanPlannerService(store, mode=args.mode, role=args.role)
    
    logger.app_logger.info(
        f"Scan planner initialized: {len(store)} clusters, mode={session.mode}, role={session.role}"
    )
    return session

def show_rows(session: ScanPlannerService, args) -> bool:
    """Print planner rows as a table."""
    rows = session.rows(markets=args.market, accounts=args.account, products=args.product)
    
    table_data = [
        [r.market, r.account, r.brand, r.product, r.week, f"${r.scan_amount:,.2f}",
         f"${r.projected_scan:,.2f}", f"{r.projected_volume:,.1f}", f"{r.volume_lift_pct:.1f}%", r.status.value]
        for r in rows
    ]
    print(tabulate(table_data, headers=[
        'Market', 'Account', 'Brand', 'Product', 'Week', 'Scan $',
        'Projected Scan', 'Projected Vol', 'Lift %', 'Status'
    ]))
    print(f"\n{len(rows)} rows")
    return True

def show_summary(session: ScanPlannerService, args) -> bool:
    """Print the market x brand summary as a table."""
    summary = session.summary(markets=args.market, brands=args.brand)
    
    table_data = [
        [s.market, s.brand] + [f"{s.months[m]:,.0f}" for m in MONTH_KEYS] + [f"{s.total:,.0f}"]
        for s in summary
    ]
    totals = session.summary_totals(markets=args.market, brands=args.brand)
    table_data.append(['TOTAL', ''] + [f"{totals[m]:,.0f}" for m in MONTH_KEYS] + [f"{totals['total']:,.0f}"])
    
    print(tabulate(table_data, headers=['Market', 'Brand'] + MONTH_NAMES + ['Total']))
    return True

def run_export(session: ScanPlannerService, args) -> bool:
    """Write an export file."""
    log = get_logger('export')
    filters = {'markets': args.market, 'accounts': args.account, 'products': args.product}
    
    if args.format == 'csv':
        path = session.export_rows_csv(args.output, **filters)
    elif args.format == 'summary':
        path = session.export_summary_csv(args.output, markets=args.market, brands=args.brand)
    elif args.format == 'xlsx':
        path = session.export_scan_plan(args.output, **filters)
    else:
        path = session.export_finance(
            args.output,
            fields=args.fields,
            markets=args.market,
            retailers=args.account
        )
    
    log.info(f"Export written to {path}")
    print(f"Export written to {path}")
    return True

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Scan Planner')
    
    parser.add_argument('--clusters', type=int, default=6,
                      help='Number of demo clusters to seed')
    parser.add_argument('--seed', type=int, default=None,
                      help='Random seed for a reproducible demo plan')
    parser.add_argument('--mode', choices=['budget', 'forecast'], default=None,
                      help='Planner mode (defaults to config)')
    parser.add_argument('--role', choices=['commercial', 'finance'], default=None,
                      help='User role (defaults to config)')
    
    subparsers = parser.add_subparsers(dest='command', help='Commands')
    
    # Rows command
    rows_parser = subparsers.add_parser('rows', help='Show planner rows')
    _add_filters(rows_parser)
    
    # Summary command
    summary_parser = subparsers.add_parser('summary', help='Show market x brand summary')
    summary_parser.add_argument('--market', action='append', help='Filter by market (repeatable)')
    summary_parser.add_argument('--brand', action='append', help='Filter by brand (repeatable)')
    
    # Export command
    export_parser = subparsers.add_parser('export', help='Export rows to a file')
    export_parser.add_argument('format', choices=['csv', 'summary', 'xlsx', 'finance'],
                             help='Export format')
    export_parser.add_argument('output', help='Output file (relative paths go to the export directory)')
    export_parser.add_argument('--field', dest='fields', action='append', choices=DEFAULT_FINANCE_FIELDS,
                             help='Finance export field (repeatable, defaults to all)')
    export_parser.add_argument('--brand', action='append', help='Filter summary export by brand (repeatable)')
    _add_filters(export_parser)
    
    return parser

def _add_filters(subparser) -> None:
    subparser.add_argument('--market', action='append', help='Filter by market (repeatable)')
    subparser.add_argument('--account', action='append', help='Filter by account (repeatable)')
    subparser.add_argument('--product', action='append', help='Filter by product (repeatable)')

COMMANDS = {
    'rows': show_rows,
    'summary': show_summary,
    'export': run_export,
}

def main(argv=None) -> int:
    """Main application entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    
    if not args.command:
        parser.print_help()
        return 1
    
    try:
        session = init_session(args)
        COMMANDS[args.command](session, args)
    except ScanPlannerError as e:
        logger.log_exception('main', e, f"Command '{args.command}' failed")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    
    return 0

if __name__ == "__main__":
    sys.exit(main())
