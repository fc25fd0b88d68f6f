"""Allow running a refresh as: python -m portfolio_core.refresh [--config path]."""

import argparse
import sys

from portfolio_core.refresh.runner import check_alerts, main

parser = argparse.ArgumentParser(description="Scheduled price refresh and valuation materialization")
parser.add_argument("--config", default=None, help="Path to config.yaml")
parser.add_argument("--from", dest="from_date", default=None, help="First date (YYYY-MM-DD)")
parser.add_argument("--to", dest="to_date", default=None, help="Last date (YYYY-MM-DD)")
parser.add_argument("--account", dest="account_id", default=None, help="Limit materialization to one account")
parser.add_argument("--symbols", default=None, help="Comma-separated symbols to refresh")
parser.add_argument("--alerts", action="store_true", help="Report refresh health instead of refreshing")
args = parser.parse_args()
if args.alerts:
    sys.exit(check_alerts(args.config))
sys.exit(
    main(
        config_path=args.config,
        from_date=args.from_date,
        to_date=args.to_date,
        account_id=args.account_id,
        symbols=args.symbols,
    )
)
