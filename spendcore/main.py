"""Main entry point: categorize and scan one normalized statement CSV

Usage:
    python -m spendcore.main statement.csv                 # Full run
    python -m spendcore.main statement.csv --dry-run       # Preview rows only
    python -m spendcore.main statement.csv --limit 100     # First 100 rows
"""

import argparse
import uuid
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables before reading LOG_LEVEL / SPENDCORE_CONFIG
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

from spendcore.loaders.csv_loader import TransactionCsvLoader
from spendcore.orchestrator.engine import SpendEngine
from spendcore.utils.config_loader import load_config
from spendcore.utils.errors import SpendCoreError
from spendcore.utils.logging import get_logger

logger = get_logger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Categorize transactions and flag anomalies")
    parser.add_argument("csv_path", help="CSV of normalized rows (date, description, amount, currency)")
    parser.add_argument("--upload-id", default=None, help="Upload ID (random when omitted)")
    parser.add_argument("--config", default=None, help="YAML configuration file")
    parser.add_argument("--limit", type=int, default=None, help="Only process the first N rows")
    parser.add_argument("--dry-run", action="store_true", help="Load and print rows without processing")
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)
    upload_id = args.upload_id or str(uuid.uuid4())

    try:
        loader = TransactionCsvLoader()
        transactions = loader.load(args.csv_path, upload_id=upload_id, limit=args.limit)

        if args.dry_run:
            for txn in transactions:
                print(f"{txn.txn_date}  {txn.amount:>12}  {txn.currency}  {txn.description}")
            print(f"\n{len(transactions)} rows loaded (dry run)")
            return {'upload_id': upload_id, 'status': 'dry_run', 'transaction_count': len(transactions)}

        engine = SpendEngine(config=load_config(args.config))
        results = engine.process_transactions(upload_id, transactions)

        summary = results['summary']
        categories = {c.id: c.name for c in engine.list_categories()}

        print("=" * 60)
        print(f"  UPLOAD SUMMARY  {upload_id}")
        print("=" * 60)
        print(f"Transactions:   {summary.txn_count}")
        print(f"Total income:   {summary.total_income}")
        print(f"Total expense:  {summary.total_expense}")
        print(f"Net balance:    {summary.net_balance}")
        print(f"Uncategorized:  {summary.uncategorized_expense}")
        for category_id, amount in summary.by_category.items():
            print(f"  {categories.get(category_id, category_id)!s:<20} {amount}")

        anomalies = engine.list_anomalies(upload_id)
        print(f"\nOpen anomalies: {summary.anomaly_count}")
        for anomaly in anomalies:
            print(f"  [{anomaly.severity.value:<6}] {anomaly.rule_name.value:<20} {anomaly.detail}")

        return results

    except SpendCoreError as e:
        logger.exception(f"Run failed: {e}", code=e.error_code)
        raise


if __name__ == "__main__":
    main()
