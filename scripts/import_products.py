"""
Import a supplier price list into the inventory backend.

Reads the spreadsheet, reuses products whose barcode is already known,
creates the rest, and prints the barcode mappings.

Usage:
    python scripts/import_products.py prices.xlsx
    python scripts/import_products.py prices.xlsx --base-url http://localhost:3000
    python scripts/import_products.py prices.csv --policy first_wins
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse
import asyncio

from dotenv import load_dotenv
load_dotenv()

from integrations.backend_client import BackendClient
from models.reconciliation import DuplicateKeyPolicy
from parsers.spreadsheet_parser import read_spreadsheet_rows
from services.mapping_store import UploadSession
from services.reconciliation_service import ReconciliationCoordinator


async def run(path: str, base_url: str, policy: str) -> int:
    rows = read_spreadsheet_rows(path)
    print(f"Read {len(rows)} rows from {path}")

    session = UploadSession()
    async with BackendClient(base_url=base_url) as backend:
        coordinator = ReconciliationCoordinator(backend, duplicate_policy=policy)
        result = await coordinator.reconcile(rows)
    session.record(result)

    print(f"\nAccepted: {result.accepted_count}  Rejected: {result.rejected_count}")
    print(f"Created:  {result.created_count}  Reused:   {result.reused_count}")

    if result.duplicate_keys:
        print(f"\nDuplicate barcodes ({policy}): {', '.join(result.duplicate_keys)}")

    print("\nMappings:")
    for mapping in session.mappings.all():
        print(f"  {mapping.natural_key} -> {mapping.canonical_barcode}")

    if result.failures:
        print(f"\n[ERROR] {len(result.failures)} products could not be created:")
        for failure in result.failures:
            print(f"  {failure.natural_key}: {failure.error}")
        return 1

    print(f"\n[OK] {result.summary}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Reconcile a supplier price list with the backend")
    parser.add_argument("file", help="Spreadsheet (.xlsx or .csv)")
    parser.add_argument("--base-url", default=None, help="Backend base URL (default from settings)")
    parser.add_argument(
        "--policy",
        default=None,
        choices=[p.value for p in DuplicateKeyPolicy],
        help="Handling of repeated barcodes (default from settings)"
    )
    args = parser.parse_args()

    from config import settings
    exit_code = asyncio.run(run(
        args.file,
        args.base_url or settings.backend_base_url,
        args.policy or settings.duplicate_key_policy,
    ))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
