#!/usr/bin/env python3
"""
CSV Order Import Script

Imports one collection (resin lots, sale items or clients) from a
spreadsheet CSV export into the Supabase database with:
- Date parsing for d/m/yyyy text and spreadsheet serial numbers
- Bulk normalization (invalid rows are dropped and counted)
- Per-record upserts with error isolation
- Gross revenue recomputed after the import (duplicate clients merged)

Usage:
    python import_orders.py sale_items path/to/sales.csv --owner-id <uuid>
    python import_orders.py resin_lots path/to/lots.csv --owner-id <uuid> --dry-run
"""

from __future__ import annotations

import argparse
import csv
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.normalization import (
    client_from_raw,
    normalize_bulk,
    resin_lot_from_raw,
    sale_item_from_raw,
)
from repositories.order_store import OrderStore, SupabaseOrderStore
from scripts.spreadsheet_dates import parse_spreadsheet_date
from services.order_session import OrderTrackingSession


@dataclass(frozen=True)
class CollectionLayout:
    """How to read and store one collection."""
    factory: Callable[[dict[str, Any]], Any]
    date_columns: tuple[str, ...]
    upsert: str


COLLECTIONS: dict[str, CollectionLayout] = {
    "resin_lots": CollectionLayout(
        factory=resin_lot_from_raw,
        date_columns=("purchase_date", "end_date"),
        upsert="upsert_resin_lot",
    ),
    "sale_items": CollectionLayout(
        factory=sale_item_from_raw,
        date_columns=("sale_date",),
        upsert="upsert_sale_item",
    ),
    "clients": CollectionLayout(
        factory=client_from_raw,
        date_columns=(),
        upsert="upsert_client",
    ),
}


@dataclass
class ImportResult:
    """Results from CSV import operation."""
    total_rows: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[dict] = field(default_factory=list)


def parse_row_dates(row: dict[str, str], date_columns: tuple[str, ...], row_num: int) -> dict[str, Any]:
    """
    Replace spreadsheet date cells with calendar dates.

    Raises:
        ValueError: If a date cell cannot be parsed (message names the row)
    """
    parsed: dict[str, Any] = {key: value for key, value in row.items() if key is not None}
    for column in date_columns:
        if column not in parsed:
            continue
        try:
            parsed[column] = parse_spreadsheet_date(parsed[column])
        except ValueError as e:
            raise ValueError(f"Row {row_num}, column '{column}': {e}") from e
    return parsed


def import_csv(
    collection: str,
    csv_path: str,
    owner_id: str,
    store: OrderStore | None = None,
    dry_run: bool = False,
) -> ImportResult:
    """
    Import one collection from a CSV file.

    Args:
        collection: One of "resin_lots", "sale_items", "clients"
        csv_path: Path to the CSV file
        owner_id: Owner the imported records belong to
        store: Store to write to (defaults to SupabaseOrderStore)
        dry_run: If True, parse and validate but don't write

    Returns:
        ImportResult with statistics and errors

    Raises:
        FileNotFoundError: If CSV file doesn't exist
        ValueError: If the collection is unknown or the CSV is empty
    """
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {collection}")
    layout = COLLECTIONS[collection]

    csv_file = Path(csv_path)
    if not csv_file.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    result = ImportResult()
    rows: list[dict[str, Any]] = []

    print(f"Reading CSV: {csv_path}")
    print(f"Collection: {collection}")
    print(f"Dry run: {dry_run}")
    print()

    with open(csv_file, "r", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames:
            raise ValueError("CSV file is empty or malformed")

        for row_num, row in enumerate(reader, start=2):  # Row 1 is header
            result.total_rows += 1
            try:
                rows.append(parse_row_dates(row, layout.date_columns, row_num))
            except ValueError as e:
                result.skipped += 1
                result.errors.append({"row_num": row_num, "error": str(e)})

    normalized = normalize_bulk(rows, layout.factory)
    result.skipped += normalized.dropped

    if dry_run:
        result.successful = len(normalized.records)
        return result

    store = store or SupabaseOrderStore()
    upsert = getattr(store, layout.upsert)
    for record in normalized.records:
        try:
            upsert(record, owner_id)
            result.successful += 1
        except Exception as e:
            result.failed += 1
            result.errors.append({"record": repr(record), "error": str(e)})

    return result


def recalculate(store: OrderStore, owner_id: str) -> None:
    """Load a session so derived gross revenue is recomputed and persisted."""
    session = OrderTrackingSession(store, owner_id)
    try:
        session.load()
        if session.last_recalculation is not None:
            failed = session.last_recalculation.wait_for_writes()
            updated = len(session.last_recalculation.revenue_updates)
            print(f"Gross revenue recomputed for {updated} resin lot(s) ({failed} write failures)")
    finally:
        session.close()


def print_summary(result: ImportResult) -> None:
    """Print import summary statistics."""
    print()
    print("=" * 60)
    print("IMPORT SUMMARY")
    print("=" * 60)
    print(f"Total Rows:       {result.total_rows}")
    print(f"Successful:       {result.successful}")
    print(f"Failed:           {result.failed}")
    print(f"Skipped:          {result.skipped}")
    print()

    if result.errors:
        print(f"Errors:           {len(result.errors)}")
        print()
        print("First 5 errors:")
        for error in result.errors[:5]:
            print(f"  - Row {error.get('row_num', 'N/A')}: {error['error']}")
        if len(result.errors) > 5:
            print(f"  ... and {len(result.errors) - 5} more")
    else:
        print("No errors!")

    print("=" * 60)


def save_error_log(errors: list[dict], output_path: str) -> None:
    """Save error details to JSON file."""
    if not errors:
        return

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(errors, f, indent=2, default=str)

    print(f"\nError log saved to: {output_path}")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Import resin lots, sale items or clients from CSV into Supabase",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Import sale items
  python import_orders.py sale_items sales.csv --owner-id 0b6f...

  # Dry run (parse only, don't write)
  python import_orders.py resin_lots lots.csv --owner-id 0b6f... --dry-run

  # Skip the gross revenue recompute after importing
  python import_orders.py sale_items sales.csv --owner-id 0b6f... --no-recalculate
        """
    )

    parser.add_argument(
        "collection",
        choices=sorted(COLLECTIONS),
        help="Collection the CSV contains"
    )

    parser.add_argument(
        "csv_path",
        help="Path to the CSV file to import"
    )

    parser.add_argument(
        "--owner-id",
        required=True,
        help="Owner the imported records belong to"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse and validate CSV without writing to database"
    )

    parser.add_argument(
        "--no-recalculate",
        action="store_true",
        help="Do not recompute gross revenue after the import"
    )

    parser.add_argument(
        "--error-log",
        default="import_errors.json",
        help="Path to save error log (default: import_errors.json)"
    )

    args = parser.parse_args(argv)

    try:
        print("Starting CSV import...")
        print()

        store = None if args.dry_run else SupabaseOrderStore()
        result = import_csv(
            collection=args.collection,
            csv_path=args.csv_path,
            owner_id=args.owner_id,
            store=store,
            dry_run=args.dry_run,
        )

        print_summary(result)

        if result.errors:
            save_error_log(result.errors, args.error_log)

        if store is not None and not args.no_recalculate and result.successful:
            recalculate(store, args.owner_id)

        if result.failed > 0 or result.skipped > 0:
            return 1  # Partial success
        return 0

    except KeyboardInterrupt:
        print("\n\nImport interrupted by user")
        return 130

    except Exception as e:
        print(f"\nFATAL ERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
