"""CLI script to export stored records to a JSON or CSV file.

Usage:
    python scripts/export_records.py --format json --output health_data.json
    python scripts/export_records.py --format csv --output health_data.csv
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from health_records.database import engine, session_factory
from health_records.models.orm import Base
from health_records.services.data_transfer import export_csv, export_json
from health_records.services.record_store import RecordStore
from health_records.services.storage import SqlKeyValueStore


def main() -> None:
    parser = argparse.ArgumentParser(description="Export patient records")
    parser.add_argument("--format", choices=["json", "csv"], default="json", help="Export format")
    parser.add_argument("--output", type=Path, required=True, help="Destination file")
    args = parser.parse_args()

    if args.output.exists() and args.output.is_dir():
        print(f"Error: {args.output} is a directory")
        sys.exit(1)

    Base.metadata.create_all(engine)
    with session_factory() as session:
        store = RecordStore(SqlKeyValueStore(session))
        content = export_json(store) if args.format == "json" else export_csv(store)

    args.output.write_text(content, encoding="utf-8")
    print(f"Wrote {args.format.upper()} export to {args.output}")


if __name__ == "__main__":
    main()
