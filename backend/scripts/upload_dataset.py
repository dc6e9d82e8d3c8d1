#!/usr/bin/env python3
"""Upload a local CSV dataset folder to the configured S3 bucket.

Examples:
  python backend/scripts/upload_dataset.py --folder dataset/input
  python backend/scripts/upload_dataset.py --source ./exports --folder 2025-w14 --bucket my-bucket
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

# Add backend/ to path when run as a script.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import get_settings
from dashboard.datasets import missing_required_files, upload_dataset_folder
from integrations.s3_client import S3Client


async def _run(source: Path, folder: str, bucket: str) -> dict:
    files = [(path.name, path.read_bytes()) for path in sorted(source.glob("*.csv"))]
    missing = missing_required_files([name for name, _ in files])

    client = S3Client.from_settings(get_settings())
    results = await upload_dataset_folder(client, bucket, folder, files)
    failed = [r for r in results if not r.ok]
    return {
        "status": "success" if results and not failed else "failed",
        "bucket": bucket,
        "folder": folder,
        "uploaded": [r.key for r in results if r.ok],
        "errors": [f"{r.name}: {r.error}" for r in failed],
        "missing_required": missing,
    }


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Upload dashboard CSVs to S3")
    parser.add_argument("--source", default=settings.local_data_dir, help="Directory holding the CSV files")
    parser.add_argument("--folder", required=True, help="Destination folder inside the bucket")
    parser.add_argument("--bucket", default=settings.s3_bucket, help="Destination bucket")
    args = parser.parse_args()

    summary = asyncio.run(_run(Path(args.source), args.folder, args.bucket))
    print(json.dumps(summary, indent=2))
    return 0 if summary["status"] == "success" else 1


if __name__ == "__main__":
    raise SystemExit(main())
