#!/usr/bin/env python3
"""Validate runtime configuration for pre-production/production deploys.

Examples:
  python backend/scripts/validate_runtime_config.py
  python backend/scripts/validate_runtime_config.py --require-s3 --pretty
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

# Add backend/ to path when run as a script.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import get_settings, is_local_env
from ingest.records import DATASET_FILES


def _validate_settings(*, require_s3: bool) -> tuple[list[str], dict[str, Any]]:
    settings = get_settings()
    local_env = is_local_env(settings.app_env)
    failures: list[str] = []

    if not local_env and settings.debug:
        failures.append("DEBUG=true is not allowed outside local/dev/test")

    data_dir = Path(settings.local_data_dir)
    missing_local = [name for name in DATASET_FILES if not (data_dir / name).exists()]
    if missing_local:
        failures.append(f"LOCAL_DATA_DIR is missing dataset files: {', '.join(missing_local)}")

    if require_s3:
        if not settings.aws_access_key_id.strip():
            failures.append("AWS_ACCESS_KEY_ID is required when --require-s3 is set")
        if not settings.aws_secret_access_key.strip():
            failures.append("AWS_SECRET_ACCESS_KEY is required when --require-s3 is set")
        if not settings.s3_bucket.strip():
            failures.append("S3_BUCKET is required when --require-s3 is set")

    summary = {
        "status": "success" if not failures else "failed",
        "app_env": settings.app_env,
        "local_env": local_env,
        "require_s3": bool(require_s3),
        "local_data_dir": str(data_dir),
        "failures": failures,
    }
    return failures, summary


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate deployment runtime config")
    parser.add_argument(
        "--require-s3",
        action="store_true",
        help="Require AWS credentials and a bucket for cloud mode",
    )
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    args = parser.parse_args()

    try:
        failures, summary = _validate_settings(require_s3=bool(args.require_s3))
    except Exception as exc:  # noqa: BLE001
        summary = {
            "status": "failed",
            "error": str(exc),
            "require_s3": bool(args.require_s3),
        }
        failures = [str(exc)]

    if args.pretty:
        print(json.dumps(summary, indent=2, sort_keys=True))
    else:
        print(json.dumps(summary))

    return 0 if not failures else 1


if __name__ == "__main__":
    raise SystemExit(main())
