#!/usr/bin/env python3
"""Run the hotspot risk scan locally.

Usage:
    python scripts/run_hotspot_scan.py
    python scripts/run_hotspot_scan.py --days 7

Aggregates fraud-signal scans from the trailing window, asks the risk oracle
for hotspots and stores them as advisories. Requires LLM_API_KEY.
Exits 0 on success, 1 on failure.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from lumora.db.session import SessionLocal
from lumora.services.hotspots import run_hotspot_scan
from lumora.services.risk_oracle import get_risk_oracle


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Lumora hotspot scan")
    parser.add_argument("--days", type=int, default=None, help="trailing window in days")
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        result = run_hotspot_scan(db, get_risk_oracle(), args.days)
        print(
            f"status={result['status']} "
            f"job_run_id={result['job_run_id']} "
            f"advisories_created={result['advisories_created']}"
        )
        return 0 if result["status"] == "completed" else 1
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
