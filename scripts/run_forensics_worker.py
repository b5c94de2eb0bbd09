#!/usr/bin/env python3
"""Run the certificate forensics worker.

Usage:
    python scripts/run_forensics_worker.py
    python scripts/run_forensics_worker.py --once

Polls the forensics_jobs queue and scores certificates with the ELA tamper
detector and Tesseract OCR. --once drains the due jobs and exits.
Exits 0 on success, 1 on failure.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from lumora.db.session import SessionLocal
from lumora.forensics.worker import default_oracles, process_available, run_worker


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Lumora forensics worker")
    parser.add_argument("--once", action="store_true", help="drain due jobs once and exit")
    parser.add_argument("--max-jobs", type=int, default=25, help="jobs per batch (with --once)")
    parser.add_argument("--poll-interval", type=float, default=None, help="seconds between idle polls")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    detector, extractor = default_oracles()

    if args.once:
        db = SessionLocal()
        try:
            result = process_available(db, detector, extractor, max_jobs=args.max_jobs)
            print(
                f"status={result['status']} "
                f"jobs_processed={result['jobs_processed']} "
                f"completed={result['completed']}"
            )
            return 0
        except Exception as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        finally:
            db.close()

    try:
        run_worker(SessionLocal, detector, extractor, poll_interval=args.poll_interval)
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    sys.exit(main())
