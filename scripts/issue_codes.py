#!/usr/bin/env python3
"""Issue verification codes for a batch from the command line.

Usage:
    python scripts/issue_codes.py --manufacturer-id 1 --batch-id 3 --quantity 20
    python scripts/issue_codes.py --manufacturer-id 1 --batch-id 3 --quantity 20 --output codes.txt

Goes through the same quota check as the API. Prints one code per line
(or writes them to --output). Exits 0 when all codes were issued, 1 otherwise.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from lumora.db.session import SessionLocal
from lumora.errors import LumoraError
from lumora.services.code_issuance import issue_codes_for_manufacturer


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Issue codes for a batch")
    parser.add_argument("--manufacturer-id", type=int, required=True)
    parser.add_argument("--batch-id", type=int, required=True)
    parser.add_argument("--quantity", type=int, required=True)
    parser.add_argument("--output", type=Path, default=None, help="write codes to this file")
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        result = issue_codes_for_manufacturer(db, args.manufacturer_id, args.batch_id, args.quantity)
        values = [code.code_value for code in result.codes]
    except (LumoraError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()

    if args.output:
        args.output.write_text("\n".join(values) + "\n")
    else:
        for value in values:
            print(value)
    print(f"issued={result.issued} shortfall={result.shortfall}", file=sys.stderr)
    return 0 if result.shortfall == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
