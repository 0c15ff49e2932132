#!/usr/bin/env python3
"""Compute the SHA-256 of the managed contract code.

Prints a shell export line so the hash can be pinned in the environment.

Usage:
    eval $(python scripts/compute_resource_hash.py [--path FILE])
"""

import argparse
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from stellar_lifecycle.fingerprint import ResourceFingerprint

DEFAULT_PATH = Path(__file__).parent.parent / "contracts/simple_account/out/simple_account.wasm"


def main() -> int:
    parser = argparse.ArgumentParser(description="Compute contract code hash")
    parser.add_argument("--path", type=Path, default=DEFAULT_PATH, help="Contract code file")
    parser.add_argument(
        "--var", default="SIMPLE_ACCOUNT_WASM_HASH", help="Environment variable name to export"
    )
    args = parser.parse_args()

    try:
        fingerprint = ResourceFingerprint.from_file(args.path)
    except OSError as e:
        print(f"Error: Could not read contract code at {args.path}", file=sys.stderr)
        print(str(e), file=sys.stderr)
        return 1

    print(f"export {args.var}={fingerprint.hex}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
