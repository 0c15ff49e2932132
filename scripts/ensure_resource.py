#!/usr/bin/env python3
"""Ensure the managed contract code is installed and its TTL topped up.

Runs the same maintenance the API performs at startup, then exits.

Usage:
    python scripts/ensure_resource.py [--check-only] [--path FILE]

Options:
    --check-only  Only report status, never submit anything
    --path FILE   Contract code file (default: RESOURCE_PATH)
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from stellar_lifecycle.config import get_settings
from stellar_lifecycle.errors import LifecycleError
from stellar_lifecycle.fingerprint import load_managed_resource
from stellar_lifecycle.lifecycle.orchestrator import LifecycleOrchestrator

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


async def main() -> int:
    parser = argparse.ArgumentParser(description="Contract code maintenance")
    parser.add_argument("--check-only", action="store_true", help="Only report status")
    parser.add_argument("--path", type=str, help="Contract code file")
    args = parser.parse_args()

    settings = get_settings()
    path = args.path or settings.resource_path

    try:
        resource = load_managed_resource(path, settings.simple_account_wasm_hash)
        orchestrator = LifecycleOrchestrator.from_settings(settings)
    except (FileNotFoundError, ValueError, LifecycleError) as e:
        logger.error(str(e))
        return 1

    logger.info("=" * 60)
    logger.info(f"RESOURCE {resource.fingerprint.hex}")
    logger.info(f"Network: {settings.stellar_network} ({settings.soroban_rpc_url})")
    logger.info("=" * 60)

    try:
        if args.check_only or resource.content is None:
            if resource.content is None:
                logger.warning("Contract code file not found, reporting status only")
            health = await orchestrator.resource_health(resource.fingerprint)
            print(json.dumps(health.to_dict(), indent=2))
            return 0 if health.resource_installed and not health.expired else 2

        report = await orchestrator.keep_resource_alive(resource.fingerprint, resource.content)
    except LifecycleError as e:
        logger.error(f"Maintenance failed: {e}")
        return 1

    print(json.dumps({
        "provision": report.provision.to_dict(),
        "ttl_extension": report.ttl_extension.to_dict() if report.ttl_extension else None,
    }, indent=2))
    return 0 if report.status.is_live else 2


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
