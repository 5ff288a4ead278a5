#!/usr/bin/env python
"""
Run a face index job once

Runs either the employee synchronization or the fingerprint backfill outside
the API server and prints the summary as JSON.

Usage:
    python -m app.cli.run_job sync
    python -m app.cli.run_job fingerprints
"""
import argparse
import asyncio
import json
import sys

from app.core.container import ServiceContainer
from app.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def run(job: str) -> int:
    """Initialize the services, run one job and release every resource.

    Args:
        job: "sync" or "fingerprints"

    Returns:
        Process exit code
    """
    container = ServiceContainer()
    await container.initialize()
    try:
        if job == "sync":
            summary = await container.reconciliation_service.sync_employees()
        else:
            summary = await container.fingerprint_backfill_service.update_missing_fingerprints()
    except Exception as e:
        logger.error("Job failed", job=job, error=str(e), exc_info=True)
        print(json.dumps({"success": False, "error": str(e)}))
        return 1
    finally:
        await container.cleanup()

    print(json.dumps({"success": True, "result": summary.model_dump()}))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a face index job once")
    parser.add_argument(
        "job",
        choices=["sync", "fingerprints"],
        help="sync: reconcile employees; fingerprints: backfill missing fingerprints",
    )
    args = parser.parse_args()

    setup_logging()
    return asyncio.run(run(args.job))


if __name__ == "__main__":
    sys.exit(main())
