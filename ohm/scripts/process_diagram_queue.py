# Run one diagram queue pass outside the web app (system cron, k8s CronJob, ...)
# Usage: python -m ohm.scripts.process_diagram_queue [--limit N] [--interval SECONDS]
# Reads the same .env as the app (DATABASE_URL, BYTEZ_API_KEY, ...)

import argparse
import asyncio
import json
import logging
import sys

from ohm import logging_filters
from ohm.db import dispose_engine, init_db
from ohm.workers.diagram_worker import process_diagram_queue


async def run(limit, interval):
    await init_db()
    try:
        return await process_diagram_queue(limit=limit, min_interval=interval)
    finally:
        await dispose_engine()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Process queued circuit diagrams once.")
    parser.add_argument("--limit", type=int, default=None, help="max jobs this pass (default DIAGRAM_BATCH_LIMIT)")
    parser.add_argument("--interval", type=float, default=None, help="min seconds between jobs (default DIAGRAM_MIN_INTERVAL)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s | %(message)s")
    logging_filters.install()

    result = asyncio.run(run(args.limit, args.interval))
    print(json.dumps(result, indent=2))
    return 1 if result.get("failed") else 0


if __name__ == "__main__":
    sys.exit(main())
