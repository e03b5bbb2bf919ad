#!/usr/bin/env python3
"""
Fetch (and decrypt) dashboard metrics for one or more time ranges.

Usage:
    python fetch_metrics.py                           # this_year from the snapshot
    python fetch_metrics.py today this_month          # several time ranges
    python fetch_metrics.py --tenant maps --page /maps/index.html
    python fetch_metrics.py --live this_quarter       # query the API directly
    python fetch_metrics.py --crema                   # discovery data only
    python fetch_metrics.py -v --log-file crema.log   # DEBUG to console and file
"""

import argparse
import asyncio
import json
import sys

import httpx

from crema_client import CremaClient, CremaError, SecretProvider
from settings import LOG_FILE, LOG_LEVEL, MODE, SECRET_RETENTION
from settings.logging import setup_logging


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("periods", nargs="*", default=["this_year"])
    parser.add_argument("--tenant", default="maps")
    parser.add_argument("--page", default=None, help="page path used to locate the snapshot")
    parser.add_argument("--base-path", default=None, help="explicit base path (skips page path guessing)")
    parser.add_argument("--live", action="store_true", help="query the live API instead of the snapshot")
    parser.add_argument("--crema", action="store_true", help="print crema discovery data")
    parser.add_argument("--retention", default=SECRET_RETENTION, help="none | session | persistent")
    parser.add_argument("--log-file", default=LOG_FILE, help="also write DEBUG logs to this file")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, transport: httpx.AsyncBaseTransport | None = None) -> dict:
    provider = SecretProvider(retention=args.retention)
    async with CremaClient(
        args.tenant,
        page_path=args.page,
        base_path=args.base_path,
        mode="live" if args.live else MODE,
        secret_provider=provider,
        transport=transport,
    ) as client:
        if args.crema:
            return {"crema": await client.get_crema_data()}

        # Sequential: concurrent misses would each prompt for the passphrase
        return {period: await client.get_metrics(period) for period in args.periods}


def main(argv: list[str] | None = None):
    args = parse_args(sys.argv[1:] if argv is None else argv)
    logger = setup_logging(level="DEBUG" if args.verbose else LOG_LEVEL, log_file=args.log_file)

    try:
        output = asyncio.run(run(args))
    except CremaError as e:
        logger.error("{}", e)
        sys.exit(1)

    print(json.dumps(output, indent=2, default=str))


if __name__ == "__main__":
    main()
