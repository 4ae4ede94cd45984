"""
Replay queued operations from the command line.

Mirrors the control API sync endpoint but can be run from a cron job or a
developer workstation against the local database.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from shared.config import get_config
from .connectivity.monitor import SocketProbeNetworkState
from .main import SyncService


async def replay(service: SyncService, site_ids: List[str], dry_run: bool) -> dict:
    """Replay (or list, when ``dry_run``) the queue of each requested site."""
    if site_ids:
        sites = [await service.sites.require(site_id) for site_id in site_ids]
    else:
        sites = await service.sites.list()

    if not dry_run and isinstance(service.network_state, SocketProbeNetworkState):
        await service.network_state.probe()

    summary = {}
    for site in sites:
        if dry_run:
            entries = await service.queue.list(site.id)
            summary[site.id] = {"pending": [entry.model_dump(mode="json") for entry in entries]}
            continue
        report = await service.scheduler.run_site(site)
        summary[site.id] = report.model_dump() if report is not None else {"skipped_reason": "already running"}
    return summary


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay queued offline operations.")
    parser.add_argument("--database", default=None, help="Path to the local database (defaults to ACCESS_DATABASE_PATH)")
    parser.add_argument("--site", action="append", default=[], dest="sites", help="Site id to replay (repeatable; default all)")
    parser.add_argument("--dry-run", action="store_true", help="List pending entries without contacting any site")
    parser.add_argument("--output", type=Path, default=None, help="Optional path to write JSON summary")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    overrides = {"sync_interval_seconds": None}
    if args.database:
        overrides["database_path"] = args.database
    service = SyncService(config=get_config("sync", 8090, **overrides))

    try:
        summary = asyncio.run(replay(service, args.sites, args.dry_run))
    except KeyboardInterrupt:
        return 130
    except Exception as exc:
        print(f"[offline-sync] failed: {exc}", file=sys.stderr)
        return 1

    if args.dry_run:
        print("[offline-sync] DRY RUN - nothing was sent")

    print(json.dumps(summary, indent=2))

    if args.output:
        args.output.write_text(json.dumps(summary, indent=2))

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
