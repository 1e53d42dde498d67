"""Command-line entrypoint for inspecting and reaping leases."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from sdblock.core.client import SdbLock
from sdblock.core.factory import create_client
from sdblock.core.settings import LockSettings
from sdblock.core.timecode import decode_time
from sdblock.utils.logging import get_logger


logger = get_logger("SdbLockCLI")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sdblock", description="Inspect and release distributed locks.")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to settings YAML (defaults to SDBLOCK_* environment variables)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    status = commands.add_parser("status", help="Show when a resource was locked")
    status.add_argument("resource")

    listing = commands.add_parser("list", help="List locked resources")
    listing.add_argument("--age", type=float, default=None, help="Only leases older than this many seconds")

    unlock = commands.add_parser("unlock", help="Release a resource")
    unlock.add_argument("resource")
    unlock.add_argument("--expected", default=None, help="Only release a lease with this encoded lock time")

    reap = commands.add_parser("reap", help="Release leases older than AGE seconds")
    reap.add_argument("age", type=float)
    return parser


def _emit(lines: List[str]) -> None:
    for line in lines:
        print(line)


async def run_command(args: argparse.Namespace, client: SdbLock) -> int:
    """Execute a parsed command against ``client`` and return the exit status."""
    if args.command == "status":
        value = await client.lock_value(args.resource)
        if value is None:
            _emit([f"{args.resource} unlocked"])
        else:
            try:
                since = decode_time(value).isoformat()
            except ValueError:
                logger.warning("Lease on %s has a malformed lock time %r", args.resource, value)
                _emit([f"{args.resource} locked ({value})"])
            else:
                _emit([f"{args.resource} locked since {since} ({value})"])
        return 0

    if args.command == "list":
        _emit(await client.locked_resources(args.age))
        return 0

    if args.command == "unlock":
        if await client.unlock(args.resource, args.expected):
            logger.info("Unlocked %s", args.resource)
            return 0
        logger.warning("Lease on %s did not match %s; left in place", args.resource, args.expected)
        return 1

    if args.command == "reap":
        _emit(await client.unlock_old(args.age))
        return 0

    raise ValueError(f"Unknown command: {args.command}")


async def _main(args: argparse.Namespace) -> int:
    settings = LockSettings.from_file(args.config) if args.config else LockSettings.from_env()
    client = await create_client(settings)
    try:
        return await run_command(args, client)
    finally:
        await client.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
