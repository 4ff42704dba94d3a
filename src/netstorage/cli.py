"""CLI entry point for netstorage: one-shot file operations against an ACS host."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from netstorage.client import StorageClient
from netstorage.config import NetStorageConfig, load_config
from netstorage.errors import NetStorageError
from netstorage.logging_config import configure_logging

logger = logging.getLogger("netstorage")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        prog="netstorage",
        description="netstorage - ACS storage client",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("netstorage.yaml"),
        help="Path to YAML configuration file (default: netstorage.yaml)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config, default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=["text", "json"],
        help="Log format: 'text' (human-readable) or 'json' (structured)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    stat_parser = subparsers.add_parser("stat", help="Show metadata for a path")
    stat_parser.add_argument("path")

    ls_parser = subparsers.add_parser("ls", help="List a directory")
    ls_parser.add_argument("path", nargs="?", default="")
    ls_parser.add_argument(
        "-r", "--recursive", action="store_true", default=False,
        help="Include every descendant",
    )

    get_parser = subparsers.add_parser("get", help="Download a file")
    get_parser.add_argument("path")
    get_parser.add_argument(
        "--output", type=str, default="-",
        help="Output file path (default: stdout)",
    )

    put_parser = subparsers.add_parser("put", help="Upload a local file")
    put_parser.add_argument("source", type=Path)
    put_parser.add_argument("path")
    put_parser.add_argument(
        "--overwrite", action="store_true", default=False,
        help="Replace the remote file if it exists",
    )

    rm_parser = subparsers.add_parser("rm", help="Delete a file or empty directory")
    rm_parser.add_argument("path")

    mkdir_parser = subparsers.add_parser("mkdir", help="Create a directory and its parents")
    mkdir_parser.add_argument("path")

    rmdir_parser = subparsers.add_parser("rmdir", help="Delete a directory recursively")
    rmdir_parser.add_argument("path")

    mv_parser = subparsers.add_parser("mv", help="Rename a file")
    mv_parser.add_argument("path")
    mv_parser.add_argument("new_path")

    du_parser = subparsers.add_parser("du", help="Show file count and bytes used")
    du_parser.add_argument("path", nargs="?", default="")

    return parser.parse_args(argv)


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


async def _get(client: StorageClient, args: argparse.Namespace) -> None:
    if args.output == "-":
        async for chunk in client.read_stream(args.path):
            sys.stdout.buffer.write(chunk)
        sys.stdout.buffer.flush()
        return
    with open(args.output, "wb") as fh:
        async for chunk in client.read_stream(args.path):
            fh.write(chunk)
    print(f"Downloaded {args.path} to {args.output}", file=sys.stderr)


async def _put(client: StorageClient, args: argparse.Namespace) -> None:
    with open(args.source, "rb") as fh:
        if args.overwrite and await client.has(args.path):
            record = await client.update_stream(args.path, fh)
        else:
            record = await client.write_stream(args.path, fh)
    _emit(record.to_dict())


async def _run(config: NetStorageConfig, args: argparse.Namespace) -> bool:
    """Run one subcommand. Returns False when the server rejected it."""
    async with StorageClient.from_config(config) as client:
        if args.command == "stat":
            _emit((await client.stat(args.path)).to_dict())
        elif args.command == "ls":
            records = await client.list(args.path, recursive=args.recursive)
            _emit([record.to_dict() for record in records])
        elif args.command == "get":
            await _get(client, args)
        elif args.command == "put":
            await _put(client, args)
        elif args.command == "rm":
            return await client.delete(args.path)
        elif args.command == "mkdir":
            _emit((await client.mkdir(args.path)).to_dict())
        elif args.command == "rmdir":
            return await client.rmdir(args.path)
        elif args.command == "mv":
            return await client.rename(args.path, args.new_path)
        elif args.command == "du":
            usage = await client.disk_usage(args.path)
            _emit({"path": args.path or "/", "files": usage.files, "bytes": usage.bytes})
    return True


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the netstorage CLI.

    Loads configuration, applies CLI overrides, and runs one subcommand.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Process exit status.
    """
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except FileNotFoundError:
        print(f"Error: config file not found: {args.config}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error reading config: {e}", file=sys.stderr)
        return 1

    if args.log_level is not None:
        config.logging.level = args.log_level
    if args.log_format is not None:
        config.logging.format = args.log_format
    configure_logging(level=config.logging.level, fmt=config.logging.format)

    try:
        ok = asyncio.run(_run(config, args))
    except NetStorageError as exc:
        logger.debug("%s failed", args.command, exc_info=True)
        print(f"Error: {exc.code}: {exc.message}", file=sys.stderr)
        return 1

    if not ok:
        print(f"Error: {args.command} was rejected by the server", file=sys.stderr)
        return 1
    return 0


def entry_point() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    entry_point()
