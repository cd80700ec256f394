"""
CLI main entry point.
"""

import argparse
import logging
import sys
from contextlib import ExitStack
from pathlib import Path

from ..config import (
    DEFAULT_CONFIG_PATH,
    Config,
    ConfigValidationError,
    create_default_config,
    load_config,
)
from ..export import ExportPipeline, RunStats, open_sink
from ..store import StoreError, TangleStore

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _add_db_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--db-path",
        "--dbPath",
        dest="db_path",
        type=Path,
        default=None,
        help="tangle.db file or the directory that contains it (required)",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="tangle-export",
        description="Export tangle transactions and their metadata as JSON documents",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to config file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # export command
    export_parser = subparsers.add_parser(
        "export", help="Walk the metadata index and append one JSON document per transaction"
    )
    _add_db_path_argument(export_parser)
    export_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output file to store the dump (default: output.txt)",
    )
    export_parser.add_argument(
        "--truncate",
        action="store_true",
        default=None,
        help="Start a clean output file instead of appending to it",
    )
    export_parser.add_argument(
        "--omit-confirmation-index",
        dest="include_confirmation_index",
        action="store_false",
        default=None,
        help="Leave ConfirmationIndex out of every exported row",
    )
    export_parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Stop after this many index entries (default: whole index)",
    )

    # stats command
    stats_parser = subparsers.add_parser("stats", help="Show storage sizes of the tangle replica")
    _add_db_path_argument(stats_parser)

    # init-config command
    init_parser = subparsers.add_parser("init-config", help="Write a default config file")
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file",
    )

    return parser


def _open_store(config: Config) -> TangleStore | None:
    if not config.store.db_path:
        print("❌ dbPath is required (use --db-path, TANGLE_DB_PATH or store.db_path)")
        return None
    try:
        return TangleStore(config.store.db_path)
    except StoreError as e:
        logger.error(f"Cannot initialize tangle store: {e}")
        print(f"❌ Failed to open tangle store: {e}")
        return None


def cmd_export(config: Config) -> int:
    """Export every joinable transaction to the output file.

    Args:
        config: Application configuration.

    Returns:
        Exit code (0 once the walk completes, 1 on a fatal error).
    """
    try:
        config.ensure_valid()
    except ConfigValidationError as e:
        print(f"❌ Invalid configuration: {e}")
        return 1

    store = _open_store(config)
    if store is None:
        return 1

    export = config.export
    print(f"📤 Exporting {store.db_path} → {export.output_path}")

    stats: RunStats | None = None
    with store:
        try:
            with ExitStack() as outputs:
                try:
                    sink = outputs.enter_context(
                        open_sink(
                            export.output_path,
                            truncate=export.truncate,
                            indent=export.indent,
                            include_confirmation_index=export.include_confirmation_index,
                        )
                    )
                except OSError as e:
                    logger.error(f"cannot open file: {e}")
                    print(f"❌ Cannot open output file {export.output_path}: {e}")
                    return 1
                stats = ExportPipeline(store, sink, limit=export.limit).run()
        except StoreError as e:
            logger.error(f"Metadata index walk aborted: {e}")
            print(f"❌ Export aborted: {e}")
            return 1
        except OSError as e:
            # Rows already written stay in the file
            logger.error(f"cannot close file: {e}")
            print(f"❌ Failed to finish writing {export.output_path}: {e}")
            if stats is not None:
                _print_export_results(stats)
            return 1

    _print_export_results(stats)
    return 0


def _print_export_results(stats: RunStats) -> None:
    print()
    print("📊 Export Results")
    print("=" * 40)
    print(f"  Total txs:           {stats.total_seen}")
    print(f"  Success:             {stats.success_count}")
    print(f"  Record not found:    {stats.record_missing}")
    print(f"  Metadata not found:  {stats.metadata_missing}")
    print(f"  Decode failed:       {stats.decode_failed}")
    print(f"  Lookup failed:       {stats.lookup_failed}")
    print(f"  Write failed:        {stats.write_failed}")
    print(f"  Duration:            {stats.duration_ms}ms")
    print()


def cmd_stats(config: Config) -> int:
    """Show storage sizes."""
    store = _open_store(config)
    if store is None:
        return 1

    with store:
        try:
            transactions = store.transaction_count()
            metadata = store.metadata_count()
        except StoreError as e:
            print(f"❌ Failed to read tangle store: {e}")
            return 1

    print("\n📊 Tangle Store")
    print("=" * 40)
    print(f"  Database:          {store.db_path}")
    print(f"  Transactions:      {transactions}")
    print(f"  Metadata entries:  {metadata}")
    print()

    return 0


def cmd_init_config(config_path: Path, force: bool = False) -> int:
    """Write a default config file."""
    if config_path.exists() and not force:
        print(f"❌ {config_path} already exists (use --force to overwrite)")
        return 1

    create_default_config(config_path)
    print(f"✓ Wrote default config to {config_path}")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.config, parsed.force)

    # Load config
    try:
        config = load_config(parsed.config)
    except ConfigValidationError as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    config = config.with_overrides(
        db_path=parsed.db_path,
        output_path=getattr(parsed, "output", None),
        truncate=getattr(parsed, "truncate", None),
        include_confirmation_index=getattr(parsed, "include_confirmation_index", None),
        limit=getattr(parsed, "limit", None),
    )

    # Route to command
    if parsed.command == "export":
        return cmd_export(config)
    elif parsed.command == "stats":
        return cmd_stats(config)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
