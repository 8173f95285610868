"""Command-line interface for the lazer beatmap export."""

import argparse
import logging
import sys
from pathlib import Path

from lazer_export.storage.database import LazerDatabaseError


def cmd_fetch(args: argparse.Namespace) -> None:
    from lazer_export.pipeline.batch import PipelineConfig, run_pipeline

    config = PipelineConfig.load(Path(args.config)) if args.config else PipelineConfig()
    if args.database:
        config.database_path = Path(args.database)
    if args.storage_root:
        config.storage_root = Path(args.storage_root)
    if args.output:
        config.output_dir = Path(args.output)
    if args.workers:
        config.workers = args.workers
    if args.no_parquet:
        config.write_parquet = False
    if args.no_json:
        config.write_json = False

    if config.database_path is None:
        print("No database given (use --database or a config file)")
        sys.exit(2)

    result = run_pipeline(config)
    print(
        f"Done: {result.total_sets} beatmap sets "
        f"({result.resolved_audio} audio, {result.resolved_backgrounds} backgrounds resolved)"
    )
    for path in result.written:
        print(f"  {path}")


def cmd_resolve(args: argparse.Namespace) -> None:
    from lazer_export.storage.files import default_storage_root, resolve

    root = Path(args.storage_root) if args.storage_root else default_storage_root()
    paths = resolve(root, args.hash)
    if not paths:
        print(f"No file stored for {args.hash} under {root}")
        return
    for path in paths:
        print(path)


def cmd_inspect(args: argparse.Namespace) -> None:
    from lazer_export.schemas.realm import RECORD_SCHEMAS
    from lazer_export.storage.database import LazerDatabase

    with LazerDatabase.open(Path(args.database)) as db:
        for schema in RECORD_SCHEMAS:
            print(f"{schema.name:<22} {db.count(schema.name)}")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="lazer-export",
        description="Export beatmap metadata and asset paths from an osu!lazer database snapshot",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    sub = parser.add_subparsers(dest="command")

    # fetch
    fe = sub.add_parser("fetch", help="Extract all beatmap sets and write them out")
    fe.add_argument("--database", default=None, help="Database snapshot path")
    fe.add_argument("--storage-root", default=None,
                    help="Client data directory containing files/ (default: <appdata>/osu)")
    fe.add_argument("--output", default=None, help="Output directory (default: data/export)")
    fe.add_argument("--workers", type=int, default=None,
                    help="Threads used for file resolution (default: 1)")
    fe.add_argument("--config", default=None, help="Optional JSON config")
    fe.add_argument("--no-parquet", action="store_true")
    fe.add_argument("--no-json", action="store_true")

    # resolve
    rs = sub.add_parser("resolve", help="Show stored file paths for a content hash")
    rs.add_argument("hash")
    rs.add_argument("--storage-root", default=None)

    # inspect
    ins = sub.add_parser("inspect", help="Count records per type in a snapshot")
    ins.add_argument("--database", required=True)

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "fetch": cmd_fetch,
        "resolve": cmd_resolve,
        "inspect": cmd_inspect,
    }

    handler = commands.get(args.command)
    if not handler:
        parser.print_help()
        return
    try:
        handler(args)
    except LazerDatabaseError as exc:
        logging.getLogger(__name__).error("%s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
