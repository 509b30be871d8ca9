"""
Command-line batch front-end.

    python cli.py textures/props textures/hero_albedo.png --resolution 1024 --method auto
"""
import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from methods import DEFAULT_TARGET_RESOLUTION, METHODS, RESOLUTION_OPTIONS
from optimizer import notification_text, optimize_paths, result_row, summarize
from reduction_policy import Method


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Downscale texture assets with a mip bias or a proportional re-encode from source.",
    )
    parser.add_argument("paths", nargs="+", help="Texture files and/or folders")
    parser.add_argument(
        "--resolution", type=int,
        default=int(os.environ.get("DEFAULT_TARGET_RESOLUTION", DEFAULT_TARGET_RESOLUTION)),
        help=f"Target resolution cap, e.g. {', '.join(map(str, RESOLUTION_OPTIONS))}",
    )
    parser.add_argument(
        "--method", choices=list(METHODS), default=Method.AUTO.value,
        help="auto picks proportional_resize when a source file exists, mip_bias otherwise",
    )
    parser.add_argument("--dry-run", action="store_true", help="Calculate only, write nothing")
    parser.add_argument("--no-recursive", action="store_true", help="Do not descend into sub-folders")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every texture")
    return parser


def _print_progress(index: int, total: int, name: str) -> None:
    print(f"[{index + 1}/{total}] Processing {name}", file=sys.stderr)


def main(argv=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    if args.resolution <= 0:
        print("--resolution must be a positive integer", file=sys.stderr)
        return 2

    level = "DEBUG" if args.verbose else os.environ.get("LOG_LEVEL", "WARNING")
    logging.basicConfig(level=level.upper(), format="%(levelname)s %(name)s: %(message)s")

    results = optimize_paths(
        args.paths,
        Method(args.method),
        args.resolution,
        dry_run=args.dry_run,
        recursive=not args.no_recursive,
        progress=_print_progress if args.verbose else None,
    )
    if not results:
        print("No textures found.", file=sys.stderr)
        return 1

    for row in map(result_row, results):
        detail = (
            f"VRAM: {row['memory_saved_mb']}MB, File: {row['file_saved_mb']}MB"
            if row["succeeded"] else row["message"]
        )
        print(f"{row['status']} {row['name']:<32} {row['method_label']:<18} "
              f"{row['original']} → {row['final']}  {detail}")

    summary = summarize(results)
    print()
    print(f"Methods used: {summary.total_mip_bias} Universal LOD, "
          f"{summary.total_proportional} Proportional Reimport")
    print(f"Textures with source files: {summary.total_with_source}/{summary.total_processed}")
    print(f"VRAM saved: {summary.memory_saved_mb} MB | File size saved: {summary.file_saved_mb} MB")
    print(notification_text(summary) + (" (dry run)" if args.dry_run else ""))
    return 0


if __name__ == "__main__":
    sys.exit(main())
