"""
Command-Line Interface for Fortress Vox

Usage:
    fortvox export -10 0 fortress.vox --snapshot fortress.json
    fortvox export -10 0 fortress.vox --month Timber --snapshot fortress.json
    fortvox export-year -10 0 seasons/ --snapshot fortress.json
    fortvox probe --snapshot fortress.json
    fortvox dump-lists --snapshot fortress.json lists.json
"""

import argparse
import sys
import time
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from . import __version__
from .calendar import Month, TimeOfTheYear
from .export import ExportParams, Progress, export_year, run_export_thread
from .source import SnapshotSource


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="fortvox",
        description="Fortress Vox - Export a fortress to MagicaVoxel scenes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fortvox export -10 0 fortress.vox --snapshot fortress.json
      Export elevations -10 to 0 at the current time of the year

  fortvox export -10 0 fortress.vox --month Timber --snapshot fortress.json
      Export with the plants of the month of Timber

  fortvox export-year -10 0 seasons/ --snapshot fortress.json
      Export one scene per month, 01-Granite.vox to 12-Obsidian.vox

Elevations are the ones displayed in game. Set FORTRESS_VOX_LOG_LEVEL=DEBUG
to list skipped records.
        """
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    export = subparsers.add_parser("export", help="Export a range of elevations")
    _add_range_arguments(export)
    export.add_argument("dest", help="Output .vox file")
    export.add_argument(
        "--month",
        help="Month used for the plant growths (default: current game time)"
    )
    _add_snapshot_argument(export)

    export_year = subparsers.add_parser("export-year", help="Export one scene per month")
    _add_range_arguments(export_year)
    export_year.add_argument("dir", help="Output directory")
    _add_snapshot_argument(export_year)

    probe = subparsers.add_parser("probe", help="Print what the source holds")
    _add_snapshot_argument(probe)

    dump_lists = subparsers.add_parser("dump-lists", help="Write the game lists as JSON")
    _add_snapshot_argument(dump_lists)
    dump_lists.add_argument("out", help="Output .json file")

    return parser


def _add_range_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("low", type=int, help="Lowest elevation")
    parser.add_argument("high", type=int, help="Highest elevation, inclusive")


def _add_snapshot_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--snapshot",
        required=True,
        help="JSON snapshot of the fortress"
    )


class ProgressBar:
    """Renders ``Progress`` events with tqdm."""

    def __init__(self):
        self.bar: Optional[tqdm] = None

    def __call__(self, event) -> None:
        if isinstance(event, Progress.Start):
            self.close()
            self.bar = tqdm(total=event.total, desc=event.message, unit="step", file=sys.stderr)
        elif isinstance(event, Progress.Update):
            if self.bar is None:
                self.bar = tqdm(total=event.total, desc=event.message, unit="step", file=sys.stderr)
            self.bar.n = event.current
            self.bar.refresh()
        elif isinstance(event, Progress.Undetermined):
            self.close()
            tqdm.write(event.message, file=sys.stderr)

    def close(self) -> None:
        if self.bar is not None:
            self.bar.close()
            self.bar = None


def run_export(args) -> int:
    """Export a range of elevations through the background worker."""
    source = SnapshotSource.load(args.snapshot)
    time_of_year = TimeOfTheYear.month(args.month) if args.month else TimeOfTheYear.current()
    params = ExportParams(args.low, args.high, time_of_year, Path(args.dest))

    start_time = time.time()
    events, cancel, thread = run_export_thread(params, source)
    bar = ProgressBar()
    try:
        while True:
            event = events.get()
            if isinstance(event, Progress.Error):
                bar.close()
                print(f"Error: {event.detail}", file=sys.stderr)
                return 1
            if isinstance(event, Progress.Done):
                bar.close()
                print(f"Exported: {event.path} ({time.time() - start_time:.2f}s)")
                return 0
            bar(event)
    except KeyboardInterrupt:
        cancel.set()
        thread.join()
        bar.close()
        print("Cancelled", file=sys.stderr)
        return 1


def run_export_year(args) -> int:
    source = SnapshotSource.load(args.snapshot)
    bar = ProgressBar()
    try:
        written = export_year(source, args.low, args.high, args.dir, progress=bar)
    finally:
        bar.close()
    print(f"Exported {len(written)} scenes to {args.dir}")
    return 0


def run_probe(args) -> int:
    source = SnapshotSource.load(args.snapshot)
    info = source.map_info()
    offset = source.elevation_offset()
    z_range = range(info.block_pos_z, info.block_pos_z + info.block_size_z)

    print(f"World: {info.world_name or '(unnamed)'}")
    print(f"Map size: {info.block_size_x} x {info.block_size_y} x {info.block_size_z} blocks")
    print(f"Elevations: {z_range.start + offset} to {z_range.stop - 1 + offset}")
    print(f"Current elevation: {source.current_elevation()}")
    print(f"Current month: {Month.from_tick(source.current_tick()).display_name}")
    print(f"Blocks: {sum(len(b.blocks) for b in source.block_lists(z_range))}")
    print(f"Tile types: {len(source.tiletypes())}")
    print(f"Materials: {len(source.materials())}")
    print(f"Plant raws: {len(source.plant_raws())}")
    print(f"Building definitions: {len(source.building_definitions())}")
    return 0


def run_dump_lists(args) -> int:
    source = SnapshotSource.load(args.snapshot)
    source.dump(args.out, lists_only=True)
    print(f"Written: {args.out}")
    return 0


COMMANDS = {
    "export": run_export,
    "export-year": run_export_year,
    "probe": run_probe,
    "dump-lists": run_dump_lists,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        return COMMANDS[args.command](args)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
