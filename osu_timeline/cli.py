"""Command-line interface for osu-timeline."""

import argparse
import logging
import sys
from pathlib import Path

from osu_timeline.config import ParserConfig
from osu_timeline.parsers.errors import ParseError


def _load_config(args: argparse.Namespace) -> ParserConfig:
    config = ParserConfig()
    if args.config:
        config = ParserConfig.load(Path(args.config))
    if args.strict:
        config.strict = True
    return config


def cmd_info(args: argparse.Namespace) -> int:
    from osu_timeline.parsers.beatmap_parser import load_beatmap, load_beatmap_headers
    from osu_timeline.parsers.timing import timing_point_at
    from osu_timeline.schemas.beatmap import hit_end_time

    config = _load_config(args)
    loader = load_beatmap_headers if args.headers else load_beatmap
    try:
        beatmap = loader(Path(args.file), config)
    except ParseError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    meta = beatmap.metadata
    diff = beatmap.difficulty
    print(f"{meta.artist} - {meta.title} [{meta.version}] by {meta.creator}")
    print(f"  format v{beatmap.version}, mode {beatmap.mode.name.lower()}, audio {beatmap.audio_filename}")
    print(
        f"  radius {diff.circle_radius:.1f}px, leniency {diff.leniency * 1000:.0f}ms, "
        f"approach {diff.approach_time * 1000:.0f}ms, slider multiplier {diff.slider_multiplier}"
    )
    if not args.headers:
        hits = list(beatmap.hits)
        length = hit_end_time(hits[-1]) - hits[0].time
        first = timing_point_at(beatmap.timing_points, hits[0].time)
        bpm = f"{first.bpm:.1f}" if first else "?"
        print(
            f"  {len(hits)} hits over {length:.1f}s, {len(beatmap.timing_points)} timing points "
            f"(starting at {bpm} BPM), {beatmap.color_count} colors, {len(beatmap.breaks)} breaks"
        )
    if beatmap.diagnostics:
        print(f"  {len(beatmap.diagnostics)} warnings")
    return 0


def cmd_library(args: argparse.Namespace) -> int:
    from osu_timeline.library.index import find_beatmap_sets

    config = _load_config(args)
    sets = find_beatmap_sets(Path(args.root), config)
    for beatmap_set in sets:
        print(f"{beatmap_set.artist} - {beatmap_set.title}")
        for entry in beatmap_set.entries:
            print(f"  [{entry.version}] OD {entry.difficulty:g}  {entry.hash}  {entry.path.name}")
    print(f"{len(sets)} beatmap sets, {sum(len(s.entries) for s in sets)} beatmaps")
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    from osu_timeline.library.index import find_beatmap_sets
    from osu_timeline.parsers.beatmap_parser import load_beatmap
    from osu_timeline.storage.writer import write_parquet

    config = _load_config(args)
    beatmaps = {}
    for beatmap_set in find_beatmap_sets(Path(args.input), config):
        for entry in beatmap_set.entries:
            try:
                beatmaps[entry.hash] = load_beatmap(entry.path, config)
            except ParseError:
                # Already logged by the loader.
                continue

    write_parquet(beatmaps, Path(args.output))
    print(f"Exported {len(beatmaps)} beatmaps to {args.output}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="osu-timeline",
        description="osu! beatmap parser and timeline tools",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--config", default=None, help="Optional JSON parser config")
    parser.add_argument("--strict", action="store_true",
                        help="Fail on any malformed row instead of skipping it")
    sub = parser.add_subparsers(dest="command")

    # info
    info = sub.add_parser("info", help="Summarize one .osu file")
    info.add_argument("file", help="Path to the .osu file")
    info.add_argument("--headers", action="store_true",
                      help="Only read the general, metadata and difficulty sections")

    # library
    lib = sub.add_parser("library", help="List the beatmap sets of a library directory")
    lib.add_argument("root", help="Directory holding one folder per beatmap set")

    # export
    exp = sub.add_parser("export", help="Export a library to Parquet")
    exp.add_argument("--input", required=True, help="Library root directory")
    exp.add_argument("--output", default="data/timeline", help="Output directory")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "info": cmd_info,
        "library": cmd_library,
        "export": cmd_export,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
