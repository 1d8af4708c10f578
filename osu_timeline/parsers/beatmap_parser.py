"""Top-level loader: route the lines of a .osu file to the section handlers."""

import logging
from pathlib import Path
from typing import Callable, Iterable

from osu_timeline.config import ParserConfig
from osu_timeline.parsers.colors import process_color
from osu_timeline.parsers.errors import FieldError, ParseError
from osu_timeline.parsers.header_parser import (
    process_difficulty,
    process_editor,
    process_event,
    process_general,
    process_metadata,
)
from osu_timeline.parsers.hit_objects import process_hit_object
from osu_timeline.parsers.scanner import LineKind, parse_header, scan_lines
from osu_timeline.parsers.state import ParserState
from osu_timeline.parsers.timing import process_timing_point
from osu_timeline.parsers.validator import validate
from osu_timeline.schemas.beatmap import Beatmap

logger = logging.getLogger(__name__)

Handler = Callable[[ParserState, str], None]

_HANDLERS: dict[str, Handler] = {
    "General": process_general,
    "Editor": process_editor,
    "Metadata": process_metadata,
    "Difficulty": process_difficulty,
    "Events": process_event,
    "TimingPoints": process_timing_point,
    "Colours": process_color,
    "HitObjects": process_hit_object,
}

# A headers-only load stops at the first of these sections.
_TIMELINE_SECTIONS = frozenset({"TimingPoints", "Colours", "HitObjects"})


def _skip(state: ParserState, text: str) -> None:
    """Handler for the sections we don't know."""


def enter_section(state: ParserState, name: str) -> None:
    state.section = name
    if name not in _HANDLERS:
        state.report(f"unknown section [{name}]")


def route_line(state: ParserState, text: str) -> None:
    """Hand one data line to the current section's handler.

    Field errors are recorded as diagnostics and the line is dropped, unless
    the error is fatal or the configuration is strict.
    """
    if state.section is None:
        state.report("content outside any section")
        return
    handler = _HANDLERS.get(state.section, _skip)
    try:
        handler(state, text)
    except FieldError as e:
        if e.fatal or state.config.strict:
            raise e.locate(state.source, state.line_number)
        state.report(e.message)


def parse_beatmap(
    lines: Iterable[str],
    source: str = "",
    config: ParserConfig | None = None,
    headers_only: bool = False,
) -> Beatmap:
    """Build a beatmap from the lines of a .osu file.

    Raises a ParseError subclass on failure, after tearing down the partial
    beatmap.
    """
    beatmap = Beatmap(source=source)
    state = ParserState(beatmap, config or ParserConfig(), source)
    try:
        for line in scan_lines(lines, source):
            state.line_number = line.number
            if line.kind is LineKind.HEADER:
                beatmap.version = parse_header(line.text, source, line.number)
            elif line.kind is LineKind.SECTION:
                if headers_only and line.text in _TIMELINE_SECTIONS:
                    break
                enter_section(state, line.text)
            else:
                route_line(state, line.text)
        validate(state, headers_only=headers_only)
    except ParseError as e:
        logger.error("Failed to load %s: %s", source or "beatmap", e)
        destroy_beatmap(beatmap)
        raise
    return beatmap


def _load(path: Path, config: ParserConfig | None, headers_only: bool) -> Beatmap:
    path = Path(path)
    # Undecodable bytes only ever show up in free text; don't reject the file for them.
    with open(path, encoding="utf-8-sig", errors="replace") as f:
        return parse_beatmap(f, source=str(path), config=config, headers_only=headers_only)


def load_beatmap(path: Path, config: ParserConfig | None = None) -> Beatmap:
    """Load a complete beatmap: headers, timing points, colors and hit objects."""
    return _load(path, config, headers_only=False)


def load_beatmap_headers(path: Path, config: ParserConfig | None = None) -> Beatmap:
    """Load the general, metadata and difficulty sections only.

    The returned beatmap has no timing point, color or hit; it is what library
    listings need, and reading stops well before the bulk of the file.
    """
    return _load(path, config, headers_only=True)


def destroy_beatmap(beatmap: Beatmap | None) -> None:
    """Release a beatmap, complete or not. Calling it twice is harmless."""
    if beatmap is None:
        return
    beatmap.destroy()
