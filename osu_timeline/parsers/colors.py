"""Build the combo color ring from the [Colours] section.

Sample row: ``Combo1 : 255,128,0``. Combo numbers start at 1 in the file and
become 0-based indexes. Gaps or disorder in the numbering are reported and
the colors are renumbered in order of appearance.
"""

import logging
import re

from osu_timeline.parsers.errors import FieldError
from osu_timeline.parsers.state import ParserState, split_key_value, to_int
from osu_timeline.schemas.beatmap import Color

logger = logging.getLogger(__name__)

_COMBO_RE = re.compile(r"Combo(\d+)")

# Skin overrides that don't affect the combo ring.
IGNORED_COLOR_KEYS = frozenset({"SliderBody", "SliderTrackOverride", "SliderBorder"})


def parse_channel(text: str) -> int:
    value = to_int(text, "color channel")
    if not 0 <= value <= 255:
        raise FieldError("color values must be comprised between 0 and 255, inclusive")
    return value


def parse_rgb(text: str) -> tuple[int, int, int]:
    channels = text.split(",")
    if len(channels) != 3:
        raise FieldError(f"expected r,g,b, got {text!r}")
    red, green, blue = (parse_channel(c) for c in channels)
    return red, green, blue


def process_color(state: ParserState, text: str) -> None:
    key, value = split_key_value(text)
    if key in IGNORED_COLOR_KEYS:
        return
    match = _COMBO_RE.fullmatch(key)
    if match is None:
        state.report(f"unknown color property {key!r}")
        return

    colors = state.beatmap.colors
    declared = int(match.group(1)) - 1
    red, green, blue = parse_rgb(value)
    index = len(colors)
    if declared != index:
        state.report(
            f"suspicious color index: Combo{declared + 1} stored as color {index}"
        )
    colors.append(Color(index=index, red=red, green=green, blue=blue))


def ensure_colors(state: ParserState) -> None:
    """Install a single-color ring if the beatmap declared none."""
    beatmap = state.beatmap
    if beatmap.colors:
        return
    logger.debug("%s: no colors; generating a default color scheme", state.source)
    red, green, blue = state.config.default_color
    beatmap.colors.append(Color(index=0, red=red, green=green, blue=blue))


def assign_colors(state: ParserState) -> None:
    """Wrap every hit's color counter around the final ring.

    [Colours] may come after [HitObjects], so hits count combo colors without
    wrapping until the whole file is read.
    """
    ensure_colors(state)
    count = len(state.beatmap.colors)
    for hit in state.hits:
        hit.color %= count
