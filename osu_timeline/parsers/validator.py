"""Post-parse checks, and installation of the hit list sentinels."""

import logging

from osu_timeline.parsers.colors import assign_colors
from osu_timeline.parsers.errors import ValidationError
from osu_timeline.parsers.state import ParserState
from osu_timeline.schemas.beatmap import HitList

logger = logging.getLogger(__name__)

_PATH_SEPARATORS = ("/", "\\")


def check_audio_filename(state: ParserState) -> None:
    filename = state.beatmap.audio_filename
    if not filename:
        raise ValidationError("missing audio filename", state.source)
    if any(sep in filename for sep in _PATH_SEPARATORS):
        raise ValidationError(
            f"audio filename {filename!r} must not contain a path separator",
            state.source,
        )


def check_metadata(state: ParserState) -> None:
    """Report missing title, artist or difficulty name; the beatmap stays playable."""
    meta = state.beatmap.metadata
    for name, value in (("title", meta.title), ("artist", meta.artist), ("version", meta.version)):
        if not value:
            state.report(f"missing {name}")


def validate(state: ParserState, headers_only: bool = False) -> None:
    """Check the beatmap once every line is consumed, then link its hits.

    Raises ValidationError when the beatmap is not playable. With
    *headers_only*, the hit objects were never read and an empty hit list is
    expected.
    """
    check_audio_filename(state)
    if not headers_only and not state.hits:
        raise ValidationError("beatmap has no hit objects", state.source)
    check_metadata(state)
    if not headers_only:
        assign_colors(state)
    state.beatmap.hits = HitList(state.hits)
    logger.debug(
        "%s: %d timing points, %d hits",
        state.source, len(state.beatmap.timing_points), len(state.hits),
    )
