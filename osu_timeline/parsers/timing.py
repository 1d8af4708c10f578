"""Build the chronological timing point sequence from [TimingPoints] rows.

Row layout: ``offset,beatLength,meter,sampleSet,sampleIndex,volume,uninherited,effects``,
e.g. ``129703,731.707317073171,4,2,1,50,1,0``. Only the first two fields are
mandatory.

A negative beat length marks an inherited point: it's a percentage applied
to the beat duration of the last non-inherited point, so ``-50`` halves it.
Consecutive inherited points all refer to that same non-inherited point, not
to each other.
"""

import bisect
import logging
from dataclasses import replace

from osu_timeline.parsers.errors import FieldError
from osu_timeline.parsers.state import ParserState, to_float, to_int
from osu_timeline.schemas.beatmap import SampleSet, TimingPoint

logger = logging.getLogger(__name__)

KIAI_FLAG = 0b1


def parse_timing_point(state: ParserState, text: str) -> TimingPoint:
    """Parse one row and resolve its beat duration against the current base."""
    fields = [f.strip() for f in text.split(",")]
    if len(fields) < 2:
        raise FieldError("timing point needs at least an offset and a beat length")

    offset = to_float(fields[0], "timing offset") / 1000.0
    raw_beat = to_float(fields[1], "beat length")
    inherited = raw_beat < 0.0
    if raw_beat > 0.0:
        beat_duration = raw_beat / 1000.0
    elif inherited:
        if state.timing_base is None:
            raise FieldError("inherited timing point has no parent", fatal=True)
        beat_duration = state.timing_base.beat_duration * (-raw_beat / 100.0)
    else:
        raise FieldError(f"invalid beat length {raw_beat}")

    meter = 4
    sample_set = state.beatmap.sample_set
    sample_index = 0
    volume = 1.0
    kiai = False

    if len(fields) > 2 and fields[2]:
        meter = to_int(fields[2], "meter")
        if meter <= 0:
            raise FieldError(f"invalid meter value {meter}")
    if len(fields) > 3 and fields[3]:
        value = to_int(fields[3], "sample set")
        if value:
            try:
                sample_set = SampleSet(value)
            except ValueError:
                raise FieldError(f"invalid sample set {value}") from None
    if len(fields) > 4 and fields[4]:
        sample_index = to_int(fields[4], "sample index")
    if len(fields) > 5 and fields[5]:
        value = to_int(fields[5], "volume")
        if not 0 <= value <= 100:
            raise FieldError(f"invalid volume {value}")
        volume = value / 100.0
    # fields[6] is the uninherited flag; the sign of the beat length is what counts.
    if len(fields) > 7 and fields[7]:
        kiai = bool(to_int(fields[7], "effects") & KIAI_FLAG)

    return TimingPoint(
        offset=offset,
        beat_duration=beat_duration,
        meter=meter,
        sample_set=sample_set,
        sample_index=sample_index,
        volume=volume,
        kiai=kiai,
        inherited=inherited,
    )


def process_timing_point(state: ParserState, text: str) -> None:
    """Parse one timing point and append it to the beatmap's sequence.

    A point going back in time is fatal. A point at the same offset as the
    previous one replaces it, which keeps offsets strictly increasing. The
    exception is an inherited point on top of a non-inherited one: they merge
    into a single non-inherited point with the base meter, and the speed and
    samples of the inherited one. Later inherited points still scale the
    original base duration.
    """
    timing = parse_timing_point(state, text)
    points = state.beatmap.timing_points
    last = state.last_timing_point
    if last is not None and timing.offset < last.offset:
        raise FieldError(
            f"misordered timing point at {timing.offset:.3f}s "
            f"(previous at {last.offset:.3f}s)",
            fatal=True,
        )
    if last is not None and timing.offset == last.offset:
        if timing.inherited and not last.inherited:
            logger.debug(
                "%s:%d: merging the inherited timing point at %.3fs into its base",
                state.source, state.line_number, timing.offset,
            )
            points[-1] = replace(timing, meter=last.meter, inherited=False)
        else:
            logger.debug(
                "%s:%d: timing point at %.3fs supersedes the previous one",
                state.source, state.line_number, timing.offset,
            )
            points[-1] = timing
    else:
        points.append(timing)
    state.last_timing_point = points[-1]
    if not timing.inherited:
        state.timing_base = timing


def governing_timing_point(state: ParserState, time: float) -> TimingPoint | None:
    """Most recent timing point at or before *time*, or the first one if *time* precedes them all.

    The lookup cursor only moves forward, so successive calls must come with
    non-decreasing times.
    """
    points = state.beatmap.timing_points
    if not points:
        return None
    i = min(state.timing_cursor, len(points) - 1)
    while i + 1 < len(points) and points[i + 1].offset <= time:
        i += 1
    state.timing_cursor = i
    return points[i]


def timing_point_at(points: list[TimingPoint], time: float) -> TimingPoint | None:
    """Random-access variant of :func:`governing_timing_point` for built beatmaps."""
    if not points:
        return None
    i = bisect.bisect_right(points, time, key=lambda p: p.offset)
    return points[max(i - 1, 0)]
