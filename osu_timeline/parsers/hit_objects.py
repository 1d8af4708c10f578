"""Build hit objects from [HitObjects] rows.

Every row starts with ``x,y,time,type,hitSound``. The rest depends on the
type flags:

  - circle: ``,hitSample``
  - slider: ``,curve|points,repeat,pixelLength,edgeSounds,edgeSets,hitSample``
  - spinner: ``,endTime,hitSample``
  - hold note: ``,endTime:hitSample``

Every trailing field is optional. The hit sample is
``sampleSet:additionSet:index:volume:filename``, and each zero in it means
"use the governing timing point's value".

A row that fails to parse is dropped. Combo numbering only looks at the
previous hit that was successfully built, so a dropped row leaves no hole.
"""

from osu_timeline.parsers.errors import FieldError
from osu_timeline.parsers.path_parser import parse_path
from osu_timeline.parsers.state import ParserState, to_float, to_int
from osu_timeline.parsers.timing import governing_timing_point
from osu_timeline.schemas.beatmap import (
    Hit,
    HitSound,
    HitType,
    HoldNote,
    SampleSet,
    Slider,
    SoundType,
    Spinner,
    TimingPoint,
)
from osu_timeline.schemas.geometry import CatmullSegment, Point

# Flags that pick the kind of object; a row should set exactly one of them.
OBJECT_TYPES = (HitType.CIRCLE, HitType.SLIDER, HitType.SPINNER, HitType.HOLD)


def to_sample_set(value: int) -> SampleSet:
    try:
        return SampleSet(value)
    except ValueError:
        raise FieldError(f"invalid sample set {value}") from None


def parse_hit_sample(text: str | None, timing: TimingPoint) -> HitSound:
    """Parse the trailing hit sample field, filling gaps from *timing*.

    Accepts ``""``, ``"1:2"``, ``"0:0:0:0:"``, ``"1:2:3:100:quack.wav"``.
    """
    sound = HitSound(
        sample_set=timing.sample_set,
        additions_set=timing.sample_set,
        index=timing.sample_index,
        volume=timing.volume,
    )
    if not text:
        return sound
    parts = text.split(":")
    if parts[0]:
        value = to_int(parts[0], "sample set")
        if value:
            sound.sample_set = to_sample_set(value)
    if len(parts) > 1 and parts[1]:
        value = to_int(parts[1], "additions set")
        if value:
            sound.additions_set = to_sample_set(value)
    if len(parts) > 2 and parts[2]:
        value = to_int(parts[2], "sample index")
        if value:
            sound.index = value
    if len(parts) > 3 and parts[3]:
        value = to_int(parts[3], "volume")
        if not 0 <= value <= 100:
            raise FieldError(f"invalid volume {value}")
        if value:
            sound.volume = value / 100.0
    if len(parts) > 4 and parts[4]:
        sound.filename = ":".join(parts[4:])
    return sound


def parse_edge_sounds(fields: list[str], repeat: int) -> list[HitSound]:
    """Parse ``4|2`` and ``1:2|0:3`` into one sound per slider edge.

    Both fields are optional. Unset sample sets stay AUTO until
    :func:`fill_edge_sounds` resolves them.
    """
    sounds = [HitSound() for _ in range(repeat + 1)]
    if fields and fields[0]:
        additions = fields[0].split("|")
        if len(additions) != repeat + 1:
            raise FieldError(
                f"expected {repeat + 1} edge sounds, got {len(additions)}"
            )
        for sound, value in zip(sounds, additions):
            sound.additions = to_int(value, "edge sound")
    if len(fields) > 1 and fields[1]:
        sets = fields[1].split("|")
        if len(sets) != repeat + 1:
            raise FieldError(
                f"expected {repeat + 1} edge sample sets, got {len(sets)}"
            )
        for sound, value in zip(sounds, sets):
            sample_set, sep, additions_set = value.partition(":")
            if not sep:
                raise FieldError(f"expected sampleSet:additionsSet, got {value!r}")
            sound.sample_set = to_sample_set(to_int(sample_set, "edge sample set"))
            sound.additions_set = to_sample_set(to_int(additions_set, "edge additions set"))
    return sounds


def fill_edge_sounds(slider: Slider, body: HitSound) -> None:
    """Complete the edge sounds with the hit's resolved sound."""
    for sound in slider.sounds:
        sound.additions |= SoundType.NORMAL
        if sound.sample_set == SampleSet.AUTO:
            sound.sample_set = body.sample_set
        if sound.additions_set == SampleSet.AUTO:
            sound.additions_set = body.additions_set
        sound.index = body.index
        sound.volume = body.volume


def parse_slider(state: ParserState, hit: Hit, fields: list[str], timing: TimingPoint) -> str | None:
    """Build the slider payload from the fields after the common prefix.

    Returns the trailing hit sample field, if any.
    """
    if len(fields) < 3:
        raise FieldError("slider needs a path, a repeat count and a length")
    path = parse_path(hit.position, fields[0])
    if any(isinstance(s, CatmullSegment) for s in path.segments):
        raise FieldError("Catmull sliders are not supported")
    repeat = to_int(fields[1], "repeat count")
    if repeat < 1:
        raise FieldError(f"invalid repeat count {repeat}")
    length = to_float(fields[2], "pixel length")
    if length < 0.0:
        raise FieldError(f"invalid pixel length {length}")

    multiplier = state.beatmap.difficulty.slider_multiplier
    duration = length / (100.0 * multiplier) * timing.beat_duration
    hit.payload = Slider(
        path=path,
        repeat=repeat,
        length=length,
        duration=duration,
        sounds=parse_edge_sounds(fields[3:5], repeat),
    )
    return fields[5] if len(fields) > 5 else None


def parse_end_time(text: str, hit: Hit) -> float:
    end_time = to_float(text, "end time") / 1000.0
    if end_time < hit.time:
        raise FieldError("hit object ends before it starts")
    return end_time


def compute_combo(state: ParserState, hit: Hit) -> None:
    """Set the combo number, sequence number and color of *hit*.

    A new combo moves forward 1 + skip combos and as many colors; otherwise
    the hit continues the previous one's combo. The color is a running
    counter until :func:`~osu_timeline.parsers.colors.assign_colors` wraps it
    around the ring.
    """
    previous = state.last_hit
    if previous is None:
        hit.combo = 0
        hit.combo_seq = 1
        hit.color = 0
    elif hit.type & HitType.NEW_COMBO:
        step = 1 + hit.combo_skip
        hit.combo = previous.combo + step
        hit.combo_seq = 1
        hit.color = previous.color + step
    else:
        hit.combo = previous.combo
        hit.combo_seq = previous.combo_seq + 1
        hit.color = previous.color


def parse_hit_object(state: ParserState, text: str) -> Hit:
    """Parse one row into a complete hit, without linking it.

    Consumes: ``288,256,8538,2,0,P|254:261|219:255,1,70,8|0,0:0|0:0,0:0:0:0:``
    """
    fields = [f.strip() for f in text.split(",")]
    if len(fields) < 5:
        raise FieldError("hit object needs at least x,y,time,type,hitSound")
    hit = Hit(
        position=Point(to_float(fields[0], "x"), to_float(fields[1], "y")),
        time=to_float(fields[2], "time") / 1000.0,
        type=to_int(fields[3], "type"),
    )
    additions = to_int(fields[4], "hit sound") | SoundType.NORMAL

    previous = state.last_hit
    if previous is not None and hit.time < previous.time:
        raise FieldError("missorted hit object")
    timing = governing_timing_point(state, hit.time)
    if timing is None:
        raise FieldError("could not find the timing point for this hit")
    hit.timing_point = timing

    kinds = [kind for kind in OBJECT_TYPES if hit.type & kind]
    if len(kinds) > 1:
        state.report(
            f"ambiguous hit object type {hit.type}, reading it as a {kinds[0].name.lower()}"
        )

    rest = fields[5:]
    sample_field = None
    if hit.type & HitType.CIRCLE:
        sample_field = rest[0] if rest else None
    elif hit.type & HitType.SLIDER:
        additions |= SoundType.SLIDER
        sample_field = parse_slider(state, hit, rest, timing)
    elif hit.type & HitType.SPINNER:
        if not rest:
            raise FieldError("spinner needs an end time")
        hit.payload = Spinner(end_time=parse_end_time(rest[0], hit))
        sample_field = rest[1] if len(rest) > 1 else None
    elif hit.type & HitType.HOLD:
        if not rest:
            raise FieldError("hold note needs an end time")
        end_time, _, sample_field = rest[0].partition(":")
        hit.payload = HoldNote(end_time=parse_end_time(end_time, hit))
    else:
        state.report(f"unknown hit object type {hit.type}, treating it as a circle")

    hit.sound = parse_hit_sample(sample_field, timing)
    hit.sound.additions = additions
    if isinstance(hit.payload, Slider):
        fill_edge_sounds(hit.payload, hit.sound)
    return hit


def process_hit_object(state: ParserState, text: str) -> None:
    hit = parse_hit_object(state, text)
    compute_combo(state, hit)
    state.hits.append(hit)
