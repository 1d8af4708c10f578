"""Handlers for the key/value sections: [General], [Metadata], [Difficulty], [Events].

Unknown keys are reported and skipped. Values that can't be converted raise
FieldError, which the router turns into a diagnostic.
"""

from osu_timeline.parsers.errors import FieldError
from osu_timeline.parsers.state import ParserState, split_key_value, to_float, to_int
from osu_timeline.schemas.beatmap import Break, Mode, SampleSet

SAMPLE_SET_NAMES = {
    "Normal": SampleSet.NORMAL,
    "Soft": SampleSet.SOFT,
    "Drum": SampleSet.DRUM,
    "None": SampleSet.NONE,
}

# Keys of [General] with no effect on the timeline.
IGNORED_GENERAL_KEYS = frozenset({
    "StackLeniency",
    "LetterboxInBreaks",
    "EpilepsyWarning",
    "SkinPreference",
    "StoryFireInFront",
    "EditorBookmarks",
    "EditorDistanceSpacing",
    "SpecialStyle",
    "SamplesMatchPlaybackRate",
    "WidescreenStoryboard",
    "UseSkinSprites",
    "AlwaysShowPlayfield",
    "OverlayPosition",
    "CountdownOffset",
})


def process_general(state: ParserState, text: str) -> None:
    beatmap = state.beatmap
    key, value = split_key_value(text)
    if key == "AudioFilename":
        # Checked by the validator once the file is read.
        beatmap.audio_filename = value or None
    elif key == "AudioLeadIn":
        beatmap.audio_lead_in = to_float(value, "audio lead-in") / 1000.0
    elif key == "PreviewTime":
        beatmap.preview_time = to_float(value, "preview time") / 1000.0
    elif key == "Countdown":
        beatmap.countdown = to_int(value, "countdown")
    elif key == "Mode":
        mode = to_int(value, "mode")
        try:
            beatmap.mode = Mode(mode)
        except ValueError:
            raise FieldError(f"unknown game mode {mode}") from None
    elif key == "SampleSet":
        if value not in SAMPLE_SET_NAMES:
            raise FieldError(f"invalid sample set {value!r}")
        beatmap.sample_set = SAMPLE_SET_NAMES[value]
    elif key not in IGNORED_GENERAL_KEYS:
        state.report(f"unknown general property {key!r}")


def process_metadata(state: ParserState, text: str) -> None:
    meta = state.beatmap.metadata
    key, value = split_key_value(text)
    string_fields = {
        "Title": "title",
        "TitleUnicode": "title_unicode",
        "Artist": "artist",
        "ArtistUnicode": "artist_unicode",
        "Creator": "creator",
        "Version": "version",
        "Source": "source",
    }
    if key in string_fields:
        setattr(meta, string_fields[key], value or None)
    elif key == "Tags":
        meta.tags = tuple(value.split())
    elif key == "BeatmapID":
        meta.beatmap_id = to_int(value, "beatmap id")
    elif key == "BeatmapSetID":
        meta.beatmap_set_id = to_int(value, "beatmap set id")
    else:
        state.report(f"unrecognized metadata {key!r}")


def process_difficulty(state: ParserState, text: str) -> None:
    """Store the difficulty settings, converted to gameplay units.

    - CircleSize: radius in pixels. 4 gives 36.5 pixels.
    - OverallDifficulty: click tolerance. 5 gives 0.1 s, 0 gives 0.14 s,
      10 gives 0.06 s.
    - ApproachRate: approach duration. 0 gives 1.5 s, 5 gives 0.9 s,
      10 gives 0.3 s.
    """
    difficulty = state.beatmap.difficulty
    key, value = split_key_value(text)
    number = to_float(value, key)
    if key == "CircleSize":
        radius = 54.4 - 4.48 * number
        if radius <= 0.0:
            raise FieldError(f"circle size {number} gives a non-positive radius")
        difficulty.circle_radius = radius
        difficulty.approach_size = 3.0 * radius
        difficulty.slider_tolerance = 2.0 * radius
    elif key == "OverallDifficulty":
        leniency = 0.1 + 0.04 * (5.0 - number) / 5.0
        if leniency <= 0.0:
            raise FieldError(f"overall difficulty {number} gives a non-positive leniency")
        difficulty.overall_difficulty = number
        difficulty.leniency = leniency
    elif key == "ApproachRate":
        approach_time = 1.5 - 0.12 * number
        if approach_time <= 0.0:
            raise FieldError(f"approach rate {number} gives a non-positive approach time")
        difficulty.approach_time = approach_time
    elif key == "SliderMultiplier":
        if number <= 0.0:
            raise FieldError(f"invalid slider multiplier {number}")
        difficulty.slider_multiplier = number
    elif key == "SliderTickRate":
        difficulty.slider_tick_rate = number
    elif key == "HPDrainRate":
        difficulty.hp_drain_rate = number
    else:
        state.report(f"unknown difficulty parameter {key!r}")


def _parse_quoted(text: str) -> str | None:
    """First field of *text*, with its double quotes removed."""
    text = text.strip()
    if not text.startswith('"'):
        return text.split(",", 1)[0].strip() or None
    end = text.find('"', 1)
    if end < 0:
        raise FieldError("unterminated string")
    return text[1:end] or None


def process_event(state: ParserState, text: str) -> None:
    """Keep the background picture and the break periods; skip storyboard events.

    Samples: ``0,0,"bg.jpg",0,0`` and ``2,68000,75000``.
    """
    beatmap = state.beatmap
    fields = text.split(",")
    kind = fields[0].strip()
    if text.startswith("0,0,"):
        if beatmap.background_filename is None:
            beatmap.background_filename = _parse_quoted(text[4:])
    elif kind in ("2", "Break") and len(fields) >= 3:
        start = to_float(fields[1], "break start") / 1000.0
        end = to_float(fields[2], "break end") / 1000.0
        if end < start:
            raise FieldError("break ends before it starts")
        beatmap.breaks.append(Break(start=start, end=end))


def process_editor(state: ParserState, text: str) -> None:
    """[Editor] settings only matter to the beatmap editor."""
