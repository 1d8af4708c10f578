"""In-memory model of a parsed .osu beatmap.

A beatmap is built once by the loader and is read-only afterwards, except for
the per-hit ``state``, ``offset`` and ``texture`` fields which belong to the
game and rendering code.

Times are in seconds and positions in osu!pixels.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import Any, Iterator

from osu_timeline.schemas.geometry import ORIGIN, Path, Point


class Mode(IntEnum):
    """Game modes, valued as written in the beatmap file."""

    OSU = 0
    TAIKO = 1
    CATCH = 2
    MANIA = 3


class SampleSet(IntEnum):
    """Sample set families.

    AUTO means "inherit from the timing point" and is resolved by the parser;
    it never appears on a built hit.
    """

    NONE = -1
    AUTO = 0
    NORMAL = 1
    SOFT = 2
    DRUM = 3


class HitType(IntFlag):
    CIRCLE = 0b1
    SLIDER = 0b10
    NEW_COMBO = 0b100
    SPINNER = 0b1000
    COMBO_SKIP = 0b1110000  # how many combos to skip
    HOLD = 0b10000000  # mania only


COMBO_SKIP_SHIFT = 4


class SoundType(IntFlag):
    """Hit sound flags.

    The low bits select the effects, the high bit the target (hit or slider
    body). Other high bits found in files are kept as-is.
    """

    NORMAL = 1
    WHISTLE = 2
    FINISH = 4
    CLAP = 8
    SLIDER = 0x80
    SOUND_MASK = 0x7F


class HitState(IntEnum):
    INITIAL = 0
    SLIDING = 1
    GOOD = 2
    MISSED = 3
    SKIPPED = 4
    UNKNOWN = 5


@dataclass(frozen=True)
class TimingPoint:
    """One timing point, resolved.

    ``beat_duration`` is always positive: inherited points already carry their
    parent's duration multiplied by their ratio.
    """

    offset: float
    beat_duration: float
    meter: int = 4
    sample_set: SampleSet = SampleSet.SOFT
    sample_index: int = 0
    volume: float = 1.0  # 0.0-1.0
    kiai: bool = False
    inherited: bool = False

    @property
    def bpm(self) -> float:
        return 60.0 / self.beat_duration


@dataclass(frozen=True)
class Color:
    """Combo color. Indexes in a ring start at 0 and have no gap."""

    index: int
    red: int
    green: int
    blue: int

    @property
    def rgb(self) -> tuple[int, int, int]:
        return self.red, self.green, self.blue


@dataclass
class HitSound:
    sample_set: SampleSet = SampleSet.AUTO
    additions: int = 0  # SoundType flags
    additions_set: SampleSet = SampleSet.AUTO
    index: int = 0  # 99 in normal-hitclap99.wav
    volume: float = 1.0
    filename: str | None = None


@dataclass
class Slider:
    path: Path
    repeat: int
    length: float  # osu!pixels
    duration: float  # one way, seconds
    sounds: list[HitSound] = field(default_factory=list)  # repeat + 1 edges
    # Path cut or extended to *length*, the one the slider ball follows.
    curve: Path = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.curve = self.path.normalized(self.length)


@dataclass
class Spinner:
    end_time: float


@dataclass
class HoldNote:
    end_time: float


Payload = Slider | Spinner | HoldNote | None


@dataclass
class Hit:
    """One hit object, a node of :class:`HitList`."""

    position: Point = ORIGIN
    time: float = 0.0
    offset: float = 0.0  # click offset, written by the game
    type: int = 0  # HitType flags
    sound: HitSound = field(default_factory=HitSound)
    payload: Payload = None
    timing_point: TimingPoint | None = None
    combo: int = 0
    combo_seq: int = 0
    color: int = 0  # index into Beatmap.colors
    state: HitState = HitState.INITIAL
    texture: Any = field(default=None, compare=False, repr=False)
    previous: int | None = None
    next: int | None = None

    @property
    def combo_skip(self) -> int:
        return (self.type & HitType.COMBO_SKIP) >> COMBO_SKIP_SHIFT

    @property
    def slider(self) -> Slider:
        if not isinstance(self.payload, Slider):
            raise TypeError("hit is not a slider")
        return self.payload

    @property
    def spinner(self) -> Spinner:
        if not isinstance(self.payload, Spinner):
            raise TypeError("hit is not a spinner")
        return self.payload

    @property
    def hold_note(self) -> HoldNote:
        if not isinstance(self.payload, HoldNote):
            raise TypeError("hit is not a hold note")
        return self.payload


class HitList:
    """Chronological hits stored by index, bounded by two sentinels.

    Node 0 has time -inf and the last node time +inf, so every playable hit
    has a previous and a next node. ``previous``/``next`` on each hit are
    indices into this list.
    """

    def __init__(self, hits: list[Hit] | None = None):
        self.nodes: list[Hit] = [Hit(time=-math.inf)]
        for hit in hits or []:
            self.nodes.append(hit)
        self.nodes.append(Hit(time=math.inf))
        self._link()

    def _link(self) -> None:
        last = len(self.nodes) - 1
        for i, hit in enumerate(self.nodes):
            hit.previous = i - 1 if i > 0 else None
            hit.next = i + 1 if i < last else None

    @property
    def head(self) -> Hit:
        return self.nodes[0]

    @property
    def tail(self) -> Hit:
        return self.nodes[-1]

    def __len__(self) -> int:
        return len(self.nodes) - 2

    def __iter__(self) -> Iterator[Hit]:
        return iter(self.nodes[1:-1])

    def __getitem__(self, index: int) -> Hit:
        return self.nodes[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HitList):
            return NotImplemented
        return self.nodes == other.nodes

    def previous(self, hit: Hit) -> Hit | None:
        return None if hit.previous is None else self.nodes[hit.previous]

    def next(self, hit: Hit) -> Hit | None:
        return None if hit.next is None else self.nodes[hit.next]

    def clear(self) -> None:
        for hit in self.nodes:
            hit.payload = None
            hit.timing_point = None
            hit.texture = None
        self.nodes = [Hit(time=-math.inf), Hit(time=math.inf)]
        self._link()


@dataclass
class Metadata:
    title: str | None = None
    title_unicode: str | None = None
    artist: str | None = None
    artist_unicode: str | None = None
    creator: str | None = None
    version: str | None = None  # difficulty name
    source: str | None = None
    tags: tuple[str, ...] = ()
    beatmap_id: int = 0
    beatmap_set_id: int = 0


@dataclass
class Difficulty:
    """[Difficulty] section, mostly stored as derived gameplay values."""

    circle_radius: float = 32.0
    overall_difficulty: float = 0.0
    leniency: float = 0.1  # seconds
    approach_time: float = 0.8  # seconds
    approach_size: float = 96.0
    slider_multiplier: float = 1.4
    slider_tick_rate: float = 1.0
    slider_tolerance: float = 64.0
    hp_drain_rate: float = 5.0


@dataclass(frozen=True)
class Break:
    start: float
    end: float


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal problem found while parsing."""

    source: str
    line_number: int
    message: str

    def __str__(self) -> str:
        return f"{self.source}:{self.line_number}: {self.message}"


@dataclass
class Beatmap:
    """Complete parsed result for one .osu file."""

    version: int = 0
    source: str = ""  # path the beatmap was loaded from
    audio_filename: str | None = None
    audio_lead_in: float = 0.0
    preview_time: float = 0.0
    countdown: int = 0
    sample_set: SampleSet = SampleSet.SOFT
    mode: Mode = Mode.OSU
    metadata: Metadata = field(default_factory=Metadata)
    difficulty: Difficulty = field(default_factory=Difficulty)
    background_filename: str | None = None
    breaks: list[Break] = field(default_factory=list)
    timing_points: list[TimingPoint] = field(default_factory=list)
    colors: list[Color] = field(default_factory=list)
    hits: HitList = field(default_factory=HitList)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def color_count(self) -> int:
        return len(self.colors)

    def color_of(self, hit: Hit) -> Color:
        """Combo color of *hit*, addressing the ring circularly."""
        return self.colors[hit.color % len(self.colors)]

    def destroy(self) -> None:
        """Release everything the beatmap owns. Safe to call more than once."""
        self.audio_filename = None
        self.background_filename = None
        self.metadata = Metadata()
        self.breaks.clear()
        self.timing_points.clear()
        self.colors.clear()
        self.hits.clear()


def hit_end_time(hit: Hit) -> float:
    """Time when the hit ends: the slide's end for sliders, the end time for spinners and holds."""
    payload = hit.payload
    if isinstance(payload, Slider):
        return hit.time + payload.duration * payload.repeat
    if isinstance(payload, (Spinner, HoldNote)):
        return payload.end_time
    return hit.time


def end_point(hit: Hit) -> Point:
    """Position of the hit when it ends.

    For a slider that repeats an even number of times, that's back at its head.
    Sliders end on their normalized curve, not on their last control point.
    """
    if isinstance(hit.payload, Slider):
        return hit.payload.curve.at(hit.payload.repeat)
    return hit.position


def score(beatmap: Beatmap) -> float:
    """Ratio of good hits among judged hits, from 0 to 1.

    Returns 0.0 while nothing has been judged.
    """
    good = bad = 0
    for hit in beatmap.hits:
        if hit.state == HitState.GOOD:
            good += 1
        elif hit.state == HitState.MISSED:
            bad += 1
    total = good + bad
    if total == 0:
        return 0.0
    return good / total
