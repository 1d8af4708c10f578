"""Tests for the beatmap model and its derived queries."""

import math

import pytest

from osu_timeline.schemas.beatmap import (
    Beatmap,
    Color,
    Hit,
    HitList,
    HitState,
    HitType,
    HoldNote,
    Slider,
    Spinner,
    end_point,
    hit_end_time,
    score,
)
from osu_timeline.schemas.geometry import LinearSegment, Path, Point


def make_slider(repeat: int) -> Hit:
    path = Path((LinearSegment(Point(0, 0), Point(100, 0)),))
    return Hit(
        position=Point(0, 0),
        time=1.0,
        type=HitType.SLIDER,
        payload=Slider(path=path, repeat=repeat, length=100.0, duration=0.5),
    )


class TestHitList:
    def test_sentinels(self):
        hits = HitList([Hit(time=1.0), Hit(time=2.0)])
        assert hits.head.time == -math.inf
        assert hits.tail.time == math.inf
        assert len(hits) == 2
        assert [h.time for h in hits] == [1.0, 2.0]

    def test_links(self):
        hits = HitList([Hit(time=float(i)) for i in range(4)])
        for hit in hits:
            assert hits.next(hits.previous(hit)) is hit
            assert hits.previous(hits.next(hit)) is hit
        assert hits.previous(hits.head) is None
        assert hits.next(hits.tail) is None

    def test_empty(self):
        hits = HitList()
        assert len(hits) == 0
        assert list(hits) == []
        assert hits.next(hits.head) is hits.tail

    def test_clear(self):
        hits = HitList([make_slider(1)])
        hits.clear()
        assert len(hits) == 0
        assert hits.head.next == 1


class TestDerivedQueries:
    def test_end_time(self):
        assert hit_end_time(Hit(time=2.0)) == 2.0
        assert hit_end_time(make_slider(3)) == pytest.approx(2.5)
        assert hit_end_time(Hit(time=2.0, payload=Spinner(end_time=4.0))) == 4.0
        assert hit_end_time(Hit(time=2.0, payload=HoldNote(end_time=3.0))) == 3.0

    def test_end_point(self):
        assert end_point(make_slider(1)) == Point(100, 0)
        assert end_point(make_slider(2)) == Point(0, 0)
        assert end_point(Hit(position=Point(5, 6))) == Point(5, 6)

    def test_score(self):
        beatmap = Beatmap()
        assert score(beatmap) == 0.0
        states = [HitState.GOOD, HitState.GOOD, HitState.MISSED, HitState.INITIAL]
        beatmap.hits = HitList([Hit(time=float(i), state=s) for i, s in enumerate(states)])
        assert score(beatmap) == pytest.approx(2 / 3)

    def test_combo_skip(self):
        assert Hit(type=HitType.CIRCLE | HitType.NEW_COMBO | 0b0110000).combo_skip == 3


class TestBeatmap:
    def test_color_ring(self):
        beatmap = Beatmap(colors=[Color(0, 1, 2, 3), Color(1, 4, 5, 6)])
        assert beatmap.color_count == 2
        assert beatmap.color_of(Hit(color=3)).rgb == (4, 5, 6)

    def test_destroy_idempotent(self):
        beatmap = Beatmap(audio_filename="a.mp3", colors=[Color(0, 1, 2, 3)])
        beatmap.hits = HitList([make_slider(1)])
        beatmap.destroy()
        beatmap.destroy()
        assert beatmap.audio_filename is None
        assert beatmap.colors == []
        assert len(beatmap.hits) == 0
