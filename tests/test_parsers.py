"""End-to-end tests for load_beatmap, load_beatmap_headers and the section router."""

import math
from pathlib import Path

import pytest

from osu_timeline.config import ParserConfig
from osu_timeline.parsers import beatmap_parser
from osu_timeline.parsers.beatmap_parser import (
    destroy_beatmap,
    load_beatmap,
    load_beatmap_headers,
    parse_beatmap,
)
from osu_timeline.parsers.errors import FieldError, HeaderError, SectionError, ValidationError
from osu_timeline.schemas.beatmap import (
    Break,
    Mode,
    SampleSet,
    end_point,
    hit_end_time,
)
from osu_timeline.schemas.geometry import Point

FIXTURES = Path(__file__).parent / "fixtures"
COMPLETE = FIXTURES / "complete.osu"


def complete_text() -> str:
    return COMPLETE.read_text(encoding="utf-8")


def write_osu(tmp_path: Path, text: str, name: str = "test.osu") -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadBeatmap:
    @pytest.fixture(scope="class")
    def beatmap(self):
        return load_beatmap(COMPLETE)

    def test_general(self, beatmap):
        assert beatmap.version == 14
        assert beatmap.source == str(COMPLETE)
        assert beatmap.audio_filename == "audio.mp3"
        assert beatmap.audio_lead_in == pytest.approx(1.0)
        assert beatmap.preview_time == pytest.approx(12.0)
        assert beatmap.sample_set == SampleSet.NORMAL
        assert beatmap.mode == Mode.OSU

    def test_metadata(self, beatmap):
        meta = beatmap.metadata
        assert meta.title == "Zero Tokei"
        assert meta.title_unicode == "ゼロ時計"
        assert meta.artist == "Kaori Oda"
        assert meta.creator == "ShogunMoon"
        assert meta.version == "Normal"
        assert meta.source is None
        assert meta.tags == ("anime", "clock", "short")
        assert meta.beatmap_id == 1378284
        assert meta.beatmap_set_id == 651934

    def test_difficulty(self, beatmap):
        diff = beatmap.difficulty
        assert diff.circle_radius == pytest.approx(36.48)
        assert diff.approach_size == pytest.approx(3 * 36.48)
        assert diff.slider_tolerance == pytest.approx(2 * 36.48)
        assert diff.leniency == pytest.approx(0.1)
        assert diff.approach_time == pytest.approx(0.9)
        assert diff.slider_multiplier == pytest.approx(1.4)
        assert diff.hp_drain_rate == pytest.approx(4.0)

    def test_events(self, beatmap):
        assert beatmap.background_filename == "bg, night.jpg"
        assert beatmap.breaks == [Break(8.0, 10.0)]

    def test_timing_points(self, beatmap):
        first, second = beatmap.timing_points
        assert first.beat_duration == pytest.approx(0.5)
        assert first.sample_set == SampleSet.SOFT
        assert first.volume == pytest.approx(0.6)
        assert second.inherited and second.kiai
        assert second.beat_duration == pytest.approx(0.25)

    def test_colors(self, beatmap):
        assert beatmap.color_count == 4
        assert [c.index for c in beatmap.colors] == [0, 1, 2, 3]
        assert beatmap.colors[3].rgb == (255, 255, 0)

    def test_hits(self, beatmap):
        hits = list(beatmap.hits)
        assert len(hits) == 9
        assert [h.combo for h in hits] == [0, 0, 0, 2, 2, 3, 3, 4, 4]
        assert [h.combo_seq for h in hits] == [1, 2, 3, 1, 2, 1, 2, 1, 2]
        assert [h.color for h in hits] == [0, 0, 0, 2, 2, 3, 3, 0, 0]
        assert all(h.sound.sample_set != SampleSet.AUTO for h in hits)
        assert all(h.timing_point is not None for h in hits)

    def test_sliders(self, beatmap):
        hits = list(beatmap.hits)
        assert hits[4].slider.duration == pytest.approx(0.46875)
        assert hits[4].slider.path.last == Point(200, 100)
        assert end_point(hits[4]) == Point(231.25, 100)

        bezier = hits[5]
        assert bezier.timing_point.inherited
        assert bezier.slider.duration == pytest.approx(0.25)
        assert hit_end_time(bezier) == pytest.approx(5.0)
        assert end_point(bezier) == Point(100, 200)
        assert len(bezier.slider.sounds) == 3

        arc = hits[6]
        assert arc.slider.path.position(0.5).y == pytest.approx(250.0)

    def test_spinner_and_sample(self, beatmap):
        hits = list(beatmap.hits)
        assert hit_end_time(hits[7]) == pytest.approx(7.5)
        assert hits[8].sound.index == 2
        assert hits[8].sound.volume == pytest.approx(0.8)

    def test_sentinels(self, beatmap):
        hits = beatmap.hits
        assert hits.head.time == -math.inf
        assert hits.tail.time == math.inf
        for hit in hits:
            assert hits.next(hits.previous(hit)) is hit
            assert hits.previous(hits.next(hit)) is hit

    def test_no_diagnostics(self, beatmap):
        assert beatmap.diagnostics == []

    def test_idempotent(self):
        assert load_beatmap(COMPLETE) == load_beatmap(COMPLETE)


class TestLoadHeaders:
    def test_headers_only(self):
        beatmap = load_beatmap_headers(COMPLETE)
        assert beatmap.metadata.title == "Zero Tokei"
        assert beatmap.difficulty.approach_time == pytest.approx(0.9)
        assert beatmap.timing_points == []
        assert beatmap.colors == []
        assert len(beatmap.hits) == 0
        assert beatmap.hits.head.time == -math.inf

    def test_still_validates_audio(self, tmp_path):
        path = write_osu(tmp_path, complete_text().replace("AudioFilename: audio.mp3\n", ""))
        with pytest.raises(ValidationError):
            load_beatmap_headers(path)


class TestFailures:
    def test_missing_audio(self, tmp_path):
        path = write_osu(tmp_path, complete_text().replace("AudioFilename: audio.mp3\n", ""))
        with pytest.raises(ValidationError):
            load_beatmap(path)

    @pytest.mark.parametrize("filename", ["music/audio.mp3", "music\\audio.mp3"])
    def test_path_in_audio_filename(self, tmp_path, filename):
        text = complete_text().replace("audio.mp3", filename)
        with pytest.raises(ValidationError):
            load_beatmap(write_osu(tmp_path, text))

    def test_no_hits(self, tmp_path):
        text = complete_text().split("[HitObjects]")[0]
        with pytest.raises(ValidationError):
            load_beatmap(write_osu(tmp_path, text))

    def test_garbled_header_releases_beatmap(self, tmp_path, monkeypatch):
        destroyed = []

        def spy(beatmap):
            destroyed.append(beatmap)
            destroy_beatmap(beatmap)

        monkeypatch.setattr(beatmap_parser, "destroy_beatmap", spy)
        text = complete_text().replace("osu file format v14", "osu file frmat v14")
        with pytest.raises(HeaderError):
            load_beatmap(write_osu(tmp_path, text))
        assert len(destroyed) == 1
        assert destroyed[0].timing_points == []

    def test_late_failure_releases_beatmap(self, tmp_path, monkeypatch):
        destroyed = []

        def spy(beatmap):
            destroyed.append(beatmap)
            destroy_beatmap(beatmap)

        monkeypatch.setattr(beatmap_parser, "destroy_beatmap", spy)
        text = complete_text().replace("AudioFilename: audio.mp3\n", "")
        with pytest.raises(ValidationError):
            load_beatmap(write_osu(tmp_path, text))
        assert len(destroyed) == 1
        assert len(destroyed[0].hits) == 0
        assert destroyed[0].colors == []

    def test_malformed_section(self, tmp_path):
        text = complete_text().replace("[Colours]", "[Colours")
        with pytest.raises(SectionError):
            load_beatmap(write_osu(tmp_path, text))

    def test_orphan_inherited_point(self, tmp_path):
        text = complete_text().replace("0,500,4,2,0,60,1,0", "0,-100,4,2,0,60,0,0")
        with pytest.raises(FieldError) as info:
            load_beatmap(write_osu(tmp_path, text))
        assert info.value.fatal
        assert info.value.line_number > 0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_beatmap(tmp_path / "nope.osu")

    def test_destroy_none(self):
        destroy_beatmap(None)


class TestLeniency:
    def test_bad_hit_dropped(self, tmp_path):
        text = complete_text().replace("128,64,1000,1,2,0:0:0:0:", "128,64,oops,1,2")
        beatmap = load_beatmap(write_osu(tmp_path, text))
        assert len(beatmap.hits) == 8
        assert len(beatmap.diagnostics) == 1
        assert beatmap.diagnostics[0].line_number > 0
        assert [h.combo_seq for h in beatmap.hits][:3] == [1, 2, 1]

    def test_strict_mode(self, tmp_path):
        text = complete_text().replace("128,64,1000,1,2,0:0:0:0:", "128,64,oops,1,2")
        with pytest.raises(FieldError):
            load_beatmap(write_osu(tmp_path, text), ParserConfig(strict=True))

    def test_unknown_section(self, tmp_path):
        text = complete_text().replace("[Colours]", "[Fancy]\nWhatever: 1\n\n[Colours]")
        beatmap = load_beatmap(write_osu(tmp_path, text))
        assert [d.message for d in beatmap.diagnostics] == ["unknown section [Fancy]"]

    def test_content_outside_sections(self):
        lines = complete_text().replace("[General]", "stray line\n[General]").splitlines()
        beatmap = parse_beatmap(lines, source="inline.osu")
        assert [d.message for d in beatmap.diagnostics] == ["content outside any section"]

    def test_unknown_keys(self):
        text = complete_text().replace("Mode: 0", "Mode: 0\nFancyKey: 3")
        beatmap = parse_beatmap(text.splitlines())
        assert len(beatmap.diagnostics) == 1
        assert "FancyKey" in beatmap.diagnostics[0].message

    def test_missing_title_is_a_warning(self):
        text = complete_text().replace("Title:Zero Tokei\n", "")
        beatmap = parse_beatmap(text.splitlines())
        assert beatmap.metadata.title is None
        assert [d.message for d in beatmap.diagnostics] == ["missing title"]

    def test_no_colours_gets_default_ring(self):
        text = complete_text()
        start = text.index("[Colours]")
        end = text.index("[HitObjects]")
        beatmap = parse_beatmap((text[:start] + text[end:]).splitlines())
        assert beatmap.color_count == 1
        assert beatmap.colors[0].rgb == (128, 128, 128)
        assert {h.color for h in beatmap.hits} == {0}

    def test_colours_after_hit_objects(self):
        text = complete_text()
        start = text.index("[Colours]")
        end = text.index("[HitObjects]")
        moved = text[:start] + text[end:].rstrip("\n") + "\n\n" + text[start:end]
        beatmap = parse_beatmap(moved.splitlines())
        assert [c.index for c in beatmap.colors] == [0, 1, 2, 3]
        assert beatmap.colors[3].rgb == (255, 255, 0)
        assert [h.color for h in beatmap.hits] == [0, 0, 0, 2, 2, 3, 3, 0, 0]
        assert beatmap.diagnostics == []

    def test_bom(self, tmp_path):
        path = tmp_path / "bom.osu"
        path.write_bytes(b"\xef\xbb\xbf" + complete_text().encode("utf-8"))
        assert load_beatmap(path).version == 14
