"""Tests for the beatmap library index."""

import hashlib
from pathlib import Path

import pytest

from osu_timeline.config import ParserConfig
from osu_timeline.library.index import compute_beatmap_hash, find_beatmap_sets
from osu_timeline.schemas.beatmap import Mode

FIXTURES = Path(__file__).parent / "fixtures"


def add_beatmap(folder: Path, name: str, **replacements: str) -> Path:
    text = (FIXTURES / "complete.osu").read_text(encoding="utf-8")
    for old, new in replacements.items():
        text = text.replace(old, new)
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / name
    path.write_text(text, encoding="utf-8")
    return path


def _meta(**fields: str) -> dict[str, str]:
    """Replacements for the fixture's metadata lines."""
    defaults = {
        "Artist": "Kaori Oda",
        "Title": "Zero Tokei",
        "Version": "Normal",
        "OverallDifficulty": "5",
        "Mode": "0",
    }
    out = {}
    for key, value in fields.items():
        sep = ": " if key == "Mode" else ":"
        out[f"\n{key}{sep}{defaults[key]}\n"] = f"\n{key}{sep}{value}\n"
    return out


@pytest.fixture
def library(tmp_path):
    root = tmp_path / "beatmaps"
    zero = root / "651934 Kaori Oda - Zero Tokei"
    add_beatmap(zero, "hard.osu", **_meta(Version="Hard", OverallDifficulty="7"))
    add_beatmap(zero, "easy.osu", **_meta(Version="Easy", OverallDifficulty="2"))
    add_beatmap(zero, "taiko.osu", **_meta(Version="Oni", Mode="1"))
    add_beatmap(zero, "broken.osu", **{"osu file format v14": "garbage"})
    (zero / "audio.mp3").write_bytes(b"")

    other = root / "1 Aimer - Brave Shine"
    add_beatmap(other, "insane.osu", **_meta(Artist="Aimer", Title="Brave Shine"))

    (root / "empty set").mkdir()
    (root / ".hidden").mkdir()
    add_beatmap(root / ".hidden", "x.osu")
    (root / "stray.txt").write_text("not a set")
    return root


class TestFindBeatmapSets:
    def test_sorted_by_artist(self, library):
        sets = find_beatmap_sets(library)
        assert [(s.artist, s.title) for s in sets] == [
            ("Aimer", "Brave Shine"),
            ("Kaori Oda", "Zero Tokei"),
        ]

    def test_entries_sorted_by_difficulty(self, library):
        zero = find_beatmap_sets(library)[1]
        assert [e.version for e in zero.entries] == ["Easy", "Hard"]
        assert [e.difficulty for e in zero.entries] == [2.0, 7.0]
        assert all(e.mode == Mode.OSU for e in zero.entries)

    def test_other_modes_kept_on_request(self, library):
        config = ParserConfig(osu_mode_only=False)
        zero = find_beatmap_sets(library, config)[1]
        assert {e.version for e in zero.entries} == {"Easy", "Hard", "Oni"}

    def test_entry_hash(self, library):
        entry = find_beatmap_sets(library)[0].entries[0]
        assert entry.hash == hashlib.md5(entry.path.read_bytes()).hexdigest()
        assert entry.hash == compute_beatmap_hash(entry.path)

    def test_missing_root(self, tmp_path):
        with pytest.raises(NotADirectoryError):
            find_beatmap_sets(tmp_path / "nope")
