"""Tests for ParserConfig persistence and the command-line entry point."""

import json
from pathlib import Path

import pytest

from osu_timeline.cli import main
from osu_timeline.config import ParserConfig

FIXTURES = Path(__file__).parent / "fixtures"


class TestParserConfig:
    def test_defaults(self):
        config = ParserConfig()
        assert config.strict is False
        assert config.default_color == (128, 128, 128)
        assert config.osu_mode_only is True

    def test_round_trip(self, tmp_path):
        path = tmp_path / "sub" / "config.json"
        ParserConfig(strict=True, default_color=(1, 2, 3)).save(path)
        loaded = ParserConfig.load(path)
        assert loaded.strict is True
        assert loaded.default_color == (1, 2, 3)

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"strict": True, "renderer": "gl"}))
        assert ParserConfig.load(path).strict is True


class TestCli:
    def test_info(self, capsys):
        assert main(["info", str(FIXTURES / "complete.osu")]) == 0
        out = capsys.readouterr().out
        assert "Kaori Oda - Zero Tokei [Normal]" in out
        assert "9 hits" in out
        assert "120.0 BPM" in out

    def test_info_invalid(self, tmp_path, capsys):
        path = tmp_path / "bad.osu"
        path.write_text("not a beatmap\n")
        assert main(["info", str(path)]) == 1
        assert "error:" in capsys.readouterr().err

    def test_strict_flag(self, tmp_path):
        config_path = tmp_path / "config.json"
        ParserConfig().save(config_path)
        text = (FIXTURES / "complete.osu").read_text(encoding="utf-8")
        path = tmp_path / "lenient.osu"
        path.write_text(text.replace("192,64,1500,1,0,0:0:0:0:", "192,64,x,1,0"), encoding="utf-8")
        assert main(["--config", str(config_path), "info", str(path)]) == 0
        assert main(["--strict", "info", str(path)]) == 1

    def test_export(self, tmp_path, capsys):
        pytest.importorskip("pyarrow")
        root = tmp_path / "beatmaps" / "651934 Kaori Oda - Zero Tokei"
        root.mkdir(parents=True)
        (root / "normal.osu").write_bytes((FIXTURES / "complete.osu").read_bytes())
        out_dir = tmp_path / "out"
        assert main(["export", "--input", str(tmp_path / "beatmaps"), "--output", str(out_dir)]) == 0
        assert (out_dir / "hits_0000.parquet").exists()
        assert "Exported 1 beatmaps" in capsys.readouterr().out
