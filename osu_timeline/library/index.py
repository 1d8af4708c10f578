"""Index a local beatmap library.

Expected layout::

    root/
    └── 651934 Kaori Oda - Zero Tokei (Short ver.)/
        ├── audio.mp3
        ├── Kaori Oda - Zero Tokei (Short ver.) (ShogunMoon) [Easy].osu
        └── Kaori Oda - Zero Tokei (Short ver.) (ShogunMoon) [Normal].osu

Each directory under the root is a beatmap set; each .osu file inside it is
an entry. Only headers are loaded.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path

from osu_timeline.config import ParserConfig
from osu_timeline.parsers.beatmap_parser import destroy_beatmap, load_beatmap_headers
from osu_timeline.parsers.errors import ParseError
from osu_timeline.schemas.beatmap import Mode

logger = logging.getLogger(__name__)


def compute_beatmap_hash(path: Path) -> str:
    """MD5 of the .osu file, which is how the game identifies a beatmap."""
    return hashlib.md5(Path(path).read_bytes()).hexdigest()


@dataclass
class BeatmapEntry:
    path: Path
    mode: Mode
    difficulty: float  # overall difficulty, the cheapest indicator available
    title: str
    artist: str
    version: str
    hash: str

    @classmethod
    def from_file(cls, path: Path, config: ParserConfig | None = None) -> "BeatmapEntry":
        beatmap = load_beatmap_headers(path, config)
        try:
            meta = beatmap.metadata
            return cls(
                path=Path(path),
                mode=beatmap.mode,
                difficulty=beatmap.difficulty.overall_difficulty,
                title=meta.title or "",
                artist=meta.artist or "",
                version=meta.version or "",
                hash=compute_beatmap_hash(path),
            )
        finally:
            destroy_beatmap(beatmap)


@dataclass
class BeatmapSet:
    """The .osu files of one directory, assumed to share their metadata."""

    path: Path
    entries: list[BeatmapEntry] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.entries[0].title if self.entries else ""

    @property
    def artist(self) -> str:
        return self.entries[0].artist if self.entries else ""

    def __bool__(self) -> bool:
        return bool(self.entries)


def find_entries(folder: Path, config: ParserConfig | None = None) -> BeatmapSet:
    """Load the entries of one set directory, sorted by difficulty.

    Invalid beatmaps are logged and skipped.
    """
    config = config or ParserConfig()
    beatmap_set = BeatmapSet(path=folder)
    for path in sorted(folder.glob("*.osu")):
        if path.name.startswith("."):
            continue
        try:
            entry = BeatmapEntry.from_file(path, config)
        except (ParseError, OSError) as e:
            logger.warning("Ignoring invalid beatmap %s: %s", path, e)
            continue
        if config.osu_mode_only and entry.mode != Mode.OSU:
            logger.debug("Skipping %s: unsupported mode %s", path, entry.mode.name)
            continue
        beatmap_set.entries.append(entry)
    beatmap_set.entries.sort(key=lambda e: e.difficulty)
    return beatmap_set


def find_beatmap_sets(root: Path, config: ParserConfig | None = None) -> list[BeatmapSet]:
    """Index every beatmap set under *root*, sorted by artist then title.

    Empty sets are left out.
    """
    root = Path(root)
    if not root.is_dir():
        raise NotADirectoryError(f"Beatmap library not found: {root}")
    sets = []
    for folder in sorted(root.iterdir()):
        if folder.name.startswith(".") or not folder.is_dir():
            continue
        beatmap_set = find_entries(folder, config)
        if beatmap_set:
            sets.append(beatmap_set)
        else:
            logger.debug("No playable beatmap in %s", folder)
    sets.sort(key=lambda s: (s.artist, s.title))
    logger.info("Found %d beatmap sets in %s", len(sets), root)
    return sets
