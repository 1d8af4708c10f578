"""Parser configuration: loader options in one dataclass."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path


@dataclass
class ParserConfig:
    """Options controlling how forgiving the beatmap loader is."""

    # Promote every field error to a fatal one instead of dropping the row.
    strict: bool = False

    # Ring installed when a beatmap declares no combo color.
    default_color: tuple[int, int, int] = (128, 128, 128)

    # Library scanning
    osu_mode_only: bool = True  # Skip taiko/catch/mania difficulties

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(asdict(self), indent=2), encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> ParserConfig:
        """Load config from JSON file."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        # Only pass known fields to handle forward/backward compat
        known = {f.name for f in fields(cls)}
        config = cls(**{k: v for k, v in data.items() if k in known})
        config.default_color = tuple(config.default_color)
        return config
