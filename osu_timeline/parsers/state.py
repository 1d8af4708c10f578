"""Parser state threaded through every section handler."""

import logging
import math
from dataclasses import dataclass, field

from osu_timeline.config import ParserConfig
from osu_timeline.parsers.errors import FieldError
from osu_timeline.schemas.beatmap import Beatmap, Diagnostic, Hit, TimingPoint

logger = logging.getLogger(__name__)


@dataclass
class ParserState:
    """Everything a handler may read or update while the file is consumed.

    Handlers receive the state and one line; they never keep state of their
    own.
    """

    beatmap: Beatmap
    config: ParserConfig = field(default_factory=ParserConfig)
    source: str = ""
    line_number: int = 0
    section: str | None = None  # None until the first [section]

    # Timing model: the last appended point, and the last non-inherited one
    # that inherited points multiply.
    last_timing_point: TimingPoint | None = None
    timing_base: TimingPoint | None = None
    # Governing timing point lookup, moves forward only.
    timing_cursor: int = 0

    # Hit objects built so far, without sentinels.
    hits: list[Hit] = field(default_factory=list)

    @property
    def last_hit(self) -> Hit | None:
        return self.hits[-1] if self.hits else None

    def report(self, message: str) -> None:
        """Record a non-fatal problem at the current line."""
        diagnostic = Diagnostic(self.source, self.line_number, message)
        self.beatmap.diagnostics.append(diagnostic)
        logger.warning("%s", diagnostic)


def split_key_value(text: str) -> tuple[str, str]:
    """Split ``Key: value`` into its stripped parts."""
    key, sep, value = text.partition(":")
    key = key.strip()
    if not sep or not key:
        raise FieldError(f"expected 'key: value', got {text!r}")
    return key, value.strip()


def to_int(text: str, what: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        raise FieldError(f"invalid {what}: {text!r}") from None


def to_float(text: str, what: str) -> float:
    try:
        value = float(text.strip())
    except ValueError:
        raise FieldError(f"invalid {what}: {text!r}") from None
    if not math.isfinite(value):
        raise FieldError(f"invalid {what}: {text!r}")
    return value
