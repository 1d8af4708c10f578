"""Split a .osu file into classified lines.

Lines are trimmed; empty lines and ``//`` comments are dropped. The first
remaining line must be the ``osu file format v<N>`` header, possibly preceded
by a byte-order mark or some binary noise.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

from osu_timeline.parsers.errors import HeaderError, SectionError

HEADER_MAGIC = "osu file format v"

# Noise is skipped up to the first 'o', like the game does.
_HEADER_RE = re.compile(r"[^o]*" + re.escape(HEADER_MAGIC) + r"(\d+)")


class LineKind(Enum):
    HEADER = "header"
    SECTION = "section"
    DATA = "data"


@dataclass(frozen=True)
class Line:
    number: int  # 1-based
    kind: LineKind
    text: str  # trimmed content, or the section name for SECTION lines


def parse_header(text: str, source: str = "", line_number: int = 0) -> int:
    """Return the format version announced by a header line."""
    match = _HEADER_RE.match(text)
    if match is None:
        raise HeaderError(
            f"expected \"{HEADER_MAGIC}<version>\", got {text[:40]!r}",
            source, line_number,
        )
    return int(match.group(1))


def parse_section_name(text: str, source: str = "", line_number: int = 0) -> str:
    """Extract ``Name`` from ``[Name]``."""
    if not text.endswith("]"):
        raise SectionError("unterminated section header", source, line_number)
    name = text[1:-1].strip()
    if not name:
        raise SectionError("empty section name", source, line_number)
    return name


def scan_lines(lines: Iterable[str], source: str = "") -> Iterator[Line]:
    """Yield the meaningful lines of a beatmap, header first.

    Raises HeaderError if the first meaningful line is not a header, and
    SectionError on a malformed section line.
    """
    seen_header = False
    for number, raw in enumerate(lines, start=1):
        text = raw.strip()
        if not text or text.startswith("//"):
            continue
        if not seen_header:
            # Some files carry a BOM that survived decoding.
            parse_header(text.lstrip("\ufeff"), source, number)
            seen_header = True
            yield Line(number, LineKind.HEADER, text.lstrip("\ufeff"))
        elif text.startswith("["):
            yield Line(number, LineKind.SECTION, parse_section_name(text, source, number))
        else:
            yield Line(number, LineKind.DATA, text)
    if not seen_header:
        raise HeaderError("empty beatmap file", source, 0)
