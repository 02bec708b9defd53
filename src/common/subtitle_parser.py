"""SRT subtitle parser and rebuilder for line-by-line translation."""

import logging
import re
from dataclasses import dataclass
from typing import List, Sequence, Tuple

logger = logging.getLogger(__name__)

INTEGER_PATTERN = re.compile(r"^\d+$")
# Timing marker, e.g. "00:00:01,000 --> 00:00:04,000"
TIMECODE_PATTERN = re.compile(r"^[\d:,]+ --> [\d:,]+$")


@dataclass(frozen=True)
class SubtitleDocument:
    """Raw subtitle lines plus the positions of the translatable ones."""

    lines: Tuple[str, ...]
    content_indices: Tuple[int, ...]
    # Terminator that followed each raw line; "" after the last one
    line_endings: Tuple[str, ...] = ()

    @property
    def content_lines(self) -> List[str]:
        """Caption text lines in document order."""
        return [self.lines[i] for i in self.content_indices]

    @property
    def is_empty(self) -> bool:
        return not self.content_indices


def is_timecode(line: str) -> bool:
    """Check whether a stripped line is an SRT timing marker."""
    return bool(TIMECODE_PATTERN.match(line))


def split_lines(content: str) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """Split content on LF or CRLF, remembering which terminator ended each line."""
    *terminated, last = content.split("\n")
    lines = []
    line_endings = []
    for raw in terminated:
        if raw.endswith("\r"):
            lines.append(raw[:-1])
            line_endings.append("\r\n")
        else:
            lines.append(raw)
            line_endings.append("\n")
    lines.append(last)
    line_endings.append("")
    return tuple(lines), tuple(line_endings)


def parse_srt(content: str) -> SubtitleDocument:
    """
    Split SRT content into raw lines and locate the caption text lines.

    Everything before the first timing marker is ignored. After it, timing
    markers, blank lines and bare sequence numbers are kept as structure and
    every other line is caption text. No per-block grammar is enforced, so
    slightly malformed files still parse. Each line keeps its own terminator,
    so files with mixed line endings rebuild byte for byte.

    Args:
        content: Raw SRT file content

    Returns:
        SubtitleDocument describing the file
    """
    lines, line_endings = split_lines(content)
    content_indices = []
    extracting = False

    for i, line in enumerate(lines):
        stripped = line.strip()

        if not extracting:
            if is_timecode(stripped):
                extracting = True
            continue

        if is_timecode(stripped):
            continue
        if stripped == "" or INTEGER_PATTERN.match(stripped):
            continue

        content_indices.append(i)

    logger.debug(
        f"Parsed {len(lines)} lines, {len(content_indices)} of them translatable"
    )
    return SubtitleDocument(
        lines=tuple(lines),
        content_indices=tuple(content_indices),
        line_endings=line_endings,
    )


def rebuild_srt(document: SubtitleDocument, translated_lines: Sequence[str]) -> str:
    """
    Put translated caption lines back into the original structure.

    Args:
        document: Parsed source document
        translated_lines: One translation per content line, in document order

    Returns:
        SRT content with only the caption lines replaced

    Raises:
        ValueError: If the number of translations doesn't match the content lines
    """
    if len(translated_lines) != len(document.content_indices):
        raise ValueError(
            f"Content line count ({len(document.content_indices)}) doesn't match "
            f"translation count ({len(translated_lines)})"
        )

    output = list(document.lines)
    for index, translation in zip(document.content_indices, translated_lines):
        output[index] = translation
    line_endings = document.line_endings or ("\n",) * (len(output) - 1) + ("",)
    return "".join(line + ending for line, ending in zip(output, line_endings))
