"""Offset to line/character lookup for a single document snapshot."""

import bisect
import dataclasses
import re

# \r\n, a lone \r or a lone \n.
_LINE_BREAK_PAT = re.compile(r"\r\n|\r|\n")


@dataclasses.dataclass(frozen=True, order=True)
class Position:
    """A 0-indexed (line, character) pair; character counts code points."""

    line: int
    character: int


@dataclasses.dataclass(frozen=True)
class Range:
    """A half-open span between two positions."""

    start: Position
    end: Position


class PositionIndex:
    """Line-start table built once per document text.

    Offsets are clamped into ``[0, len(text)]`` so that lookups never fail;
    an offset equal to the text length maps to the position just past the
    last character of the last line.
    """

    def __init__(self, text: str) -> None:
        """Record the offset at which every line of *text* begins.

        Args:
            text: The full document text.
        """
        self.length = len(text)
        self.line_starts: list[int] = [0]
        self.line_starts.extend(
            match.end() for match in _LINE_BREAK_PAT.finditer(text)
        )

    def _clamp(self, offset: int) -> int:
        return max(0, min(offset, self.length))

    def position_at(self, offset: int) -> Position:
        """Return the position of *offset*, clamped to the text bounds."""
        offset = self._clamp(offset)
        line = bisect.bisect_right(self.line_starts, offset) - 1
        return Position(line=line, character=offset - self.line_starts[line])

    def offset_at(self, position: Position) -> int:
        """Return the absolute offset of *position*.

        The line is clamped to the table and the character to the end of
        that line (terminator included), mirroring ``position_at``.
        """
        line = max(0, min(position.line, len(self.line_starts) - 1))
        line_start = self.line_starts[line]
        line_end = (
            self.line_starts[line + 1]
            if line + 1 < len(self.line_starts)
            else self.length
        )
        return max(line_start, min(line_start + position.character, line_end))

    def to_range(self, start: int, end: int) -> Range:
        """Build a Range from two offsets, clamping *end* to at least *start*."""
        start = self._clamp(start)
        end = max(start, self._clamp(end))
        return Range(start=self.position_at(start), end=self.position_at(end))


def build(text: str) -> PositionIndex:
    """Return a PositionIndex for *text*."""
    return PositionIndex(text)


def to_range(index: PositionIndex, start: int, end: int) -> Range:
    """Return the Range covering ``[start, end)`` in the indexed text."""
    return index.to_range(start, end)
