"""Line and column tracking over a token stream.

Syntax trees only carry byte offsets. The tracker is fed every token of
a file in document order and turns offsets into 1-based line/column
pairs, with the column counted in bytes from the last line break.
"""

from lobster_rust.core.models import TextPosition


class PositionTracker:
    """Carries the line state of one file's traversal.

    ``position_at`` is only valid for offsets on the current line of the
    consumed text, typically the start offset of the next token.
    """

    def __init__(self):
        self.current_line = 1
        # Offset of the last "\n"; -1 puts offset 0 in column 1
        self.last_linebreak = -1
        self.offset = 0

    def advance(self, text: str):
        """Consume the raw text of the next token."""
        raw = text.encode("utf-8")
        linebreaks = raw.count(b"\n")
        if linebreaks:
            self.current_line += linebreaks
            self.last_linebreak = self.offset + raw.rindex(b"\n")
        self.offset += len(raw)

    def position_at(self, offset: int) -> TextPosition:
        """Return the line and column of a byte offset.

        Raises:
            ValueError: If the offset lies before the current line or
                beyond the consumed text
        """
        if offset <= self.last_linebreak or offset > self.offset:
            raise ValueError(
                f"offset {offset} outside the current line "
                f"({self.last_linebreak + 1}..{self.offset})"
            )
        return TextPosition(self.current_line, offset - self.last_linebreak)
