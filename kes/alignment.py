"""Fixed-width text alignment for terminal output."""

from __future__ import annotations

import enum

_ELLIPSIS = "…"


class Alignment(enum.IntEnum):
    """Horizontal alignment of text inside a fixed-width field."""

    LEFT = 0
    CENTER = 1
    RIGHT = 2

    def format(self, text: str, length: int) -> str:
        """Return ``text`` padded or truncated to exactly ``length`` characters.

        Shorter text is padded with spaces according to the alignment; for
        centered text an odd amount of padding puts the extra space at the end.
        Longer text is cut to ``length`` characters, and if at least two
        characters remain the last one becomes '…'. When the text ends with a
        space, that space is kept and the '…' moves one position to the left.
        """
        if length < 0:
            raise ValueError(f"invalid length: {length}")

        chars = list(text)
        if len(chars) == length:
            return text
        if len(chars) > length:
            if length >= 2:
                if chars[-1] == " ":
                    chars[length - 1] = " "
                    chars[length - 2] = _ELLIPSIS
                else:
                    chars[length - 1] = _ELLIPSIS
            return "".join(chars[:length])

        padding = length - len(chars)
        if self is Alignment.LEFT:
            return text + " " * padding
        if self is Alignment.RIGHT:
            return " " * padding + text
        half = " " * (padding // 2)
        tail = " " if padding % 2 else ""
        return half + text + half + tail