from enum import Enum


class TextPosition(Enum):
    """Vertical placement of a text overlay."""

    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"
