from dataclasses import dataclass
from typing import Optional

from enums.text_position import TextPosition


@dataclass(frozen=True)
class TextStyle:
    """How overlay text is drawn."""

    font_size: int = 48
    color: str = "white"
    position: TextPosition = TextPosition.CENTER
    stroke_color: str = "black"
    stroke_width: int = 2
    font_path: Optional[str] = None
