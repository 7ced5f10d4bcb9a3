import re
from typing import Tuple

from error.processing_error import InvalidParameters

DIMENSIONS_INPUT = re.compile(r"^[0-9x×,\s]+$")
DIMENSIONS_SEPARATOR = re.compile(r"[x×,\s]+")
ROTATION_INPUT = re.compile(r"^[+-]?[0-9]+$")
TEXT_ALLOWED = re.compile(r"^[a-zA-Z0-9\s\-_.,!?()'\"]+$")

DIMENSIONS_MAX_INPUT = 20
MAX_ROTATION = 360

DIMENSIONS_HINT = "Invalid format. Please enter dimensions like: 800x600 or 1920×1080"


def parse_dimensions(raw: str, max_width: int, max_height: int) -> Tuple[int, int]:
    """Parse ``WIDTHxHEIGHT`` (also ``×``, ``,`` or whitespace separated)."""
    text = raw.strip()
    if not text or len(text) > DIMENSIONS_MAX_INPUT or not DIMENSIONS_INPUT.match(text):
        raise InvalidParameters(DIMENSIONS_HINT)

    parts = [p for p in DIMENSIONS_SEPARATOR.split(text) if p]
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise InvalidParameters(DIMENSIONS_HINT)

    width, height = int(parts[0]), int(parts[1])
    if width <= 0 or height <= 0 or width > max_width or height > max_height:
        raise InvalidParameters(
            "Invalid dimensions. Please use values between 1 and "
            f"{max_width}×{max_height}"
        )
    return width, height


def parse_rotation(raw: str) -> int:
    """Parse a whole number of degrees in [-360, 360]."""
    text = raw.strip()
    if not ROTATION_INPUT.match(text) or abs(int(text)) > MAX_ROTATION:
        raise InvalidParameters(
            "Invalid rotation. Please enter a number between -360 and 360 degrees."
        )
    return int(text)


def sanitize_text(raw: str, max_length: int) -> str:
    """Trim overlay text, rejecting input the overlay should not draw."""
    text = raw.strip()
    if not text or len(text) > max_length or not TEXT_ALLOWED.match(text):
        raise InvalidParameters(
            "Invalid text. Please use only letters, numbers, and basic "
            f"punctuation (max {max_length} characters)"
        )
    return text
