from enum import Enum


class SessionState(Enum):
    """Which free-text reply, if any, a session is waiting for."""

    IDLE = "idle"
    AWAITING_TEXT = "awaiting_text"
    AWAITING_DIMENSIONS = "awaiting_dimensions"
    AWAITING_ROTATION = "awaiting_rotation"
