import os
import logging

logger = logging.getLogger(__name__)


class Artifact:
    """A temporary image file owned by exactly one session."""

    def __init__(self, path: str):
        self.path = path
        self.released = False

    @property
    def extension(self) -> str:
        return os.path.splitext(self.path)[1].lstrip(".").lower()

    def exists(self) -> bool:
        return not self.released and os.path.exists(self.path)

    def size(self) -> int:
        return os.path.getsize(self.path)

    def release(self) -> None:
        """Delete the backing file. Calling it again does nothing."""
        if self.released:
            return
        self.released = True
        if os.path.exists(self.path):
            try:
                os.remove(self.path)
                logger.info(f"Cleaned up file: {self.path}")
            except OSError as e:
                logger.error(f"Failed to clean up {self.path}: {e}")

    def __repr__(self) -> str:
        return f"Artifact({self.path!r})"
