from dataclasses import dataclass
from typing import Optional

from enums.session_state import SessionState
from image.artifact import Artifact


@dataclass
class Session:
    """Per-user editing state: the current image and the pending input, if any."""

    user_id: int
    state: SessionState = SessionState.IDLE
    artifact: Optional[Artifact] = None

    @property
    def awaiting_text(self) -> bool:
        return self.state is SessionState.AWAITING_TEXT

    @property
    def awaiting_dimensions(self) -> bool:
        return self.state is SessionState.AWAITING_DIMENSIONS

    @property
    def awaiting_rotation(self) -> bool:
        return self.state is SessionState.AWAITING_ROTATION

    def replace_artifact(self, artifact: Optional[Artifact]) -> None:
        """Take ownership of ``artifact``, releasing the one held before."""
        previous = self.artifact
        self.artifact = artifact
        if previous is not None and previous is not artifact:
            previous.release()

    def reset(self) -> None:
        self.state = SessionState.IDLE
        self.replace_artifact(None)
