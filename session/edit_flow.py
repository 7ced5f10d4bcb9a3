import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from config.bot_config import BotConfig
from enums.edit_action import EditAction
from enums.session_state import SessionState
from error.processing_error import (
    InvalidParameters,
    NoActiveArtifact,
    ProcessingError,
)
from image.artifact import Artifact
from image.image_handler import ImageHandler
from session.session import Session
from session.session_store import SessionStore
from session.input_parser import parse_dimensions, parse_rotation, sanitize_text

logger = logging.getLogger(__name__)

Notify = Callable[[str], Awaitable[None]]

_STATE_ACTIONS = {
    SessionState.AWAITING_DIMENSIONS: EditAction.RESIZE,
    SessionState.AWAITING_ROTATION: EditAction.ROTATE,
    SessionState.AWAITING_TEXT: EditAction.ADD_TEXT,
}


@dataclass(frozen=True)
class EditResult:
    """A finished operation, ready to be sent back to the user."""

    action: EditAction
    artifact: Artifact
    caption: str
    as_document: bool


class EditFlow:
    """Session transitions for the editing workflow, independent of Telegram.

    Errors are raised as ``ProcessingError`` subclasses. ``InvalidParameters``
    leaves the session in its awaiting state so the user can retry; any other
    error leaves it idle. The current artifact is only replaced on success.
    """

    def __init__(
        self,
        sessions: SessionStore,
        operations: Dict[EditAction, ImageHandler],
        config: BotConfig,
    ):
        self.sessions = sessions
        self.operations = operations
        self.config = config

    def start(self, user_id: int) -> Session:
        """Begin a new editing round."""
        session = self.sessions.get(user_id)
        session.reset()
        return session

    def cancel(self, user_id: int) -> Session:
        return self.start(user_id)

    def idle(self, user_id: int) -> Session:
        """Drop any pending input, keeping the current artifact."""
        session = self.sessions.get(user_id)
        session.state = SessionState.IDLE
        return session

    def attach(self, user_id: int, artifact: Artifact) -> Session:
        """Make a freshly uploaded image the one being edited."""
        session = self.sessions.get(user_id)
        session.state = SessionState.IDLE
        session.replace_artifact(artifact)
        return session

    async def select(
        self, user_id: int, action: EditAction, notify: Optional[Notify] = None
    ) -> Optional[EditResult]:
        """Handle a menu button.

        Returns the result for operations that run right away and None when
        the session now waits for input (or was reset).
        """
        session = self.sessions.get(user_id)
        if not action.is_operation:
            session.reset()
            return None

        self._require_artifact(session)
        awaited = action.awaited_state
        if awaited is not None:
            session.state = awaited
            return None

        session.state = SessionState.IDLE
        params = {}
        if action is EditAction.UPSCALE:
            params["scale"] = self.config.upscale_default_scale
        return await self._apply(session, action, params, notify)

    async def submit_text(
        self, user_id: int, text: str, notify: Optional[Notify] = None
    ) -> Optional[EditResult]:
        """Consume free text as operation parameters.

        Returns None when the session is not waiting for anything.
        """
        session = self.sessions.get(user_id)
        action = _STATE_ACTIONS.get(session.state)
        if action is None:
            return None

        self._require_artifact(session)
        return await self._apply(session, action, self.parse(action, text), notify)

    def parse(self, action: EditAction, text: str) -> dict:
        if action is EditAction.RESIZE:
            width, height = parse_dimensions(
                text, self.config.max_width, self.config.max_height
            )
            return {"width": width, "height": height}
        if action is EditAction.ROTATE:
            return {"degrees": parse_rotation(text)}
        return {
            "text": sanitize_text(text, self.config.text_max_length),
            "style": self.config.text_style,
        }

    async def _apply(
        self,
        session: Session,
        action: EditAction,
        params: dict,
        notify: Optional[Notify],
    ) -> EditResult:
        handler = self.operations[action]
        if notify is not None:
            await notify(progress_message(action, params))

        try:
            output = await handler.process(session.artifact, **params)
        except InvalidParameters:
            raise
        except ProcessingError:
            session.state = SessionState.IDLE
            raise

        session.state = SessionState.IDLE
        session.replace_artifact(output)
        logger.info(f"User {session.user_id}: {handler.name} -> {output.path}")
        return EditResult(
            action, output, result_caption(action, params), handler.as_document
        )

    @staticmethod
    def _require_artifact(session: Session) -> None:
        if session.artifact is not None and not session.artifact.exists():
            # Swept by the periodic cleanup.
            session.replace_artifact(None)
        if session.artifact is None:
            session.state = SessionState.IDLE
            raise NoActiveArtifact()


def progress_message(action: EditAction, params: dict) -> str:
    if action is EditAction.REMOVE_BACKGROUND:
        return "⏳ Removing background... This may take a moment."
    if action is EditAction.GRAYSCALE:
        return "⏳ Converting to grayscale..."
    if action is EditAction.RESIZE:
        return f"⏳ Resizing image to {params['width']}×{params['height']}..."
    if action is EditAction.ROTATE:
        return f"⏳ Rotating image by {params['degrees']} degrees..."
    if action is EditAction.ADD_TEXT:
        return "⏳ Adding text to your image..."
    return "⏳ Upscaling image... This may take a moment."


def result_caption(action: EditAction, params: dict) -> str:
    if action is EditAction.REMOVE_BACKGROUND:
        return "✅ Background removed! Sent as PNG to preserve transparency."
    if action is EditAction.GRAYSCALE:
        return "✅ Image converted to grayscale!"
    if action is EditAction.RESIZE:
        return f"✅ Image resized to fit {params['width']}×{params['height']} pixels!"
    if action is EditAction.ROTATE:
        return f"✅ Image rotated by {params['degrees']} degrees!"
    if action is EditAction.ADD_TEXT:
        return f"✅ Text \"{params['text']}\" added to your image!"
    return (
        f"✅ Image upscaled {params['scale']}x! Sent as document to preserve quality."
    )
