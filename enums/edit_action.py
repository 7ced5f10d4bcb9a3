from enum import Enum
from typing import Optional

from enums.session_state import SessionState


class EditAction(Enum):
    """Inline keyboard actions, valued by their callback data."""

    REMOVE_BACKGROUND = "edit_remove_bg"
    GRAYSCALE = "edit_grayscale"
    RESIZE = "edit_resize"
    ROTATE = "edit_rotate"
    ADD_TEXT = "edit_add_text"
    UPSCALE = "edit_upscale"
    NEW_IMAGE = "edit_new"
    CANCEL = "edit_cancel"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def awaited_state(self) -> Optional[SessionState]:
        """State to enter when the action needs a text reply first."""
        return _AWAITED_STATES.get(self)

    @property
    def is_operation(self) -> bool:
        return self not in (EditAction.NEW_IMAGE, EditAction.CANCEL)


_LABELS = {
    EditAction.REMOVE_BACKGROUND: "🖼️ Remove Background",
    EditAction.GRAYSCALE: "⚫ Grayscale",
    EditAction.RESIZE: "📏 Resize",
    EditAction.ROTATE: "🔄 Rotate",
    EditAction.ADD_TEXT: "📝 Add Text",
    EditAction.UPSCALE: "⬆️ Upscale",
    EditAction.NEW_IMAGE: "🆕 New Image",
    EditAction.CANCEL: "❌ Cancel",
}

_AWAITED_STATES = {
    EditAction.RESIZE: SessionState.AWAITING_DIMENSIONS,
    EditAction.ROTATE: SessionState.AWAITING_ROTATION,
    EditAction.ADD_TEXT: SessionState.AWAITING_TEXT,
}
