from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from enums.edit_action import EditAction


def create_editing_keyboard() -> InlineKeyboardMarkup:
    """Six operations plus "new image" and "cancel", two per row."""
    actions = list(EditAction)
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text=action.label, callback_data=action.value)
                for action in actions[i : i + 2]
            ]
            for i in range(0, len(actions), 2)
        ]
    )
