"""Tests for the aiogram handlers, driven with mocked Telegram objects."""

import asyncio
import os
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiogram import Dispatcher, types
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramBadRequest, TelegramNetworkError
from aiogram.types import InlineKeyboardMarkup
from PIL import Image

from bot.image_editor_bot import ImageEditorBot
from bot.keyboards import create_editing_keyboard
from enums.edit_action import EditAction
from enums.session_state import SessionState
from error.processing_error import OperationFailure

USER = 555


def make_message(text=None, photo=None, document=None) -> MagicMock:
    message = MagicMock(spec=types.Message)
    message.from_user = MagicMock(id=USER)
    message.text = text
    message.photo = photo
    message.document = document
    message.answer = AsyncMock(return_value=AsyncMock())
    message.answer_photo = AsyncMock()
    message.answer_document = AsyncMock()
    return message


def make_callback(action: EditAction, message: MagicMock) -> MagicMock:
    callback = MagicMock(spec=types.CallbackQuery)
    callback.from_user = MagicMock(id=USER)
    callback.data = action.value
    callback.message = message
    callback.answer = AsyncMock()
    return callback


def last_answer(message: MagicMock) -> str:
    return message.answer.await_args.args[0]


@pytest.fixture
def telegram() -> AsyncMock:
    bot = AsyncMock()
    bot.get_file.return_value = MagicMock(file_path="photos/file_1.jpg")

    async def download_file(file_path, destination):
        Image.new("RGB", (120, 80), (0, 128, 255)).save(destination, "JPEG")

    bot.download_file.side_effect = download_file
    return bot


@pytest.fixture
def editor(telegram, flow, store, config) -> ImageEditorBot:
    return ImageEditorBot(telegram, Dispatcher(), flow, store, config)


def test_keyboard_has_four_rows_of_two() -> None:
    keyboard = create_editing_keyboard()

    assert [len(row) for row in keyboard.inline_keyboard] == [2, 2, 2, 2]
    data = [button.callback_data for row in keyboard.inline_keyboard for button in row]
    assert data == [action.value for action in EditAction]


def test_start_and_help_use_html(editor) -> None:
    message = make_message(text="/start")

    asyncio.run(editor.start(message))
    asyncio.run(editor.help_command(message))

    assert message.answer.await_count == 2
    for call in message.answer.await_args_list:
        assert call.kwargs["parse_mode"] == ParseMode.HTML


def test_edit_command_resets_session(editor, flow, make_artifact) -> None:
    artifact = make_artifact()
    flow.attach(USER, artifact).state = SessionState.AWAITING_TEXT

    asyncio.run(editor.edit_command(make_message(text="/edit")))

    session = flow.sessions.get(USER)
    assert session.state is SessionState.IDLE
    assert session.artifact is None
    assert artifact.released


def test_photo_upload_downloads_largest_size(editor, flow, telegram) -> None:
    photo = [
        MagicMock(file_id="small", file_size=100),
        MagicMock(file_id="big", file_size=1000),
    ]
    message = make_message(photo=photo)

    asyncio.run(editor.handle_image(message))

    telegram.get_file.assert_awaited_once_with("big")
    session = flow.sessions.get(USER)
    assert session.artifact is not None and session.artifact.exists()
    assert session.state is SessionState.IDLE
    reply = message.answer.await_args
    assert "120 × 80 pixels" in reply.args[0]
    assert isinstance(reply.kwargs["reply_markup"], InlineKeyboardMarkup)


def test_new_upload_replaces_previous_artifact(editor, flow, make_artifact) -> None:
    previous = make_artifact()
    flow.attach(USER, previous)
    document = MagicMock(file_id="doc", file_size=1000, mime_type="image/jpeg")

    asyncio.run(editor.handle_image(make_message(document=document)))

    assert previous.release_calls == 1
    assert flow.sessions.get(USER).artifact is not previous


@pytest.mark.parametrize(
    ("mime_type", "file_size", "expected"),
    [
        ("application/pdf", 10, "Please send an image file"),
        ("image/svg+xml", 10, "Unsupported format: svg+xml"),
        ("image/png", 50 * 1024 * 1024, "File is too large"),
    ],
)
def test_rejected_documents_are_not_downloaded(
    editor, telegram, mime_type, file_size, expected
) -> None:
    document = MagicMock(file_id="doc", file_size=file_size, mime_type=mime_type)
    message = make_message(document=document)

    asyncio.run(editor.handle_image(message))

    telegram.get_file.assert_not_awaited()
    assert last_answer(message).startswith("❌")
    assert expected in last_answer(message)


def test_download_failure_is_reported(editor, flow, telegram, store) -> None:
    telegram.get_file.side_effect = TelegramNetworkError(method=MagicMock(), message="down")
    message = make_message(photo=[MagicMock(file_id="big", file_size=10)])

    asyncio.run(editor.handle_image(message))

    assert last_answer(message) == "❌ Failed to download image"
    assert flow.sessions.get(USER).artifact is None


def test_invalid_image_is_rejected_and_removed(editor, flow, telegram, store) -> None:
    async def download_garbage(file_path, destination):
        with open(destination, "wb") as f:
            f.write(b"definitely not an image")

    telegram.download_file.side_effect = download_garbage
    message = make_message(photo=[MagicMock(file_id="big", file_size=10)])

    asyncio.run(editor.handle_image(message))

    assert "Invalid image format" in last_answer(message)
    assert flow.sessions.get(USER).artifact is None
    assert os.listdir(store.directory) == []


def test_oversized_image_is_rejected_and_removed(
    editor, flow, store, make_artifact, monkeypatch
) -> None:
    previous = make_artifact()
    flow.attach(USER, previous)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    message = make_message(photo=[MagicMock(file_id="big", file_size=10)])

    asyncio.run(editor.handle_image(message))

    assert "Image dimensions are too large" in last_answer(message)
    assert flow.sessions.get(USER).artifact is previous
    assert os.listdir(store.directory) == [os.path.basename(previous.path)]


def test_multi_picture_jpeg_upload_is_accepted(editor, flow, telegram) -> None:
    async def download_mpo(file_path, destination):
        first = Image.new("RGB", (60, 40), (0, 128, 255))
        second = Image.new("RGB", (60, 40), (255, 128, 0))
        first.save(destination, "MPO", save_all=True, append_images=[second])

    telegram.download_file.side_effect = download_mpo
    document = MagicMock(file_id="doc", file_size=1000, mime_type="image/jpeg")
    message = make_message(document=document)

    asyncio.run(editor.handle_image(message))

    assert "Format: JPEG" in last_answer(message)
    assert flow.sessions.get(USER).artifact is not None


def test_resize_button_then_dimensions(editor, flow, handlers, make_artifact) -> None:
    flow.attach(USER, make_artifact())
    message = make_message()

    asyncio.run(editor.handle_action(make_callback(EditAction.RESIZE, message)))

    assert flow.sessions.get(USER).state is SessionState.AWAITING_DIMENSIONS
    assert "Resize Image" in last_answer(message)

    reply = make_message(text="800x600")
    asyncio.run(editor.handle_text(reply))

    assert flow.sessions.get(USER).state is SessionState.IDLE
    reply.answer_photo.assert_awaited_once()
    assert reply.answer_photo.await_args.kwargs["caption"] == (
        "✅ Image resized to fit 800×600 pixels!"
    )
    assert last_answer(reply) == "⏳ Resizing image to 800×600..."


def test_invalid_dimensions_keep_waiting(editor, flow, make_artifact) -> None:
    flow.attach(USER, make_artifact())
    asyncio.run(editor.handle_action(make_callback(EditAction.RESIZE, make_message())))

    reply = make_message(text="800")
    asyncio.run(editor.handle_text(reply))

    assert last_answer(reply).startswith("❌ Invalid format")
    assert flow.sessions.get(USER).state is SessionState.AWAITING_DIMENSIONS


def test_operation_without_image_reports_error(editor, flow) -> None:
    message = make_message()

    asyncio.run(editor.handle_action(make_callback(EditAction.ROTATE, message)))

    assert last_answer(message) == "❌ No image found. Please send an image first."
    assert flow.sessions.get(USER).state is SessionState.IDLE


def test_background_removal_is_sent_as_document(editor, flow, make_artifact) -> None:
    flow.attach(USER, make_artifact())
    message = make_message()

    asyncio.run(editor.handle_action(make_callback(EditAction.REMOVE_BACKGROUND, message)))

    message.answer_document.assert_awaited_once()
    message.answer_photo.assert_not_awaited()


def test_operation_failure_is_reported(editor, flow, handlers, make_artifact) -> None:
    artifact = make_artifact()
    flow.attach(USER, artifact)
    handlers[EditAction.GRAYSCALE].error = OperationFailure("Grayscale conversion failed: boom")
    message = make_message()

    asyncio.run(editor.handle_action(make_callback(EditAction.GRAYSCALE, message)))

    assert last_answer(message) == "❌ Grayscale conversion failed: boom"
    assert flow.sessions.get(USER).artifact is artifact
    message.answer_photo.assert_not_awaited()


def test_cancel_button_clears_session(editor, flow, make_artifact) -> None:
    artifact = make_artifact()
    flow.attach(USER, artifact)
    message = make_message()
    callback = make_callback(EditAction.CANCEL, message)

    asyncio.run(editor.handle_action(callback))

    callback.answer.assert_awaited_once()
    assert "Editing cancelled" in last_answer(message)
    assert flow.sessions.get(USER).artifact is None
    assert artifact.release_calls == 1


def test_text_without_pending_operation(editor) -> None:
    message = make_message(text="hello")

    asyncio.run(editor.handle_text(message))

    assert last_answer(message) == ImageEditorBot.UNKNOWN_TEXT


def test_unexpected_error_is_recorded(editor) -> None:
    message = make_message()
    event = MagicMock()
    event.exception = RuntimeError("boom")
    event.update.message = message

    handled = asyncio.run(editor.on_error(event))

    assert handled is True
    assert isinstance(editor.fatal_error, RuntimeError)
    assert "unexpected error" in last_answer(message)


def test_refused_photo_is_sent_as_document(editor, flow, make_artifact) -> None:
    flow.attach(USER, make_artifact())
    message = make_message()
    message.answer_photo.side_effect = TelegramBadRequest(
        method=MagicMock(), message="Bad Request: PHOTO_INVALID_DIMENSIONS"
    )

    asyncio.run(editor.handle_action(make_callback(EditAction.GRAYSCALE, message)))

    message.answer_document.assert_awaited_once()
    sent = message.answer_document.await_args
    assert sent.kwargs["caption"] == message.answer_photo.await_args.kwargs["caption"]
    assert flow.sessions.get(USER).state is SessionState.IDLE
    assert editor.fatal_error is None


def test_result_that_cannot_be_sent_is_reported(editor, flow, make_artifact) -> None:
    flow.attach(USER, make_artifact())
    asyncio.run(editor.handle_action(make_callback(EditAction.ROTATE, make_message())))
    reply = make_message(text="90")
    reply.answer_photo.side_effect = TelegramNetworkError(
        method=MagicMock(), message="connection reset"
    )

    asyncio.run(editor.handle_text(reply))

    reply.answer_document.assert_not_awaited()
    assert last_answer(reply) == "❌ Could not send the result"
    assert flow.sessions.get(USER).state is SessionState.IDLE
    assert flow.sessions.get(USER).artifact.exists()


def test_document_send_failure_is_reported(editor, flow, make_artifact) -> None:
    flow.attach(USER, make_artifact())
    message = make_message()
    message.answer_document.side_effect = TelegramBadRequest(
        method=MagicMock(), message="Bad Request: file is too big"
    )

    asyncio.run(editor.handle_action(make_callback(EditAction.UPSCALE, message)))

    assert last_answer(message) == "❌ Could not send the result"


def test_expired_callback_query_still_runs_action(editor, flow, make_artifact) -> None:
    flow.attach(USER, make_artifact())
    message = make_message()
    callback = make_callback(EditAction.GRAYSCALE, message)
    callback.answer.side_effect = TelegramBadRequest(
        method=MagicMock(), message="Bad Request: query is too old"
    )

    asyncio.run(editor.handle_action(callback))

    message.answer_photo.assert_awaited_once()


def test_inaccessible_menu_message_gets_a_reply(
    editor, flow, telegram, make_artifact
) -> None:
    artifact = make_artifact()
    flow.attach(USER, artifact)
    callback = make_callback(EditAction.GRAYSCALE, None)

    asyncio.run(editor.handle_action(callback))

    telegram.send_message.assert_awaited_once_with(USER, ImageEditorBot.EXPIRED_MENU)
    assert flow.sessions.get(USER).artifact is artifact
