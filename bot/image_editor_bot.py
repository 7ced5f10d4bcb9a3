import asyncio
import logging

import aiohttp
from typing import Optional, Union

from aiogram import Bot, Dispatcher, F, types
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest
from aiogram.filters import Command
from aiogram.types import BotCommand, ErrorEvent, FSInputFile

from bot.keyboards import create_editing_keyboard
from config.bot_config import BotConfig
from enums.edit_action import EditAction
from error.processing_error import (
    DownloadFailure,
    FileTooLarge,
    InvalidParameters,
    OperationFailure,
    ProcessingError,
    UnsupportedFormat,
)
from image.artifact import Artifact
from image.image_info import ImageInfo, format_file_size, read_image_info
from image.temp_store import TempStore
from session.edit_flow import EditFlow, EditResult, Notify

logger = logging.getLogger(__name__)


class ImageEditorBot:
    """Main bot class handling the image editing workflow."""

    WELCOME_MESSAGE = """
🤖 <b>Welcome to AI Image Editor Bot!</b>

I can help you edit images with AI-powered tools and basic editing features.

<b>Available Features:</b>
🖼️ Background Removal (AI-powered)
⚫ Grayscale Conversion
📏 Image Resizing
🔄 Image Rotation
📝 Text Overlays
⬆️ Image Upscaling

<b>How to use:</b>
1. Send /edit command
2. Upload an image (JPG, PNG, WebP)
3. Choose your editing option
4. Get your edited image!

<b>Commands:</b>
/start - Show this welcome message
/edit - Start image editing
/help - Get help information

Ready to edit some images? Send /edit to begin! 🎨
"""

    HELP_MESSAGE = """
🆘 <b>Help - AI Image Editor Bot</b>

🖼️ <b>Remove Background</b> - works best with clear subjects, sent as PNG
⚫ <b>Grayscale</b> - convert colored images to black &amp; white
📏 <b>Resize</b> - fit the image inside a custom width and height
🔄 <b>Rotate</b> - any angle between -360 and 360 degrees
📝 <b>Add Text</b> - white text with a black outline
⬆️ <b>Upscale</b> - enlarge the image, sent as a document

<b>Tips:</b>
- Use high-quality source images for best results
- Text overlays work best on images with space
- Upscaling may take longer for large images

<b>Commands:</b>
/start - Welcome message
/edit - Start editing
/help - This help message
"""

    RESIZE_PROMPT = """
📏 <b>Resize Image</b>

Please enter the new dimensions in one of these formats:
• <code>800x600</code>
• <code>1920×1080</code>
• <code>800,600</code>
• <code>800 600</code>

Common sizes:
• HD: 1280×720
• Full HD: 1920×1080
• 4K: 3840×2160
• Square: 800×800
"""

    ROTATE_PROMPT = """
🔄 <b>Rotate Image</b>

Please enter the rotation angle in degrees:
• <code>90</code> - Quarter turn clockwise
• <code>-90</code> - Quarter turn counter-clockwise
• <code>180</code> - Half turn
• <code>45</code> - Custom angle

Enter any value between -360 and 360 degrees.
"""

    TEXT_PROMPT = """
📝 <b>Add Text Overlay</b>

Please enter the text you want to add to your image.
Letters, numbers and basic punctuation only, up to {max_length} characters.

Type your text now:
"""

    UNKNOWN_TEXT = (
        "🤔 I don't understand that command.\n\n"
        "Send /edit to start editing an image, or /help for assistance."
    )

    EXPIRED_MENU = "⌛ This menu has expired. Send /edit to start again."

    def __init__(
        self,
        bot_instance: Bot,
        dispatcher: Dispatcher,
        flow: EditFlow,
        store: TempStore,
        config: BotConfig,
    ):
        self.bot = bot_instance
        self.dp = dispatcher
        self.flow = flow
        self.store = store
        self.config = config
        self.fatal_error: Optional[BaseException] = None
        self._configure_handlers()

    # Command handlers
    def _configure_handlers(self) -> None:
        self.dp.message.register(self.start, Command("start"))
        self.dp.message.register(self.help_command, Command("help"))
        self.dp.message.register(self.edit_command, Command("edit"))
        self.dp.message.register(self.handle_image, F.photo | F.document)
        self.dp.message.register(self.handle_text, F.text)
        self.dp.callback_query.register(
            self.handle_action, F.data.in_({action.value for action in EditAction})
        )
        self.dp.errors.register(self.on_error)

    @staticmethod
    def bot_commands() -> list:
        return [
            BotCommand(command="start", description="Show the welcome message"),
            BotCommand(command="edit", description="Start image editing"),
            BotCommand(command="help", description="Get help information"),
        ]

    # START [/start]
    async def start(self, message: types.Message) -> None:
        await message.answer(self.WELCOME_MESSAGE, parse_mode=ParseMode.HTML)

    # HELP [/help]
    async def help_command(self, message: types.Message) -> None:
        await message.answer(self.HELP_MESSAGE, parse_mode=ParseMode.HTML)

    # EDIT [/edit]
    async def edit_command(self, message: types.Message) -> None:
        async with self.flow.sessions.lock(message.from_user.id):
            self.flow.start(message.from_user.id)
        formats = ", ".join(sorted(f.upper() for f in self.config.supported_formats))
        await message.answer(
            "📤 Please send me an image to edit!\n\n"
            f"Supported formats: {formats}\n"
            f"Maximum file size: {format_file_size(self.config.max_file_size)}"
        )

    # Download an uploaded photo or image document and show the operation menu
    async def handle_image(self, message: types.Message) -> None:
        user_id = message.from_user.id
        async with self.flow.sessions.lock(user_id):
            try:
                file = self._validate_upload(message)
                wait_msg = await message.answer("⏳ Downloading your image...")
                try:
                    artifact = await self.download_file(file)
                    try:
                        info = read_image_info(artifact, self.config.supported_formats)
                    except Exception:
                        artifact.release()
                        raise
                    self.flow.attach(user_id, artifact)
                finally:
                    await self._delete_quietly(wait_msg)

                await message.answer(
                    self.describe(info),
                    parse_mode=ParseMode.HTML,
                    reply_markup=create_editing_keyboard(),
                )
            except ProcessingError as e:
                await self._report(message, user_id, e)

    def _validate_upload(
        self, message: types.Message
    ) -> Union[types.PhotoSize, types.Document]:
        if message.document:
            mime_type = message.document.mime_type or ""
            if not mime_type.startswith("image/"):
                raise UnsupportedFormat(
                    "Please send an image file (JPG, PNG, WebP, etc.)."
                )
            format_type = mime_type.split("/")[-1].lower()
            if format_type not in self.config.supported_formats:
                raise UnsupportedFormat(f"Unsupported format: {format_type}")
            file = message.document
        else:
            file = message.photo[-1]

        if file.file_size and file.file_size > self.config.max_file_size:
            raise FileTooLarge(file.file_size, self.config.max_file_size)
        return file

    @staticmethod
    def describe(info: ImageInfo) -> str:
        return (
            "✅ <b>Image received and ready for editing!</b>\n\n"
            "📊 <b>Image Information:</b>\n"
            f"• Format: {info.format.upper()}\n"
            f"• Dimensions: {info.width} × {info.height} pixels\n"
            f"• File size: {format_file_size(info.size)}\n"
            f"• Color mode: {info.mode}\n\n"
            "Choose an editing option below:"
        )

    # Free text: parameters for a pending operation, otherwise a hint
    async def handle_text(self, message: types.Message) -> None:
        user_id = message.from_user.id
        async with self.flow.sessions.lock(user_id):
            try:
                result = await self.flow.submit_text(
                    user_id, message.text, notify=self._notifier(message)
                )
                if result is None:
                    await message.answer(self.UNKNOWN_TEXT)
                    return
                await self.send_result(message, result)
            except ProcessingError as e:
                await self._report(message, user_id, e)

    # Inline keyboard buttons
    async def handle_action(self, callback: types.CallbackQuery) -> None:
        await self._answer_quietly(callback)
        user_id = callback.from_user.id
        message = callback.message
        if not isinstance(message, types.Message):
            # Too old for Telegram to hand back; write to the user directly.
            try:
                await self.bot.send_message(user_id, self.EXPIRED_MENU)
            except TelegramAPIError as e:
                logger.warning(f"Could not reach user {user_id}: {e}")
            return

        action = EditAction(callback.data)
        async with self.flow.sessions.lock(user_id):
            try:
                result = await self.flow.select(
                    user_id, action, notify=self._notifier(message)
                )
                if result is not None:
                    await self.send_result(message, result)
                    return
            except ProcessingError as e:
                await self._report(message, user_id, e)
                return

            if action is EditAction.NEW_IMAGE:
                await message.answer("📤 Please send me a new image to edit!")
            elif action is EditAction.CANCEL:
                await message.answer("❌ Editing cancelled. Send /edit to start again.")
            else:
                await message.answer(self._prompt(action), parse_mode=ParseMode.HTML)

    def _prompt(self, action: EditAction) -> str:
        if action is EditAction.RESIZE:
            return self.RESIZE_PROMPT
        if action is EditAction.ROTATE:
            return self.ROTATE_PROMPT
        return self.TEXT_PROMPT.format(max_length=self.config.text_max_length)

    # Return processed image to user to download
    async def send_result(self, message: types.Message, result: EditResult) -> None:
        """Send the edited image, as a document when Telegram refuses the photo."""
        ext = result.artifact.extension
        upload = FSInputFile(result.artifact.path, filename=f"edited.{ext}")
        keyboard = create_editing_keyboard()
        try:
            if not result.as_document:
                try:
                    await message.answer_photo(
                        upload, caption=result.caption, reply_markup=keyboard
                    )
                    return
                except TelegramBadRequest as e:
                    logger.warning(f"Photo refused, sending as document: {e}")
            await message.answer_document(
                upload, caption=result.caption, reply_markup=keyboard
            )
        except TelegramAPIError as e:
            logger.error(f"Failed to send result {result.artifact.path}: {e}")
            raise OperationFailure("Could not send the result") from e

    async def download_file(
        self, file: Union[types.PhotoSize, types.Document]
    ) -> Artifact:
        artifact = None
        try:
            file_info = await self.bot.get_file(file.file_id)
            ext = (file_info.file_path or "").rsplit(".", 1)[-1].lower()
            if not ext or "/" in ext:
                ext = "jpg"
            artifact = self.store.new_artifact("upload", ext)
            await self.bot.download_file(file_info.file_path, artifact.path)
            logger.info(f"Successfully downloaded file to {artifact.path}")
            return artifact
        except (
            TelegramAPIError,
            aiohttp.ClientError,
            OSError,
            asyncio.TimeoutError,
        ) as e:
            logger.error(f"Failed to download file: {e}")
            if artifact is not None:
                artifact.release()
            raise DownloadFailure("Failed to download image") from e

    async def _report(
        self, message: types.Message, user_id: int, error: ProcessingError
    ) -> None:
        logger.warning(f"User {user_id}: {type(error).__name__}: {error}")
        if not isinstance(error, InvalidParameters):
            self.flow.idle(user_id)
        try:
            await message.answer(f"❌ {error}")
        except TelegramAPIError as e:
            logger.error(f"Failed to report error to user {user_id}: {e}")

    @staticmethod
    def _notifier(message: types.Message) -> Notify:
        async def notify(text: str) -> None:
            try:
                await message.answer(text)
            except TelegramAPIError as e:
                logger.warning(f"Could not send progress message: {e}")

        return notify

    @staticmethod
    async def _answer_quietly(callback: types.CallbackQuery) -> None:
        try:
            await callback.answer()
        except TelegramAPIError as e:
            logger.debug(f"Could not answer callback query: {e}")

    @staticmethod
    async def _delete_quietly(message: types.Message) -> None:
        try:
            await message.delete()
        except TelegramAPIError as e:
            logger.debug(f"Could not delete status message: {e}")

    async def on_error(self, event: ErrorEvent) -> bool:
        """Unexpected faults are fatal: log, tell the user, stop polling."""
        logger.critical(
            "Unhandled error while processing update", exc_info=event.exception
        )
        self.fatal_error = event.exception

        update = event.update
        message = update.message
        if message is None and update.callback_query is not None:
            message = update.callback_query.message
        if isinstance(message, types.Message):
            try:
                await message.answer(
                    "❌ An unexpected error occurred. Please try again later."
                )
            except TelegramAPIError as e:
                logger.error(f"Failed to report error to user: {e}")

        try:
            await self.dp.stop_polling()
        except RuntimeError as e:
            logger.debug(f"Polling was not running: {e}")
        return True

    # RUN
    async def run(self) -> None:
        await self.bot.set_my_commands(self.bot_commands())
        cleanup = asyncio.create_task(
            self.store.run_cleanup(
                self.config.cleanup_interval, self.config.cleanup_max_age
            )
        )
        try:
            await self.dp.start_polling(self.bot)
        except Exception as e:
            logger.error(f"Bot polling error: {e}")
            raise
        finally:
            cleanup.cancel()
            self.flow.sessions.close()

        if self.fatal_error is not None:
            raise self.fatal_error
