import sys
import asyncio
import logging
from aiogram import Bot, Dispatcher
from bot.image_editor_bot import ImageEditorBot
from config.bot_config import BotConfig
from image.capabilities import build_operations, probe_capabilities
from image.temp_store import TempStore
from session.edit_flow import EditFlow
from session.session_store import InMemorySessionStore

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


async def main(config: BotConfig) -> None:
    bot = Bot(token=config.token)
    try:
        dp = Dispatcher()

        store = TempStore(config.temp_dir)
        store.ensure()

        capabilities = probe_capabilities(config)
        logger.info(f"Detected capabilities: {capabilities}")
        operations = build_operations(config, capabilities, store)
        flow = EditFlow(InMemorySessionStore(), operations, config)

        editor_bot = ImageEditorBot(bot, dp, flow, store, config)
        logger.info("Starting bot...")
        await editor_bot.run()
    finally:
        # Cleanup on shutdown
        await bot.session.close()


def run() -> None:
    try:
        config = BotConfig.from_env()
    except ValueError as e:
        configure_logging("INFO")
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    configure_logging(config.log_level)
    try:
        asyncio.run(main(config))
    except (KeyboardInterrupt, SystemExit):
        logger.info("Bot stopped")
    except Exception:
        logger.exception("Bot terminated by an unexpected error")
        sys.exit(1)


if __name__ == "__main__":
    run()
