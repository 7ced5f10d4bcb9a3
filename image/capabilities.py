import shutil
import logging
import importlib.util
from dataclasses import dataclass
from typing import Dict, Optional

from config.bot_config import BotConfig
from enums.edit_action import EditAction
from image.temp_store import TempStore
from image.image_handler import ImageHandler
from image.grayscale_converter import GrayscaleConverter
from image.image_resizer import ImageResizer
from image.image_rotator import ImageRotator
from image.text_overlay import TextOverlay
from image.upscaler import OpenCvUpscaler, RealEsrganUpscaler
from image.background_remover import (
    BackgroundRemover,
    CliBackgroundRemover,
    PassThroughBackgroundRemover,
    UnavailableBackgroundRemover,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Capabilities:
    """Optional image tooling found on this machine."""

    rembg_library: bool = False
    rembg_cli: Optional[str] = None
    realesrgan_cli: Optional[str] = None


def probe_capabilities(config: BotConfig) -> Capabilities:
    """Look for rembg and Real-ESRGAN once, at startup."""
    return Capabilities(
        rembg_library=importlib.util.find_spec("rembg") is not None,
        rembg_cli=shutil.which(config.rembg_command),
        realesrgan_cli=shutil.which(config.realesrgan_command),
    )


def build_operations(
    config: BotConfig, capabilities: Capabilities, store: TempStore
) -> Dict[EditAction, ImageHandler]:
    """Pick a concrete handler for every image operation."""
    quality = config.jpeg_quality

    if capabilities.rembg_library:
        remover = BackgroundRemover(store, quality)
        logger.info("Background removal: rembg library")
    elif capabilities.rembg_cli:
        remover = CliBackgroundRemover(store, capabilities.rembg_cli, quality)
        logger.info(f"Background removal: {capabilities.rembg_cli} CLI")
    elif config.allow_passthrough_fallback:
        remover = PassThroughBackgroundRemover(store, quality)
        logger.warning("Background removal: pass-through fallback (no removal)")
    else:
        remover = UnavailableBackgroundRemover(store, quality)
        logger.warning("Background removal: unavailable")

    if capabilities.realesrgan_cli:
        upscaler = RealEsrganUpscaler(
            store,
            capabilities.realesrgan_cli,
            quality,
            config.upscale_min_scale,
            config.upscale_max_scale,
        )
        logger.info(f"Upscaling: {capabilities.realesrgan_cli}")
    else:
        upscaler = OpenCvUpscaler(
            store, quality, config.upscale_min_scale, config.upscale_max_scale
        )
        logger.info("Upscaling: OpenCV Lanczos")

    return {
        EditAction.REMOVE_BACKGROUND: remover,
        EditAction.GRAYSCALE: GrayscaleConverter(store, quality),
        EditAction.RESIZE: ImageResizer(store, quality),
        EditAction.ROTATE: ImageRotator(store, quality),
        EditAction.ADD_TEXT: TextOverlay(store, quality, config.text_style),
        EditAction.UPSCALE: upscaler,
    }
