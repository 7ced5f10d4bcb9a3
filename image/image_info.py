import logging
from dataclasses import dataclass
from typing import Iterable
from PIL import Image, UnidentifiedImageError
from image.artifact import Artifact
from error.processing_error import UnsupportedFormat

logger = logging.getLogger(__name__)

# Multi-picture JPEGs from phones and cameras are plain JPEGs to the user.
FORMAT_ALIASES = {"mpo": "jpeg"}


@dataclass(frozen=True)
class ImageInfo:
    format: str
    width: int
    height: int
    mode: str
    size: int


def read_image_info(artifact: Artifact, supported_formats: Iterable[str]) -> ImageInfo:
    """Identify an uploaded file, rejecting anything that is not a supported image."""
    try:
        with Image.open(artifact.path) as img:
            image_format = (img.format or "").lower()
            width, height = img.size
            mode = img.mode
    except Image.DecompressionBombError as e:
        logger.warning(f"Refusing oversized image {artifact.path}: {e}")
        raise UnsupportedFormat(
            "Image dimensions are too large. Please send a smaller image."
        ) from e
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not identify {artifact.path}: {e}")
        raise UnsupportedFormat(
            "Invalid image format. Please send a valid image file."
        ) from e

    image_format = FORMAT_ALIASES.get(image_format, image_format)
    if image_format not in set(supported_formats):
        raise UnsupportedFormat(f"Unsupported format: {image_format or 'unknown'}")

    return ImageInfo(image_format, width, height, mode, artifact.size())


def format_file_size(size: int) -> str:
    if size == 0:
        return "0 Bytes"

    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(units) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {units[unit]}"
