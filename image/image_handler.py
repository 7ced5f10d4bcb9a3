import os
import cv2
import asyncio
import logging
import numpy as np
from abc import ABC, abstractmethod
from typing import Callable, Tuple
from PIL import Image, ImageOps
from image.artifact import Artifact
from image.temp_store import TempStore
from error.processing_error import ProcessingError, OperationFailure

logger = logging.getLogger(__name__)


class ImageHandler(ABC):
    """Abstract base class for image processing operations.

    A handler takes the session's current artifact and returns a new one in
    the temp store. It never touches the source; replacing the session's
    artifact is the caller's job.
    """

    name = "Image operation"
    prefix = "edited"
    output_format = "jpg"
    # Lossless results (transparency, upscales) are sent as documents.
    as_document = False

    def __init__(self, store: TempStore, jpeg_quality: int = 90):
        self.store = store
        self.jpeg_quality = jpeg_quality

    @abstractmethod
    async def process(self, source: Artifact, **params) -> Artifact:
        """Produce a new artifact from ``source`` or raise OperationFailure."""
        pass

    async def produce(
        self, render: Callable[[str, str], None], source: Artifact
    ) -> Artifact:
        """Run ``render(source_path, output_path)`` in a worker thread."""
        output = self.store.new_artifact(self.prefix, self.output_format)
        try:
            await asyncio.to_thread(render, source.path, output.path)
        except ProcessingError:
            output.release()
            raise
        except Exception as e:
            output.release()
            logger.error(f"{self.name} failed for {source.path}: {e}")
            raise OperationFailure(f"{self.name} failed: {e}") from e

        logger.info(f"{self.name} completed: {output.path}")
        return output

    async def run_command(self, *args: str) -> None:
        """Run an external tool, raising OperationFailure on a non-zero exit."""
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise OperationFailure(
                f"{self.name} failed: cannot run {args[0]}: {e}"
            ) from e

        _, err = await proc.communicate()
        if proc.returncode != 0:
            detail = (err or b"").decode(errors="ignore").strip()[-300:]
            logger.error(f"{args[0]} exited with {proc.returncode}: {detail}")
            raise OperationFailure(
                f"{self.name} failed ({args[0]} exited with {proc.returncode})"
            )

    @staticmethod
    def load_image(file_path: str) -> Image.Image:
        """Open an image upright, as RGB or RGBA depending on transparency."""
        with Image.open(file_path) as img:
            img = ImageOps.exif_transpose(img)
            has_alpha = img.mode in ("RGBA", "LA", "PA") or (
                img.mode == "P" and "transparency" in img.info
            )
            return img.convert("RGBA" if has_alpha else "RGB")

    @classmethod
    def load_array(cls, file_path: str) -> np.ndarray:
        """Read an image as an OpenCV BGR or BGRA array."""
        img = cls.load_image(file_path)
        array = np.array(img)
        if img.mode == "RGBA":
            return cv2.cvtColor(array, cv2.COLOR_RGBA2BGRA)
        return cv2.cvtColor(array, cv2.COLOR_RGB2BGR)

    def save_array(self, image: np.ndarray, file_path: str) -> None:
        """Write an OpenCV array with format-specific settings."""
        format_type = os.path.splitext(file_path)[1].lstrip(".").lower()
        if format_type == "png":
            ok = cv2.imwrite(file_path, image, [cv2.IMWRITE_PNG_COMPRESSION, 3])
        elif format_type in ["jpg", "jpeg"]:
            if image.ndim == 3 and image.shape[-1] == 4:
                image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
            ok = cv2.imwrite(
                file_path, image, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality]
            )
        else:
            ok = cv2.imwrite(file_path, image)
        if not ok:
            raise OperationFailure(f"Failed to write {format_type} image")

    def save_image(self, img: Image.Image, file_path: str) -> None:
        """Write a Pillow image, flattening transparency for JPEG."""
        format_type = os.path.splitext(file_path)[1].lstrip(".").lower()
        if format_type in ["jpg", "jpeg"]:
            img.convert("RGB").save(file_path, "JPEG", quality=self.jpeg_quality)
        else:
            img.save(file_path, "PNG")

    @staticmethod
    def fit_inside(
        width: int, height: int, box_width: int, box_height: int
    ) -> Tuple[int, int]:
        """Largest size with the same aspect ratio that fits in the box."""
        aspect = width / height
        if aspect > box_width / box_height:
            new_width = box_width
            new_height = round(box_width / aspect)
        else:
            new_height = box_height
            new_width = round(box_height * aspect)
        return max(new_width, 1), max(new_height, 1)
