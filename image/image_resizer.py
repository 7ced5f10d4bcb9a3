import cv2
import logging
from image.artifact import Artifact
from image.image_handler import ImageHandler
from error.processing_error import InvalidParameters

logger = logging.getLogger(__name__)


class ImageResizer(ImageHandler):
    """Resizes an image to fit inside the requested box, keeping its aspect ratio."""

    name = "Resize"
    prefix = "resized"

    async def process(
        self, source: Artifact, width: int = 800, height: int = 600, **params
    ) -> Artifact:
        if width <= 0 or height <= 0:
            raise InvalidParameters("Width and height must be positive")
        return await self.produce(
            lambda src, out: self._resize(src, out, width, height), source
        )

    def _resize(
        self, source_path: str, output_path: str, width: int, height: int
    ) -> None:
        image = self.load_array(source_path)
        current_height, current_width = image.shape[:2]
        new_size = self.fit_inside(current_width, current_height, width, height)
        resized = cv2.resize(image, new_size, interpolation=cv2.INTER_LANCZOS4)
        self.save_array(resized, output_path)
