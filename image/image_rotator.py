import logging
from PIL import Image
from image.artifact import Artifact
from image.image_handler import ImageHandler
from error.processing_error import InvalidParameters

logger = logging.getLogger(__name__)


class ImageRotator(ImageHandler):
    """Rotates an image clockwise, expanding the canvas to fit."""

    name = "Rotation"
    prefix = "rotated"

    async def process(self, source: Artifact, degrees: int = 90, **params) -> Artifact:
        if not -360 <= degrees <= 360:
            raise InvalidParameters("Rotation must be between -360 and 360 degrees")
        return await self.produce(
            lambda src, out: self._rotate(src, out, degrees), source
        )

    def _rotate(self, source_path: str, output_path: str, degrees: int) -> None:
        img = self.load_image(source_path)
        fill = (0, 0, 0, 255) if img.mode == "RGBA" else (0, 0, 0)
        # Pillow turns counter-clockwise for positive angles.
        rotated = img.rotate(
            -degrees, resample=Image.Resampling.BICUBIC, expand=True, fillcolor=fill
        )
        self.save_image(rotated, output_path)
