import cv2
import logging
from image.artifact import Artifact
from image.image_handler import ImageHandler

logger = logging.getLogger(__name__)


class GrayscaleConverter(ImageHandler):
    """Converts colored images to black and white."""

    name = "Grayscale conversion"
    prefix = "grayscale"

    async def process(self, source: Artifact, **params) -> Artifact:
        return await self.produce(self._convert, source)

    def _convert(self, source_path: str, output_path: str) -> None:
        image = self.load_array(source_path)
        code = cv2.COLOR_BGRA2GRAY if image.shape[-1] == 4 else cv2.COLOR_BGR2GRAY
        self.save_array(cv2.cvtColor(image, code), output_path)
