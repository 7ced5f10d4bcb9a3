import cv2
import logging
from image.artifact import Artifact
from image.image_handler import ImageHandler
from error.processing_error import InvalidParameters

logger = logging.getLogger(__name__)


class Upscaler(ImageHandler):
    """Base for upscalers; checks the scale factor against configured bounds."""

    name = "Upscale"
    prefix = "upscaled"
    output_format = "png"
    as_document = True

    def __init__(
        self, store, jpeg_quality: int = 90, min_scale: int = 2, max_scale: int = 4
    ):
        super().__init__(store, jpeg_quality)
        self.min_scale = min_scale
        self.max_scale = max_scale

    def check_scale(self, scale: int) -> None:
        if not self.min_scale <= scale <= self.max_scale:
            raise InvalidParameters(
                f"Scale must be between {self.min_scale}x and {self.max_scale}x"
            )


class OpenCvUpscaler(Upscaler):
    """High-quality Lanczos resize, used when no AI upscaler is installed."""

    async def process(self, source: Artifact, scale: int = 2, **params) -> Artifact:
        self.check_scale(scale)
        return await self.produce(
            lambda src, out: self._upscale(src, out, scale), source
        )

    def _upscale(self, source_path: str, output_path: str, scale: int) -> None:
        image = self.load_array(source_path)
        height, width = image.shape[:2]
        upscaled = cv2.resize(
            image, (width * scale, height * scale), interpolation=cv2.INTER_LANCZOS4
        )
        self.save_array(upscaled, output_path)


class RealEsrganUpscaler(Upscaler):
    """Upscales with the Real-ESRGAN ncnn/Vulkan command line tool."""

    def __init__(
        self,
        store,
        command: str,
        jpeg_quality: int = 90,
        min_scale: int = 2,
        max_scale: int = 4,
    ):
        super().__init__(store, jpeg_quality, min_scale, max_scale)
        self.command = command

    async def process(self, source: Artifact, scale: int = 2, **params) -> Artifact:
        self.check_scale(scale)
        output = self.store.new_artifact(self.prefix, self.output_format)
        try:
            await self.run_command(
                self.command, "-i", source.path, "-o", output.path, "-s", str(scale)
            )
        except Exception:
            output.release()
            raise
        logger.info(f"Image upscaled {scale}x using Real-ESRGAN: {output.path}")
        return output
