import logging
from PIL import Image
from image.artifact import Artifact
from image.image_handler import ImageHandler
from error.processing_error import OperationFailure


logger = logging.getLogger(__name__)


class BackgroundRemover(ImageHandler):
    """Handles background removal from images with the rembg library."""

    name = "Background removal"
    prefix = "no_bg"
    output_format = "png"  # Always use PNG for transparency
    as_document = True

    async def process(self, source: Artifact, **params) -> Artifact:
        return await self.produce(self._remove, source)

    def _remove(self, source_path: str, output_path: str) -> None:
        from rembg import remove

        with Image.open(source_path) as img:
            no_bg = remove(img)
            no_bg.save(output_path, "PNG")


class CliBackgroundRemover(BackgroundRemover):
    """Background removal through the ``rembg i`` command."""

    def __init__(self, store, command: str, jpeg_quality: int = 90):
        super().__init__(store, jpeg_quality)
        self.command = command

    async def process(self, source: Artifact, **params) -> Artifact:
        output = self.store.new_artifact(self.prefix, self.output_format)
        try:
            await self.run_command(self.command, "i", source.path, output.path)
        except Exception:
            output.release()
            raise
        logger.info(f"Background removed using {self.command} CLI: {output.path}")
        return output


class PassThroughBackgroundRemover(BackgroundRemover):
    """Re-encodes the image as PNG without removing anything."""

    name = "Background removal (pass-through)"

    def _remove(self, source_path: str, output_path: str) -> None:
        self.load_image(source_path).save(output_path, "PNG")


class UnavailableBackgroundRemover(BackgroundRemover):
    """Used when neither rembg nor a fallback is available."""

    async def process(self, source: Artifact, **params) -> Artifact:
        raise OperationFailure("Background removal is not available on this server")
