import logging
from typing import Optional
from PIL import ImageDraw, ImageFont
from image.artifact import Artifact
from image.image_handler import ImageHandler
from image.text_style import TextStyle
from enums.text_position import TextPosition
from error.processing_error import InvalidParameters

logger = logging.getLogger(__name__)

EDGE_MARGIN = 20

# Pillow anchors: horizontal middle, vertical ascender / middle / descender.
_ANCHORS = {
    TextPosition.TOP: "ma",
    TextPosition.CENTER: "mm",
    TextPosition.BOTTOM: "md",
}


class TextOverlay(ImageHandler):
    """Draws a line of outlined text over the image."""

    name = "Text overlay"
    prefix = "text"

    def __init__(self, store, jpeg_quality: int = 90, style: TextStyle = TextStyle()):
        super().__init__(store, jpeg_quality)
        self.style = style

    async def process(
        self,
        source: Artifact,
        text: str = "",
        style: Optional[TextStyle] = None,
        **params,
    ) -> Artifact:
        if not text:
            raise InvalidParameters("Text must not be empty")
        style = style or self.style
        return await self.produce(
            lambda src, out: self._draw(src, out, text, style), source
        )

    @staticmethod
    def load_font(style: TextStyle):
        if style.font_path:
            return ImageFont.truetype(style.font_path, style.font_size)
        return ImageFont.load_default(size=style.font_size)

    def _draw(
        self, source_path: str, output_path: str, text: str, style: TextStyle
    ) -> None:
        img = self.load_image(source_path)
        width, height = img.size

        if style.position == TextPosition.TOP:
            y = EDGE_MARGIN
        elif style.position == TextPosition.BOTTOM:
            y = height - EDGE_MARGIN
        else:
            y = height // 2

        draw = ImageDraw.Draw(img)
        draw.text(
            (width // 2, y),
            text,
            font=self.load_font(style),
            fill=style.color,
            anchor=_ANCHORS[style.position],
            stroke_width=style.stroke_width,
            stroke_fill=style.stroke_color,
        )
        self.save_image(img, output_path)
