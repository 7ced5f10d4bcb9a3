from typing import Annotated, FrozenSet, Mapping, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from enums.text_position import TextPosition
from image.text_style import TextStyle

PLACEHOLDER_TOKEN = "your_telegram_bot_token_here"
DEFAULT_FORMATS = frozenset({"jpeg", "jpg", "png", "webp", "tiff", "gif"})


class BotConfig(BaseSettings):
    """Runtime settings, read from the environment (and .env)."""

    telegram_bot_token: str = ""
    max_file_size: int = 20 * 1024 * 1024
    supported_formats: Annotated[FrozenSet[str], NoDecode] = DEFAULT_FORMATS
    max_width: int = 4096
    max_height: int = 4096
    text_max_length: int = 100
    text_font_size: int = 48
    text_color: str = "white"
    text_position: TextPosition = TextPosition.CENTER
    text_stroke_color: str = "black"
    text_stroke_width: int = 2
    text_font_path: Optional[str] = None
    jpeg_quality: int = 90
    upscale_default_scale: int = 2
    upscale_min_scale: int = 2
    upscale_max_scale: int = 4
    temp_dir: str = "temp"
    cleanup_interval: int = 5 * 60
    cleanup_max_age: int = 30 * 60
    rembg_command: str = "rembg"
    realesrgan_command: str = "realesrgan-ncnn-vulkan"
    allow_passthrough_fallback: bool = False
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
        validate_default=True,
    )

    @field_validator("telegram_bot_token")
    @classmethod
    def check_token(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("No TELEGRAM_BOT_TOKEN found in environment variables")
        if value == PLACEHOLDER_TOKEN:
            raise ValueError("Please set a real TELEGRAM_BOT_TOKEN in .env file")
        return value

    @field_validator("supported_formats", mode="before")
    @classmethod
    def split_formats(cls, value):
        if isinstance(value, str):
            return frozenset(f.strip().lower() for f in value.split(",") if f.strip())
        return value

    @field_validator("text_position", mode="before")
    @classmethod
    def lower_position(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("text_font_path")
    @classmethod
    def blank_font_path(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def check_bounds(self) -> "BotConfig":
        if not (
            self.upscale_min_scale
            <= self.upscale_default_scale
            <= self.upscale_max_scale
        ):
            raise ValueError(
                "UPSCALE_DEFAULT_SCALE must lie between UPSCALE_MIN_SCALE "
                "and UPSCALE_MAX_SCALE"
            )
        if self.max_width <= 0 or self.max_height <= 0:
            raise ValueError("MAX_WIDTH and MAX_HEIGHT must be positive")
        return self

    @property
    def token(self) -> str:
        return self.telegram_bot_token

    @property
    def text_style(self) -> TextStyle:
        return TextStyle(
            font_size=self.text_font_size,
            color=self.text_color,
            position=self.text_position,
            stroke_color=self.text_stroke_color,
            stroke_width=self.text_stroke_width,
            font_path=self.text_font_path,
        )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "BotConfig":
        """Load settings from the process environment, or only from ``env``.

        A mapping replaces the environment and the .env file entirely, so
        every field it leaves out keeps its default.
        """
        if env is None:
            return cls()

        values = {}
        for name, field in cls.model_fields.items():
            raw = env.get(name.upper(), "")
            values[name] = raw if raw.strip() else field.default
        return cls(_env_file=None, **values)
