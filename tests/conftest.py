"""Shared test fixtures."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

import pytest
from PIL import Image

from config.bot_config import BotConfig
from enums.edit_action import EditAction
from error.processing_error import ProcessingError
from image.artifact import Artifact
from image.image_handler import ImageHandler
from image.temp_store import TempStore
from session.edit_flow import EditFlow
from session.session_store import InMemorySessionStore


class CountingArtifact(Artifact):
    """Artifact that records how many times release() was called."""

    def __init__(self, path: str):
        super().__init__(path)
        self.release_calls = 0

    def release(self) -> None:
        self.release_calls += 1
        super().release()


@dataclass
class FakeImageHandler(ImageHandler):
    """Handler that copies the source bytes into a new counting artifact."""

    store: TempStore
    name: str = "Fake operation"
    as_document: bool = False
    error: Optional[ProcessingError] = None
    calls: List[dict] = field(default_factory=list)
    outputs: List[CountingArtifact] = field(default_factory=list)

    async def process(self, source: Artifact, **params) -> Artifact:
        self.calls.append({"source": source, **params})
        if self.error is not None:
            raise self.error
        plain = self.store.new_artifact("fake", "jpg")
        output = CountingArtifact(plain.path)
        with open(source.path, "rb") as src, open(output.path, "wb") as dst:
            dst.write(src.read())
        self.outputs.append(output)
        return output


def write_image(path: str, size=(64, 48), color=(200, 30, 30), mode="RGB", fmt=None) -> str:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    Image.new(mode, size, color).save(path, fmt)
    return path


@pytest.fixture
def config(tmp_path) -> BotConfig:
    return BotConfig.from_env(
        {"TELEGRAM_BOT_TOKEN": "42:test-token", "TEMP_DIR": str(tmp_path / "temp")}
    )


@pytest.fixture
def store(config: BotConfig) -> TempStore:
    store = TempStore(config.temp_dir)
    store.ensure()
    return store


@pytest.fixture
def make_artifact(store: TempStore):
    def factory(size=(64, 48), color=(200, 30, 30), mode="RGB", ext="jpg") -> CountingArtifact:
        plain = store.new_artifact("upload", ext)
        write_image(plain.path, size=size, color=color, mode=mode)
        return CountingArtifact(plain.path)

    return factory


@pytest.fixture
def handlers(store: TempStore) -> dict:
    return {
        action: FakeImageHandler(
            store,
            name=action.name,
            as_document=action in (EditAction.REMOVE_BACKGROUND, EditAction.UPSCALE),
        )
        for action in EditAction
        if action.is_operation
    }


@pytest.fixture
def sessions() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def flow(sessions: InMemorySessionStore, handlers: dict, config: BotConfig) -> EditFlow:
    return EditFlow(sessions, handlers, config)
