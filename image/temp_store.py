import os
import time
import uuid
import asyncio
import logging
from typing import Optional

from image.artifact import Artifact

logger = logging.getLogger(__name__)


class TempStore:
    """Directory holding downloaded uploads and operation outputs."""

    def __init__(self, directory: str):
        self.directory = directory

    def ensure(self) -> str:
        os.makedirs(self.directory, exist_ok=True)
        return self.directory

    def new_artifact(self, prefix: str, ext: str) -> Artifact:
        self.ensure()
        name = f"{prefix}_{uuid.uuid4().hex}.{ext.lstrip('.')}"
        return Artifact(os.path.join(self.directory, name))

    def sweep(self, max_age: float, now: Optional[float] = None) -> int:
        """Remove files older than ``max_age`` seconds, returning how many went."""
        if not os.path.isdir(self.directory):
            return 0

        now = time.time() if now is None else now
        removed = 0
        for entry in os.scandir(self.directory):
            if not entry.is_file():
                continue
            try:
                if now - entry.stat().st_mtime > max_age:
                    os.remove(entry.path)
                    removed += 1
                    logger.info(f"Cleaned up old file: {entry.name}")
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.error(f"Failed to clean up {entry.path}: {e}")
        return removed

    async def run_cleanup(self, interval: float, max_age: float) -> None:
        """Sweep forever every ``interval`` seconds; cancel the task to stop."""
        logger.info(
            f"Auto-cleanup started (every {interval}s, max age {max_age}s) "
            f"in {self.directory}"
        )
        while True:
            await asyncio.sleep(interval)
            removed = self.sweep(max_age)
            if removed:
                logger.info(f"Auto-cleanup removed {removed} file(s)")
