"""
Storage backends for persisted datasets.
"""
import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

from .config import StorageConfig
from .errors import CorruptDatasetError, StorageUnavailableError
from .types import StorageBackend

logger = logging.getLogger(__name__)


class MemoryStorage:
    """Keeps blobs in a dict. Used for tests and throwaway sessions."""

    def __init__(self):
        """Initialize the in-memory store."""
        self.blobs: Dict[str, str] = {}
        self.read_count = 0
        self.write_count = 0

    async def read_dataset(self, key: str) -> Optional[str]:
        self.read_count += 1
        return self.blobs.get(key)

    async def write_dataset(self, key: str, blob: str) -> None:
        self.write_count += 1
        self.blobs[key] = blob


class FileStorage:
    """
    Stores each dataset as <directory>/<key>.json.

    Writes go to a temporary file in the same directory which is then moved
    over the target with os.replace, so readers never see a partial file.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in (".", ".."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    async def read_dataset(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return await asyncio.to_thread(self._read, path)
        except OSError as e:
            raise StorageUnavailableError(f"Could not read {path}: {e}") from e
        except UnicodeDecodeError as e:
            raise CorruptDatasetError(f"{path} is not valid UTF-8: {e}") from e

    async def write_dataset(self, key: str, blob: str) -> None:
        path = self.path_for(key)
        try:
            await asyncio.to_thread(self._write, path, blob)
        except OSError as e:
            raise StorageUnavailableError(f"Could not write {path}: {e}") from e
        logger.debug(f"Wrote {len(blob)} bytes to {path}")

    @staticmethod
    def _read(path: Path) -> Optional[str]:
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    @staticmethod
    def _write(path: Path, blob: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(blob)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


def build_storage(cfg: StorageConfig) -> StorageBackend:
    """Create the storage backend named in the configuration."""
    if cfg.backend == "memory":
        return MemoryStorage()
    if cfg.backend == "file":
        return FileStorage(cfg.path)
    raise ValueError(f"Unknown storage backend: {cfg.backend}")
