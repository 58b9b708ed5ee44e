"""
Type definitions for the gesture-to-word recognition system.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Protocol, Union, runtime_checkable

import numpy as np


# Raw image input: encoded bytes (JPEG/PNG), a base64 data URI, or a decoded BGR frame
ImageInput = Union[bytes, str, np.ndarray]


@dataclass(frozen=True)
class Example:
    """A single labeled embedding vector."""
    label: str
    vector: np.ndarray


@dataclass
class Prediction:
    """Result of a nearest-neighbor vote."""
    label: str
    confidence: float  # winning votes / k, in [0, 1]
    confidences: Dict[str, float] = field(default_factory=dict)


@dataclass
class RecognitionResult:
    """What the detector reports for one snapshot."""
    word: str
    confidence: float
    accepted: bool
    sentence: Optional[str]
    history: List[str]


class ModelState(str, Enum):
    """Lifecycle state of a ModelController."""
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


@runtime_checkable
class EmbeddingSource(Protocol):
    """Turns an image into a fixed-length feature vector."""

    async def embed(self, image: ImageInput) -> np.ndarray:
        """Return a 1-D float vector for the image."""
        ...


@runtime_checkable
class StorageBackend(Protocol):
    """Document store holding one serialized dataset per key."""

    async def read_dataset(self, key: str) -> Optional[str]:
        """Return the stored blob, or None when nothing was saved yet."""
        ...

    async def write_dataset(self, key: str, blob: str) -> None:
        """Atomically replace the blob stored under key."""
        ...
