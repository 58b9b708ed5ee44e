"""
Sign Word Recognizer

Trains a personal nearest-neighbor classifier from labeled webcam snapshots,
recognizes trained words in new snapshots and detects known sentences in the
stream of recognized words.
"""

__version__ = "1.0.0"

from .types import Example, Prediction, RecognitionResult, ModelState, EmbeddingSource, StorageBackend
from .config import load_config, Cfg
from .store import ExampleStore
from .classifier import NearestNeighborClassifier
from .controller import ModelController
from .sentences import SentenceMatcher, DEFAULT_TARGET_SENTENCES
from .recognizer import WordRecognizer, UNRECOGNIZED
from .storage import MemoryStorage, FileStorage, build_storage

__all__ = [
    "Example",
    "Prediction",
    "RecognitionResult",
    "ModelState",
    "EmbeddingSource",
    "StorageBackend",
    "load_config",
    "Cfg",
    "ExampleStore",
    "NearestNeighborClassifier",
    "ModelController",
    "SentenceMatcher",
    "DEFAULT_TARGET_SENTENCES",
    "WordRecognizer",
    "UNRECOGNIZED",
    "MemoryStorage",
    "FileStorage",
    "build_storage",
]
