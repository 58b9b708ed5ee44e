"""
Embedding providers: turn a snapshot into a fixed-length feature vector.
"""
import asyncio
import base64
import binascii
import logging
import threading
from typing import List, Optional, Tuple

import aiohttp
import cv2
import numpy as np

from .config import EmbeddingConfig
from .errors import EmbeddingUnavailableError
from .types import EmbeddingSource, ImageInput

logger = logging.getLogger(__name__)

LANDMARKS_PER_HAND = 21

Landmark = Tuple[float, float, float]


def _split_data_uri(image: str) -> str:
    """Return the base64 payload of a data URI (or the string itself)."""
    if image.startswith("data:"):
        _, _, payload = image.partition(",")
        return payload
    return image


def decode_image(image: ImageInput) -> np.ndarray:
    """
    Decode an image into a BGR frame.

    Args:
        image: Encoded bytes, a base64 string / data URI, or an already
               decoded BGR frame

    Returns:
        BGR frame as a numpy array
    """
    if isinstance(image, np.ndarray):
        return image

    if isinstance(image, str):
        try:
            image = base64.b64decode(_split_data_uri(image), validate=True)
        except (binascii.Error, ValueError) as e:
            raise EmbeddingUnavailableError(f"Invalid base64 image: {e}") from e

    frame = cv2.imdecode(np.frombuffer(image, dtype=np.uint8), cv2.IMREAD_COLOR)
    if frame is None:
        raise EmbeddingUnavailableError("Could not decode image")
    return frame


def encode_image(image: ImageInput) -> str:
    """Encode an image as a plain base64 string (PNG for decoded frames)."""
    if isinstance(image, str):
        return _split_data_uri(image)
    if isinstance(image, np.ndarray):
        ok, buf = cv2.imencode(".png", image)
        if not ok:
            raise EmbeddingUnavailableError("Could not encode frame")
        image = buf.tobytes()
    return base64.b64encode(image).decode("utf-8")


def landmarks_to_vector(hands: List[List[Landmark]], max_num_hands: int) -> np.ndarray:
    """
    Flatten hand landmarks into a fixed-length vector.

    Each hand contributes 21 (x, y, z) points relative to its wrist, so the
    vector ignores where the hand sits in the frame. Missing hands are zero
    padded; extra hands are dropped.
    """
    vector = np.zeros(max_num_hands * LANDMARKS_PER_HAND * 3, dtype=np.float64)
    for i, hand in enumerate(hands[:max_num_hands]):
        points = np.asarray(hand, dtype=np.float64).reshape(LANDMARKS_PER_HAND, 3)
        points = points - points[0]
        start = i * LANDMARKS_PER_HAND * 3
        vector[start:start + points.size] = points.ravel()
    return vector


class HandsTracker:
    """Hand landmark tracker using MediaPipe Hands."""
    
    def __init__(self, max_num_hands: int = 2, min_detection_conf: float = 0.5):
        """
        Initialize the hands tracker.
        
        Args:
            max_num_hands: Maximum number of hands to detect
            min_detection_conf: Minimum confidence for hand detection
        """
        import mediapipe as mp

        self.mp_hands = mp.solutions.hands
        self.hands = self.mp_hands.Hands(
            static_image_mode=True,
            max_num_hands=max_num_hands,
            min_detection_confidence=min_detection_conf
        )
        self._lock = threading.Lock()
    
    def process(self, frame_bgr: np.ndarray) -> Optional[List[List[Landmark]]]:
        """
        Process a frame and return hand landmarks.
        
        Args:
            frame_bgr: Input frame in BGR format
            
        Returns:
            One list of 21 (x, y, z) points per detected hand, or None if no hand detected
        """
        # Convert BGR to RGB for MediaPipe
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        
        with self._lock:
            results = self.hands.process(frame_rgb)
        
        if not results.multi_hand_landmarks:
            return None
        
        return [
            [(lm.x, lm.y, lm.z) for lm in hand_landmarks.landmark]
            for hand_landmarks in results.multi_hand_landmarks
        ]


class LandmarkEmbeddingSource:
    """Embeds snapshots as normalized MediaPipe hand landmarks."""

    def __init__(self, tracker: Optional[HandsTracker] = None, max_num_hands: int = 2,
                 min_detection_confidence: float = 0.5):
        self.max_num_hands = max_num_hands
        self.tracker = tracker or HandsTracker(max_num_hands, min_detection_confidence)

    @property
    def dimensionality(self) -> int:
        return self.max_num_hands * LANDMARKS_PER_HAND * 3

    async def embed(self, image: ImageInput) -> np.ndarray:
        frame = decode_image(image)
        hands = await asyncio.to_thread(self.tracker.process, frame)
        if not hands:
            raise EmbeddingUnavailableError("No hand detected")
        return landmarks_to_vector(hands, self.max_num_hands)


class RemoteEmbeddingSource:
    """
    Embeds snapshots through an HTTP model endpoint.

    The endpoint receives {"image": <base64>} and answers {"embedding": [...]}.
    """

    def __init__(self, url: str, timeout_s: float = 10.0):
        self.url = url
        self.timeout_s = timeout_s

    async def embed(self, image: ImageInput) -> np.ndarray:
        payload = {"image": encode_image(image)}
        async with aiohttp.ClientSession() as session:
            try:
                async with session.post(
                    self.url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.timeout_s)
                ) as response:
                    if response.status != 200:
                        raise EmbeddingUnavailableError(
                            f"Embedding service returned HTTP {response.status}"
                        )
                    data = await response.json()
            except asyncio.TimeoutError as e:
                raise EmbeddingUnavailableError(f"Embedding service timed out ({self.timeout_s}s)") from e
            except aiohttp.ClientError as e:
                raise EmbeddingUnavailableError(f"Embedding service unreachable: {e}") from e
            except ValueError as e:
                raise EmbeddingUnavailableError(f"Embedding service sent invalid JSON: {e}") from e

        try:
            vector = np.asarray(data["embedding"], dtype=np.float64)
        except (KeyError, TypeError, ValueError) as e:
            raise EmbeddingUnavailableError(f"Malformed embedding response: {e}") from e
        if vector.ndim != 1 or vector.size == 0:
            raise EmbeddingUnavailableError(f"Embedding must be a flat vector, got shape {vector.shape}")
        return vector


def build_embedder(cfg: EmbeddingConfig) -> EmbeddingSource:
    """Create the embedding provider named in the configuration."""
    if cfg.provider == "landmarks":
        return LandmarkEmbeddingSource(
            max_num_hands=cfg.max_num_hands,
            min_detection_confidence=cfg.min_detection_confidence
        )
    if cfg.provider == "remote":
        if not cfg.url:
            raise ValueError("embedding.url is required for the remote provider")
        return RemoteEmbeddingSource(cfg.url, timeout_s=cfg.timeout_s)
    raise ValueError(f"Unknown embedding provider: {cfg.provider}")
