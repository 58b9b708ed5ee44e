"""
Session-level orchestration of labels, training captures and persistence.
"""
import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from .classifier import DEFAULT_K, NearestNeighborClassifier
from .config import Cfg
from .errors import (
    CorruptDatasetError,
    DuplicateLabelError,
    EmbeddingUnavailableError,
    EmptyLabelError,
    EmptyModelError,
    ModelLoadFailedError,
    ModelNotReadyError,
    SaveFailedError,
    StorageUnavailableError,
    UnknownLabelError,
)
from .store import ExampleStore
from .types import EmbeddingSource, ImageInput, ModelState, Prediction, StorageBackend

logger = logging.getLogger(__name__)

DEFAULT_MODEL_KEY = "sign-language-model"


class ModelController:
    """
    Owns the example store for one session and drives its lifecycle.

    State machine: UNINITIALIZED -> LOADING -> READY. While READY the model is
    either clean or dirty (unsaved changes). A failed load returns to the
    previous state, so a first-run failure leaves the controller
    UNINITIALIZED and every training or prediction call raises
    ModelNotReadyError until load_model() succeeds or reset() is called.

    Concurrency:
    - Store mutation and snapshotting happen under one asyncio.Lock, so an
      append is never observed half-done.
    - Embedding runs outside that lock.
    - save() calls are queued: a second call waits for the first to finish
      and then writes the current snapshot.
    """

    def __init__(self, embedder: EmbeddingSource, storage: StorageBackend,
                 key: str = DEFAULT_MODEL_KEY, k: int = DEFAULT_K,
                 embed_timeout_s: Optional[float] = None, embed_retries: int = 1):
        """
        Initialize the controller.

        Args:
            embedder: Embedding provider for captured images
            storage: Backend holding the persisted dataset
            key: Document key of the dataset in the backend
            k: Number of neighbors used by predict
            embed_timeout_s: Per-attempt embedding timeout, None for no limit
            embed_retries: Extra embedding attempts after a failure
        """
        self.embedder = embedder
        self.storage = storage
        self.key = key
        self.embed_timeout_s = embed_timeout_s
        self.embed_retries = max(0, embed_retries)

        self.store = ExampleStore()
        self.classifier = NearestNeighborClassifier(self.store, k=k)
        self.state = ModelState.UNINITIALIZED

        # Dirty tracking: every mutation bumps the generation
        self._generation = 0
        self._saved_generation = 0

        self._store_lock = asyncio.Lock()
        self._save_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, cfg: Cfg, embedder: EmbeddingSource,
                    storage: StorageBackend) -> "ModelController":
        return cls(
            embedder,
            storage,
            key=cfg.storage.key,
            k=cfg.classifier.k,
            embed_timeout_s=cfg.embedding.timeout_s,
            embed_retries=cfg.embedding.retries,
        )

    # ----- state -----

    @property
    def is_ready(self) -> bool:
        return self.state is ModelState.READY

    @property
    def dirty(self) -> bool:
        """True when there are changes not yet written by save()."""
        return self._generation != self._saved_generation

    @property
    def is_saving(self) -> bool:
        return self._save_lock.locked()

    @property
    def labels(self) -> List[str]:
        return self.store.labels

    def count_for(self, label: str) -> int:
        return self.store.count_for(label)

    def example_counts(self) -> Dict[str, int]:
        """Example count per registered label, in sorted label order."""
        return {label: self.store.count_for(label) for label in self.store.labels}

    def _mark_dirty(self) -> None:
        self._generation += 1

    def _mark_clean(self) -> None:
        self._saved_generation = self._generation

    def _require_ready(self) -> None:
        if self.state is not ModelState.READY:
            raise ModelNotReadyError(f"Model is {self.state.value}, load it first")

    # ----- lifecycle -----

    async def load_model(self) -> None:
        """
        Load the persisted dataset into the store.

        A missing dataset is the normal first-run case and yields an empty,
        clean model.

        Raises:
            ModelNotReadyError: if a load is already in progress
            ModelLoadFailedError: if the backend is unavailable or the
                dataset is corrupt
        """
        if self.state is ModelState.LOADING:
            raise ModelNotReadyError("Model is already loading")

        previous = self.state
        self.state = ModelState.LOADING
        logger.info(f"Loading saved model '{self.key}'...")

        try:
            blob = await self.storage.read_dataset(self.key)
            async with self._store_lock:
                if blob is None:
                    self.store.reset()
                    logger.info("No saved model found. Ready to train a new one.")
                else:
                    self.store.import_dataset(blob)
                    logger.info(
                        f"Model loaded: {len(self.store)} examples, "
                        f"{len(self.store.labels)} labels"
                    )
        except (StorageUnavailableError, CorruptDatasetError) as e:
            self.state = previous
            logger.error(f"Model load failed: {e}")
            raise ModelLoadFailedError(f"Could not load model '{self.key}': {e}") from e
        except Exception:
            self.state = previous
            raise

        self._mark_clean()
        self.state = ModelState.READY

    def reset(self) -> None:
        """Discard every label and example and start an empty model."""
        self.store.reset()
        self.state = ModelState.READY
        self._mark_dirty()
        logger.info("Model reset")

    async def save(self) -> None:
        """
        Write the current dataset to the storage backend.

        Concurrent calls run one after the other. The model only becomes
        clean if nothing changed while the write was in flight.

        Raises:
            SaveFailedError: if the backend write fails
        """
        self._require_ready()

        async with self._save_lock:
            async with self._store_lock:
                blob = self.store.export_dataset()
                generation = self._generation

            try:
                await self.storage.write_dataset(self.key, blob)
            except (StorageUnavailableError, OSError) as e:
                logger.error(f"Save failed: {e}")
                raise SaveFailedError(f"Could not save model '{self.key}': {e}") from e

            self._saved_generation = max(self._saved_generation, generation)
            logger.info(f"Model saved ({len(blob)} bytes)")

    # ----- labels -----

    def add_label(self, label: str) -> str:
        """
        Register a new label with zero examples.

        Returns:
            The trimmed label

        Raises:
            EmptyLabelError: if the label is blank
            DuplicateLabelError: if the label is already registered (case-sensitive)
        """
        self._require_ready()
        name = label.strip()
        if not name:
            raise EmptyLabelError("Label must not be blank")
        if name in self.store:
            raise DuplicateLabelError(name)

        self.store.register_label(name)
        self._mark_dirty()
        logger.info(f"Added label '{name}'")
        return name

    def clear_label(self, label: str) -> bool:
        """
        Remove every example of a label; the label itself stays registered.

        Returns:
            False if the label is unknown (nothing changes)
        """
        self._require_ready()
        if label not in self.store:
            return False
        self.store.clear_label(label)
        self._mark_dirty()
        logger.info(f"Cleared examples of '{label}'")
        return True

    def remove_label(self, label: str) -> bool:
        """Remove a label together with its examples. False if unknown."""
        self._require_ready()
        if label not in self.store:
            return False
        self.store.remove_label(label)
        self._mark_dirty()
        logger.info(f"Removed label '{label}'")
        return True

    # ----- training / inference -----

    async def _embed(self, image: ImageInput) -> np.ndarray:
        """Embed an image, retrying up to embed_retries times."""
        attempts = 1 + self.embed_retries
        error: Optional[EmbeddingUnavailableError] = None

        for attempt in range(1, attempts + 1):
            try:
                if self.embed_timeout_s is None:
                    return await self.embedder.embed(image)
                return await asyncio.wait_for(self.embedder.embed(image), self.embed_timeout_s)
            except asyncio.TimeoutError:
                error = EmbeddingUnavailableError(
                    f"Embedding timed out after {self.embed_timeout_s}s"
                )
            except EmbeddingUnavailableError as e:
                error = e
            logger.warning(f"Embedding attempt {attempt}/{attempts} failed: {error}")

        raise error

    async def capture_example(self, label: str, image: ImageInput) -> int:
        """
        Embed an image and store it as an example of label.

        Returns:
            The label's example count after the append

        Raises:
            UnknownLabelError: if the label is not registered
            EmbeddingUnavailableError: if the embedding provider fails
            DimensionMismatchError: if the embedding length differs from the store's
        """
        self._require_ready()
        if label not in self.store:
            raise UnknownLabelError(label)

        vector = await self._embed(image)

        async with self._store_lock:
            # The label may have been removed while embedding
            if label not in self.store:
                raise UnknownLabelError(label)
            self.store.add_example(label, vector)
            self._mark_dirty()
            count = self.store.count_for(label)

        logger.debug(f"Sample added for '{label}' ({count} total)")
        return count

    async def capture_burst(self, label: str, images: Iterable[ImageInput],
                            interval_s: float = 0.1) -> int:
        """
        Capture a sequence of frames for one label, in order.

        Each frame contributes one example. A failing frame aborts the burst;
        frames captured before it are kept.

        Returns:
            Number of examples added
        """
        added = 0
        for image in images:
            if added and interval_s > 0:
                await asyncio.sleep(interval_s)
            await self.capture_example(label, image)
            added += 1

        logger.info(f"Captured {added} samples for '{label}'")
        return added

    def predict_vector(self, vector: Sequence[float], k: Optional[int] = None) -> Prediction:
        """Classify an already-embedded vector."""
        self._require_ready()
        return self.classifier.predict(vector, k)

    async def predict(self, image: ImageInput, k: Optional[int] = None) -> Prediction:
        """
        Embed an image and classify it.

        Raises:
            EmptyModelError: if no examples have been captured
            EmbeddingUnavailableError: if the embedding provider fails
        """
        self._require_ready()
        if not len(self.store):
            raise EmptyModelError("Train at least one sign before predicting")

        vector = await self._embed(image)
        async with self._store_lock:
            return self.classifier.predict(vector, k)
