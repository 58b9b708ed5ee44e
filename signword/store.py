"""
In-memory storage of labeled embedding vectors.
"""
import logging
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from .dataset import decode_dataset, encode_dataset
from .errors import DimensionMismatchError
from .types import Example

logger = logging.getLogger(__name__)


def _as_vector(vector: Sequence[float]) -> np.ndarray:
    """Copy a vector into a read-only 1-D float64 array."""
    arr = np.array(vector, dtype=np.float64)
    if arr.ndim != 1 or arr.size == 0:
        raise ValueError(f"Embedding must be a non-empty 1-D vector, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError("Embedding contains non-finite values")
    arr.setflags(write=False)
    return arr


class ExampleStore:
    """
    Holds the embedding vectors observed for each label.

    Examples are kept in one flat list in the order they were added, so
    callers can rely on insertion order for tie-breaking. The dimensionality
    is adopted from the first example ever added and reset by import_dataset
    or reset.
    """

    def __init__(self):
        """Initialize an empty store."""
        self.dimensionality: Optional[int] = None
        self._examples: List[Example] = []
        self._counts: Dict[str, int] = {}  # registered labels, in registration order

    def __len__(self) -> int:
        return len(self._examples)

    def __contains__(self, label: str) -> bool:
        return label in self._counts

    @property
    def labels(self) -> List[str]:
        """Registered labels, sorted for display."""
        return sorted(self._counts)

    @property
    def examples(self) -> List[Example]:
        """All examples in insertion order."""
        return list(self._examples)

    def register_label(self, label: str) -> None:
        """Register a label with zero examples. No-op if already present."""
        self._counts.setdefault(label, 0)

    def remove_label(self, label: str) -> None:
        """Drop a label and all of its examples. No-op if unknown."""
        self.clear_label(label)
        self._counts.pop(label, None)

    def add_example(self, label: str, vector: Sequence[float]) -> Example:
        """
        Append one example for a label, registering the label if needed.

        Args:
            label: Label the vector belongs to
            vector: Embedding vector

        Returns:
            The stored Example

        Raises:
            DimensionMismatchError: if the vector length differs from the
                store's dimensionality
        """
        arr = _as_vector(vector)
        if self.dimensionality is not None and arr.size != self.dimensionality:
            raise DimensionMismatchError(self.dimensionality, arr.size)

        if self.dimensionality is None:
            self.dimensionality = arr.size
            logger.debug(f"Adopted dimensionality {arr.size}")

        example = Example(label=label, vector=arr)
        self._examples.append(example)
        self._counts[label] = self._counts.get(label, 0) + 1
        return example

    def clear_label(self, label: str) -> None:
        """Remove every example of a label; the label stays registered."""
        if not self._counts.get(label):
            return
        self._examples = [ex for ex in self._examples if ex.label != label]
        self._counts[label] = 0

    def count_for(self, label: str) -> int:
        """Number of examples for a label, 0 if unknown."""
        return self._counts.get(label, 0)

    def vectors_for(self, label: str) -> List[np.ndarray]:
        return [ex.vector for ex in self._examples if ex.label == label]

    def reset(self) -> None:
        """Forget all labels, examples and the dimensionality."""
        self.dimensionality = None
        self._examples = []
        self._counts = {}

    def export_dataset(self) -> str:
        """Serialize the full contents of the store."""
        grouped: Dict[str, List[np.ndarray]] = {label: [] for label in self._counts}
        for ex in self._examples:
            grouped[ex.label].append(ex.vector)
        return encode_dataset(self.dimensionality, grouped)

    def import_dataset(self, blob: Union[str, bytes]) -> None:
        """
        Replace the store's contents with a serialized dataset.

        The blob is fully decoded before anything is replaced, so a
        CorruptDatasetError leaves the store untouched.
        """
        dimensionality, grouped = decode_dataset(blob)

        examples: List[Example] = []
        counts: Dict[str, int] = {}
        for label, vectors in grouped.items():
            counts[label] = len(vectors)
            for vector in vectors:
                vector.setflags(write=False)
                examples.append(Example(label=label, vector=vector))

        self.dimensionality = dimensionality
        self._examples = examples
        self._counts = counts
        logger.debug(f"Imported {len(examples)} examples across {len(counts)} labels")
