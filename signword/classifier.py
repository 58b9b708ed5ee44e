"""
k-nearest-neighbor classification over stored embedding vectors.
"""
from typing import Dict, Optional, Sequence

import numpy as np

from .errors import DimensionMismatchError, EmptyModelError
from .store import ExampleStore
from .types import Prediction

DEFAULT_K = 5


class NearestNeighborClassifier:
    """
    Predicts a label by majority vote among the k closest stored examples.

    Learning is incremental: new examples are simply appended to the
    ExampleStore and take part in the next prediction, no fitting step.

    Features:
    - Euclidean (L2) distance in full precision
    - Ties between equidistant neighbors go to the earliest-added example
    - Ties between labels go to the smaller summed distance, then to the
      lexicographically smaller label
    """

    def __init__(self, store: ExampleStore, k: int = DEFAULT_K):
        """
        Initialize the classifier.

        Args:
            store: Example store to read neighbors from
            k: Default number of neighbors
        """
        self.store = store
        self.k = k

    def distances(self, vector: Sequence[float]) -> np.ndarray:
        """L2 distance from vector to every stored example, in insertion order."""
        examples = self.store.examples
        if not examples:
            raise EmptyModelError("No examples have been added yet")

        query = np.asarray(vector, dtype=np.float64)
        if query.ndim != 1 or query.size != self.store.dimensionality:
            raise DimensionMismatchError(self.store.dimensionality, query.size)

        matrix = np.vstack([ex.vector for ex in examples])
        return np.linalg.norm(matrix - query, axis=1)

    def predict(self, vector: Sequence[float], k: Optional[int] = None) -> Prediction:
        """
        Classify a query vector.

        Args:
            vector: Query embedding
            k: Number of neighbors; defaults to the classifier's k. Clamped to
               the number of stored examples.

        Returns:
            Prediction with the winning label and its vote share

        Raises:
            EmptyModelError: if the store holds no examples
            DimensionMismatchError: if the query length differs from the store's
        """
        k = self.k if k is None else k
        if k < 1:
            raise ValueError(f"k must be at least 1, got {k}")

        dists = self.distances(vector)
        examples = self.store.examples
        k = min(k, len(examples))

        # Stable sort keeps insertion order among equal distances
        nearest = np.argsort(dists, kind="stable")[:k]

        votes: Dict[str, int] = {}
        summed: Dict[str, float] = {}
        for idx in nearest:
            label = examples[idx].label
            votes[label] = votes.get(label, 0) + 1
            summed[label] = summed.get(label, 0.0) + float(dists[idx])

        winner = min(votes, key=lambda label: (-votes[label], summed[label], label))
        confidences = {label: count / k for label, count in votes.items()}

        return Prediction(label=winner, confidence=confidences[winner], confidences=confidences)
