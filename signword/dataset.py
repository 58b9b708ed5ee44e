"""
Versioned on-disk schema for a trained dataset.

The persisted blob is JSON of the form::

    {"version": 1, "dimensionality": D, "labels": {"hello": [[...], [...]], ...}}

Labels registered without any examples are kept with an empty list.
"""
import math
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
from pydantic import BaseModel, ValidationError, model_validator

from .errors import CorruptDatasetError

DATASET_VERSION = 1


class DatasetModel(BaseModel):
    """Serialized form of an ExampleStore."""
    version: int = DATASET_VERSION
    dimensionality: Optional[int] = None
    labels: Dict[str, List[List[float]]] = {}

    @model_validator(mode="after")
    def _check_consistency(self) -> "DatasetModel":
        if self.version != DATASET_VERSION:
            raise ValueError(f"unsupported dataset version {self.version}")
        if self.dimensionality is not None and self.dimensionality < 1:
            raise ValueError("dimensionality must be positive")

        for label, vectors in self.labels.items():
            if not label.strip():
                raise ValueError("blank label in dataset")
            for vector in vectors:
                if self.dimensionality is None:
                    raise ValueError(f"label {label!r} has vectors but no dimensionality is set")
                if len(vector) != self.dimensionality:
                    raise ValueError(
                        f"label {label!r} has a vector of length {len(vector)}, "
                        f"expected {self.dimensionality}"
                    )
                if not all(math.isfinite(x) for x in vector):
                    raise ValueError(f"label {label!r} has a non-finite vector component")
        return self


def encode_dataset(dimensionality: Optional[int], labels: Dict[str, List[np.ndarray]]) -> str:
    """Serialize a dimensionality and label -> vectors mapping to a JSON blob."""
    model = DatasetModel(
        dimensionality=dimensionality,
        labels={label: [v.tolist() for v in vectors] for label, vectors in labels.items()},
    )
    return model.model_dump_json()


def decode_dataset(blob: Union[str, bytes]) -> Tuple[Optional[int], Dict[str, List[np.ndarray]]]:
    """
    Parse a JSON blob produced by encode_dataset.

    Raises:
        CorruptDatasetError: if the blob is not valid JSON, does not match the
            schema, or mixes vector lengths.
    """
    try:
        model = DatasetModel.model_validate_json(blob)
    except ValidationError as e:
        raise CorruptDatasetError(f"Invalid dataset: {e}") from e

    labels = {
        label: [np.asarray(v, dtype=np.float64) for v in vectors]
        for label, vectors in model.labels.items()
    }
    return model.dimensionality, labels
