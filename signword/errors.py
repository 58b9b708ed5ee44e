"""
Exceptions raised by the recognition core and its collaborators.
"""


class SignWordError(Exception):
    """Base class for all signword errors."""


# Store / classifier integrity errors

class DimensionMismatchError(SignWordError):
    """A vector's length disagrees with the store's dimensionality."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Expected vector of length {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class EmptyModelError(SignWordError):
    """Prediction requested before any example was added."""


class CorruptDatasetError(SignWordError):
    """A serialized dataset could not be decoded."""


# Label lifecycle errors

class EmptyLabelError(SignWordError):
    """Label is blank after trimming."""


class DuplicateLabelError(SignWordError):
    """Label is already registered."""

    def __init__(self, label: str):
        super().__init__(f"Label already exists: {label!r}")
        self.label = label


class UnknownLabelError(SignWordError):
    """Label has not been registered."""

    def __init__(self, label: str):
        super().__init__(f"Unknown label: {label!r}")
        self.label = label


# Controller errors

class ModelNotReadyError(SignWordError):
    """Operation needs a loaded model."""


class ModelLoadFailedError(SignWordError):
    """The persisted dataset could not be loaded."""


class SaveFailedError(SignWordError):
    """The dataset could not be written to storage."""


# Collaborator errors

class EmbeddingUnavailableError(SignWordError):
    """The embedding provider failed to produce a vector."""


class StorageUnavailableError(SignWordError):
    """The storage backend could not be reached."""
