from __future__ import annotations

from typing import Sequence


class Rest2FirestoreError(Exception):
    """Base error raised by the store adapter."""


class InvalidPathShape(Rest2FirestoreError, ValueError):
    """Raised when a collection or document path has the wrong number of segments."""

    def __init__(self, message: str, *, segments: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.segments = tuple(segments)


class StoreReadError(Rest2FirestoreError):
    """Raised when reading from the backing store fails."""


class StoreUnavailable(StoreReadError):
    """Raised when the documents of a collection could not be listed."""


class NotFound(StoreReadError):
    """Raised when a target document does not exist or could not be fetched."""


class StoreWriteError(Rest2FirestoreError):
    """Raised when adding, overwriting or deleting a document fails."""


class DeserializationError(Rest2FirestoreError):
    """Raised when store documents could not be decoded into resources."""


class SerializationError(Rest2FirestoreError):
    """Raised when a resource could not be encoded into a document mapping."""
