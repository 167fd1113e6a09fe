from __future__ import annotations

from typing import Any, Sequence

from rest2firestore.errors import InvalidPathShape


PATH_SEPARATOR = "/"


def join_path(segments: Sequence[str]) -> str:
    return PATH_SEPARATOR.join(segments)


def validate_collection_path(segments: Sequence[str]) -> str:
    """Return the joined collection path.

    Segments alternate collection and document names, so a collection path
    always has an odd, non-zero number of segments.
    """

    collection_path = join_path(segments)
    if len(segments) == 0 or len(segments) % 2 != 1:
        raise InvalidPathShape(
            f"{collection_path}: collection path levels should be odd.",
            segments=segments,
        )
    return collection_path


def validate_document_path(segments: Sequence[str]) -> tuple[str, str]:
    """Return ``(parent_collection_path, document_id)`` for a document path."""

    if len(segments) <= 1:
        raise InvalidPathShape(
            f"{join_path(segments)}: document path levels should be greater than 1.",
            segments=segments,
        )
    collection_path = join_path(segments[:-1])
    if len(segments) % 2 != 0:
        raise InvalidPathShape(
            f"{collection_path}: collection path levels should be odd.",
            segments=segments,
        )
    return collection_path, segments[-1]


def collection_ref(client: Any, segments: Sequence[str]) -> Any:
    validate_collection_path(segments)
    ref: Any = client.collection(segments[0])
    for index in range(1, len(segments), 2):
        ref = ref.document(segments[index]).collection(segments[index + 1])
    return ref


def document_ref(client: Any, segments: Sequence[str]) -> Any:
    validate_document_path(segments)
    return collection_ref(client, segments[:-1]).document(segments[-1])
