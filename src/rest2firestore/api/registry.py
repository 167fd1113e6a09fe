from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

from rest2firestore.resource import RawDocument, Resource
from rest2firestore.storage.firestore_paths import join_path, validate_collection_path


WILDCARD = "*"

# Called with the request payload and the target collection segments.
PayloadParser = Callable[[Mapping[str, Any], tuple[str, ...]], Resource]

DOCUMENT_ID_KEY = "id"


@dataclass(frozen=True)
class ResourceBinding:
    witness: Resource
    parse: PayloadParser


@dataclass(frozen=True)
class ResourceRoute:
    """Binds a collection path pattern to a resource type.

    Document positions of the pattern may be ``*`` to match any document id.
    """

    pattern: tuple[str, ...]
    binding: ResourceBinding

    def __post_init__(self) -> None:
        validate_collection_path(self.pattern)
        for index, segment in enumerate(self.pattern):
            if segment == WILDCARD and index % 2 == 0:
                raise ValueError(f"Wildcard is only allowed at document positions: {join_path(self.pattern)}")

    def matches(self, collection: Sequence[str]) -> bool:
        if len(collection) != len(self.pattern):
            return False
        return all(
            expected == WILDCARD or expected == actual
            for expected, actual in zip(self.pattern, collection)
        )


@dataclass
class ResourceRegistry:
    routes: list[ResourceRoute] = field(default_factory=list)
    fallback: ResourceBinding | None = None

    def register(
        self,
        pattern: str | Sequence[str],
        witness: Resource,
        parse: PayloadParser,
    ) -> ResourceRoute:
        segments = tuple(pattern.strip("/").split("/")) if isinstance(pattern, str) else tuple(pattern)
        route = ResourceRoute(pattern=segments, binding=ResourceBinding(witness=witness, parse=parse))
        self.routes.append(route)
        return route

    def resolve(self, collection: Sequence[str]) -> ResourceBinding | None:
        for route in self.routes:
            if route.matches(collection):
                return route.binding
        return self.fallback


def parse_raw_document(payload: Mapping[str, Any], collection: Sequence[str] = ()) -> RawDocument:
    """Build a raw document addressed within ``collection``.

    An ``id`` key, if present, names the target document and is not stored.
    """

    data = dict(payload)
    document_id = data.pop(DOCUMENT_ID_KEY, None)
    if document_id is not None:
        if not isinstance(document_id, str) or not document_id.strip() or "/" in document_id:
            raise ValueError(f"{DOCUMENT_ID_KEY} must be a non-empty string without '/': {document_id!r}")
    return RawDocument(data=data, document_id=document_id, collection=tuple(collection))


def raw_document_registry(children: Sequence[str] = ()) -> ResourceRegistry:
    """Registry serving every collection as schema-less documents."""

    witness = RawDocument(children=tuple(children))
    return ResourceRegistry(fallback=ResourceBinding(witness=witness, parse=parse_raw_document))
