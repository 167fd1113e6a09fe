from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence

from rest2firestore.storage.firestore_paths import collection_ref, document_ref


@dataclass(frozen=True)
class Subcollection:
    """Child collection declared by a resource.

    ``resource`` is a representative instance used only as a type witness for
    operations on the subcollection. It is never persisted.
    """

    name: str
    resource: Resource


class Resource(Protocol):
    def deserialize_list(self, snapshots: Sequence[Any]) -> list[Resource]:
        """Decode a batch of document snapshots."""

    def serialize_list(self) -> list[dict[str, Any]]:
        """Encode this resource as a batch of document mappings."""

    def postprocess_list(self, resources: list[Resource]) -> list[Resource]:
        """Post-process a decoded batch, e.g. to correlate items."""

    def deserialize(self, snapshot: Any) -> Resource:
        """Decode a single document snapshot."""

    def serialize(self) -> dict[str, Any]:
        """Encode this resource as a document mapping."""

    def search(self, client: Any) -> Sequence[str] | None:
        """Return the document path of the canonical stored instance, if any."""

    def subcollections(self) -> Sequence[Subcollection]:
        """Return declared child collections in deletion order."""


class ResourceBase:
    """Resource with batch capabilities derived from the single-item ones.

    Subclasses implement ``deserialize`` and ``serialize``. Search finds no
    match and no child collections are declared unless overridden.
    """

    def deserialize_list(self, snapshots: Sequence[Any]) -> list[Resource]:
        return [self.deserialize(snapshot) for snapshot in snapshots]

    def serialize_list(self) -> list[dict[str, Any]]:
        return [self.serialize()]

    def postprocess_list(self, resources: list[Resource]) -> list[Resource]:
        return resources

    def deserialize(self, snapshot: Any) -> Resource:
        raise NotImplementedError

    def serialize(self) -> dict[str, Any]:
        raise NotImplementedError

    def search(self, client: Any) -> Sequence[str] | None:
        return None

    def subcollections(self) -> Sequence[Subcollection]:
        return ()


@dataclass(frozen=True)
class RawDocument(ResourceBase):
    """Schema-less resource carrying a document's raw mapping.

    Child collection names are given per instance so a witness can describe
    any tree; each child is itself a childless ``RawDocument``.

    Search needs ``collection``. With a ``document_id`` it matches that
    document if it exists; without one it matches the first document whose
    stored mapping equals ``data``, so repeated writes of the same content
    converge on one document.
    """

    data: Mapping[str, Any] = field(default_factory=dict)
    document_id: str | None = None
    children: tuple[str, ...] = ()
    collection: tuple[str, ...] = ()

    def deserialize(self, snapshot: Any) -> RawDocument:
        data = snapshot.to_dict()
        if data is not None and not isinstance(data, Mapping):
            raise TypeError(f"Document data must be a mapping: {type(data).__name__}")
        return RawDocument(
            data=dict(data or {}),
            document_id=snapshot.id,
            children=self.children,
            collection=self.collection,
        )

    def serialize(self) -> dict[str, Any]:
        return dict(self.data)

    def search(self, client: Any) -> Sequence[str] | None:
        if not self.collection:
            return None
        if self.document_id is not None:
            document = (*self.collection, self.document_id)
            return document if document_ref(client, document).get().exists else None

        expected = dict(self.data)
        for snapshot in collection_ref(client, self.collection).stream():
            if snapshot.to_dict() == expected:
                return (*self.collection, snapshot.id)
        return None

    def subcollections(self) -> Sequence[Subcollection]:
        return tuple(Subcollection(name=name, resource=RawDocument()) for name in self.children)
