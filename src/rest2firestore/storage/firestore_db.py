from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence

from rest2firestore.errors import (
    DeserializationError,
    InvalidPathShape,
    NotFound,
    SerializationError,
    StoreUnavailable,
    StoreWriteError,
)
from rest2firestore.resource import Resource
from rest2firestore.storage.firestore_paths import (
    collection_ref,
    document_ref,
    join_path,
    validate_collection_path,
    validate_document_path,
)


LOGGER = logging.getLogger(__name__)

DECODE_ERRORS = (KeyError, TypeError, ValueError)


def serialize_resource(resource: Resource, path: str, *, operation: str) -> dict[str, Any]:
    try:
        return dict(resource.serialize())
    except SerializationError:
        raise
    except DECODE_ERRORS as exc:
        raise SerializationError(f"{path}:{operation} - could not serialize object: {exc}") from exc


class Db(Protocol):
    def list(self, resource: Resource, collection: Sequence[str]) -> list[Resource]:
        """List all resources under a collection path."""

    def clear(self, resource: Resource, collection: Sequence[str]) -> None:
        """Delete every document under a collection path, cascading."""

    def post(self, resource: Resource, collection: Sequence[str]) -> Resource:
        """Create a resource unless its canonical instance already exists."""

    def put(self, resource: Resource, collection: Sequence[str]) -> Resource:
        """Create or update a resource."""

    def patch(self, resource: Resource) -> Resource:
        """Overwrite the canonical instance of an existing resource."""

    def get(self, resource: Resource, document: Sequence[str]) -> Resource:
        """Fetch a single resource by document path."""

    def delete(self, resource: Resource, document: Sequence[str]) -> None:
        """Delete a document and all of its declared child collections."""


class FirestoreDb:
    """Path-addressed REST operations over a Firestore client.

    The client is shared by all calls and never mutated here. Every operation
    runs sequentially and stops at the first failure; nothing is retried or
    rolled back.
    """

    def __init__(self, client: Any, *, ignore_invalid_delete_path: bool = False) -> None:
        self._client = client
        self._ignore_invalid_delete_path = ignore_invalid_delete_path

    @property
    def client(self) -> Any:
        return self._client

    def list(self, resource: Resource, collection: Sequence[str]) -> list[Resource]:
        collection = tuple(collection)
        collection_path = validate_collection_path(collection)
        LOGGER.debug("%s:List", collection_path)
        snapshots = self._list_snapshots(collection, collection_path, operation="List")
        if not snapshots:
            return []
        try:
            resources = resource.deserialize_list(snapshots)
        except DeserializationError:
            raise
        except DECODE_ERRORS as exc:
            raise DeserializationError(
                f"{collection_path}:List - could not deserialize list: {exc}"
            ) from exc
        try:
            return list(resource.postprocess_list(resources))
        except DeserializationError:
            raise
        except DECODE_ERRORS as exc:
            raise DeserializationError(
                f"{collection_path}:List - could not postprocess list: {exc}"
            ) from exc

    def clear(self, resource: Resource, collection: Sequence[str]) -> None:
        collection = tuple(collection)
        collection_path = validate_collection_path(collection)
        snapshots = self._list_snapshots(collection, collection_path, operation="Clear")
        LOGGER.info("%s:Clear - deleting %s documents", collection_path, len(snapshots))
        for snapshot in snapshots:
            document = (*collection, snapshot.id)
            found = self.get(resource, document)
            self.delete(found, document)

    def post(self, resource: Resource, collection: Sequence[str]) -> Resource:
        collection = tuple(collection)
        existing = resource.search(self._client)
        if existing:
            LOGGER.debug("%s:Post - existing document found", join_path(existing))
            return self.get(resource, existing)

        collection_path = validate_collection_path(collection)
        data = serialize_resource(resource, collection_path, operation="Post")
        try:
            _, doc_ref = collection_ref(self._client, collection).add(data)
        except Exception as exc:
            raise StoreWriteError(
                f"{collection_path}:Post - could not create object: {exc}"
            ) from exc
        LOGGER.debug("%s:Post - created %s", collection_path, doc_ref.id)
        return self.get(resource, (*collection, doc_ref.id))

    def patch(self, resource: Resource) -> Resource:
        existing = resource.search(self._client)
        if not existing:
            raise NotFound(f"Patch - could not find object: {resource!r}")
        existing = tuple(existing)
        collection_path, document_id = validate_document_path(existing)
        document_path = join_path(existing)

        ref = document_ref(self._client, existing)
        try:
            snapshot = ref.get()
        except Exception as exc:
            raise NotFound(f"{document_path}:Patch - no object found: {exc}") from exc
        if not snapshot.exists:
            raise NotFound(f"{document_path}:Patch - no object found")

        data = serialize_resource(resource, document_path, operation="Patch")
        try:
            ref.set(data, merge=False)
        except Exception as exc:
            raise StoreWriteError(
                f"{document_path}:Patch - could not update object: {exc}"
            ) from exc
        LOGGER.debug("%s/%s:Patch - updated", collection_path, document_id)
        return self.get(resource, existing)

    def put(self, resource: Resource, collection: Sequence[str]) -> Resource:
        existing = resource.search(self._client)
        if not existing:
            return self.post(resource, collection)
        return self.patch(resource)

    def get(self, resource: Resource, document: Sequence[str]) -> Resource:
        document = tuple(document)
        collection_path, document_id = validate_document_path(document)
        document_path = f"{collection_path}/{document_id}"
        try:
            snapshot = document_ref(self._client, document).get()
        except Exception as exc:
            raise NotFound(f"{document_path}:Get - could not get object: {exc}") from exc
        if not snapshot.exists:
            raise NotFound(f"{document_path}:Get - could not get object: not found")
        try:
            return resource.deserialize(snapshot)
        except DeserializationError:
            raise
        except DECODE_ERRORS as exc:
            raise DeserializationError(
                f"{document_path}:Get - could not deserialize object: {exc}"
            ) from exc

    def delete(self, resource: Resource, document: Sequence[str]) -> None:
        document = tuple(document)
        try:
            validate_document_path(document)
        except InvalidPathShape:
            if not self._ignore_invalid_delete_path:
                raise
            LOGGER.warning("%s:Delete - ignored invalid document path", join_path(document))
            return

        document_path = join_path(document)
        for subcollection in resource.subcollections():
            LOGGER.debug("%s:Delete - clearing %s", document_path, subcollection.name)
            self.clear(subcollection.resource, (*document, subcollection.name))

        try:
            document_ref(self._client, document).delete()
        except Exception as exc:
            raise StoreWriteError(
                f"{document_path}:Delete - could not delete object: {exc}"
            ) from exc
        LOGGER.info("%s:Delete - deleted", document_path)

    def _list_snapshots(
        self,
        collection: tuple[str, ...],
        collection_path: str,
        *,
        operation: str,
    ) -> list[Any]:
        try:
            return list(collection_ref(self._client, collection).stream())
        except Exception as exc:
            raise StoreUnavailable(
                f"{collection_path}:{operation} - could not list objects: {exc}"
            ) from exc


