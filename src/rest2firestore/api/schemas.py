from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from rest2firestore.resource import Resource
from rest2firestore.storage.firestore_db import serialize_resource


class HealthzResponse(BaseModel):
    status: str = Field(default="ok")
    store: str = Field(description="`ready` once the Firestore adapter is built, `lazy` before first use.")
    registered_collections: list[str] = Field(default_factory=list)
    fallback: bool = Field(description="Whether unregistered collections are served as raw documents.")


class DocumentResponse(BaseModel):
    id: str | None = None
    data: dict[str, Any]

    @classmethod
    def from_resource(cls, resource: Resource, *, path: str = "") -> "DocumentResponse":
        document_id = getattr(resource, "document_id", None)
        document_id = str(document_id) if document_id is not None else None
        return cls(
            id=document_id,
            data=serialize_resource(resource, path or document_id or "", operation="Respond"),
        )


class DocumentListResponse(BaseModel):
    items: list[DocumentResponse]
    total: int
