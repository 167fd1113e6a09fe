from __future__ import annotations

from typing import Any, Mapping, Sequence, Union

from fastapi import APIRouter, Body, Depends, Response, status

from rest2firestore.api.dependencies import get_db, get_registry
from rest2firestore.api.errors import BadRequestError, NotFoundError, UnprocessableEntityError
from rest2firestore.api.openapi import error_responses
from rest2firestore.api.registry import ResourceBinding, ResourceRegistry
from rest2firestore.api.schemas import DocumentListResponse, DocumentResponse
from rest2firestore.resource import Resource
from rest2firestore.storage.firestore_db import Db
from rest2firestore.storage.firestore_paths import join_path, validate_collection_path

router = APIRouter(
    prefix="/documents",
    tags=["documents"],
)


def _split_path(path: str) -> tuple[str, ...]:
    segments = tuple(path.strip("/").split("/"))
    if any(not segment for segment in segments):
        raise BadRequestError(f"{path}: path segments must not be empty.")
    return segments


def _is_collection_path(segments: Sequence[str]) -> bool:
    return len(segments) % 2 == 1


def _resolve_binding(registry: ResourceRegistry, collection: Sequence[str]) -> ResourceBinding:
    binding = registry.resolve(collection)
    if binding is None:
        raise NotFoundError(f"{join_path(collection)}: no resource type is registered for this collection.")
    return binding


def _parse_payload(binding: ResourceBinding, payload: Mapping[str, Any], collection: Sequence[str]) -> Resource:
    try:
        return binding.parse(payload, tuple(collection))
    except (KeyError, TypeError, ValueError) as exc:
        raise UnprocessableEntityError(f"Invalid payload: {exc}") from exc


@router.get(
    "/{path:path}",
    response_model=Union[DocumentListResponse, DocumentResponse],
    responses=error_responses(400, 401, 403, 404, 422, 500, 503),
)
def read_path(
    path: str,
    db: Db = Depends(get_db),
    registry: ResourceRegistry = Depends(get_registry),
) -> DocumentListResponse | DocumentResponse:
    segments = _split_path(path)
    if _is_collection_path(segments):
        binding = _resolve_binding(registry, segments)
        resources = db.list(binding.witness, segments)
        return DocumentListResponse(
            items=[DocumentResponse.from_resource(resource, path=join_path(segments)) for resource in resources],
            total=len(resources),
        )

    binding = _resolve_binding(registry, segments[:-1])
    return DocumentResponse.from_resource(db.get(binding.witness, segments), path=join_path(segments))


@router.post(
    "/{path:path}",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(400, 401, 403, 404, 422, 500, 503),
)
def create_document(
    path: str,
    payload: dict[str, Any] = Body(...),
    db: Db = Depends(get_db),
    registry: ResourceRegistry = Depends(get_registry),
) -> DocumentResponse:
    segments = _split_path(path)
    validate_collection_path(segments)
    resource = _parse_payload(_resolve_binding(registry, segments), payload, segments)
    return DocumentResponse.from_resource(db.post(resource, segments), path=join_path(segments))


@router.put(
    "/{path:path}",
    response_model=DocumentResponse,
    responses=error_responses(400, 401, 403, 404, 422, 500, 503),
)
def upsert_document(
    path: str,
    payload: dict[str, Any] = Body(...),
    db: Db = Depends(get_db),
    registry: ResourceRegistry = Depends(get_registry),
) -> DocumentResponse:
    segments = _split_path(path)
    validate_collection_path(segments)
    resource = _parse_payload(_resolve_binding(registry, segments), payload, segments)
    return DocumentResponse.from_resource(db.put(resource, segments), path=join_path(segments))


@router.patch(
    "/{path:path}",
    response_model=DocumentResponse,
    responses=error_responses(400, 401, 403, 404, 422, 500, 503),
)
def update_document(
    path: str,
    payload: dict[str, Any] = Body(...),
    db: Db = Depends(get_db),
    registry: ResourceRegistry = Depends(get_registry),
) -> DocumentResponse:
    segments = _split_path(path)
    validate_collection_path(segments)
    resource = _parse_payload(_resolve_binding(registry, segments), payload, segments)
    return DocumentResponse.from_resource(db.patch(resource), path=join_path(segments))


@router.delete(
    "/{path:path}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=error_responses(400, 401, 403, 404, 500, 503),
)
def delete_path(
    path: str,
    db: Db = Depends(get_db),
    registry: ResourceRegistry = Depends(get_registry),
) -> Response:
    segments = _split_path(path)
    if _is_collection_path(segments):
        db.clear(_resolve_binding(registry, segments).witness, segments)
    else:
        db.delete(_resolve_binding(registry, segments[:-1]).witness, segments)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
