from fastapi import APIRouter, Depends, Request

from rest2firestore.api.dependencies import get_registry
from rest2firestore.api.openapi import error_responses
from rest2firestore.api.registry import ResourceRegistry
from rest2firestore.api.schemas import HealthzResponse
from rest2firestore.storage.firestore_paths import join_path

router = APIRouter(tags=["health"])


@router.get("/healthz", response_model=HealthzResponse, responses=error_responses(500))
def healthz(request: Request, registry: ResourceRegistry = Depends(get_registry)) -> HealthzResponse:
    # Reads app.state directly so a health check never builds the Firestore client.
    store = "ready" if getattr(request.app.state, "db", None) is not None else "lazy"
    return HealthzResponse(
        status="ok",
        store=store,
        registered_collections=[join_path(route.pattern) for route in registry.routes],
        fallback=registry.fallback is not None,
    )
