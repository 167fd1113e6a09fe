from __future__ import annotations

from typing import Iterable

from fastapi import FastAPI

from rest2firestore.api.auth import FirebaseAdminTokenVerifier, TokenVerifier
from rest2firestore.api.dependencies import create_db
from rest2firestore.api.errors import install_exception_handlers
from rest2firestore.api.middleware import install_auth_middleware
from rest2firestore.api.registry import ResourceRegistry, raw_document_registry
from rest2firestore.api.routes import api_router
from rest2firestore.storage.firestore_db import Db


def create_app(
    *,
    db: Db | None = None,
    registry: ResourceRegistry | None = None,
    token_verifier: TokenVerifier | None = None,
    allowed_uids: Iterable[str] | None = None,
) -> FastAPI:
    app = FastAPI(
        title="rest2firestore Web API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    install_exception_handlers(app)

    app.state.db = db
    app.state.db_factory = create_db
    app.state.registry = registry if registry is not None else raw_document_registry()
    app.state.allowed_uids = frozenset(allowed_uids) if allowed_uids is not None else None

    app.state.token_verifier = token_verifier
    app.state.token_verifier_factory = _default_token_verifier_factory

    install_auth_middleware(app)
    app.include_router(api_router, prefix="/api/v1")
    return app


def _default_token_verifier_factory() -> TokenVerifier:
    return FirebaseAdminTokenVerifier()


app = create_app()
