from __future__ import annotations

from typing import Callable, TypeVar

from fastapi import Request

from rest2firestore.api.registry import ResourceRegistry
from rest2firestore.settings import load_settings
from rest2firestore.storage.firestore_client import create_firestore_client
from rest2firestore.storage.firestore_db import Db, FirestoreDb


DependencyT = TypeVar("DependencyT")


def create_db() -> Db:
    settings = load_settings()
    client = create_firestore_client(settings)
    return FirestoreDb(client, ignore_invalid_delete_path=settings.ignore_invalid_delete_path)


def _resolve_dependency(
    request: Request,
    *,
    value_key: str,
    factory_key: str,
    missing_message: str,
) -> DependencyT:
    dependency = getattr(request.app.state, value_key, None)
    if dependency is not None:
        return dependency

    factory: Callable[[], DependencyT] | None = getattr(request.app.state, factory_key, None)
    if factory is None:
        raise RuntimeError(missing_message)
    dependency = factory()
    setattr(request.app.state, value_key, dependency)
    return dependency


def get_db(request: Request) -> Db:
    return _resolve_dependency(
        request,
        value_key="db",
        factory_key="db_factory",
        missing_message="db is not initialized.",
    )


def get_registry(request: Request) -> ResourceRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise RuntimeError("registry is not initialized.")
    return registry
