from __future__ import annotations

from typing import Any

from rest2firestore.settings import AppSettings


def create_firestore_client(settings: AppSettings) -> Any:
    try:
        from google.cloud import firestore
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            "google-cloud-firestore is not installed. Install with: pip install -e '.[gcp]'"
        ) from exc

    return firestore.Client(
        project=settings.firestore_project_id or None,
        database=settings.firestore_database,
    )
