#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging

import uvicorn

from rest2firestore.api.app import create_app
from rest2firestore.api.registry import raw_document_registry
from rest2firestore.settings import configure_logging, load_settings
from rest2firestore.storage.firestore_client import create_firestore_client
from rest2firestore.storage.firestore_db import FirestoreDb


LOGGER = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve Firestore collections through the REST API.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8100)
    parser.add_argument(
        "--child",
        action="append",
        default=[],
        help="Child collection name cleared before a document is deleted. Repeatable.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    settings = load_settings()
    configure_logging(settings)

    client = create_firestore_client(settings)
    db = FirestoreDb(client, ignore_invalid_delete_path=settings.ignore_invalid_delete_path)
    app = create_app(
        db=db,
        registry=raw_document_registry(children=args.child),
        allowed_uids=settings.api_allowed_uids,
    )
    LOGGER.info(
        "API start: project=%s database=%s children=%s",
        settings.firestore_project_id or "(default)",
        settings.firestore_database,
        ",".join(args.child) or "-",
    )
    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
