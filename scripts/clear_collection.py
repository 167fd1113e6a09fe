#!/usr/bin/env python3
from __future__ import annotations

from dataclasses import replace
from typing import Any, Sequence
import argparse
import json
import logging
import sys

from rest2firestore.errors import InvalidPathShape, Rest2FirestoreError
from rest2firestore.resource import RawDocument
from rest2firestore.settings import configure_logging, load_settings
from rest2firestore.storage.firestore_client import create_firestore_client
from rest2firestore.storage.firestore_db import Db, FirestoreDb
from rest2firestore.storage.firestore_paths import join_path


LOGGER = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Delete a Firestore collection or document, cascading through child collections.",
    )
    parser.add_argument("path", help="Collection path (odd segments) or document path (even segments).")
    parser.add_argument(
        "--child",
        action="append",
        default=[],
        help="Child collection name cleared before each document is deleted. Repeatable.",
    )
    parser.add_argument(
        "--project-id",
        default=None,
        help="Firestore project id. If omitted, FIRESTORE_PROJECT_ID from settings is used.",
    )
    return parser.parse_args(argv)


def split_path(path: str) -> tuple[str, ...]:
    segments = tuple(path.strip("/").split("/"))
    if any(not segment for segment in segments):
        raise InvalidPathShape(f"{path}: path segments must not be empty", segments=segments)
    return segments


def run(db: Db, path: str, *, children: Sequence[str]) -> dict[str, Any]:
    segments = split_path(path)
    witness = RawDocument(children=tuple(children))
    if len(segments) % 2 == 1:
        db.clear(witness, segments)
        mode = "clear"
    else:
        db.delete(witness, segments)
        mode = "delete"
    return {"mode": mode, "path": join_path(segments), "children": list(children)}


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    settings = load_settings()
    configure_logging(settings)
    if args.project_id:
        settings = replace(settings, firestore_project_id=args.project_id.strip())

    client = create_firestore_client(settings)
    db = FirestoreDb(client, ignore_invalid_delete_path=settings.ignore_invalid_delete_path)
    try:
        payload = run(db, args.path, children=args.child)
    except Rest2FirestoreError as exc:
        LOGGER.error("clear failed: %s", exc)
        print(json.dumps({"error": str(exc)}, ensure_ascii=False), file=sys.stderr)
        return 1
    print(json.dumps(payload, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
