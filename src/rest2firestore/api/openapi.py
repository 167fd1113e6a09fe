from __future__ import annotations

from typing import Any

from rest2firestore.api.errors import ErrorResponse

ERROR_RESPONSES: dict[int, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Malformed collection or document path"},
    401: {"model": ErrorResponse, "description": "Unauthenticated"},
    403: {"model": ErrorResponse, "description": "Forbidden"},
    404: {"model": ErrorResponse, "description": "Document or resource type not found"},
    422: {"model": ErrorResponse, "description": "Payload or stored document could not be decoded"},
    500: {"model": ErrorResponse, "description": "Unexpected error"},
    503: {"model": ErrorResponse, "description": "Backing store read or write failed"},
}


def error_responses(*codes: int) -> dict[int, dict[str, Any]]:
    responses: dict[int, dict[str, Any]] = {}
    for code in codes:
        if code in ERROR_RESPONSES:
            responses[code] = ERROR_RESPONSES[code]
    return responses
