from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging

from fastapi import FastAPI, Request
from starlette.responses import Response

from rest2firestore.api.auth import authenticate_request, requires_auth
from rest2firestore.api.errors import APIError, build_error_response

LOGGER = logging.getLogger(__name__)

WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def install_auth_middleware(app: FastAPI) -> None:
    """Authenticate API calls and keep an audit log of document writes.

    Every write is logged at INFO with the caller's uid and the response
    status, since DELETE cascades and cannot be undone.
    """

    @app.middleware("http")
    async def _authenticate_and_audit(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if not requires_auth(request):
            return await call_next(request)

        try:
            auth = authenticate_request(request)
        except APIError as exc:
            LOGGER.info("%s %s rejected: %s", request.method, request.url.path, exc.code)
            return build_error_response(
                status_code=exc.status_code,
                code=exc.code,
                message=exc.message,
                details=exc.details,
            )

        request.state.auth = auth
        response = await call_next(request)
        if request.method in WRITE_METHODS:
            LOGGER.info(
                "uid=%s %s %s -> %s",
                auth.uid,
                request.method,
                request.url.path,
                response.status_code,
            )
        return response
