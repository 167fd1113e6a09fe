from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from fastapi import Request

from rest2firestore.api.dependencies import _resolve_dependency
from rest2firestore.api.errors import ForbiddenError, InternalServerError, UnauthorizedError

API_V1_PREFIX = "/api/v1/"
PUBLIC_API_PATHS = frozenset({"/api/v1/healthz"})


class TokenVerifier(Protocol):
    def verify(self, token: str) -> Mapping[str, Any]:
        """Return the decoded claims of a valid ID token."""


class FirebaseAdminTokenVerifier:
    """Verifies Firebase ID tokens, rejecting revoked tokens and disabled users.

    The default Firebase app is initialized on first use.
    """

    def __init__(self) -> None:
        self._auth: Any = None

    def _load_auth(self) -> Any:
        if self._auth is not None:
            return self._auth
        try:
            import firebase_admin
            from firebase_admin import auth
        except ModuleNotFoundError as exc:
            raise InternalServerError(
                "firebase-admin is not installed. Install with: pip install -e '.[gcp]'"
            ) from exc

        try:
            firebase_admin.get_app()
        except ValueError:
            firebase_admin.initialize_app()
        self._auth = auth
        return auth

    def verify(self, token: str) -> Mapping[str, Any]:
        auth = self._load_auth()
        try:
            return dict(auth.verify_id_token(token, check_revoked=True))
        # RevokedIdTokenError subclasses InvalidIdTokenError.
        except (auth.RevokedIdTokenError, auth.UserDisabledError) as exc:
            raise ForbiddenError("This account may not use the document API.") from exc
        except auth.CertificateFetchError as exc:
            raise InternalServerError("Could not fetch ID token signing certificates.") from exc
        except (auth.InvalidIdTokenError, ValueError) as exc:
            raise UnauthorizedError("ID token verification failed.") from exc


@dataclass(frozen=True)
class AuthContext:
    uid: str
    claims: Mapping[str, Any]


def parse_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise UnauthorizedError("Authorization header is required.")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthorizedError("Authorization header must be a Bearer token.")
    return token.strip()


def get_token_verifier(request: Request) -> TokenVerifier:
    return _resolve_dependency(
        request,
        value_key="token_verifier",
        factory_key="token_verifier_factory",
        missing_message="token_verifier is not initialized.",
    )


def requires_auth(request: Request) -> bool:
    """Everything under /api/v1 except public paths and CORS preflight."""

    if request.method == "OPTIONS":
        return False
    path = request.url.path
    return path.startswith(API_V1_PREFIX) and path not in PUBLIC_API_PATHS


def authenticate_request(request: Request) -> AuthContext:
    token = parse_bearer_token(request.headers.get("Authorization"))
    claims = get_token_verifier(request).verify(token)
    uid = str(claims.get("uid", "")).strip()
    if not uid:
        raise UnauthorizedError("ID token does not contain uid.")

    allowed_uids = getattr(request.app.state, "allowed_uids", None)
    if allowed_uids is not None and uid not in allowed_uids:
        raise ForbiddenError("This account may not use the document API.")
    return AuthContext(uid=uid, claims=claims)
