from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence
import unittest

from fastapi.testclient import TestClient

from firestore_fakes import FakeFirestoreClient
from rest2firestore.api.app import create_app
from rest2firestore.api.errors import ForbiddenError, UnauthorizedError
from rest2firestore.api.registry import ResourceRegistry, parse_raw_document, raw_document_registry
from rest2firestore.resource import RawDocument, ResourceBase, Subcollection
from rest2firestore.storage.firestore_db import FirestoreDb


@dataclass(frozen=True)
class Member(ResourceBase):
    handle: str = ""
    display_name: str = ""
    document_id: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], collection: Sequence[str] = ()) -> "Member":
        handle = str(payload["handle"]).strip().lower()
        if not handle:
            raise ValueError("handle must not be empty")
        return cls(handle=handle, display_name=str(payload.get("display_name", "")))

    def deserialize(self, snapshot: Any) -> "Member":
        data = snapshot.to_dict() or {}
        return Member(handle=str(data["handle"]), display_name=str(data.get("display_name", "")), document_id=snapshot.id)

    def serialize(self) -> dict[str, Any]:
        return {"handle": self.handle, "display_name": self.display_name}

    def search(self, client: Any) -> Sequence[str] | None:
        for snapshot in client.collection("members").stream():
            if (snapshot.to_dict() or {}).get("handle") == self.handle:
                return ["members", snapshot.id]
        return None

    def subcollections(self) -> Sequence[Subcollection]:
        return (Subcollection(name="notes", resource=RawDocument()),)


@dataclass(frozen=True)
class Opaque(ResourceBase):
    document_id: str | None = None

    def deserialize(self, snapshot: Any) -> "Opaque":
        return Opaque(document_id=snapshot.id)

    def serialize(self) -> dict[str, Any]:
        raise ValueError("opaque documents have no wire form")


class FakeTokenVerifier:
    def verify(self, token: str) -> dict[str, str]:
        if token == "valid-token":
            return {"uid": "user-1"}
        if token == "other-token":
            return {"uid": "user-2"}
        if token == "forbidden-token":
            raise ForbiddenError("Permission denied.")
        raise UnauthorizedError("Authentication failed.")


def _auth_header(token: str = "valid-token") -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _build_client(
    store: FakeFirestoreClient | None = None,
    *,
    allowed_uids: set[str] | None = None,
) -> tuple[TestClient, FakeFirestoreClient]:
    store = store or FakeFirestoreClient()
    registry = ResourceRegistry()
    registry.register("members", Member(), Member.from_payload)
    registry.register("members/*/notes", RawDocument(), parse_raw_document)
    app = create_app(
        db=FirestoreDb(store),
        registry=registry,
        token_verifier=FakeTokenVerifier(),
        allowed_uids=allowed_uids,
    )
    return TestClient(app), store


class DocumentsApiTest(unittest.TestCase):
    def test_healthz_is_public(self) -> None:
        client, _ = _build_client()
        response = client.get("/api/v1/healthz")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {
                "status": "ok",
                "store": "ready",
                "registered_collections": ["members", "members/*/notes"],
                "fallback": False,
            },
        )

    def test_documents_require_auth(self) -> None:
        client, _ = _build_client()

        missing = client.get("/api/v1/documents/members")
        self.assertEqual(missing.status_code, 401)
        self.assertEqual(missing.json()["error"]["code"], "unauthorized")

        forbidden = client.get("/api/v1/documents/members", headers=_auth_header("forbidden-token"))
        self.assertEqual(forbidden.status_code, 403)
        self.assertEqual(forbidden.json()["error"]["code"], "forbidden")

    def test_allowed_uids(self) -> None:
        client, _ = _build_client(allowed_uids={"user-1"})

        allowed = client.get("/api/v1/documents/members", headers=_auth_header())
        self.assertEqual(allowed.status_code, 200)

        denied = client.get("/api/v1/documents/members", headers=_auth_header("other-token"))
        self.assertEqual(denied.status_code, 403)

    def test_create_list_get_and_delete(self) -> None:
        client, store = _build_client()

        created = client.post(
            "/api/v1/documents/members",
            headers=_auth_header(),
            json={"handle": "Alice", "display_name": "Alice"},
        )
        self.assertEqual(created.status_code, 201)
        body = created.json()
        self.assertEqual(body["id"], "auto-0001")
        self.assertEqual(body["data"], {"handle": "alice", "display_name": "Alice"})

        duplicate = client.post(
            "/api/v1/documents/members",
            headers=_auth_header(),
            json={"handle": "alice", "display_name": "Someone else"},
        )
        self.assertEqual(duplicate.status_code, 201)
        self.assertEqual(duplicate.json()["id"], "auto-0001")
        self.assertEqual(duplicate.json()["data"]["display_name"], "Alice")

        note = client.post(
            "/api/v1/documents/members/auto-0001/notes",
            headers=_auth_header(),
            json={"text": "hello"},
        )
        self.assertEqual(note.status_code, 201)

        listed = client.get("/api/v1/documents/members", headers=_auth_header())
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.json()["total"], 1)
        self.assertEqual(listed.json()["items"][0]["data"]["handle"], "alice")

        detail = client.get("/api/v1/documents/members/auto-0001", headers=_auth_header())
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.json()["id"], "auto-0001")

        deleted = client.delete("/api/v1/documents/members/auto-0001", headers=_auth_header())
        self.assertEqual(deleted.status_code, 204)
        self.assertEqual(store.documents(), {})

        missing = client.get("/api/v1/documents/members/auto-0001", headers=_auth_header())
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["error"]["code"], "not_found")

    def test_put_and_patch(self) -> None:
        client, store = _build_client()

        missing_patch = client.patch(
            "/api/v1/documents/members",
            headers=_auth_header(),
            json={"handle": "bob"},
        )
        self.assertEqual(missing_patch.status_code, 404)

        first = client.put(
            "/api/v1/documents/members",
            headers=_auth_header(),
            json={"handle": "bob", "display_name": "Bob"},
        )
        second = client.put(
            "/api/v1/documents/members",
            headers=_auth_header(),
            json={"handle": "bob", "display_name": "Robert"},
        )
        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(first.json()["id"], second.json()["id"])
        self.assertEqual(second.json()["data"]["display_name"], "Robert")

        patched = client.patch(
            "/api/v1/documents/members",
            headers=_auth_header(),
            json={"handle": "bob", "display_name": "Bobby"},
        )
        self.assertEqual(patched.status_code, 200)
        self.assertEqual(store.documents()["members/auto-0001"]["display_name"], "Bobby")

    def test_clear_collection(self) -> None:
        store = FakeFirestoreClient.with_documents(
            {
                "members/a": {"handle": "a"},
                "members/a/notes/n1": {"text": "x"},
                "members/b": {"handle": "b"},
            }
        )
        client, _ = _build_client(store)

        response = client.delete("/api/v1/documents/members", headers=_auth_header())

        self.assertEqual(response.status_code, 204)
        self.assertEqual(store.documents(), {})

    def test_error_mapping(self) -> None:
        store = FakeFirestoreClient.with_documents({"members/broken": {"display_name": "no handle"}})
        client, _ = _build_client(store)

        bad_path = client.post("/api/v1/documents/members/alice", headers=_auth_header(), json={"handle": "x"})
        self.assertEqual(bad_path.status_code, 400)
        self.assertEqual(bad_path.json()["error"]["code"], "bad_request")

        unregistered = client.get("/api/v1/documents/groups", headers=_auth_header())
        self.assertEqual(unregistered.status_code, 404)

        invalid_payload = client.post("/api/v1/documents/members", headers=_auth_header(), json={"display_name": "x"})
        self.assertEqual(invalid_payload.status_code, 422)
        self.assertEqual(invalid_payload.json()["error"]["code"], "validation_error")

        undecodable = client.get("/api/v1/documents/members/broken", headers=_auth_header())
        self.assertEqual(undecodable.status_code, 422)

        store.fail("stream", "members")
        unavailable = client.get("/api/v1/documents/members", headers=_auth_header())
        self.assertEqual(unavailable.status_code, 503)
        self.assertEqual(unavailable.json()["error"]["code"], "store_error")

    def test_response_encoding_failure_is_unprocessable(self) -> None:
        store = FakeFirestoreClient.with_documents({"opaque/x": {"blob": "?"}})
        registry = ResourceRegistry()
        registry.register("opaque", Opaque(), lambda payload, collection: Opaque())
        client = TestClient(create_app(db=FirestoreDb(store), registry=registry, token_verifier=FakeTokenVerifier()))

        detail = client.get("/api/v1/documents/opaque/x", headers=_auth_header())
        self.assertEqual(detail.status_code, 422)
        self.assertEqual(detail.json()["error"]["code"], "validation_error")
        self.assertIn("opaque/x:Respond", detail.json()["error"]["message"])

        listing = client.get("/api/v1/documents/opaque", headers=_auth_header())
        self.assertEqual(listing.status_code, 422)

    def test_writes_are_audited_with_uid(self) -> None:
        client, _ = _build_client()

        with self.assertLogs("rest2firestore.api.middleware", level="INFO") as logs:
            client.get("/api/v1/documents/members", headers=_auth_header())
            client.delete("/api/v1/documents/members/ghost", headers=_auth_header())
            client.get("/api/v1/documents/members")

        self.assertEqual(
            logs.output,
            [
                "INFO:rest2firestore.api.middleware:uid=user-1 DELETE /api/v1/documents/members/ghost -> 204",
                "INFO:rest2firestore.api.middleware:GET /api/v1/documents/members rejected: unauthorized",
            ],
        )

    def test_openapi_and_docs(self) -> None:
        client, _ = _build_client()
        docs = client.get("/docs")
        self.assertEqual(docs.status_code, 200)

        schema = client.get("/openapi.json")
        self.assertEqual(schema.status_code, 200)
        paths = schema.json()["paths"]
        post_responses = paths["/api/v1/documents/{path}"]["post"]["responses"]
        for status_code in ("400", "401", "403", "404", "422", "500", "503"):
            self.assertIn(status_code, post_responses)


class RawDocumentApiTest(unittest.TestCase):
    def setUp(self) -> None:
        self.store = FakeFirestoreClient()
        app = create_app(
            db=FirestoreDb(self.store),
            registry=raw_document_registry(children=["orders"]),
            token_verifier=FakeTokenVerifier(),
        )
        self.client = TestClient(app)

    def test_put_converges_and_patch_addresses_by_id(self) -> None:
        first = self.client.put("/api/v1/documents/users", headers=_auth_header(), json={"k": 1})
        second = self.client.put("/api/v1/documents/users", headers=_auth_header(), json={"k": 1})

        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json(), second.json())
        self.assertEqual(self.store.documents(), {"users/auto-0001": {"k": 1}})

        patched = self.client.patch(
            "/api/v1/documents/users",
            headers=_auth_header(),
            json={"id": "auto-0001", "k": 2},
        )
        self.assertEqual(patched.status_code, 200)
        self.assertEqual(patched.json(), {"id": "auto-0001", "data": {"k": 2}})

        replaced = self.client.put(
            "/api/v1/documents/users",
            headers=_auth_header(),
            json={"id": "auto-0001", "k": 3},
        )
        self.assertEqual(replaced.json()["id"], "auto-0001")
        self.assertEqual(self.store.documents(), {"users/auto-0001": {"k": 3}})

    def test_patch_without_match_is_not_found(self) -> None:
        by_id = self.client.patch("/api/v1/documents/users", headers=_auth_header(), json={"id": "ghost", "k": 1})
        by_content = self.client.patch("/api/v1/documents/users", headers=_auth_header(), json={"k": 1})

        self.assertEqual(by_id.status_code, 404)
        self.assertEqual(by_content.status_code, 404)
        self.assertEqual(self.store.documents(), {})

    def test_invalid_id_is_rejected(self) -> None:
        for value in ("", "a/b", 7):
            with self.subTest(value=value):
                response = self.client.put("/api/v1/documents/users", headers=_auth_header(), json={"id": value})
                self.assertEqual(response.status_code, 422)
        self.assertEqual(self.store.calls, [])

    def test_delete_cascades_through_configured_children(self) -> None:
        user = self.client.post("/api/v1/documents/users", headers=_auth_header(), json={"name": "a"}).json()
        self.client.post(f"/api/v1/documents/users/{user['id']}/orders", headers=_auth_header(), json={"item": "x"})

        deleted = self.client.delete(f"/api/v1/documents/users/{user['id']}", headers=_auth_header())

        self.assertEqual(deleted.status_code, 204)
        self.assertEqual(self.store.documents(), {})

    def test_healthz_reports_fallback_and_lazy_store(self) -> None:
        lazy = TestClient(create_app(registry=raw_document_registry(), token_verifier=FakeTokenVerifier()))

        self.assertEqual(
            lazy.get("/api/v1/healthz").json(),
            {"status": "ok", "store": "lazy", "registered_collections": [], "fallback": True},
        )


if __name__ == "__main__":
    unittest.main()
