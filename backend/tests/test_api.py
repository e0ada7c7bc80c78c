"""
Notekeep Backend: HTTP API Tests
==================================

What:  End-to-end request/response checks through the ASGI app.
How:   HTTPX AsyncClient over ASGITransport with an in-memory database.

What we test:
    ✅ Register / login / me status codes and error envelopes
    ✅ Protected routes require a well-formed bearer token
    ✅ Notes CRUD with multipart uploads, cross-user isolation
    ✅ Request validation failures are reported as 400
    ✅ Audit rows reach GET /logs once the sink drains, with secrets masked
"""

import pytest

from notekeep.middleware.audit import MASK


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert "X-Request-ID" in response.headers


class TestAuthEndpoints:

    @pytest.mark.asyncio
    async def test_register_returns_201_with_token_and_user(self, client):
        response = await client.post(
            "/register", json={"email": "alice@example.com", "password": "correct-horse"}
        )

        assert response.status_code == 201
        body = response.json()
        assert body["token"]
        assert body["user"]["email"] == "alice@example.com"
        assert "password" not in body["user"]
        assert "password_hash" not in body["user"]

    @pytest.mark.asyncio
    async def test_duplicate_register_is_409(self, client, register_user):
        await register_user("alice@example.com")

        response = await client.post(
            "/register", json={"email": "alice@example.com", "password": "another-pass"}
        )

        assert response.status_code == 409
        assert response.json()["error"] == "email_exists"

    @pytest.mark.asyncio
    async def test_invalid_register_body_is_400(self, client):
        response = await client.post("/register", json={"email": "not-an-email"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert "request_id" in body

    @pytest.mark.asyncio
    async def test_login(self, client, register_user):
        await register_user("alice@example.com", "correct-horse")

        response = await client.post(
            "/login", json={"email": "alice@example.com", "password": "correct-horse"}
        )

        assert response.status_code == 200
        assert response.json()["user"]["email"] == "alice@example.com"

    @pytest.mark.asyncio
    async def test_bad_login_responses_are_identical(self, client, register_user):
        await register_user("alice@example.com", "correct-horse")

        wrong_password = await client.post(
            "/login", json={"email": "alice@example.com", "password": "wrong-horse"}
        )
        unknown_email = await client.post(
            "/login", json={"email": "nobody@example.com", "password": "correct-horse"}
        )

        assert wrong_password.status_code == unknown_email.status_code == 401
        strip = lambda body: {k: v for k, v in body.items() if k != "request_id"}  # noqa: E731
        assert strip(wrong_password.json()) == strip(unknown_email.json())
        assert wrong_password.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_me(self, client, register_user):
        headers = await register_user("alice@example.com")

        response = await client.get("/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["email"] == "alice@example.com"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "headers",
        [{}, {"Authorization": "Bearer"}, {"Authorization": "Basic abc"}, {"Authorization": "Bearer bad.token"}],
    )
    async def test_protected_route_requires_valid_token(self, client, headers):
        response = await client.get("/me", headers=headers)

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"


class TestNotesEndpoints:

    @pytest.mark.asyncio
    async def test_create_list_get_update_delete(self, client, register_user, sample_image_bytes):
        headers = await register_user("alice@example.com")

        created = await client.post(
            "/notes",
            headers=headers,
            data={"title": "Receipt", "content": "lunch"},
            files={"image": ("receipt.jpg", sample_image_bytes, "image/jpeg")},
        )
        assert created.status_code == 201, created.text
        note = created.json()
        assert note["image_url"] == f"/notes/{note['id']}/image"

        listed = await client.get("/notes", headers=headers, params={"search": "RECEIPT"})
        assert listed.status_code == 200
        assert listed.json()["total"] == 1
        assert listed.headers["X-Total-Count"] == "1"

        image = await client.get(note["image_url"], headers=headers)
        assert image.status_code == 200
        assert image.content == sample_image_bytes

        updated = await client.put(
            f"/notes/{note['id']}", headers=headers, data={"title": "Receipt (paid)", "content": "lunch"}
        )
        assert updated.status_code == 200
        assert updated.json()["title"] == "Receipt (paid)"
        assert updated.json()["attachment_path"] == note["attachment_path"]

        deleted = await client.delete(f"/notes/{note['id']}", headers=headers)
        assert deleted.status_code == 200

        gone = await client.get(f"/notes/{note['id']}", headers=headers)
        assert gone.status_code == 404
        assert gone.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_other_users_note_is_404(self, client, register_user):
        alice = await register_user("alice@example.com")
        bob = await register_user("bob@example.com")
        created = await client.post("/notes", headers=alice, data={"title": "Alice only"})
        note_id = created.json()["id"]

        assert (await client.get(f"/notes/{note_id}", headers=bob)).status_code == 404
        assert (await client.delete(f"/notes/{note_id}", headers=bob)).status_code == 404
        assert (await client.get(f"/notes/{note_id}", headers=alice)).status_code == 200

        bobs_list = await client.get("/notes", headers=bob)
        assert bobs_list.json()["total"] == 0
        assert bobs_list.json()["total_pages"] == 0

    @pytest.mark.asyncio
    async def test_bad_attachment_is_400(self, client, register_user):
        headers = await register_user("alice@example.com")

        response = await client.post(
            "/notes",
            headers=headers,
            data={"title": "Doc"},
            files={"image": ("doc.pdf", b"%PDF-1.4", "application/pdf")},
        )

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "image"

    @pytest.mark.asyncio
    async def test_missing_title_is_400(self, client, register_user):
        headers = await register_user("alice@example.com")

        response = await client.post("/notes", headers=headers, data={"content": "no title"})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_note_id_is_400(self, client, register_user):
        headers = await register_user("alice@example.com")

        response = await client.get("/notes/not-a-uuid", headers=headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_pagination_params_are_normalized(self, client, register_user):
        headers = await register_user("alice@example.com")
        for i in range(3):
            await client.post("/notes", headers=headers, data={"title": f"n{i}"})

        response = await client.get(
            "/notes",
            headers=headers,
            params={"page": 0, "limit": 0, "order": "sideways", "sort_by": "'; DROP TABLE notes;--"},
        )

        assert response.status_code == 200
        body = response.json()
        assert (body["page"], body["limit"], body["total"], body["total_pages"]) == (1, 10, 3, 1)

    @pytest.mark.asyncio
    async def test_non_numeric_page_and_limit_use_defaults(self, client, register_user):
        headers = await register_user("alice@example.com")
        await client.post("/notes", headers=headers, data={"title": "only"})

        response = await client.get("/notes", headers=headers, params={"page": "abc", "limit": "xyz"})

        assert response.status_code == 200
        body = response.json()
        assert (body["page"], body["limit"], body["total"]) == (1, 10, 1)
        assert len(body["notes"]) == 1

    @pytest.mark.asyncio
    async def test_huge_page_is_empty_not_an_error(self, client, register_user):
        headers = await register_user("alice@example.com")
        await client.post("/notes", headers=headers, data={"title": "only"})

        response = await client.get(
            "/notes", headers=headers, params={"page": "1000000000000", "limit": "100000000"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["notes"] == []
        assert body["total"] == 1
        assert body["limit"] == 100

    @pytest.mark.asyncio
    async def test_search_over_http(self, client, register_user):
        headers = await register_user("alice@example.com")
        await client.post("/notes", headers=headers, data={"title": "Hello there", "content": ""})
        await client.post("/notes", headers=headers, data={"title": "Groceries", "content": "say hello"})
        await client.post("/notes", headers=headers, data={"title": "Other"})

        response = await client.get("/notes", headers=headers, params={"search": "HELLO"})

        assert response.status_code == 200
        assert {n["title"] for n in response.json()["notes"]} == {"Hello there", "Groceries"}


class TestLogsEndpoints:

    @pytest.mark.asyncio
    async def test_requests_are_audited_with_secrets_masked(self, app, client, register_user):
        headers = await register_user("alice@example.com", "correct-horse")
        await client.get("/me", headers=headers)

        sink = app.state.request_log_sink
        sink.start()
        await sink.stop(timeout=5.0)

        response = await client.get("/logs", headers=headers, params={"search": "/register"})
        assert response.status_code == 200
        logs = response.json()["logs"]
        assert len(logs) == 1
        register_log = logs[0]
        assert register_log["method"] == "POST"
        assert register_log["status_code"] == 201
        assert "correct-horse" not in register_log["request_body"]
        assert MASK in register_log["request_body"]

        me_logs = (await client.get("/logs", headers=headers, params={"search": "/me"})).json()["logs"]
        me_log = next(log for log in me_logs if log["endpoint"] == "/me")
        assert MASK in me_log["headers"]
        assert headers["Authorization"].split(" ")[1] not in me_log["headers"]

        detail = await client.get(f"/logs/{register_log['id']}", headers=headers)
        assert detail.status_code == 200
        assert detail.json()["endpoint"] == "/register"

    @pytest.mark.asyncio
    async def test_logs_require_auth(self, client):
        assert (await client.get("/logs")).status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_log_is_404(self, client, register_user):
        headers = await register_user("alice@example.com")

        response = await client.get("/logs/00000000-0000-0000-0000-000000000000", headers=headers)

        assert response.status_code == 404
