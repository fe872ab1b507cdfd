"""
Tests for the HTTP API

Runs the real application against the in-memory test database.
"""

import uuid

import pytest
from httpx import ASGITransport, AsyncClient

from datamanager.auth import create_access_token
from datamanager.config import settings
from datamanager.database import get_db
from datamanager.models.log import LOG_STATUS_FAILED
from main import app
from utils.mock_utils import create_test_data_set, create_test_log, create_test_translation

API = "/api/v1"


def auth_headers(identity: str, roles: list[str] | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(identity, roles=roles)}"}


@pytest.fixture
async def client(override_get_db):
    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def root_headers():
    return auth_headers("admin", roles=[settings.root_role])


class TestHealth:
    async def test_root_and_health(self, client):
        assert (await client.get("/")).json()["name"] == settings.app_name
        assert (await client.get("/health")).json() == {"status": "ok"}


class TestAuthentication:
    async def test_invalid_token(self, client):
        response = await client.get(f"{API}/data-sets", headers={"Authorization": "Bearer nonsense"})

        assert response.status_code == 401
        assert response.json()["error"]["error_code"] == "AUTH_INVALID_TOKEN"

    async def test_anonymous_sees_public_only(self, client, test_db):
        await create_test_data_set(test_db, "public")
        await create_test_data_set(test_db, "private", allowed_identity_ids=["bob"])

        response = await client.get(f"{API}/data-sets")

        assert response.status_code == 200
        assert [item["name"] for item in response.json()["items"]] == ["public"]


class TestDataSetRoutes:
    async def test_create_and_get(self, client, root_headers):
        response = await client.post(
            f"{API}/data-sets",
            json={"name": "Mobile App", "available_cultures": ["en-US"], "webhook_urls": ["bad url"]},
            headers=root_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "mobile-app"
        assert body["webhook_urls"] == []
        assert body["created_by"] == "admin"

        fetched = await client.get(f"{API}/data-sets/{body['id']}", headers=root_headers)
        assert fetched.status_code == 200
        assert fetched.json()["available_cultures"] == ["en-US"]

    async def test_duplicate_name_is_conflict(self, client, root_headers, test_db):
        await create_test_data_set(test_db, "mobile-app")

        response = await client.post(f"{API}/data-sets", json={"name": "Mobile App"}, headers=root_headers)

        assert response.status_code == 409

    async def test_empty_name_is_rejected(self, client, root_headers):
        response = await client.post(f"{API}/data-sets", json={"name": "***"}, headers=root_headers)

        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "name"

    async def test_hidden_data_set_is_not_found(self, client, test_db):
        hidden = await create_test_data_set(test_db, "hidden", allowed_identity_ids=["bob"])

        as_alice = await client.get(f"{API}/data-sets/{hidden.id}", headers=auth_headers("alice"))
        as_bob = await client.get(f"{API}/data-sets/{hidden.id}", headers=auth_headers("bob"))

        assert as_alice.status_code == 404
        assert as_bob.status_code == 200

    async def test_list_with_search_and_paging(self, client, root_headers, test_db):
        for name in ("alpha", "beta", "gamma", "alphabet"):
            await create_test_data_set(test_db, name)

        response = await client.get(
            f"{API}/data-sets", params={"search": "ALPHA", "take": 1}, headers=root_headers
        )

        body = response.json()
        assert body["total_count"] == 2
        assert [item["name"] for item in body["items"]] == ["alpha"]

    async def test_accessible(self, client, test_db):
        public = await create_test_data_set(test_db, "public")
        await create_test_data_set(test_db, "private", allowed_identity_ids=["bob"])

        response = await client.get(f"{API}/data-sets/accessible", headers=auth_headers("alice"))

        assert response.json() == {"all_accessible": False, "ids": [str(public.id)]}

    async def test_delete(self, client, root_headers, test_db):
        data_set = await create_test_data_set(test_db, "doomed")

        response = await client.delete(f"{API}/data-sets/{data_set.id}", headers=root_headers)
        again = await client.delete(f"{API}/data-sets/{data_set.id}", headers=root_headers)

        assert response.status_code == 204
        assert again.status_code == 404

    async def test_hierarchy(self, client, root_headers, test_db):
        a = await create_test_data_set(test_db, "a")
        b = await create_test_data_set(test_db, "b")
        shared = await create_test_data_set(test_db, "shared", includes=[a, b])
        final = await create_test_data_set(test_db, "final", includes=[shared])

        response = await client.get(f"{API}/data-sets/{final.id}/hierarchy", headers=root_headers)

        assert response.status_code == 200
        assert [d["name"] for d in response.json()["data_sets"]] == ["final", "shared", "a", "b"]

    async def test_hierarchy_of_unknown_root(self, client, root_headers):
        response = await client.get(f"{API}/data-sets/{uuid.uuid4()}/hierarchy", headers=root_headers)

        assert response.status_code == 404

    async def test_flattened_and_materialize(self, client, root_headers, test_db):
        base = await create_test_data_set(test_db, "base")
        app_set = await create_test_data_set(test_db, "app", includes=[base])
        await create_test_translation(test_db, base, "Common", "Save", "en-US", "Save")
        await create_test_translation(test_db, app_set, "Common", "Open", "en-US", "Open")

        flattened = await client.get(f"{API}/data-sets/{app_set.id}/translations/flattened", headers=root_headers)
        assert [t["translation_name"] for t in flattened.json()] == ["Open", "Save"]

        first = await client.post(f"{API}/data-sets/{app_set.id}/materialize", headers=root_headers)
        second = await client.post(f"{API}/data-sets/{app_set.id}/materialize", headers=root_headers)

        assert first.json() == {"data_set_id": str(app_set.id), "affected_count": 1}
        assert second.json()["affected_count"] == 0


class TestTranslationRoutes:
    async def test_save_single_and_query(self, client, root_headers, test_db):
        data_set = await create_test_data_set(test_db, "app")

        saved = await client.patch(
            f"{API}/translations/single",
            json={
                "resource_name": "Common",
                "translation_name": "Save",
                "culture_name": "en-US",
                "data_set_id": str(data_set.id),
                "content": "Save",
            },
            headers=root_headers,
        )
        assert saved.status_code == 200
        translation_id = saved.json()["id"]
        assert list(saved.json()) == ["id"]

        edited = await client.patch(
            f"{API}/translations/single",
            json={"id": translation_id, "content": "Save all"},
            headers=root_headers,
        )
        assert edited.json()["id"] == translation_id

        query = await client.post(
            f"{API}/translations/query",
            json={
                "filtering": {
                    "query_filters": [
                        {"type": "data_set_id", "value": str(data_set.id)},
                        {"type": "version_status", "include_current_versions": True, "include_old_versions": True},
                    ]
                },
                "ordering": {"order_by": "is_old_version"},
            },
            headers=root_headers,
        )
        body = query.json()
        assert body["total_count"] == 2
        assert [(t["content"], t["is_old_version"]) for t in body["items"]] == [("Save all", False), ("Save", True)]

    async def test_save_single_response_is_documented(self, client):
        schema = (await client.get("/openapi.json")).json()

        response = schema["paths"][f"{API}/translations/single"]["patch"]["responses"]["200"]
        assert response["content"]["application/json"]["schema"]["$ref"].endswith("/SaveSingleTranslationResult")
        assert set(schema["components"]["schemas"]["SaveSingleTranslationResult"]["properties"]) == {"id"}

    async def test_save_single_null_content_is_rejected(self, client, root_headers, test_db):
        data_set = await create_test_data_set(test_db, "app")
        translation = await create_test_translation(test_db, data_set, "Common", "Save", "en-US", "Save")

        response = await client.patch(
            f"{API}/translations/single",
            json={"id": str(translation.id), "content": None},
            headers=root_headers,
        )

        assert response.status_code == 400

    async def test_save_multi_culture_and_related(self, client, root_headers, test_db):
        data_set = await create_test_data_set(test_db, "app")

        saved = await client.post(
            f"{API}/translations",
            json={
                "resource_name": "Common",
                "translation_name": "Save",
                "data_set_id": str(data_set.id),
                "translations": {"en-US": "Save", "de-DE": "Speichern"},
            },
            headers=root_headers,
        )
        assert saved.status_code == 200
        english_id = saved.json()["translation_ids"]["en-US"]

        related = await client.get(f"{API}/translations/{english_id}/related", headers=root_headers)

        body = related.json()
        assert body["translation"]["id"] == english_id
        assert [t["culture_name"] for t in body["related"]] == ["de-DE", "en-US"]

    async def test_get_and_delete(self, client, root_headers, test_db):
        data_set = await create_test_data_set(test_db, "app")
        translation = await create_test_translation(test_db, data_set, "Common", "Save", "en-US", "Save")

        fetched = await client.get(f"{API}/translations/{translation.id}", headers=root_headers)
        assert fetched.json()["translation_key"] == "Common_Save"

        deleted = await client.delete(f"{API}/translations/{translation.id}", headers=root_headers)
        missing = await client.get(f"{API}/translations/{translation.id}", headers=root_headers)

        assert deleted.status_code == 204
        assert missing.status_code == 404

    async def test_unknown_filter_type_is_rejected(self, client, root_headers):
        response = await client.post(
            f"{API}/translations/query",
            json={"filtering": {"query_filters": [{"type": "bogus"}]}},
            headers=root_headers,
        )

        assert response.status_code == 422

    async def test_index_and_remove_duplicates(self, client, root_headers, test_db):
        base = await create_test_data_set(test_db, "base")
        specific = await create_test_data_set(test_db, "specific")
        await create_test_translation(test_db, base, "Mail", "Email.Welcome", "en-US", "Hi")
        await create_test_translation(test_db, specific, "Mail", "Email.Welcome", "en-US", "Hi")

        indexed = await client.post(f"{API}/translations/index", json={}, headers=root_headers)
        assert indexed.json() == {"processed_count": 2, "updated_count": 2, "errors": []}

        removed = await client.post(
            f"{API}/translations/remove-duplicates",
            json={"specific_data_set_id": str(specific.id), "base_data_set_id": str(base.id)},
            headers=root_headers,
        )
        assert removed.json() == {"processed_count": 1, "removed_count": 1, "errors": []}


class TestLogRoutes:
    async def test_root_lists_and_gets_logs(self, client, root_headers, test_db):
        failed = await create_test_log(test_db, "https://example.com/a", LOG_STATUS_FAILED, error_message="Timed out")
        await create_test_log(test_db, "https://example.com/b")

        listed = await client.get(f"{API}/logs", params={"status": LOG_STATUS_FAILED}, headers=root_headers)
        assert listed.status_code == 200
        assert listed.json()["total_count"] == 1
        assert listed.json()["items"][0]["target"] == "https://example.com/a"

        fetched = await client.get(f"{API}/logs/{failed.id}", headers=root_headers)
        assert fetched.status_code == 200
        assert fetched.json()["error_message"] == "Timed out"

    async def test_logs_are_hidden_from_other_callers(self, client, test_db):
        log = await create_test_log(test_db)

        listed = await client.get(f"{API}/logs", headers=auth_headers("alice"))
        fetched = await client.get(f"{API}/logs/{log.id}", headers=auth_headers("alice"))

        assert listed.json()["items"] == []
        assert fetched.status_code == 404
        assert fetched.json()["error"]["error_code"] == "RESOURCE_LOG_NOT_FOUND"


class TestCultureRoutes:
    async def test_system_cultures(self, client):
        response = await client.get(f"{API}/cultures")

        assert response.json() == {"cultures": sorted(settings.available_cultures)}

    async def test_data_set_cultures(self, client, test_db):
        data_set = await create_test_data_set(test_db, "app", available_cultures=["de-DE"])

        response = await client.get(f"{API}/cultures", params={"data_set_id": str(data_set.id)})

        assert response.json() == {"cultures": ["de-DE"]}
