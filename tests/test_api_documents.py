"""
tests/test_api_documents.py — /api/v1/documents over HTTP.

Covers:
    1. Authentication (401) and capability checks (403)
    2. CRUD, filters, pagination
    3. Content updates: stage rejected, expected_version conflicts
    4. Transitions and their error codes
    5. Revisions, compare, history
    6. Health and response headers
"""

from types import SimpleNamespace

import pytest

from specflow.services import document_service, workflow

BASE = "/api/v1/documents"


@pytest.fixture()
def pm_headers(auth_headers):
    return auth_headers("PM")


@pytest.fixture()
def created(client, pm_headers):
    """A document created over HTTP."""
    res = client.post(
        BASE,
        json={"title": "Login story", "type": "user-story", "body": "alpha\nbeta\n",
              "tags": ["auth"]},
        headers=pm_headers,
    )
    assert res.status_code == 201
    return res.get_json()


def _transition(client, headers, doc_id, to_stage):
    return client.post(f"{BASE}/{doc_id}/transition", json={"to_stage": to_stage}, headers=headers)


# ═════════════════════════════════════════════════════════════════════════════
# Auth
# ═════════════════════════════════════════════════════════════════════════════


class TestAuth:

    def test_missing_token_is_401(self, client):
        res = client.get(BASE)
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_AUTH_REQUIRED"

    def test_garbage_token_is_401(self, client):
        res = client.get(BASE, headers={"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401

    def test_expired_token_is_401(self, client):
        from specflow.services.jwt_service import generate_access_token

        token = generate_access_token("pm-user", "PM", expires_in=-10)
        res = client.get(BASE, headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_stakeholder_cannot_create(self, client, auth_headers):
        res = client.post(BASE, json={"title": "X"}, headers=auth_headers("Stakeholder"))
        assert res.status_code == 403
        body = res.get_json()
        assert body["code"] == "ERR_FORBIDDEN"
        assert body["details"]["action"] == "create"

    def test_qa_cannot_update(self, client, created, auth_headers):
        res = client.put(f"{BASE}/{created['id']}", json={"body": "x"}, headers=auth_headers("QA"))
        assert res.status_code == 403

    def test_ta_cannot_delete(self, client, created, auth_headers):
        res = client.delete(f"{BASE}/{created['id']}", headers=auth_headers("TA"))
        assert res.status_code == 403


# ═════════════════════════════════════════════════════════════════════════════
# CRUD
# ═════════════════════════════════════════════════════════════════════════════


class TestCrud:

    def test_create_defaults(self, created):
        assert created["stage"] == "Idea"
        assert created["current_version"] == 1
        assert created["tags"] == ["auth"]
        assert created["created_by"] == "pm-user"

    def test_create_requires_title(self, client, pm_headers):
        res = client.post(BASE, json={"type": "epic"}, headers=pm_headers)
        assert res.status_code == 422
        assert res.get_json()["details"] == {"title": "required"}

    def test_create_rejects_unknown_type(self, client, pm_headers):
        res = client.post(BASE, json={"title": "X", "type": "novel"}, headers=pm_headers)
        assert res.status_code == 422

    def test_non_json_body_is_415(self, client, pm_headers):
        res = client.post(BASE, data="title=x", headers=pm_headers,
                          content_type="text/plain")
        assert res.status_code == 415

    def test_get_includes_permissions(self, client, created, auth_headers):
        res = client.get(f"{BASE}/{created['id']}", headers=auth_headers("Dev"))
        assert res.status_code == 200
        body = res.get_json()
        assert body["permissions"] == {
            "can_update": True,
            "can_delete": False,
            "can_transition": True,
            "can_link": False,
            "can_comment": True,
        }
        assert body["available_transitions"] == []

    def test_get_missing_is_404(self, client, pm_headers):
        res = client.get(f"{BASE}/nope", headers=pm_headers)
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_list_and_filter(self, client, created, pm_headers):
        client.post(BASE, json={"title": "Epic", "type": "epic"}, headers=pm_headers)

        res = client.get(BASE, headers=pm_headers)
        assert res.get_json()["total"] == 2

        res = client.get(f"{BASE}?type=epic", headers=pm_headers)
        assert [d["title"] for d in res.get_json()["items"]] == ["Epic"]

        res = client.get(f"{BASE}?limit=1", headers=pm_headers)
        body = res.get_json()
        assert body["total"] == 2 and len(body["items"]) == 1

    def test_list_unknown_stage_is_422(self, client, pm_headers):
        res = client.get(f"{BASE}?stage=Archived", headers=pm_headers)
        assert res.status_code == 422

    def test_delete(self, client, created, pm_headers):
        res = client.delete(f"{BASE}/{created['id']}", headers=pm_headers)
        assert res.status_code == 200
        assert res.get_json() == {"deleted": True, "id": created["id"]}
        assert client.get(f"{BASE}/{created['id']}", headers=pm_headers).status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# Content updates
# ═════════════════════════════════════════════════════════════════════════════


class TestUpdate:

    def test_update_body_bumps_version(self, client, created, auth_headers):
        res = client.put(f"{BASE}/{created['id']}", json={"body": "alpha\ngamma\n"},
                         headers=auth_headers("Dev"))
        assert res.status_code == 200
        body = res.get_json()
        assert body["current_version"] == 2
        assert body["updated_by"] == "dev-user"
        assert body["stage"] == "Idea"

    def test_update_metadata(self, client, created, pm_headers):
        res = client.put(
            f"{BASE}/{created['id']}",
            json={"metadata": {"title": "Renamed", "assignee": "dana"}},
            headers=pm_headers,
        )
        body = res.get_json()
        assert body["title"] == "Renamed"
        assert body["assignee"] == "dana"
        assert body["body"] == "alpha\nbeta\n"

    def test_stage_in_metadata_is_rejected(self, client, created, pm_headers):
        res = client.put(f"{BASE}/{created['id']}", json={"metadata": {"stage": "Done"}},
                         headers=pm_headers)
        assert res.status_code == 422
        assert res.get_json()["details"] == {"stage": "not allowed"}

        doc = client.get(f"{BASE}/{created['id']}", headers=pm_headers).get_json()
        assert doc["stage"] == "Idea"
        assert doc["current_version"] == 1

    def test_stage_at_top_level_is_rejected(self, client, created, pm_headers):
        res = client.put(f"{BASE}/{created['id']}", json={"stage": "Done"}, headers=pm_headers)
        assert res.status_code == 422
        assert res.get_json()["details"] == {"unknown": ["stage"]}

    def test_empty_update_is_400(self, client, created, pm_headers):
        res = client.put(f"{BASE}/{created['id']}", json={}, headers=pm_headers)
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_expected_version_conflict(self, client, created, pm_headers):
        url = f"{BASE}/{created['id']}"
        ok = client.put(url, json={"body": "one", "expected_version": 1}, headers=pm_headers)
        assert ok.status_code == 200

        stale = client.put(url, json={"body": "two", "expected_version": 1}, headers=pm_headers)
        assert stale.status_code == 409
        assert stale.get_json()["code"] == "ERR_CONFLICT_STATE"

    def test_expected_version_must_be_int(self, client, created, pm_headers):
        res = client.put(f"{BASE}/{created['id']}", json={"body": "x", "expected_version": "1"},
                         headers=pm_headers)
        assert res.status_code == 422


# ═════════════════════════════════════════════════════════════════════════════
# Transitions
# ═════════════════════════════════════════════════════════════════════════════


class TestTransitions:

    def test_pm_moves_to_draft(self, client, created, pm_headers):
        res = _transition(client, pm_headers, created["id"], "Draft")
        assert res.status_code == 200
        body = res.get_json()
        assert body["previous_stage"] == "Idea"
        assert body["new_stage"] == "Draft"
        assert body["document"]["current_version"] == 1
        assert body["available_transitions"] == ["Review"]

    def test_previous_stage_comes_from_the_applied_write(self, client, created, pm_headers,
                                                        caller, monkeypatch):
        workflow.execute(created["id"], "Draft", caller("TA"))
        # A read outside the transition would still see the creation stage
        monkeypatch.setattr(
            document_service, "get_document", lambda _id: SimpleNamespace(stage="Idea"),
        )

        res = _transition(client, pm_headers, created["id"], "Review")
        assert res.status_code == 200
        body = res.get_json()
        assert body["previous_stage"] == "Draft"
        assert body["new_stage"] == "Review"

    def test_undefined_transition_is_400(self, client, created, pm_headers):
        res = _transition(client, pm_headers, created["id"], "Done")
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_INVALID_TRANSITION"
        assert body["details"] == {"current_stage": "Idea", "target_stage": "Done"}

    def test_unknown_stage_is_400(self, client, created, pm_headers):
        res = _transition(client, pm_headers, created["id"], "Archived")
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_INVALID_TRANSITION"

    def test_role_not_allowed_is_403(self, client, created, auth_headers):
        res = _transition(client, auth_headers("Dev"), created["id"], "Draft")
        assert res.status_code == 403
        body = res.get_json()
        assert body["code"] == "ERR_FORBIDDEN"
        assert body["details"]["current_stage"] == "Idea"
        assert body["details"]["target_stage"] == "Draft"

    def test_missing_to_stage_is_400(self, client, created, pm_headers):
        res = client.post(f"{BASE}/{created['id']}/transition", json={}, headers=pm_headers)
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_transitions_listing(self, client, created, auth_headers):
        res = client.get(f"{BASE}/{created['id']}/transitions", headers=auth_headers("TA"))
        assert res.get_json() == {
            "document_id": created["id"],
            "current_stage": "Idea",
            "available_transitions": ["Draft"],
        }

    def test_history(self, client, created, pm_headers):
        _transition(client, pm_headers, created["id"], "Draft")
        res = client.get(f"{BASE}/{created['id']}/history", headers=pm_headers)
        body = res.get_json()
        assert body["total"] == 2
        assert [e["action"] for e in body["items"]] == ["document.create", "document.transition"]
        assert body["items"][1]["diff"] == {"stage": {"old": "Idea", "new": "Draft"}}
        assert body["items"][1]["actor_role"] == "PM"


# ═════════════════════════════════════════════════════════════════════════════
# Revisions
# ═════════════════════════════════════════════════════════════════════════════


class TestRevisions:

    @pytest.fixture()
    def edited(self, client, created, pm_headers):
        url = f"{BASE}/{created['id']}"
        client.put(url, json={"body": "alpha\ngamma\n"}, headers=pm_headers)
        client.put(url, json={"body": "alpha\ngamma\ndelta\n"}, headers=pm_headers)
        return created["id"]

    def test_list_newest_first(self, client, edited, pm_headers):
        res = client.get(f"{BASE}/{edited}/revisions", headers=pm_headers)
        body = res.get_json()
        assert body["total"] == 2
        assert [r["version"] for r in body["items"]] == [2, 1]

    def test_list_limit(self, client, edited, pm_headers):
        res = client.get(f"{BASE}/{edited}/revisions?limit=1", headers=pm_headers)
        body = res.get_json()
        assert [r["version"] for r in body["items"]] == [2]
        assert body["total"] == 2

    def test_get_one(self, client, edited, pm_headers):
        res = client.get(f"{BASE}/{edited}/revisions/1", headers=pm_headers)
        assert res.status_code == 200
        assert res.get_json()["body"] == "alpha\nbeta\n"

    def test_get_missing_version(self, client, edited, pm_headers):
        res = client.get(f"{BASE}/{edited}/revisions/9", headers=pm_headers)
        assert res.status_code == 404

    def test_compare_inline(self, client, edited, pm_headers):
        res = client.get(f"{BASE}/{edited}/revisions/compare?rev1=1&rev2=2", headers=pm_headers)
        assert res.status_code == 200
        body = res.get_json()
        assert body["format"] == "inline"
        assert [(b["type"], b["content"]) for b in body["diff"]] == [
            ("unchanged", "alpha"),
            ("removed", "beta"),
            ("added", "gamma"),
        ]
        assert body["stats"] == {"added": 1, "removed": 1, "unchanged": 1}

    def test_compare_side_by_side(self, client, edited, pm_headers):
        res = client.get(
            f"{BASE}/{edited}/revisions/compare?rev1=1&rev2=2&format=side-by-side",
            headers=pm_headers,
        )
        diff = res.get_json()["diff"]
        assert diff[0]["old_line_number"] == 1 and diff[0]["new_line_number"] == 1
        assert "new_line_number" not in diff[1]
        assert "old_line_number" not in diff[2]

    def test_compare_requires_both(self, client, edited, pm_headers):
        res = client.get(f"{BASE}/{edited}/revisions/compare?rev1=1", headers=pm_headers)
        assert res.status_code == 400

    def test_compare_unknown_format(self, client, edited, pm_headers):
        res = client.get(
            f"{BASE}/{edited}/revisions/compare?rev1=1&rev2=2&format=html",
            headers=pm_headers,
        )
        assert res.status_code == 422
        assert res.get_json()["details"] == {"allowed": ["inline", "side-by-side"]}

    def test_compare_missing_revision(self, client, edited, pm_headers):
        res = client.get(f"{BASE}/{edited}/revisions/compare?rev1=1&rev2=7", headers=pm_headers)
        assert res.status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# Health / headers
# ═════════════════════════════════════════════════════════════════════════════


class TestHealthAndHeaders:

    def test_health_needs_no_token(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok", "app": "SpecFlow"}

    def test_liveness_checks_database(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        assert res.get_json()["checks"]["database"]["status"] == "ok"

    def test_request_id_echoed(self, client, pm_headers):
        res = client.get(BASE, headers={**pm_headers, "X-Request-ID": "req-123"})
        assert res.headers["X-Request-ID"] == "req-123"
        assert "X-Request-Duration-Ms" in res.headers

    def test_security_headers(self, client, pm_headers):
        res = client.get(BASE, headers=pm_headers)
        assert res.headers["X-Content-Type-Options"] == "nosniff"
        assert res.headers["X-Frame-Options"] == "DENY"

    def test_unknown_route_is_json_404(self, client, pm_headers):
        res = client.get("/api/v1/nothing-here", headers=pm_headers)
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"
