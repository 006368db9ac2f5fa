"""Integration tests for the moderation, profile-request and admin endpoints."""

import uuid

import pytest
from httpx import AsyncClient

from eduscope.kernel.audit import AuditQuery
from eduscope.kernel.ledger import PendingChangeLedger
from eduscope.kernel.models import ResearchPaper, User
from eduscope.kernel.models.audit_log import AuditAction, AuditOutcome

API = "/api/v1"


class TestHealth:
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert "X-Request-ID" in response.headers

    async def test_request_id_is_echoed(self, client: AsyncClient):
        response = await client.get("/health", headers={"X-Request-ID": "trace-123"})
        assert response.headers["X-Request-ID"] == "trace-123"


class TestAuthAPI:
    """/api/v1/auth endpoints."""

    async def test_register_login_me(self, client: AsyncClient):
        response = await client.post(
            f"{API}/auth/register",
            json={
                "name": "Ayesha Fernando",
                "email": "ayesha@eduscope.ac.lk",
                "password": "SecurePass123",
                "student_id": "CB044444",
                "faculty": "Faculty of Computing",
                "year": 1,
            },
        )
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["user"]["role"] == "student"
        token = body["data"]["access_token"]

        login = await client.post(
            f"{API}/auth/login",
            json={"email": "ayesha@eduscope.ac.lk", "password": "SecurePass123"},
        )
        assert login.status_code == 200

        me = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["data"]["email"] == "ayesha@eduscope.ac.lk"

    async def test_register_duplicate_email(self, client: AsyncClient, student):
        response = await client.post(
            f"{API}/auth/register",
            json={"name": "Copy", "email": student.email, "password": "SecurePass123"},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "duplicate"

    async def test_weak_password_is_a_validation_error(self, client: AsyncClient):
        response = await client.post(
            f"{API}/auth/register",
            json={"name": "Weak", "email": "weak@eduscope.ac.lk", "password": "password"},
        )

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "validation_error"
        assert any(d["field"].endswith("password") for d in body["details"])

    async def test_login_wrong_password(self, client: AsyncClient, student):
        response = await client.post(
            f"{API}/auth/login",
            json={"email": student.email, "password": "WrongPass123"},
        )

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": "Invalid email or password",
            "code": "authentication_required",
        }

    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get(f"{API}/auth/me")
        assert response.status_code == 401

    async def test_inactive_user_token_is_rejected(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user(is_active=False)
        response = await client.get(f"{API}/auth/me", headers=auth_headers(user))
        assert response.status_code == 401


class TestResearchAPI:
    """/api/v1/research endpoints."""

    async def test_get_approved_paper_anonymously(self, client: AsyncClient, paper):
        response = await client.get(f"{API}/research/{paper.id}")

        assert response.status_code == 200
        assert response.json()["data"]["title"] == paper.title

    async def test_unapproved_paper_hidden_from_strangers(
        self, client: AsyncClient, session_maker, paper, student, other_student, moderator, auth_headers,
    ):
        async with session_maker() as session:
            stored = await session.get(ResearchPaper, paper.id)
            stored.status = "pending"
            await session.commit()

        url = f"{API}/research/{paper.id}"
        assert (await client.get(url)).status_code == 404
        assert (await client.get(url, headers=auth_headers(other_student))).status_code == 404
        assert (await client.get(url, headers=auth_headers(student))).status_code == 200
        assert (await client.get(url, headers=auth_headers(moderator))).status_code == 200

    async def test_request_update_flow(
        self, client: AsyncClient, session_maker, paper, student, moderator, auth_headers,
    ):
        response = await client.post(
            f"{API}/research/{paper.id}/request-update",
            json={"title": "Cache Study"},
            headers=auth_headers(student),
        )
        assert response.status_code == 201
        change = response.json()["data"]
        assert change["status"] == "pending"
        assert change["payload"] == {"title": "Cache Study"}

        # Paper unchanged while pending
        current = await client.get(f"{API}/research/{paper.id}")
        assert current.json()["data"]["title"] == paper.title

        pending = await client.get(
            f"{API}/research/{paper.id}/pending-update", headers=auth_headers(student),
        )
        assert pending.json()["data"]["id"] == change["id"]

        duplicate = await client.post(
            f"{API}/research/{paper.id}/request-update",
            json={"title": "Another"},
            headers=auth_headers(student),
        )
        assert duplicate.status_code == 409
        assert duplicate.json()["code"] == "already_pending"
        assert duplicate.json()["details"]["existing_id"] == change["id"]

        review = await client.post(
            f"{API}/admin/pending-requests/{change['id']}",
            json={"action": "approve", "reason": "Clearer title"},
            headers=auth_headers(moderator),
        )
        assert review.status_code == 200
        assert review.json()["data"]["status"] == "approved"

        updated = await client.get(f"{API}/research/{paper.id}")
        assert updated.json()["data"]["title"] == "Cache Study"

        again = await client.post(
            f"{API}/admin/pending-requests/{change['id']}",
            json={"action": "reject"},
            headers=auth_headers(moderator),
        )
        assert again.status_code == 409
        assert again.json()["code"] == "invalid_state"

    async def test_request_update_unauthenticated(self, client: AsyncClient, paper, audit_sink):
        response = await client.post(
            f"{API}/research/{paper.id}/request-update",
            json={"title": "Anon"},
            headers={"User-Agent": "curl/8.0"},
        )

        assert response.status_code == 401
        [entry] = await audit_sink.query(AuditQuery(outcome=AuditOutcome.DENIED))
        assert entry.actor_id is None
        assert entry.user_agent == "curl/8.0"

    async def test_request_update_by_non_owner(self, client: AsyncClient, paper, other_student, auth_headers):
        response = await client.post(
            f"{API}/research/{paper.id}/request-update",
            json={"title": "Mine"},
            headers=auth_headers(other_student),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "access_denied"

    async def test_request_update_rejects_system_fields(self, client: AsyncClient, paper, student, auth_headers):
        response = await client.post(
            f"{API}/research/{paper.id}/request-update",
            json={"uploaded_by": str(uuid.uuid4())},
            headers=auth_headers(student),
        )
        assert response.status_code == 422

    async def test_request_update_cannot_clear_title(
        self, client: AsyncClient, paper, student, auth_headers, session_maker,
    ):
        response = await client.post(
            f"{API}/research/{paper.id}/request-update",
            json={"title": None},
            headers=auth_headers(student),
        )

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "validation_error"
        assert [d["field"] for d in body["details"]] == ["body.title"]
        assert "title cannot be cleared" in body["details"][0]["message"]

        async with session_maker() as session:
            assert await PendingChangeLedger(session).list_open() == []

    async def test_request_update_with_no_changes(self, client: AsyncClient, paper, student, auth_headers):
        response = await client.post(
            f"{API}/research/{paper.id}/request-update",
            json={},
            headers=auth_headers(student),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_change"

    async def test_request_update_unknown_paper(self, client: AsyncClient, student, auth_headers):
        response = await client.post(
            f"{API}/research/{uuid.uuid4()}/request-update",
            json={"title": "Ghost"},
            headers=auth_headers(student),
        )
        assert response.status_code == 404

    async def test_delete_flow(
        self, client: AsyncClient, paper, student, admin, auth_headers,
    ):
        response = await client.post(
            f"{API}/research/{paper.id}/request-delete", headers=auth_headers(student),
        )
        assert response.status_code == 201
        change_id = response.json()["data"]["id"]

        review = await client.post(
            f"{API}/admin/pending-requests/{change_id}",
            json={"action": "approve"},
            headers=auth_headers(admin),
        )
        assert review.status_code == 200
        assert (await client.get(f"{API}/research/{paper.id}")).status_code == 404


class TestProfileRequestAPI:
    """/api/v1/user endpoints."""

    async def test_year_change_flow(
        self, client: AsyncClient, session_maker, student, moderator, auth_headers,
    ):
        response = await client.post(
            f"{API}/user/year-change", json={"year": 3}, headers=auth_headers(student),
        )
        assert response.status_code == 201
        change_id = response.json()["data"]["id"]

        pending = await client.get(f"{API}/user/pending-year-change", headers=auth_headers(student))
        assert pending.json()["data"]["id"] == change_id

        reject = await client.post(
            f"{API}/admin/pending-requests/{change_id}",
            json={"action": "reject", "reason": "Exams not passed"},
            headers=auth_headers(moderator),
        )
        assert reject.status_code == 200

        async with session_maker() as session:
            assert (await session.get(User, student.id)).year == 2

        history = await client.get(f"{API}/user/change-requests", headers=auth_headers(student))
        [entry] = history.json()["data"]
        assert entry["status"] == "rejected"
        assert entry["reason"] == "Exams not passed"

        none_pending = await client.get(f"{API}/user/pending-year-change", headers=auth_headers(student))
        assert none_pending.json()["data"] is None

    async def test_year_out_of_range(self, client: AsyncClient, student, auth_headers):
        response = await client.post(
            f"{API}/user/year-change", json={"year": 7}, headers=auth_headers(student),
        )
        assert response.status_code == 422

    async def test_degree_change_flow(
        self, client: AsyncClient, session_maker, student, admin, other_degree, auth_headers,
    ):
        response = await client.post(
            f"{API}/user/degree-change",
            json={"degree_id": str(other_degree.id)},
            headers=auth_headers(student),
        )
        assert response.status_code == 201
        change_id = response.json()["data"]["id"]

        pending = await client.get(f"{API}/user/pending-degree-change", headers=auth_headers(student))
        assert pending.json()["data"]["id"] == change_id

        approve = await client.post(
            f"{API}/admin/pending-requests/{change_id}",
            json={"action": "approve"},
            headers=auth_headers(admin),
        )
        assert approve.status_code == 200

        async with session_maker() as session:
            assert (await session.get(User, student.id)).degree_id == other_degree.id

    async def test_profile_requests_require_login(self, client: AsyncClient):
        response = await client.post(f"{API}/user/year-change", json={"year": 3})
        assert response.status_code == 401


class TestAdminAPI:
    """/api/v1/admin endpoints."""

    async def test_pending_requests_queue(
        self, client: AsyncClient, workflow, student_actor, paper, student, moderator, auth_headers,
    ):
        from eduscope.orchestration import PAPER_UPDATE, YEAR_CHANGE

        first = await workflow.propose(student_actor, PAPER_UPDATE, paper.id, {"title": "New"})
        second = await workflow.propose(student_actor, YEAR_CHANGE, student.id, {"year": 4})

        response = await client.get(f"{API}/admin/pending-requests", headers=auth_headers(moderator))
        assert response.status_code == 200
        assert [c["id"] for c in response.json()["data"]] == [str(first.id), str(second.id)]

        filtered = await client.get(
            f"{API}/admin/pending-requests",
            params={"kind": "YEAR_CHANGE"},
            headers=auth_headers(moderator),
        )
        assert [c["id"] for c in filtered.json()["data"]] == [str(second.id)]

    async def test_pending_requests_forbidden_for_students(
        self, client: AsyncClient, student, auth_headers,
    ):
        response = await client.get(f"{API}/admin/pending-requests", headers=auth_headers(student))
        assert response.status_code == 403

    async def test_review_unknown_change(self, client: AsyncClient, moderator, auth_headers):
        response = await client.post(
            f"{API}/admin/pending-requests/{uuid.uuid4()}",
            json={"action": "approve"},
            headers=auth_headers(moderator),
        )
        assert response.status_code == 404

    async def test_review_requires_valid_action(self, client: AsyncClient, moderator, auth_headers):
        response = await client.post(
            f"{API}/admin/pending-requests/{uuid.uuid4()}",
            json={"action": "maybe"},
            headers=auth_headers(moderator),
        )
        assert response.status_code == 422

    async def test_audit_logs_for_admin(
        self, client: AsyncClient, workflow, student_actor, paper, admin, auth_headers, audit_sink,
    ):
        from eduscope.orchestration import PAPER_UPDATE

        await workflow.propose(student_actor, PAPER_UPDATE, paper.id, {"title": "New"})

        response = await client.get(
            f"{API}/admin/audit-logs",
            params={"action": "PAPER_UPDATE_REQUEST", "limit": 5000},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        page = response.json()["data"]
        assert page["total"] == 1
        assert page["limit"] == 1000
        assert page["items"][0]["resource_id"] == str(paper.id)

        # Reading the trail is itself audited
        [read] = await audit_sink.query(AuditQuery(action=AuditAction.AUDIT_LOG_READ))
        assert read.actor_id == admin.id
        assert read.details["filters"]["action"] == "PAPER_UPDATE_REQUEST"
        assert read.details["result_count"] == 1

    async def test_audit_logs_denied_for_moderator(
        self, client: AsyncClient, moderator, auth_headers, audit_sink,
    ):
        response = await client.get(f"{API}/admin/audit-logs", headers=auth_headers(moderator))

        assert response.status_code == 403
        [entry] = await audit_sink.query(AuditQuery(outcome=AuditOutcome.DENIED))
        assert entry.action == AuditAction.AUDIT_LOG_READ.value
        assert entry.details["required"] == "admin:audit_logs"

    async def test_audit_logs_anonymous(self, client: AsyncClient, audit_sink):
        response = await client.get(f"{API}/admin/audit-logs")

        assert response.status_code == 401
        [entry] = await audit_sink.query(AuditQuery(outcome=AuditOutcome.DENIED))
        assert entry.actor_id is None

    @pytest.mark.parametrize("target_role,status_code", [("moderator", 200), ("superadmin", 403)])
    async def test_change_role(
        self, client: AsyncClient, student, admin, auth_headers, target_role, status_code,
    ):
        response = await client.patch(
            f"{API}/admin/users/{student.id}/role",
            json={"role": target_role},
            headers=auth_headers(admin),
        )
        assert response.status_code == status_code

    async def test_role_change_takes_effect_on_next_request(
        self, client: AsyncClient, student, superadmin, auth_headers,
    ):
        """The token still says student, but the stored role wins."""
        headers = auth_headers(student)
        assert (await client.get(f"{API}/admin/pending-requests", headers=headers)).status_code == 403

        promote = await client.patch(
            f"{API}/admin/users/{student.id}/role",
            json={"role": "moderator"},
            headers=auth_headers(superadmin),
        )
        assert promote.status_code == 200

        assert (await client.get(f"{API}/admin/pending-requests", headers=headers)).status_code == 200
