"""
Integration Tests for the charity API
Drive the HTTP surface end to end against the test database
"""
from datetime import datetime
from unittest.mock import AsyncMock, patch
import uuid

import pytest
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from charity.core.auth import create_access_token
from charity.models import Donation, User


async def create_donation(client, headers, amount_cents=500, **extra):
    response = await client.post("/donations", json={"amount_cents": amount_cents, **extra}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


# ============================================================================
# HEALTH CHECK TESTS
# ============================================================================

class TestHealthCheck:
    """Test health check endpoints"""

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "charity-service"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"

    @pytest.mark.asyncio
    async def test_metrics_exposed(self, client, donor_headers):
        await create_donation(client, donor_headers)

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "donations_created_total" in response.text
        assert "http_requests_total" in response.text


# ============================================================================
# AUTHENTICATION TESTS
# ============================================================================

class TestAuthentication:
    """Credential checks happen before any ledger access"""

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.post("/donations", json={"amount_cents": 500})

        assert response.status_code == 401
        assert response.json()["error"] == "auth_error"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get("/donations", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_non_admin_blocked_from_admin_routes(self, client, donor_headers):
        for path in ("/admin/stats", "/admin/donations", "/admin/registrations/export"):
            response = await client.get(path, headers=donor_headers)

            assert response.status_code == 403, path
            assert response.json()["error"] == "forbidden"


# ============================================================================
# DONATION TESTS
# ============================================================================

class TestDonations:
    """Donation creation and listing"""

    @pytest.mark.asyncio
    async def test_create_donation(self, client, donor_headers):
        data = await create_donation(client, donor_headers, amount_cents=500, metadata={"note": "hi"})

        assert isinstance(data["donation_id"], int)
        assert data["gateway_reference"].startswith("PAY_")
        assert data["checkout_url"] == f"/fake/pay?ref={data['gateway_reference']}"

    @pytest.mark.asyncio
    async def test_verified_caller_without_users_row(self, client, db_session):
        user_id = str(uuid.uuid4())
        token = create_access_token({"id": user_id, "role": "user", "email": "new@example.net"})
        headers = {"Authorization": f"Bearer {token}"}

        data = await create_donation(client, headers, amount_cents=500)
        registration = await client.post("/registrations", json={"data": {"event": "5k"}}, headers=headers)

        assert registration.status_code == 200
        rows = (await client.get("/donations", headers=headers)).json()
        assert [d["id"] for d in rows] == [data["donation_id"]]
        assert rows[0]["user_id"] == user_id
        assert (await db_session.get(User, user_id)).email == "new@example.net"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"amount_cents": 0},
        {"amount_cents": -100},
        {"amount_cents": 12.5},
        {"amount_cents": True},
        {"amount_cents": "500"},
        {"amount_cents": 500, "registration_id": 9999},
        {},
    ])
    async def test_invalid_body_rejected(self, client, donor_headers, body):
        response = await client.post("/donations", json=body, headers=donor_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

        listing = await client.get("/donations", headers=donor_headers)
        assert listing.json() == []

    @pytest.mark.asyncio
    async def test_users_only_see_their_own(self, client, donor_headers, other_headers, donor):
        await create_donation(client, donor_headers, amount_cents=100)
        await create_donation(client, other_headers, amount_cents=200)

        response = await client.get("/donations", headers=donor_headers)

        rows = response.json()
        assert len(rows) == 1
        assert rows[0]["user_id"] == donor.id
        assert rows[0]["amount_cents"] == 100

    @pytest.mark.asyncio
    async def test_status_and_date_filters(self, client, db_session, donor_headers):
        old = await create_donation(client, donor_headers, amount_cents=100)
        new = await create_donation(client, donor_headers, amount_cents=200)
        await db_session.execute(
            update(Donation).where(Donation.id == old["donation_id"]).values(created_at=datetime(2024, 1, 10))
        )
        await db_session.execute(
            update(Donation).where(Donation.id == new["donation_id"]).values(created_at=datetime(2024, 2, 10))
        )
        await db_session.commit()
        await client.post("/fake/confirm", json={"ref": new["gateway_reference"], "status": "success"})

        by_status = await client.get("/donations", params={"status": "success"}, headers=donor_headers)
        by_range = await client.get(
            "/donations",
            params={"from": "2024-01-01T00:00:00", "to": "2024-01-31T23:59:59"},
            headers=donor_headers
        )

        assert [d["id"] for d in by_status.json()] == [new["donation_id"]]
        assert [d["id"] for d in by_range.json()] == [old["donation_id"]]

    @pytest.mark.asyncio
    async def test_malformed_date_filter(self, client, donor_headers):
        response = await client.get("/donations", params={"from": "yesterday-ish"}, headers=donor_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_storage_failure_is_generic_500(self, client, db_session, donor_headers):
        with patch.object(db_session, "commit", AsyncMock(side_effect=SQLAlchemyError("connection reset"))):
            response = await client.post("/donations", json={"amount_cents": 500}, headers=donor_headers)

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "storage_error"
        assert "connection reset" not in body["detail"]

        listing = await client.get("/donations", headers=donor_headers)
        assert listing.json() == []


# ============================================================================
# PAYMENT FLOW TESTS
# ============================================================================

class TestPaymentFlow:
    """Checkout stub and gateway confirmation"""

    @pytest.mark.asyncio
    async def test_donation_lifecycle(self, client, donor_headers):
        created = await create_donation(client, donor_headers, amount_cents=500)

        pending = (await client.get("/donations", headers=donor_headers)).json()
        assert len(pending) == 1
        assert pending[0]["status"] == "pending"
        assert [a["status"] for a in pending[0]["attempts"]] == ["initiated"]

        confirm = await client.post(
            "/fake/confirm",
            json={"ref": created["gateway_reference"], "status": "success"}
        )
        assert confirm.status_code == 200
        assert confirm.json() == {"ok": True}

        settled = (await client.get("/donations", headers=donor_headers)).json()
        assert settled[0]["status"] == "success"
        assert [a["status"] for a in settled[0]["attempts"]] == ["initiated", "success"]

    @pytest.mark.asyncio
    async def test_replay_is_recorded(self, client, donor_headers):
        created = await create_donation(client, donor_headers)
        ref = created["gateway_reference"]

        await client.post("/fake/confirm", json={"ref": ref, "status": "success"})
        await client.post("/fake/confirm", json={"ref": ref, "status": "failed"})

        row = (await client.get("/donations", headers=donor_headers)).json()[0]
        assert row["status"] == "failed"
        assert [a["status"] for a in row["attempts"]] == ["initiated", "success", "failed"]

    @pytest.mark.asyncio
    async def test_unknown_reference(self, client):
        response = await client.post("/fake/confirm", json={"ref": "PAY_missing", "status": "success"})

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"ref": "PAY_x"}, {"status": "success"}, {"ref": "", "status": "success"}])
    async def test_confirm_requires_ref_and_status(self, client, body):
        response = await client.post("/fake/confirm", json=body)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_checkout_page(self, client, donor_headers):
        created = await create_donation(client, donor_headers)

        response = await client.get("/fake/pay", params={"ref": created["gateway_reference"]})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert created["gateway_reference"] in response.text
        assert "/fake/confirm" in response.text

    @pytest.mark.asyncio
    async def test_checkout_page_escapes_reference(self, client):
        response = await client.get("/fake/pay", params={"ref": "<script>alert(1)</script>"})

        assert response.status_code == 200
        assert "<script>alert(1)</script>" not in response.text


# ============================================================================
# REGISTRATION TESTS
# ============================================================================

class TestRegistrations:

    @pytest.mark.asyncio
    async def test_create_and_list(self, client, donor_headers, other_headers):
        created = await client.post("/registrations", json={"data": {"event": "5k"}}, headers=donor_headers)
        await client.post("/registrations", json={"data": {"event": "10k"}}, headers=other_headers)

        assert created.status_code == 200
        rows = (await client.get("/registrations", headers=donor_headers)).json()
        assert [r["id"] for r in rows] == [created.json()["id"]]
        assert rows[0]["data"] == {"event": "5k"}

    @pytest.mark.asyncio
    async def test_admin_email_filter(self, client, donor_headers, other_headers, admin_headers):
        await client.post("/registrations", json={"data": {}}, headers=donor_headers)
        await client.post("/registrations", json={}, headers=other_headers)

        all_rows = (await client.get("/registrations", headers=admin_headers)).json()
        filtered = (await client.get("/registrations", params={"email": "bob@"}, headers=admin_headers)).json()

        assert len(all_rows) == 2
        assert len(filtered) == 1
        assert filtered[0]["data"] == {}


# ============================================================================
# ADMIN TESTS
# ============================================================================

class TestAdmin:

    @pytest.mark.asyncio
    async def test_admin_lists_every_donation(self, client, donor_headers, other_headers, admin_headers):
        await create_donation(client, donor_headers, amount_cents=100)
        failed = await create_donation(client, other_headers, amount_cents=200)
        await client.post("/fake/confirm", json={"ref": failed["gateway_reference"], "status": "failed"})

        everything = (await client.get("/admin/donations", headers=admin_headers)).json()
        only_failed = (await client.get("/admin/donations", params={"status": "failed"}, headers=admin_headers)).json()

        assert len(everything) == 2
        assert [d["id"] for d in only_failed] == [failed["donation_id"]]

    @pytest.mark.asyncio
    async def test_stats(self, client, donor_headers, admin_headers):
        await client.post("/registrations", json={"data": {"event": "gala"}}, headers=donor_headers)
        paid = await create_donation(client, donor_headers, amount_cents=1000)
        await create_donation(client, donor_headers, amount_cents=500)
        await client.post("/fake/confirm", json={"ref": paid["gateway_reference"], "status": "success"})

        response = await client.get("/admin/stats", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {
            "registration_count": 1,
            "donation_count": 2,
            "total_amount_cents": 1500,
            "by_status": {"success": 1, "pending": 1},
        }

    @pytest.mark.asyncio
    async def test_export_registrations_csv(self, client, donor_headers, admin_headers):
        await client.post("/registrations", json={"data": {"name": "Alice"}}, headers=donor_headers)

        response = await client.get("/admin/registrations/export", headers=admin_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "registrations.csv" in response.headers["content-disposition"]
        lines = response.text.splitlines()
        assert lines[0] == "id,user_id,data,created_at"
        assert len(lines) == 2
        assert '""name"": ""Alice""' in lines[1]
