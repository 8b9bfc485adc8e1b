"""Tests for the register session HTTP API."""

from decimal import Decimal
import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tilldesk.api.register_sessions import get_expected_balance_source
from tests.factories import DenominationTypeFactory, RegisterFactory, UserFactory


@pytest.fixture
async def catalog(db_session: AsyncSession):
    return await DenominationTypeFactory.create_catalog(db_session)


@pytest.fixture
async def register(db_session: AsyncSession):
    return await RegisterFactory.create(db_session, name="Register 1")


def breakdown(catalog, *pairs) -> list[dict]:
    return [
        {"denomination_id": catalog[Decimal(value)].id, "quantity": quantity}
        for quantity, value in pairs
    ]


async def open_register(client: AsyncClient, register, catalog, declared="500.00", pairs=((5, "100"),)):
    return await client.post(
        "/register-sessions/open",
        json={
            "register_id": register.id,
            "branch_id": register.branch_id,
            "declared_opening_balance": declared,
            "denomination_breakdown": breakdown(catalog, *pairs),
            "notes": "Morning float",
        },
    )


class TestDenominationTypes:
    async def test_lists_active_denominations(self, client: AsyncClient, catalog):
        response = await client.get("/register-sessions/denomination-types")

        assert response.status_code == 200
        data = response.json()
        assert [item["name"] for item in data] == [
            "Rs 1000", "Rs 500", "Rs 100", "Rs 50", "Rs 10", "Rs 5", "Rs 1"
        ]
        assert data[-1]["kind"] == "coin"
        assert Decimal(data[0]["value"]) == Decimal("1000.00")


class TestOpenEndpoint:
    async def test_open_returns_created_session(self, client: AsyncClient, register, catalog):
        response = await open_register(client, register, catalog)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "OPEN"
        assert data["register_id"] == register.id
        assert data["opened_by"] == str(client.test_user.id)
        assert Decimal(data["calculated_opening_balance"]) == Decimal("500.00")
        assert data["opening_notes"] == "Morning float"
        assert data["has_discrepancy"] is False

    async def test_second_open_conflicts(self, client: AsyncClient, register, catalog):
        first = await open_register(client, register, catalog)

        response = await open_register(client, register, catalog, declared="200.00", pairs=((2, "100"),))

        assert response.status_code == 409
        data = response.json()
        assert data["code"] == "CONFLICT"
        assert data["details"]["session_id"] == first.json()["id"]

    async def test_mismatched_count_returns_422(self, client: AsyncClient, catalog, db_session):
        register_2 = await RegisterFactory.create(db_session, name="Register 2")

        response = await open_register(
            client, register_2, catalog, declared="300.00", pairs=((2, "100"), (5, "10"))
        )

        assert response.status_code == 422
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert "Declared opening balance (300.00)" in data["message"]
        assert data["details"]["declared"] == "300.00"
        assert data["details"]["calculated"] == "250.00"

        active = await client.get(f"/register-sessions/active/{register_2.id}")
        assert active.status_code == 200
        assert active.json() is None

    async def test_negative_quantity_is_rejected_by_schema(self, client: AsyncClient, register, catalog):
        response = await client.post(
            "/register-sessions/open",
            json={
                "register_id": register.id,
                "branch_id": register.branch_id,
                "declared_opening_balance": "0.00",
                "denomination_breakdown": [
                    {"denomination_id": catalog[Decimal("100")].id, "quantity": -1}
                ],
            },
        )

        assert response.status_code == 422

    async def test_unknown_register_returns_404(self, client: AsyncClient, register, catalog):
        response = await client.post(
            "/register-sessions/open",
            json={
                "register_id": register.id + 1000,
                "branch_id": register.branch_id,
                "declared_opening_balance": "500.00",
                "denomination_breakdown": breakdown(catalog, (5, "100")),
            },
        )

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    async def test_requires_user_header(self, unauthenticated_client: AsyncClient, register, catalog):
        response = await open_register(unauthenticated_client, register, catalog)

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    async def test_rejects_inactive_user(
        self, unauthenticated_client: AsyncClient, db_session, register, catalog
    ):
        inactive = await UserFactory.create(db_session, is_active=False)
        unauthenticated_client.headers["X-User-ID"] = str(inactive.id)

        response = await open_register(unauthenticated_client, register, catalog)

        assert response.status_code == 401

    async def test_rejects_malformed_user_header(
        self, unauthenticated_client: AsyncClient, register, catalog
    ):
        unauthenticated_client.headers["X-User-ID"] = "not-a-uuid"

        response = await open_register(unauthenticated_client, register, catalog)

        assert response.status_code == 401


class TestCloseEndpoint:
    async def test_close_records_discrepancy(self, client: AsyncClient, register, catalog):
        opened = (await open_register(client, register, catalog)).json()

        response = await client.post(
            f"/register-sessions/{opened['id']}/close",
            json={
                "declared_closing_balance": "480.00",
                "denomination_breakdown": breakdown(catalog, (4, "100"), (8, "10")),
                "system_expected_balance": "500.00",
                "notes": "Short twenty",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "CLOSED"
        assert Decimal(data["calculated_closing_balance"]) == Decimal("480.00")
        assert Decimal(data["discrepancy_amount"]) == Decimal("20.00")
        assert data["has_discrepancy"] is True
        assert data["closed_by"] == str(client.test_user.id)

        active = await client.get(f"/register-sessions/active/{register.id}")
        assert active.json() is None

    async def test_close_uses_expected_balance_dependency(self, client: AsyncClient, register, catalog):
        class LedgerStub:
            async def expected_balance(self, session):
                return Decimal("490.00")

        client.test_app.dependency_overrides[get_expected_balance_source] = LedgerStub
        opened = (await open_register(client, register, catalog)).json()

        response = await client.post(
            f"/register-sessions/{opened['id']}/close",
            json={
                "declared_closing_balance": "480.00",
                "denomination_breakdown": breakdown(catalog, (4, "100"), (8, "10")),
            },
        )

        assert response.status_code == 200
        assert Decimal(response.json()["system_expected_balance"]) == Decimal("490.00")
        assert Decimal(response.json()["discrepancy_amount"]) == Decimal("10.00")

    async def test_close_twice_returns_invalid_state(self, client: AsyncClient, register, catalog):
        opened = (await open_register(client, register, catalog)).json()
        payload = {
            "declared_closing_balance": "500.00",
            "denomination_breakdown": breakdown(catalog, (5, "100")),
        }

        first = await client.post(f"/register-sessions/{opened['id']}/close", json=payload)
        second = await client.post(f"/register-sessions/{opened['id']}/close", json=payload)

        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json()["code"] == "INVALID_STATE"

    async def test_close_mismatch_keeps_session_open(self, client: AsyncClient, register, catalog):
        opened = (await open_register(client, register, catalog)).json()

        response = await client.post(
            f"/register-sessions/{opened['id']}/close",
            json={
                "declared_closing_balance": "470.00",
                "denomination_breakdown": breakdown(catalog, (4, "100"), (8, "10")),
            },
        )

        assert response.status_code == 422
        assert response.json()["details"]["phase"] == "closing"

        session = await client.get(f"/register-sessions/{opened['id']}")
        assert session.json()["status"] == "OPEN"

    async def test_close_unknown_session(self, client: AsyncClient, catalog):
        response = await client.post(
            f"/register-sessions/{uuid.uuid4()}/close",
            json={"declared_closing_balance": "0.00", "denomination_breakdown": []},
        )

        assert response.status_code == 404


class TestQueryEndpoints:
    @pytest.fixture
    async def closed_session(self, client: AsyncClient, register, catalog) -> dict:
        opened = (await open_register(client, register, catalog)).json()
        response = await client.post(
            f"/register-sessions/{opened['id']}/close",
            json={
                "declared_closing_balance": "480.00",
                "denomination_breakdown": breakdown(catalog, (4, "100"), (8, "10")),
                "system_expected_balance": "500.00",
            },
        )
        return response.json()

    async def test_get_session(self, client: AsyncClient, closed_session):
        response = await client.get(f"/register-sessions/{closed_session['id']}")

        assert response.status_code == 200
        assert response.json()["session_number"] == closed_session["session_number"]

    async def test_get_session_with_bad_id(self, client: AsyncClient):
        assert (await client.get("/register-sessions/not-a-uuid")).status_code == 404
        assert (await client.get(f"/register-sessions/{uuid.uuid4()}")).status_code == 404

    async def test_history(self, client: AsyncClient, register, catalog, closed_session):
        reopened = (await open_register(client, register, catalog)).json()

        response = await client.get(f"/register-sessions/history/{register.id}")

        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == [reopened["id"], closed_session["id"]]

        limited = await client.get(f"/register-sessions/history/{register.id}", params={"limit": 1})
        assert [item["id"] for item in limited.json()] == [reopened["id"]]

    async def test_history_limit_bounds(self, client: AsyncClient, register):
        response = await client.get(f"/register-sessions/history/{register.id}", params={"limit": 0})
        assert response.status_code == 422

    async def test_discrepancies(self, client: AsyncClient, register, closed_session):
        response = await client.get(f"/register-sessions/discrepancies/{register.branch_id}")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["session_id"] == closed_session["id"]
        assert data[0]["register_name"] == "Register 1"
        assert Decimal(data[0]["discrepancy_amount"]) == Decimal("20.00")
        assert data[0]["opened_by_name"] == "Test Operator"

    async def test_denominations_by_phase(self, client: AsyncClient, closed_session):
        url = f"/register-sessions/{closed_session['id']}/denominations"

        opening = await client.get(url, params={"phase": "opening"})
        closing = await client.get(url, params={"phase": "closing"})
        invalid = await client.get(url, params={"phase": "midday"})

        assert [(item["denomination_name"], item["quantity"]) for item in opening.json()] == [
            ("Rs 100", 5)
        ]
        assert [(item["denomination_name"], item["quantity"]) for item in closing.json()] == [
            ("Rs 100", 4),
            ("Rs 10", 8),
        ]
        assert invalid.status_code == 422

    async def test_reconciliation_report(self, client: AsyncClient, closed_session):
        response = await client.get(f"/register-sessions/{closed_session['id']}/reconciliation")

        assert response.status_code == 200
        data = response.json()
        assert data["session"]["id"] == closed_session["id"]
        assert len(data["opening_breakdown"]) == 1
        assert len(data["closing_breakdown"]) == 2
        assert Decimal(data["discrepancy_amount"]) == Decimal("20.00")
        assert data["is_shortage"] is True
        assert data["is_surplus"] is False

    async def test_audit_logs(self, client: AsyncClient, closed_session):
        response = await client.get(f"/register-sessions/{closed_session['id']}/audit-logs")

        assert response.status_code == 200
        data = response.json()
        assert [item["action"] for item in data] == ["session_closed", "session_opened"]
        assert data[0]["extra"]["has_discrepancy"] is True
        assert data[1]["user_agent"] is not None
