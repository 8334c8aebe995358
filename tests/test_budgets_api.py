import uuid
from datetime import datetime
from decimal import Decimal

import pytest

BUDGETS = "/api/v1/budgets"

FULL_INCOME_ALLOCATION = {
    "total_income": "2000.00",
    "leisure_budget": "300.00",
    "essentials_budget": "1200.00",
    "savings_budget": "500.00",
}


async def create_budget(client, user, **overrides):
    payload = {"user_id": str(user.user_id), **FULL_INCOME_ALLOCATION, **overrides}
    return await client.post(BUDGETS, json=payload)


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_create_budget(client, user):
    r = await create_budget(client, user)

    assert r.status_code == 201
    body = r.json()
    now = datetime.utcnow()
    assert (body["year"], body["month"]) == (now.year, now.month)
    assert Decimal(body["total_budget"]) == Decimal("2000")
    assert Decimal(body["remaining_balance"]) == Decimal("2000")
    assert body["is_budget_over_income"] is False
    assert set(body["categories"]) == {"leisure", "essentials", "savings"}
    assert body["categories"]["leisure"]["alert_level"] == "none"
    assert body["version"] == 1


@pytest.mark.asyncio
async def test_create_budget_over_income(client, user):
    r = await create_budget(client, user, savings_budget="600.00")

    assert r.status_code == 400
    body = r.json()
    assert body["status"] == "error"
    assert body["error_code"] == "validation_error"
    assert body["message"] == "Total budget (2100.00) exceeds total income (2000.00)."


@pytest.mark.asyncio
async def test_create_second_budget_in_month(client, user):
    first = await create_budget(client, user)
    r = await create_budget(client, user)

    assert r.status_code == 409
    assert r.json()["error_code"] == "duplicate_budget"
    assert r.json()["details"] == {"budget_id": first.json()["budget_id"]}


@pytest.mark.asyncio
async def test_create_budget_for_unknown_user(client):
    r = await client.post(BUDGETS, json={"user_id": str(uuid.uuid4()), **FULL_INCOME_ALLOCATION})

    assert r.status_code == 404
    assert r.json()["error_code"] == "resource_not_found"


@pytest.mark.asyncio
async def test_create_budget_request_shape_is_checked(client, user):
    r = await client.post(BUDGETS, json={"user_id": str(user.user_id), "total_income": "100"})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_current_budget(client, user):
    created = (await create_budget(client, user)).json()

    r = await client.get(f"{BUDGETS}/current/{user.user_id}")
    assert r.status_code == 200
    assert r.json()["budget_id"] == created["budget_id"]

    r = await client.get(f"{BUDGETS}/current/{uuid.uuid4()}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_list_and_get_budget(client, user):
    created = (await create_budget(client, user)).json()

    r = await client.get(f"{BUDGETS}/user/{user.user_id}")
    assert r.status_code == 200
    assert r.json()["count"] == 1

    r = await client.get(f"{BUDGETS}/{created['budget_id']}")
    assert r.status_code == 200
    assert Decimal(r.json()["savings_budget"]) == Decimal("500")

    r = await client.get(f"{BUDGETS}/{uuid.uuid4()}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_update_budget(client, user):
    budget_id = (await create_budget(client, user)).json()["budget_id"]

    r = await client.put(f"{BUDGETS}/{budget_id}", json={"leisure_budget": "250.00"})
    assert r.status_code == 200
    body = r.json()
    assert Decimal(body["leisure_budget"]) == Decimal("250")
    assert Decimal(body["essentials_budget"]) == Decimal("1200")
    assert body["version"] == 2

    r = await client.put(f"{BUDGETS}/{budget_id}", json={"savings_budget": "900.00"})
    assert r.status_code == 400
    assert r.json()["error_code"] == "validation_error"

    r = await client.get(f"{BUDGETS}/{budget_id}")
    assert Decimal(r.json()["savings_budget"]) == Decimal("500")


@pytest.mark.asyncio
async def test_adjustments_and_validation(client, user):
    budget_id = (await create_budget(client, user)).json()["budget_id"]

    r = await client.get(f"{BUDGETS}/{budget_id}/adjustments")
    assert r.status_code == 200
    assert r.json()["type"] == "balanced"
    assert r.json()["suggestions"] == {}

    r = await client.post(f"{BUDGETS}/{budget_id}/validate")
    assert r.status_code == 200
    assert r.json() == {"budget_id": budget_id, "valid": True, "reason": None}


@pytest.mark.asyncio
async def test_add_expense_amount_accepts_overspend(client, user):
    budget_id = (await create_budget(client, user)).json()["budget_id"]

    r = await client.post(
        f"{BUDGETS}/{budget_id}/expenses", json={"category": "Leisure", "amount": "330.00"}
    )

    assert r.status_code == 200
    leisure = r.json()["categories"]["leisure"]
    assert Decimal(leisure["spent"]) == Decimal("330")
    assert Decimal(leisure["remaining"]) == Decimal("-30")
    assert Decimal(leisure["percentage"]) == Decimal("110")
    assert leisure["is_over_budget"] is True
    assert leisure["alert_level"] == "over_budget"

    r = await client.post(
        f"{BUDGETS}/{budget_id}/expenses", json={"category": "travel", "amount": "10.00"}
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_reconcile_rebuilds_spent_totals(client, user):
    budget_id = (await create_budget(client, user)).json()["budget_id"]
    await client.post(
        "/api/v1/expenses",
        json={
            "user_id": str(user.user_id),
            "budget_id": budget_id,
            "category": "essentials",
            "amount": "80.00",
            "description": "Groceries",
        },
    )
    await client.post(f"{BUDGETS}/{budget_id}/expenses", json={"category": "leisure", "amount": "45.00"})

    r = await client.post(f"{BUDGETS}/{budget_id}/reconcile")

    assert r.status_code == 200
    body = r.json()
    assert Decimal(body["leisure_spent"]) == Decimal("0")
    assert Decimal(body["essentials_spent"]) == Decimal("80")


@pytest.mark.asyncio
async def test_delete_budget(client, user):
    budget_id = (await create_budget(client, user)).json()["budget_id"]

    r = await client.delete(f"{BUDGETS}/{budget_id}")
    assert r.status_code == 200
    assert r.json()["status"] == "success"

    r = await client.delete(f"{BUDGETS}/{budget_id}")
    assert r.status_code == 404
