import pytest
from httpx import ASGITransport, AsyncClient

from doughmain.core import collections
from doughmain.core.config import Settings
from doughmain.core.database import Base
from doughmain.core.etl.ingest import today_utc
from doughmain.main import create_app
from fakes import make_account, make_transaction


async def link_bank(client: AsyncClient, aggregator, user_id="u1"):
    aggregator.link(
        "public-sandbox-1",
        "access-sandbox-1",
        "item-1",
        accounts=[
            make_account("acc-1", current=100.0, available=90.0),
            make_account("acc-2", current=2500.0, available=None, name="Savings"),
        ],
        transactions=[
            make_transaction("t1", 42.0, account_id="acc-1", category=["Shops"]),
            make_transaction("t2", -1500.0, account_id="acc-2"),
        ],
    )
    response = await client.post(
        "/exchangePublicToken",
        json={"public_token": "public-sandbox-1", "user_id": user_id},
    )
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
async def test_create_link_token(client: AsyncClient, aggregator):
    response = await client.post("/createLinkToken", json={"user_id": "u1"})

    assert response.status_code == 200
    assert response.json()["link_token"] == "link-sandbox-u1"
    assert aggregator.calls == [("create_link_token", "u1")]


@pytest.mark.asyncio
async def test_exchange_writes_one_item_and_each_account(client: AsyncClient, aggregator, store):
    data = await link_bank(client, aggregator)

    assert data["success"] is True
    assert data["message"] == "Bank account connected successfully!"
    assert [a["account_id"] for a in data["accounts"]] == ["acc-1", "acc-2"]

    items = await collections.plaid_items(store, "u1").get()
    assert [i.id for i in items] == ["item-1"]
    assert items[0].get("access_token") == "access-sandbox-1"
    assert len(items[0].get("accounts")) == 2

    accounts = await collections.accounts(store, "u1").get()
    assert [a.id for a in accounts] == ["acc-1", "acc-2"]
    assert all(a.get("item_id") == "item-1" for a in accounts)
    first = accounts[0].to_dict()
    assert first["balance"] == 100.0
    assert first["available"] == 90.0
    assert first["type"] == "depository"
    assert first["plaid_account"] is True


@pytest.mark.asyncio
async def test_exchange_with_bad_public_token(client: AsyncClient, store):
    response = await client.post(
        "/exchangePublicToken", json={"public_token": "nope", "user_id": "u1"}
    )

    assert response.status_code == 500
    assert response.json() == {"error": "INVALID_PUBLIC_TOKEN"}
    assert await collections.plaid_items(store, "u1").count() == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path", ["/exchangePublicToken", "/fetchTransactions", "/updateBalances"]
)
async def test_user_id_required(client: AsyncClient, path):
    response = await client.post(path, json={"public_token": "public-sandbox-1"})

    assert response.status_code == 400
    assert response.json() == {"error": "User ID required"}


@pytest.mark.asyncio
async def test_fetch_transactions(client: AsyncClient, aggregator, store):
    await link_bank(client, aggregator)

    response = await client.post(
        "/fetchTransactions",
        json={"user_id": "u1", "start_date": "2026-09-01", "end_date": "2026-10-01"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["count"] == 2
    by_id = {t["id"]: t for t in data["transactions"]}
    assert by_id["t1"]["amount"] == -42.0
    assert by_id["t1"]["type"] == "expense"
    assert by_id["t1"]["category"] == "Shops"
    assert by_id["t2"]["amount"] == 1500.0
    assert by_id["t2"]["type"] == "income"
    assert by_id["t2"]["category"] == "Other"

    assert await collections.transactions(store, "u1").count() == 2
    assert aggregator.calls[-1] == (
        "get_transactions", "access-sandbox-1", "2026-09-01", "2026-10-01"
    )


@pytest.mark.asyncio
async def test_fetch_transactions_default_window(client: AsyncClient, aggregator):
    await link_bank(client, aggregator)

    response = await client.post("/fetchTransactions", json={"user_id": "u1"})

    assert response.status_code == 200
    assert aggregator.calls[-1] == (
        "get_transactions", "access-sandbox-1", "2023-01-01", today_utc()
    )


@pytest.mark.asyncio
async def test_fetch_transactions_twice_is_idempotent(client: AsyncClient, aggregator, store):
    await link_bank(client, aggregator)

    for _ in range(2):
        response = await client.post("/fetchTransactions", json={"user_id": "u1"})
        assert response.status_code == 200

    assert await collections.transactions(store, "u1").count() == 2


@pytest.mark.asyncio
async def test_fetch_transactions_upstream_error(client: AsyncClient, aggregator):
    await link_bank(client, aggregator)
    aggregator.failing.add("access-sandbox-1")

    response = await client.post("/fetchTransactions", json={"user_id": "u1"})

    assert response.status_code == 500
    assert "ITEM_LOGIN_REQUIRED" in response.json()["error"]


@pytest.mark.asyncio
async def test_update_balances_overwrites_only_balance_fields(client: AsyncClient, aggregator, store):
    aggregator.link(
        "public-sandbox-1",
        "access-sandbox-1",
        "item-1",
        accounts=[make_account("acc-1", current=100.0, available=90.0)],
    )
    await client.post(
        "/exchangePublicToken", json={"public_token": "public-sandbox-1", "user_id": "u1"}
    )
    before = (await collections.accounts(store, "u1").document("acc-1").get()).to_dict()

    aggregator.accounts["access-sandbox-1"] = [
        make_account("acc-1", current=55.5, available=50.0, name="Renamed upstream")
    ]
    response = await client.post("/updateBalances", json={"user_id": "u1"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Account balances updated successfully!"
    assert data["updated"] == ["acc-1"]

    after = (await collections.accounts(store, "u1").document("acc-1").get()).to_dict()
    assert after["balance"] == 55.5
    assert after["available"] == 50.0
    assert after["updated_at"]
    touched = ("balance", "available", "updated_at")
    assert {k: v for k, v in after.items() if k not in touched} == {
        k: v for k, v in before.items() if k not in touched
    }
    assert after["name"] == "Checking"


@pytest.mark.asyncio
async def test_update_balances_skips_deleted_accounts(client: AsyncClient, aggregator, store):
    await link_bank(client, aggregator)
    await collections.accounts(store, "u1").document("acc-2").delete()

    response = await client.post("/updateBalances", json={"user_id": "u1"})

    assert response.status_code == 200
    assert response.json()["updated"] == ["acc-1"]
    assert response.json()["skipped"] == ["acc-2"]
    assert (await collections.accounts(store, "u1").document("acc-2").get()).exists is False


@pytest.mark.asyncio
async def test_missing_plaid_credentials(tmp_path):
    settings = Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'noplaid.db'}",
        sync_enabled=False,
    )
    app = create_app(settings)
    async with app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.post("/createLinkToken", json={"user_id": "u1"})

    await app.state.engine.dispose()
    assert response.status_code == 500
    assert "Plaid configuration missing" in response.json()["error"]


@pytest.mark.asyncio
async def test_cors_is_permissive(client: AsyncClient):
    response = await client.options(
        "/createLinkToken",
        headers={
            "Origin": "https://app.example.com",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] in ("*", "https://app.example.com")


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_wrongly_typed_body_gets_error_shape(client: AsyncClient):
    response = await client.post("/fetchTransactions", json={"user_id": 5})

    assert response.status_code == 400
    assert set(response.json()) == {"error"}
    assert "user_id" in response.json()["error"]


@pytest.mark.asyncio
async def test_wrongly_typed_admin_body_gets_error_shape(client: AsyncClient):
    response = await client.post("/checkAdminStatus", json={"uid": ["u1"]})

    assert response.status_code == 400
    assert "uid" in response.json()["error"]
