import logging
from datetime import timedelta

import httpx
import pytest

from main import app
from stockledger.core.security import create_access_token


async def _import(client, seed, **overrides):
    body = {
        "parts_number": "P1",
        "description": "Brake pad",
        "quantity": 10,
        "cost_price": "5",
        "location_id": seed["L1"],
        "selling_price": "9",
    }
    body.update(overrides)
    res = await client.post("/products/import", json=body)
    assert res.status_code == 200, res.text
    return res.json()["data"]


# =====================================================
# AUTH
# =====================================================
@pytest.mark.asyncio
async def test_health_needs_no_token(client):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as anon:
        res = await anon.get("/")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"
    assert "X-Process-Time-Ms" in res.headers


@pytest.mark.asyncio
async def test_missing_token_is_401(client, seed):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as anon:
        res = await anon.get("/products/")

    assert res.status_code == 401
    body = res.json()
    assert body["success"] is False
    assert body["error_code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_expired_token_is_401(client, seed):
    token = create_access_token("user-42", expires_delta=timedelta(minutes=-1))
    res = await client.get("/products/", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


# =====================================================
# ENVELOPE + WORKFLOWS
# =====================================================
@pytest.mark.asyncio
async def test_import_returns_envelope_and_records_actor(client, seed):
    res = await client.post(
        "/products/import",
        json={
            "parts_number": "P1",
            "description": "Brake pad",
            "quantity": 10,
            "cost_price": "5",
            "location_id": seed["L1"],
        },
    )
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["message"] == "Product imported successfully"
    assert body["data"]["total_quantity"] == 10
    assert body["data"]["created_by"] == "user-42"

    movements = (await client.get(f"/movements/product/{body['data']['id']}")).json()["data"]
    assert movements[0]["actor_id"] == "user-42"
    assert movements[0]["movement_type"] == "IMPORT"


@pytest.mark.asyncio
async def test_transfer_and_insufficient_stock_mapping(client, seed):
    product = await _import(client, seed)

    ok = await client.post(
        f"/products/{product['id']}/transfer",
        json={"from_location_id": seed["L1"], "to_location_id": seed["L2"], "quantity": 4},
    )
    assert ok.status_code == 200
    entries = {e["location_id"]: e["quantity"] for e in ok.json()["data"]["stock_entries"]}
    assert entries == {seed["L1"]: 6, seed["L2"]: 4}

    short = await client.post(
        f"/products/{product['id']}/export",
        json={"location_id": seed["L2"], "quantity": 5},
    )
    assert short.status_code == 409
    body = short.json()
    assert body["error_code"] == "STOCK_INSUFFICIENT"
    assert body["details"]["available"] == 4
    assert body["message"] == "Insufficient stock. Available: 4"


@pytest.mark.asyncio
async def test_unknown_product_is_404(client, seed):
    res = await client.get("/products/9999")
    assert res.status_code == 404
    assert res.json()["error_code"] == "PRODUCT_NOT_FOUND"

    res = await client.get("/products/by-parts-number/NOPE")
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_invalid_payload_is_422(client, seed):
    res = await client.post(
        "/products/import",
        json={"parts_number": "P1", "description": "x", "quantity": 0, "cost_price": "1", "location_id": seed["L1"]},
    )
    assert res.status_code == 422
    assert res.json()["error_code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_set_quantity_negative_is_400(client, seed):
    product = await _import(client, seed)
    res = await client.put(
        f"/products/{product['id']}/locations/{seed['L1']}/quantity",
        json={"quantity": -3},
    )
    assert res.status_code == 400
    assert res.json()["error_code"] == "STOCK_INVALID_OPERATION"


@pytest.mark.asyncio
async def test_patch_distinguishes_absent_and_null_selling_price(client, seed):
    product = await _import(client, seed)
    url = f"/products/{product['id']}"

    kept = await client.patch(url, json={"description": "Ceramic brake pad"})
    assert kept.json()["data"]["selling_price"] == "9.00"

    cleared = await client.patch(url, json={"selling_price": None})
    assert cleared.status_code == 200
    assert cleared.json()["data"]["selling_price"] is None

    fetched = await client.get(f"/products/by-parts-number/{product['parts_number']}")
    assert fetched.json()["data"]["selling_price"] is None
    assert fetched.json()["data"]["description"] == "Ceramic brake pad"


# =====================================================
# SALES + READS
# =====================================================
@pytest.mark.asyncio
async def test_sale_endpoints(client, seed):
    product = await _import(client, seed)

    created = await client.post(
        "/sales/",
        json={
            "items": [
                {"product_id": product["id"], "location_id": seed["L1"], "quantity": 2, "unit_price": "12.5"}
            ],
            "notes": "counter",
        },
    )
    assert created.status_code == 200
    sale = created.json()["data"]
    assert sale["total_amount"] == "25.00"

    assert (await client.get(f"/sales/{sale['id']}")).json()["data"]["id"] == sale["id"]
    assert (await client.get("/sales/")).json()["data"]["total"] == 1
    assert len((await client.get(f"/sales/location/{seed['L1']}")).json()["data"]) == 1

    totals = (await client.get("/sales/stats/total")).json()["data"]
    assert totals["total_sales"] == "25.00"
    assert totals["total_quantity"] == 2

    assert (await client.get("/sales/424242")).status_code == 404


@pytest.mark.asyncio
async def test_empty_sale_is_422(client, seed):
    res = await client.post("/sales/", json={"items": []})
    assert res.status_code == 422


@pytest.mark.asyncio
async def test_summary_and_movement_listing(client, seed):
    await _import(client, seed)

    summary = (await client.get("/inventory/summary")).json()["data"]
    assert summary == [
        {
            "location_id": seed["L1"],
            "location_code": "L1",
            "location_name": "Main Warehouse",
            "total_quantity": 10,
            "total_value": "50.00",
        }
    ]

    listing = (await client.get("/movements/", params={"movement_type": "IMPORT"})).json()["data"]
    assert listing["total"] == 1
    assert listing["items"][0]["parts_number"] == "P1"

    by_location = (await client.get(f"/products/by-location/{seed['L1']}")).json()["data"]
    assert [p["parts_number"] for p in by_location] == ["P1"]


# =====================================================
# ACCESS LOG
# =====================================================
class _Collect(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def access_records():
    handler = _Collect()
    access = logging.getLogger("access")
    access.addHandler(handler)
    yield handler.records
    access.removeHandler(handler)


@pytest.mark.asyncio
async def test_access_log_carries_actor_on_every_path(client, seed, access_records):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as anon:
        assert (await anon.get("/products/")).status_code == 401

    assert (await client.get("/products/")).status_code == 200

    rejected, accepted = access_records[-2:]
    assert rejected.actor_id == "-"
    assert rejected.status_code == 401
    assert accepted.actor_id == "user-42"
    # formats without KeyError on both
    logging.getLogger("access").handlers[0].format(rejected)
