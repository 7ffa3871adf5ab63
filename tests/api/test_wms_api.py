# tests/api/test_wms_api.py
from decimal import Decimal

from app.models.location import LocationCategory
from tests.factories import (
    make_arrived_asn,
    make_asn,
    make_company,
    make_item,
    make_location,
    make_picking,
    make_sales_order,
    put_stock,
)

API = "/api/v1/wms"


async def test_root_needs_no_company(client):
    resp = await client.get("/", headers={"X-Company-ID": ""})

    assert resp.status_code == 200
    assert "version" in resp.json()


async def test_missing_company_header_is_rejected(client):
    resp = await client.get(f"{API}/inventory/items/00000000-0000-0000-0000-000000000000",
                            headers={"X-Company-ID": ""})

    assert resp.status_code == 400
    assert "X-Company-ID" in resp.json()["detail"]


async def test_permission_is_required(client, session, company_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    holding = await make_location(session, company_id, category=LocationCategory.HOLDING.value)
    storage = await make_location(session, company_id)
    _, asn, (line,) = await make_arrived_asn(session, company_id, holding, [(item, 5)])
    await session.commit()

    resp = await client.post(
        f"{API}/putaway",
        json={
            "asn_id": str(asn.id),
            "asn_detail_id": str(line.id),
            "item_id": str(item.id),
            "destination_location_id": str(storage.id),
            "quantity": 1,
        },
        headers={"X-User-Permissions": "inventory:view"},
    )

    assert resp.status_code == 403


async def test_receive_and_putaway_flow(client, session, company_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    holding = await make_location(session, company_id, category=LocationCategory.HOLDING.value, code="H-01")
    storage = await make_location(session, company_id, code="A-01")
    _, asn, (line,) = await make_asn(session, company_id, holding, [(item, 10)], price=Decimal("12.50"))
    await session.commit()

    resp = await client.post(f"{API}/asns/{asn.id}/receive")
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "ARRIVED"
    assert resp.json()["total_quantity"] == 10

    payload = {
        "asn_id": str(asn.id),
        "asn_detail_id": str(line.id),
        "item_id": str(item.id),
        "destination_location_id": str(storage.id),
        "quantity": 10,
    }
    resp = await client.post(f"{API}/putaway", json=payload)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["is_complete"] is True
    assert body["document_status"] == "COMPLETED"
    assert (body["source_quantity_after"], body["destination_quantity_after"]) == (0, 10)

    resp = await client.get(f"{API}/inventory/items/{item.id}")
    assert resp.status_code == 200
    assert [(r["location_code"], r["quantity"]) for r in resp.json()] == [("A-01", 10), ("H-01", 0)]

    resp = await client.get(f"{API}/documents/{asn.id}/progress")
    assert resp.status_code == 200
    assert resp.json()["status"] == "COMPLETED"


async def test_domain_errors_render_code_and_context(client, session, company_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    holding = await make_location(session, company_id, category=LocationCategory.HOLDING.value)
    storage = await make_location(session, company_id)
    _, asn, (line,) = await make_arrived_asn(session, company_id, holding, [(item, 5)])
    await session.commit()
    payload = {
        "asn_id": str(asn.id),
        "asn_detail_id": str(line.id),
        "item_id": str(item.id),
        "destination_location_id": str(storage.id),
    }

    resp = await client.post(f"{API}/putaway", json={**payload, "quantity": 6})
    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == "OVER_FULFILLMENT"
    assert body["retryable"] is False
    assert body["context"]["remaining"] == 5
    assert body["context"]["requested"] == 6

    resp = await client.post(f"{API}/putaway", json={**payload, "quantity": 0})
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_QUANTITY"

    resp = await client.get(f"{API}/documents/{storage.id}/progress")
    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"


async def test_picking_flow(client, session, company_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    storage = await make_location(session, company_id)
    holding = await make_location(session, company_id, category=LocationCategory.HOLDING.value)
    await put_stock(session, company_id, item, storage, 10)
    order, _ = await make_sales_order(session, company_id, [(item, 4)])
    await session.commit()

    resp = await client.post(
        f"{API}/sales-orders/{order.id}/pickings",
        json={"holding_location_id": str(holding.id)},
    )
    assert resp.status_code == 201, resp.text
    picking = resp.json()
    (line,) = picking["lines"]
    assert line["location_id"] == str(storage.id)

    resp = await client.get(f"{API}/pickings/suggestions", params={"item_id": str(item.id), "quantity": 4})
    assert resp.status_code == 200
    assert resp.json()["is_fully_covered"] is True

    resp = await client.post(
        f"{API}/pickings/{picking['id']}/items",
        json={"picking_detail_id": line["id"], "source_location_id": str(storage.id), "quantity": 4},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["line_status"] == "PICKED"

    resp = await client.post(f"{API}/pickings/{picking['id']}/complete")
    assert resp.status_code == 200, resp.text
    assert resp.json()["sales_order_status"] == "READY_TO_SHIP"


async def test_reconcile_endpoint(client, session, company_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    storage = await make_location(session, company_id)
    await put_stock(session, company_id, item, storage, 2)
    await session.commit()

    resp = await client.post(f"{API}/inventory/reconcile")

    assert resp.status_code == 200
    assert resp.json() == {
        "records_checked": 1,
        "statuses_repaired": 0,
        "locations_checked": 1,
        "locations_corrected": 0,
    }


async def test_putaway_suggestions_endpoint(client, session, company_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    await make_location(session, company_id, max_capacity=5, code="A-01")
    await make_location(session, company_id, max_capacity=50, code="B-01")
    await session.commit()

    resp = await client.get(f"{API}/putaway/suggestions", params={"item_id": str(item.id), "quantity": 10})

    assert resp.status_code == 200, resp.text
    assert [s["location_code"] for s in resp.json()["suggestions"]] == ["B-01"]


async def test_bulk_putaway_endpoint(client, session, company_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    holding = await make_location(session, company_id, category=LocationCategory.HOLDING.value)
    storage = await make_location(session, company_id)
    _, asn, (line,) = await make_arrived_asn(session, company_id, holding, [(item, 5)])
    await session.commit()
    row = {
        "asn_detail_id": str(line.id),
        "item_id": str(item.id),
        "destination_location_id": str(storage.id),
    }

    resp = await client.post(
        f"{API}/putaway/bulk",
        json={"asn_id": str(asn.id), "lines": [{**row, "quantity": 2}, {**row, "quantity": 9}]},
    )

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert (body["succeeded"], body["failed"], body["skipped"]) == (1, 1, 0)
    assert body["results"][0]["result"]["fulfilled_quantity"] == 2
    assert body["results"][1]["error"]["code"] == "OVER_FULFILLMENT"
    assert body["results"][1]["error"]["context"]["remaining"] == 3


async def test_bulk_picking_endpoint_rejects_foreign_holding_source(client, session, company_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    storage = await make_location(session, company_id)
    staged = await make_location(session, company_id, category=LocationCategory.HOLDING.value)
    holding = await make_location(session, company_id, category=LocationCategory.HOLDING.value)
    await put_stock(session, company_id, item, storage, 10)
    await put_stock(session, company_id, item, staged, 5)
    _, picking, (line,) = await make_picking(session, company_id, holding, [(item, 6)])
    await session.commit()

    resp = await client.post(
        f"{API}/pickings/{picking.id}/items/bulk",
        json={"lines": [
            {"picking_detail_id": str(line.id), "source_location_id": str(staged.id), "quantity": 5},
            {"picking_detail_id": str(line.id), "source_location_id": str(storage.id), "quantity": 6},
        ]},
    )

    assert resp.status_code == 200, resp.text
    first, second = resp.json()["results"]
    assert first["error"]["code"] == "INVALID_LOCATION"
    assert second["success"] is True
    assert second["result"]["line_status"] == "PICKED"
