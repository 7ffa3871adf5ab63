# tests/services/test_picking_service.py
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from app.models.inventory import InventoryStatus
from app.models.location import LocationCategory
from app.models.order import SalesOrder
from app.models.picking import Picking, PickingDetail
from app.schemas.wms import PickingItemRequest
from app.services.errors import (
    InsufficientStockError,
    InvalidDocumentStateError,
    InvalidLocationError,
)
from app.services.picking_service import PickingService
from tests.factories import (
    make_company,
    make_item,
    make_location,
    make_picking,
    make_sales_order,
    put_stock,
    qty_at,
)


async def _order_status(session, order_id):
    result = await session.execute(select(SalesOrder.status).where(SalesOrder.id == order_id))
    return result.scalar_one()


async def _picking_status(session, picking_id):
    result = await session.execute(select(Picking.status).where(Picking.id == picking_id))
    return result.scalar_one()


# ==================== GENERATION ====================

async def test_generate_picking_for_confirmed_order(session, company_id, user_id):
    await make_company(session, company_id)
    bolt = await make_item(session, company_id, name="Bolt")
    nut = await make_item(session, company_id, name="Nut")
    storage = await make_location(session, company_id)
    holding = await make_location(session, company_id, category=LocationCategory.HOLDING.value)
    await put_stock(session, company_id, bolt, storage, 10)
    await put_stock(session, company_id, nut, storage, 10)
    order, _ = await make_sales_order(session, company_id, [(bolt, 4), (nut, 6)])
    await session.commit()

    picking = await PickingService(session).generate_picking(
        company_id, user_id, order.id, holding.id, notes="Dock 3"
    )

    assert picking.picking_number == f"PK-{order.order_number}"
    assert picking.status == "PENDING"
    assert picking.holding_location_id == holding.id
    assert [(line.quantity_required, line.quantity_picked) for line in picking.lines] == [(4, 0), (6, 0)]
    assert all(line.location_id == storage.id for line in picking.lines)
    assert all(line.remaining_quantity == line.quantity_required for line in picking.lines)
    assert await _order_status(session, order.id) == "PICKING"


async def test_generate_picking_needs_storage_stock(session, company_id, user_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    storage = await make_location(session, company_id)
    holding = await make_location(session, company_id, category=LocationCategory.HOLDING.value)
    # Stock staged in holding or damaged in storage does not count
    await put_stock(session, company_id, item, holding, 50)
    await put_stock(session, company_id, item, storage, 50, status=InventoryStatus.DAMAGED.value)
    order, _ = await make_sales_order(session, company_id, [(item, 5)])
    await session.commit()
    order_id, holding_id = order.id, holding.id

    with pytest.raises(InsufficientStockError) as exc:
        await PickingService(session).generate_picking(company_id, user_id, order_id, holding_id)

    assert exc.value.context["available"] == 0
    assert await _order_status(session, order_id) == "CONFIRMED"


async def test_generate_picking_rejects_unconfirmed_or_repeated(session, company_id, user_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    storage = await make_location(session, company_id)
    holding = await make_location(session, company_id, category=LocationCategory.HOLDING.value)
    await put_stock(session, company_id, item, storage, 10)
    draft, _ = await make_sales_order(session, company_id, [(item, 1)], status="DRAFT")
    order, _ = await make_sales_order(session, company_id, [(item, 1)])
    await session.commit()
    draft_id, order_id, holding_id = draft.id, order.id, holding.id
    service = PickingService(session)

    with pytest.raises(InvalidDocumentStateError):
        await service.generate_picking(company_id, user_id, draft_id, holding_id)

    await service.generate_picking(company_id, user_id, order_id, holding_id)
    with pytest.raises(InvalidDocumentStateError):
        await service.generate_picking(company_id, user_id, order_id, holding_id)


async def test_generate_picking_requires_holding_destination(session, company_id, user_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    storage = await make_location(session, company_id)
    await put_stock(session, company_id, item, storage, 10)
    order, _ = await make_sales_order(session, company_id, [(item, 1)])
    await session.commit()

    with pytest.raises(InvalidLocationError):
        await PickingService(session).generate_picking(company_id, user_id, order.id, storage.id)


# ==================== PICKING & COMPLETION ====================

async def _seed_picking(session, company_id, required=5, stock=10):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    storage = await make_location(session, company_id)
    holding = await make_location(session, company_id, category=LocationCategory.HOLDING.value)
    await put_stock(session, company_id, item, storage, stock)
    order, picking, (line,) = await make_picking(session, company_id, holding, [(item, required)])
    await session.commit()
    return item, storage, holding, order, picking, line


async def test_first_pick_starts_the_picking(session, company_id, user_id):
    item, storage, holding, _, picking, line = await _seed_picking(session, company_id)

    result = await PickingService(session).process_picking_item(
        company_id, user_id, picking.id, line.id, storage.id, 2
    )

    assert result.document_status == "IN_PROGRESS"
    assert result.destination_location_id == holding.id
    assert await qty_at(session, company_id, item.id, holding.id) == 2
    detail = (await session.execute(select(PickingDetail).where(PickingDetail.id == line.id))).scalar_one()
    assert detail.picked_by == user_id
    assert detail.picked_at is not None


async def test_complete_fully_picked_picking(session, company_id, user_id):
    _, storage, _, order, picking, line = await _seed_picking(session, company_id, required=5)
    service = PickingService(session)
    await service.process_picking_item(company_id, user_id, picking.id, line.id, storage.id, 5)

    completion = await service.complete_picking(company_id, user_id, picking.id)

    assert completion.status == "COMPLETED"
    assert completion.fully_picked is True
    assert completion.completed_date is not None
    assert completion.sales_order_status == "READY_TO_SHIP"
    assert await _order_status(session, order.id) == "READY_TO_SHIP"


async def test_complete_partially_picked_picking_keeps_order_picking(session, company_id, user_id):
    _, storage, _, order, picking, line = await _seed_picking(session, company_id, required=5)
    service = PickingService(session)
    await service.process_picking_item(company_id, user_id, picking.id, line.id, storage.id, 3)

    completion = await service.complete_picking(company_id, user_id, picking.id)

    assert completion.fully_picked is False
    assert completion.sales_order_status == "PICKING"


async def test_complete_without_picks_is_rejected(session, company_id, user_id):
    _, _, _, _, picking, _ = await _seed_picking(session, company_id)
    picking_id = picking.id

    with pytest.raises(InvalidDocumentStateError):
        await PickingService(session).complete_picking(company_id, user_id, picking_id)

    assert await _picking_status(session, picking_id) == "PENDING"


async def test_completed_picking_accepts_no_more_picks(session, company_id, user_id):
    item, storage, holding, _, picking, line = await _seed_picking(session, company_id, required=5)
    service = PickingService(session)
    await service.process_picking_item(company_id, user_id, picking.id, line.id, storage.id, 2)
    await service.complete_picking(company_id, user_id, picking.id)
    ids = (picking.id, line.id, storage.id, item.id, holding.id)

    with pytest.raises(InvalidDocumentStateError):
        await service.process_picking_item(company_id, user_id, ids[0], ids[1], ids[2], 1)

    assert await qty_at(session, company_id, ids[3], ids[4]) == 2


# ==================== SUGGESTIONS ====================

async def test_suggestions_walk_oldest_stock_first(session, company_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    newer = await make_location(session, company_id, code="A-01")
    older = await make_location(session, company_id, code="B-01")
    damaged = await make_location(session, company_id, code="C-01")
    holding = await make_location(session, company_id, category=LocationCategory.HOLDING.value, code="H-01")
    now = datetime.now(timezone.utc)
    (await put_stock(session, company_id, item, newer, 10)).created_at = now
    (await put_stock(session, company_id, item, older, 5)).created_at = now - timedelta(days=3)
    await put_stock(session, company_id, item, damaged, 50, status=InventoryStatus.DAMAGED.value)
    await put_stock(session, company_id, item, holding, 50)
    await session.commit()
    service = PickingService(session)

    covered = await service.get_location_suggestions(company_id, item.id, 12)
    assert [(s.location_code, s.suggested_quantity) for s in covered.suggestions] == [("B-01", 5), ("A-01", 7)]
    assert covered.is_fully_covered is True

    short = await service.get_location_suggestions(company_id, item.id, 100)
    assert short.suggested_total == 15
    assert short.is_fully_covered is False


async def test_pick_cannot_drain_another_orders_staged_stock(session, company_id, user_id):
    item, storage, holding_a, _, picking_a, line_a = await _seed_picking(session, company_id, required=5)
    holding_b = await make_location(session, company_id, category=LocationCategory.HOLDING.value)
    _, picking_b, (line_b,) = await make_picking(session, company_id, holding_b, [(item, 5)])
    await session.commit()
    service = PickingService(session)
    await service.process_picking_item(company_id, user_id, picking_a.id, line_a.id, storage.id, 5)
    ids = (item.id, holding_a.id, holding_b.id, picking_b.id, line_b.id)

    with pytest.raises(InvalidLocationError):
        await service.process_picking_item(company_id, user_id, ids[3], ids[4], ids[1], 5)

    assert await qty_at(session, company_id, ids[0], ids[1]) == 5
    assert await qty_at(session, company_id, ids[0], ids[2]) == 0
    assert await _picking_status(session, ids[3]) == "PENDING"


# ==================== BULK ====================

async def test_bulk_picking_reports_each_line(session, company_id, user_id):
    await make_company(session, company_id)
    bolt = await make_item(session, company_id, name="Bolt")
    nut = await make_item(session, company_id, name="Nut")
    washer = await make_item(session, company_id, name="Washer")
    storage = await make_location(session, company_id)
    holding = await make_location(session, company_id, category=LocationCategory.HOLDING.value)
    await put_stock(session, company_id, bolt, storage, 10)
    await put_stock(session, company_id, nut, storage, 10)
    _, picking, (bolt_line, nut_line, washer_line) = await make_picking(
        session, company_id, holding, [(bolt, 4), (nut, 2), (washer, 1)]
    )
    await session.commit()
    ids = (picking.id, bolt_line.id, nut_line.id, washer_line.id, storage.id, holding.id, bolt.id)

    response = await PickingService(session).process_bulk_picking(
        company_id,
        user_id,
        ids[0],
        [
            PickingItemRequest(picking_detail_id=ids[1], source_location_id=ids[4], quantity=4),
            PickingItemRequest(picking_detail_id=ids[2], source_location_id=ids[4], quantity=3),
            PickingItemRequest(picking_detail_id=ids[3], source_location_id=ids[4], quantity=0),
        ],
    )

    assert (response.succeeded, response.failed, response.skipped) == (1, 1, 1)
    accepted, rejected = response.results
    assert accepted.success is True
    assert accepted.result.line_status == "PICKED"
    assert rejected.demand_line_id == ids[2]
    assert rejected.error["code"] == "OVER_FULFILLMENT"
    assert await qty_at(session, company_id, ids[6], ids[5]) == 4
    assert await _picking_status(session, ids[0]) == "IN_PROGRESS"
