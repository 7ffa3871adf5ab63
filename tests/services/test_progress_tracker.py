# tests/services/test_progress_tracker.py
import uuid

import pytest

from app.models.location import LocationCategory
from app.services.errors import InvalidQuantityError, NotFoundError, OverFulfillmentError
from app.services.progress_tracker import DemandLineKind, LineProgressTracker, derive_line_status
from tests.factories import make_asn, make_company, make_item, make_location, make_picking


@pytest.mark.parametrize(
    "required, fulfilled, expected",
    [
        (10, 0, "PENDING"),
        (10, 4, "PARTIAL"),
        (10, 10, "COMPLETE"),
    ],
)
def test_derive_line_status(required, fulfilled, expected):
    assert derive_line_status(required, fulfilled, "COMPLETE") == expected


async def test_asn_line_progress_pending_partial_complete(session, company_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    holding = await make_location(session, company_id, category=LocationCategory.HOLDING.value)
    _, _, (line,) = await make_asn(session, company_id, holding, [(item, 10)])
    tracker = LineProgressTracker(session)

    line = await tracker.record_fulfillment(DemandLineKind.ASN_DETAIL, line.id, 4, company_id)
    assert (line.fulfilled_quantity, line.remaining_quantity, line.status) == (4, 6, "PARTIAL")

    line = await tracker.record_fulfillment(DemandLineKind.ASN_DETAIL, line.id, 6, company_id)
    assert (line.already_put_away_quantity, line.remaining_quantity, line.status) == (10, 0, "COMPLETE")


async def test_picking_line_reaches_picked(session, company_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    holding = await make_location(session, company_id, category=LocationCategory.HOLDING.value)
    _, _, (line,) = await make_picking(session, company_id, holding, [(item, 3)])

    line = await LineProgressTracker(session).record_fulfillment(
        DemandLineKind.PICKING_DETAIL, line.id, 3, company_id
    )

    assert line.quantity_picked == 3
    assert line.status == "PICKED"


async def test_over_fulfillment_leaves_line_untouched(session, company_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    holding = await make_location(session, company_id, category=LocationCategory.HOLDING.value)
    _, _, (line,) = await make_asn(session, company_id, holding, [(item, 5)])
    tracker = LineProgressTracker(session)
    await tracker.record_fulfillment(DemandLineKind.ASN_DETAIL, line.id, 3, company_id)

    with pytest.raises(OverFulfillmentError) as exc:
        await tracker.record_fulfillment(DemandLineKind.ASN_DETAIL, line.id, 3, company_id)

    assert exc.value.context["remaining"] == 2
    line = await tracker.get_demand_line(DemandLineKind.ASN_DETAIL, line.id, company_id)
    assert line.fulfilled_quantity == 3


async def test_zero_quantity_is_rejected(session, company_id):
    with pytest.raises(InvalidQuantityError):
        await LineProgressTracker(session).record_fulfillment(
            DemandLineKind.ASN_DETAIL, uuid.uuid4(), 0, company_id
        )


async def test_missing_line(session, company_id):
    with pytest.raises(NotFoundError):
        await LineProgressTracker(session).record_fulfillment(
            DemandLineKind.PICKING_DETAIL, uuid.uuid4(), 1, company_id
        )
