# tests/services/test_location_capacity.py
import uuid

import pytest

from app.services.errors import CapacityExceededError, NotFoundError
from app.services.location_capacity import LocationCapacityTracker
from tests.factories import make_company, make_item, make_location, put_stock


async def test_check_capacity_accepts_exact_fit(session, company_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    location = await make_location(session, company_id, max_capacity=10)
    await put_stock(session, company_id, item, location, 6)

    checked = await LocationCapacityTracker(session).check_capacity(location.id, 4, company_id)

    assert checked.available_capacity == 4


async def test_check_capacity_rejects_overflow(session, company_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    location = await make_location(session, company_id, max_capacity=10)
    await put_stock(session, company_id, item, location, 6)

    with pytest.raises(CapacityExceededError) as exc:
        await LocationCapacityTracker(session).check_capacity(location.id, 5, company_id)

    assert exc.value.context["available"] == 4
    assert exc.value.code == "CAPACITY_EXCEEDED"


async def test_check_capacity_unknown_location(session, company_id):
    await make_company(session, company_id)

    with pytest.raises(NotFoundError):
        await LocationCapacityTracker(session).check_capacity(uuid.uuid4(), 1, company_id)


async def test_other_company_location_is_not_found(session, company_id):
    await make_company(session, company_id)
    location = await make_location(session, company_id)

    with pytest.raises(NotFoundError):
        await LocationCapacityTracker(session).check_capacity(location.id, 1, uuid.uuid4())


async def test_apply_delta_tracks_full_flag(session, company_id):
    await make_company(session, company_id)
    location = await make_location(session, company_id, max_capacity=5)
    tracker = LocationCapacityTracker(session)

    filled = await tracker.apply_delta(location.id, 5, company_id)
    assert filled.current_capacity == 5
    assert filled.is_full is True

    released = await tracker.apply_delta(location.id, -2, company_id)
    assert released.current_capacity == 3
    assert released.is_full is False


async def test_apply_delta_never_goes_negative(session, company_id):
    await make_company(session, company_id)
    location = await make_location(session, company_id, max_capacity=5)

    with pytest.raises(CapacityExceededError):
        await LocationCapacityTracker(session).apply_delta(location.id, -1, company_id)


async def test_recalculate_rebuilds_from_ledger(session, company_id):
    await make_company(session, company_id)
    item = await make_item(session, company_id)
    other = await make_item(session, company_id)
    location = await make_location(session, company_id, max_capacity=100)
    await put_stock(session, company_id, item, location, 7)
    await put_stock(session, company_id, other, location, 8)
    location.current_capacity = 99
    await session.flush()

    rebuilt = await LocationCapacityTracker(session).recalculate(location.id, company_id)

    assert rebuilt.current_capacity == 15
    assert rebuilt.is_full is False
