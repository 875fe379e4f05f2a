from datetime import datetime

import pytest
from fastapi import HTTPException

from schemas.user_schema import InsertUser
from schemas.workshop_schema import WorkshopCreate
from services.workshop_service import WorkshopService


@pytest.fixture
async def users(storage):
    return [
        await storage.create_user(InsertUser(username=name, email=f"{name}@example.com", password="hash"))
        for name in ("ann", "ben", "cat")
    ]


async def create_workshop(storage, **fields):
    data = dict(title="Pottery", description="Wheel basics", date=datetime(2030, 5, 1), capacity=2)
    data.update(fields)
    return await storage.create_workshop(WorkshopCreate(**data))


async def test_register_free_workshop(storage, users):
    workshop = await create_workshop(storage)
    registration = await WorkshopService(storage).register(workshop.id, users[0].id, notes="vegetarian")
    assert registration.is_approved is True
    assert registration.payment_status == "not_required"
    assert registration.notes == "vegetarian"


async def test_paid_workshop_needing_approval(storage, users):
    workshop = await create_workshop(storage, is_paid=True, base_cost=4000, requires_approval=True)
    registration = await WorkshopService(storage).register(workshop.id, users[0].id)
    assert registration.is_approved is False
    assert registration.payment_status == "unpaid"


async def test_capacity_and_duplicates(storage, users):
    service = WorkshopService(storage)
    workshop = await create_workshop(storage, capacity=2)
    await service.register(workshop.id, users[0].id)

    with pytest.raises(HTTPException) as exc:
        await service.register(workshop.id, users[0].id)
    assert exc.value.status_code == 409

    await service.register(workshop.id, users[1].id)
    with pytest.raises(HTTPException) as exc:
        await service.register(workshop.id, users[2].id)
    assert exc.value.status_code == 409
    assert exc.value.detail == "Workshop is full"
    assert len(await storage.get_workshop_registrations(workshop.id)) == 2


async def test_unknown_workshop(storage, users):
    with pytest.raises(HTTPException) as exc:
        await WorkshopService(storage).register(999, users[0].id)
    assert exc.value.status_code == 404
