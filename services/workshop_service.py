import logging

from fastapi import HTTPException, status

from schemas.workshop_schema import WorkshopRegistrationCreate, WorkshopRegistrationOut
from storage.interface import Storage

logger = logging.getLogger(__name__)


class WorkshopService:
    """Registration rules the store leaves to its callers: capacity and duplicates."""

    def __init__(self, storage: Storage):
        self.storage = storage

    async def register(self, workshop_id: int, user_id: int, notes: str = None) -> WorkshopRegistrationOut:
        workshop = await self.storage.get_workshop(workshop_id)
        if workshop is None:
            raise HTTPException(status_code=404, detail="Workshop not found")

        registrations = await self.storage.get_workshop_registrations(workshop_id)
        if any(r.user_id == user_id for r in registrations):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT,
                                detail="You are already registered for this workshop")
        if len(registrations) >= workshop.capacity:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Workshop is full")

        registration = await self.storage.register_for_workshop(WorkshopRegistrationCreate(
            workshop_id=workshop_id,
            user_id=user_id,
            is_approved=not workshop.requires_approval,
            payment_status="unpaid" if workshop.is_paid else "not_required",
            notes=notes,
        ))
        logger.info("User %s registered for workshop %s (%d/%d)",
                    user_id, workshop_id, len(registrations) + 1, workshop.capacity)
        return registration
