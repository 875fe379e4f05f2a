from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from dependencies.auth import get_current_user, get_storage, require_workshop_manager
from dependencies.services import get_workshop_service
from schemas.user_schema import UserInDB
from schemas.workshop_schema import WorkshopCreate, WorkshopOut, WorkshopRegistrationOut
from services.workshop_service import WorkshopService
from storage.errors import NotFoundError
from storage.interface import Storage

router = APIRouter()


class RegistrationRequest(BaseModel):
    notes: Optional[str] = None


@router.post("", response_model=WorkshopOut, status_code=status.HTTP_201_CREATED)
async def create_workshop(data: WorkshopCreate, user: UserInDB = Depends(require_workshop_manager),
                          storage: Storage = Depends(get_storage)):
    return await storage.create_workshop(data.model_copy(update={"created_by_id": user.id}))


@router.get("", response_model=List[WorkshopOut])
async def list_workshops(_: UserInDB = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    return await storage.get_workshops()


@router.get("/{workshop_id}", response_model=WorkshopOut)
async def get_workshop(workshop_id: int, _: UserInDB = Depends(get_current_user),
                       storage: Storage = Depends(get_storage)):
    workshop = await storage.get_workshop(workshop_id)
    if workshop is None:
        raise NotFoundError("Workshop", workshop_id)
    return workshop


@router.post("/{workshop_id}/register", response_model=WorkshopRegistrationOut,
             status_code=status.HTTP_201_CREATED)
async def register(workshop_id: int, data: RegistrationRequest = RegistrationRequest(),
                   user: UserInDB = Depends(get_current_user),
                   service: WorkshopService = Depends(get_workshop_service)):
    return await service.register(workshop_id, user.id, data.notes)


@router.get("/{workshop_id}/registrations", response_model=List[WorkshopRegistrationOut])
async def list_registrations(workshop_id: int, _: UserInDB = Depends(require_workshop_manager),
                             storage: Storage = Depends(get_storage)):
    if await storage.get_workshop(workshop_id) is None:
        raise NotFoundError("Workshop", workshop_id)
    return await storage.get_workshop_registrations(workshop_id)
