from fastapi import Depends, Request

from core.config import Settings
from dependencies.auth import get_settings, get_storage
from services.user_service import UserService
from services.verification_service import VerificationService
from services.workshop_service import WorkshopService
from storage.interface import Storage


def get_user_service(storage: Storage = Depends(get_storage)) -> UserService:
    return UserService(storage)


def get_verification_service(
    request: Request,
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> VerificationService:
    return VerificationService(storage, request.app.state.email_service, settings)


def get_workshop_service(storage: Storage = Depends(get_storage)) -> WorkshopService:
    return WorkshopService(storage)
