import logging
from typing import Optional

from fastapi import HTTPException, status

from schemas.user_schema import InsertUser, Role, UserCreate, UserInDB, UserLogin, UserUpdate
from schemas.verification_schema import CodeConfirmation
from services.verification_service import VerificationService
from storage.errors import ConflictError
from storage.interface import Storage
from utils.auth_utils import Hasher

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, storage: Storage):
        self.storage = storage

    async def create_user(self, user_data: UserCreate) -> UserInDB:
        existing_user = await self.storage.get_user_by_email(user_data.email)
        if existing_user:
            raise HTTPException(status_code=400, detail="Email already registered")

        try:
            new_user = await self.storage.create_user(InsertUser(
                username=user_data.username or user_data.email,
                email=user_data.email,
                password=Hasher.get_password_hash(user_data.password),
                first_name=user_data.first_name,
                last_name=user_data.last_name,
                member_level=user_data.member_level,
                role=Role.USER,
            ))
        except ConflictError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        logger.info("Registered user %s (id %s)", new_user.username, new_user.id)
        return new_user

    async def _find_login_user(self, user_data: UserLogin) -> Optional[UserInDB]:
        if user_data.role is not None:
            user = await self.storage.get_user_by_email_and_role(user_data.username, user_data.role)
            if user is None:
                # chairs sign in with a username rather than an email
                user = await self.storage.get_user_by_username(user_data.username)
                if user is not None and user.role != user_data.role:
                    return None
            return user

        user = await self.storage.get_user_by_username(user_data.username)
        if user is None:
            user = await self.storage.get_user_by_email(user_data.username)
        return user

    async def authenticate_user(self, user_data: UserLogin) -> Optional[UserInDB]:
        user = await self._find_login_user(user_data)
        if not user:
            logger.info("No user found for login %s", user_data.username)
            return None
        if not Hasher.verify_password(user_data.password, user.password):
            logger.info("Invalid password for %s", user_data.username)
            return None
        return user

    async def update_profile(self, user: UserInDB, data: UserUpdate) -> UserInDB:
        return await self.storage.update_user(user.id, data.model_dump(exclude_unset=True))

    async def complete_onboarding(self, user: UserInDB) -> UserInDB:
        if user.has_completed_onboarding:
            return user
        return await self.storage.complete_onboarding(user.id)

    async def send_reset_code(self, email: str, verification: VerificationService):
        user = await self.storage.get_user_by_email(email)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        await verification.issue_code(user.email, user.first_name or user.username, user.last_name or "")
        return True

    async def reset_password(self, email: str, token: str, new_password: str, verification: VerificationService):
        user = await self.storage.get_user_by_email(email)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        await verification.confirm_code(CodeConfirmation(email=email, code=token))
        await self.storage.update_user(user.id, {"password": Hasher.get_password_hash(new_password)})
        return True
