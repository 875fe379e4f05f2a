# storage/interface.py

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from schemas.message_schema import MessageCreate, MessageGroupMemberOut, MessageGroupOut, MessageOut
from schemas.survey_schema import SurveyCreate, SurveyOut, SurveyResponseCreate, SurveyResponseOut
from schemas.user_schema import InsertUser, MemberOut, Role, UserInDB
from schemas.verification_schema import VerificationCodeCreate, VerificationCodeOut
from schemas.workshop_schema import (
    WorkshopCreate, WorkshopOut, WorkshopRegistrationCreate, WorkshopRegistrationOut
)
from storage.errors import ValidationError
from storage.session_store import SessionStore
from utils.auth_utils import Hasher

logger = logging.getLogger(__name__)

DEMO_MEMBERS = (
    ("test@example.com", "Test", "User", "Full"),
    ("jane@example.com", "Jane", "Doe", "Associate"),
    ("john@example.com", "John", "Doe", "Student"),
)


def member_name_matches(first_name: Optional[str], last_name: Optional[str],
                        wanted_first: str, wanted_last: str) -> bool:
    """First names must match; a stored last name may carry a suffix ("Forbes, MFA")."""
    first = (first_name or "").strip().lower()
    last = (last_name or "").strip().lower()
    wanted_last = wanted_last.strip().lower()
    return first == wanted_first.strip().lower() and last.startswith(wanted_last)


def check_message_target(data: MessageCreate) -> None:
    if (data.to_user_id is None) == (data.to_group_id is None):
        raise ValidationError("A message needs exactly one recipient: a user or a group")


class Storage(ABC):
    """
    The method contract route handlers rely on. Every backend raises the
    errors in `storage.errors` and nothing else.
    """

    session_store: SessionStore

    async def init(self) -> None:
        """Prepare the backend (create tables, seed data)."""

    async def close(self) -> None:
        """Release backend resources."""

    # users
    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[UserInDB]: ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[UserInDB]: ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[UserInDB]: ...

    @abstractmethod
    async def get_user_by_email_and_role(self, email: str, role: str) -> Optional[UserInDB]: ...

    @abstractmethod
    async def get_users_by_ids(self, ids: List[int]) -> List[UserInDB]: ...

    @abstractmethod
    async def create_user(self, data: InsertUser) -> UserInDB: ...

    @abstractmethod
    async def update_user(self, user_id: int, data: dict) -> UserInDB: ...

    async def complete_onboarding(self, user_id: int) -> UserInDB:
        return await self.update_user(user_id, {"has_completed_onboarding": True})

    # direct messages
    @abstractmethod
    async def create_message(self, data: MessageCreate) -> MessageOut: ...

    @abstractmethod
    async def get_message(self, message_id: int) -> Optional[MessageOut]: ...

    @abstractmethod
    async def get_messages_by_user(self, user_id: int) -> List[MessageOut]: ...

    @abstractmethod
    async def mark_message_as_read(self, message_id: int) -> MessageOut: ...

    # message groups
    @abstractmethod
    async def create_message_group(self, name: str, description: Optional[str],
                                   created_by_id: int) -> MessageGroupOut: ...

    @abstractmethod
    async def get_message_groups(self) -> List[MessageGroupOut]: ...

    @abstractmethod
    async def get_message_group_by_id(self, group_id: int) -> Optional[MessageGroupOut]: ...

    @abstractmethod
    async def update_message_group(self, group_id: int, name: Optional[str] = None,
                                   description: Optional[str] = None) -> MessageGroupOut: ...

    @abstractmethod
    async def delete_message_group(self, group_id: int) -> None: ...

    @abstractmethod
    async def add_member_to_group(self, group_id: int, member_id: int,
                                  added_by_id: int) -> MessageGroupMemberOut: ...

    @abstractmethod
    async def remove_member_from_group(self, group_id: int, member_id: int) -> None: ...

    @abstractmethod
    async def get_group_members(self, group_id: int) -> List[MessageGroupMemberOut]: ...

    @abstractmethod
    async def send_message_to_group(self, from_user_id: int, group_id: int, content: str) -> MessageOut: ...

    @abstractmethod
    async def get_messages_for_group(self, group_id: int) -> List[MessageOut]: ...

    @abstractmethod
    async def get_group_messages_for_user(self, user_id: int) -> List[MessageOut]: ...

    # surveys
    @abstractmethod
    async def create_survey(self, data: SurveyCreate) -> SurveyOut: ...

    @abstractmethod
    async def get_survey(self, survey_id: int) -> Optional[SurveyOut]: ...

    @abstractmethod
    async def get_surveys(self) -> List[SurveyOut]: ...

    @abstractmethod
    async def create_survey_response(self, data: SurveyResponseCreate) -> SurveyResponseOut: ...

    @abstractmethod
    async def get_survey_responses(self, survey_id: int) -> List[SurveyResponseOut]: ...

    # workshops
    @abstractmethod
    async def create_workshop(self, data: WorkshopCreate) -> WorkshopOut: ...

    @abstractmethod
    async def get_workshop(self, workshop_id: int) -> Optional[WorkshopOut]: ...

    @abstractmethod
    async def get_workshops(self) -> List[WorkshopOut]: ...

    @abstractmethod
    async def register_for_workshop(self, data: WorkshopRegistrationCreate) -> WorkshopRegistrationOut: ...

    @abstractmethod
    async def get_workshop_registrations(self, workshop_id: int) -> List[WorkshopRegistrationOut]: ...

    # verification codes
    @abstractmethod
    async def create_verification_code(self, data: VerificationCodeCreate) -> VerificationCodeOut: ...

    @abstractmethod
    async def get_verification_code(self, email: str, code: str) -> Optional[VerificationCodeOut]: ...

    @abstractmethod
    async def verify_code(self, code_id: int) -> VerificationCodeOut: ...

    @abstractmethod
    async def get_pending_verifications(self, email: str) -> List[VerificationCodeOut]: ...

    @abstractmethod
    async def purge_verification_codes(self, before: datetime) -> int: ...

    # membership roll
    @abstractmethod
    async def create_member(self, email: str, first_name: str, last_name: str,
                            category: Optional[str] = None) -> MemberOut: ...

    @abstractmethod
    async def find_member(self, email: str, first_name: str, last_name: str) -> Optional[MemberOut]: ...

    async def check_member_exists(self, email: str, first_name: str, last_name: str) -> bool:
        return await self.find_member(email, first_name, last_name) is not None

    async def seed(self) -> None:
        """Demo admin (demo / password) and a few roll entries, the same on every backend."""
        await self.create_user(InsertUser(
            username="demo", email="demo@example.com", password=Hasher.get_password_hash("password"),
            first_name="John", last_name="Doe", role=Role.ADMIN, has_completed_onboarding=True,
        ))
        for email, first, last, category in DEMO_MEMBERS:
            await self.create_member(email, first, last, category)
        logger.info("Seeded %s with demo user and %d members", type(self).__name__, len(DEMO_MEMBERS))
