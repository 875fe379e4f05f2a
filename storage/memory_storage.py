# storage/memory_storage.py

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from schemas.message_schema import MessageCreate, MessageGroupMemberOut, MessageGroupOut, MessageOut
from schemas.survey_schema import SurveyCreate, SurveyOut, SurveyResponseCreate, SurveyResponseOut
from schemas.user_schema import InsertUser, MemberOut, UserInDB
from schemas.verification_schema import VerificationCodeCreate, VerificationCodeOut
from schemas.workshop_schema import (
    WorkshopCreate, WorkshopOut, WorkshopRegistrationCreate, WorkshopRegistrationOut
)
from storage.entity_store import EntityStore
from storage.errors import ConflictError, NotFoundError
from storage.identity_index import IdentityIndex, email_key
from storage.interface import Storage, check_message_target, member_name_matches
from storage.session_store import MemorySessionStore, SessionStore
from utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def _newest_first(records):
    return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)


class MemStorage(Storage):
    """
    Process-local storage used for development and tests.

    Nothing survives a restart. Each entity type gets its own EntityStore;
    users go through the IdentityIndex, verification codes are indexed per
    email and group rosters are kept as real join rows.
    """

    def __init__(self, session_store: Optional[SessionStore] = None, seed_demo_data: bool = False):
        self.session_store = session_store or MemorySessionStore()
        self.seed_demo_data = seed_demo_data

        self.identity = IdentityIndex()
        self.messages: EntityStore[MessageOut] = EntityStore(MessageOut, "Message", required=("content",))
        self.groups: EntityStore[MessageGroupOut] = EntityStore(
            MessageGroupOut, "Message group", required=("name",), timestamps=("created_at", "updated_at")
        )
        self.group_members: EntityStore[MessageGroupMemberOut] = EntityStore(
            MessageGroupMemberOut, "Group member", timestamps=("added_at",)
        )
        self.surveys: EntityStore[SurveyOut] = EntityStore(SurveyOut, "Survey", required=("title",))
        self.survey_responses: EntityStore[SurveyResponseOut] = EntityStore(
            SurveyResponseOut, "Survey response", timestamps=("submitted_at",)
        )
        self.workshops: EntityStore[WorkshopOut] = EntityStore(WorkshopOut, "Workshop", required=("title",))
        self.registrations: EntityStore[WorkshopRegistrationOut] = EntityStore(
            WorkshopRegistrationOut, "Workshop registration", timestamps=("registered_at",)
        )
        self.verification_codes: EntityStore[VerificationCodeOut] = EntityStore(
            VerificationCodeOut, "Verification code", required=("email", "code")
        )
        self.members: EntityStore[MemberOut] = EntityStore(MemberOut, "Member", timestamps=())

        self._codes_by_email: Dict[str, List[int]] = {}
        self._recipients: Dict[int, Tuple[int, ...]] = {}

    async def init(self) -> None:
        if self.seed_demo_data and not len(self.identity.users):
            await self.seed()

    # users
    async def get_user(self, user_id: int) -> Optional[UserInDB]:
        return self.identity.get(user_id)

    async def get_user_by_username(self, username: str) -> Optional[UserInDB]:
        return self.identity.get_by_username(username)

    async def get_user_by_email(self, email: str) -> Optional[UserInDB]:
        return self.identity.get_by_email(email)

    async def get_user_by_email_and_role(self, email: str, role: str) -> Optional[UserInDB]:
        return self.identity.get_by_email_and_role(email, role)

    async def get_users_by_ids(self, ids: List[int]) -> List[UserInDB]:
        return self.identity.get_many(ids)

    async def create_user(self, data: InsertUser) -> UserInDB:
        return self.identity.create_user(data)

    async def update_user(self, user_id: int, data: dict) -> UserInDB:
        return self.identity.update_user(user_id, data)

    # direct messages
    async def create_message(self, data: MessageCreate) -> MessageOut:
        check_message_target(data)
        return self.messages.create(**data.model_dump(), read=False)

    async def get_message(self, message_id: int) -> Optional[MessageOut]:
        return self.messages.get(message_id)

    async def get_messages_by_user(self, user_id: int) -> List[MessageOut]:
        return _newest_first(self.messages.filter(
            lambda m: m.from_user_id == user_id or m.to_user_id == user_id
        ))

    async def mark_message_as_read(self, message_id: int) -> MessageOut:
        return self.messages.update(message_id, read=True)

    # message groups
    def _require_group(self, group_id: int) -> MessageGroupOut:
        group = self.groups.get(group_id)
        if group is None:
            raise NotFoundError("Message group", group_id)
        return group

    def _roster(self, group_id: int) -> List[MessageGroupMemberOut]:
        return sorted(self.group_members.filter(lambda m: m.group_id == group_id), key=lambda m: m.id)

    async def create_message_group(self, name: str, description: Optional[str],
                                   created_by_id: int) -> MessageGroupOut:
        return self.groups.create(name=name, description=description, created_by_id=created_by_id)

    async def get_message_groups(self) -> List[MessageGroupOut]:
        return self.groups.all()

    async def get_message_group_by_id(self, group_id: int) -> Optional[MessageGroupOut]:
        return self.groups.get(group_id)

    async def update_message_group(self, group_id: int, name: Optional[str] = None,
                                   description: Optional[str] = None) -> MessageGroupOut:
        changes = {"updated_at": utcnow()}
        if name:
            changes["name"] = name
        if description is not None:
            changes["description"] = description
        return self.groups.update(group_id, **changes)

    async def delete_message_group(self, group_id: int) -> None:
        self._require_group(group_id)
        for row in self._roster(group_id):
            self.group_members.delete(row.id)
        for message in self.messages.filter(lambda m: m.to_group_id == group_id):
            self.messages.delete(message.id)
            self._recipients.pop(message.id, None)
        self.groups.delete(group_id)

    async def add_member_to_group(self, group_id: int, member_id: int,
                                  added_by_id: int) -> MessageGroupMemberOut:
        self._require_group(group_id)
        if self.identity.get(member_id) is None:
            raise NotFoundError("User", member_id)
        if any(row.member_id == member_id for row in self._roster(group_id)):
            raise ConflictError("member", member_id)
        return self.group_members.create(group_id=group_id, member_id=member_id, added_by_id=added_by_id)

    async def remove_member_from_group(self, group_id: int, member_id: int) -> None:
        for row in self._roster(group_id):
            if row.member_id == member_id:
                self.group_members.delete(row.id)
                return
        raise NotFoundError("Group member", member_id)

    async def get_group_members(self, group_id: int) -> List[MessageGroupMemberOut]:
        return self._roster(group_id)

    async def send_message_to_group(self, from_user_id: int, group_id: int, content: str) -> MessageOut:
        self._require_group(group_id)
        message = await self.create_message(
            MessageCreate(from_user_id=from_user_id, to_group_id=group_id, content=content)
        )
        recipients = tuple(row.member_id for row in self._roster(group_id))
        self._recipients[message.id] = recipients
        logger.info("Group message %s delivered to %d members of group %s", message.id, len(recipients), group_id)
        return message

    async def get_messages_for_group(self, group_id: int) -> List[MessageOut]:
        return _newest_first(self.messages.filter(lambda m: m.to_group_id == group_id))

    async def get_group_messages_for_user(self, user_id: int) -> List[MessageOut]:
        return _newest_first(
            self.messages.get(message_id)
            for message_id, recipients in self._recipients.items()
            if user_id in recipients
        )

    # surveys
    async def create_survey(self, data: SurveyCreate) -> SurveyOut:
        return self.surveys.create(**data.model_dump())

    async def get_survey(self, survey_id: int) -> Optional[SurveyOut]:
        return self.surveys.get(survey_id)

    async def get_surveys(self) -> List[SurveyOut]:
        return self.surveys.all()

    async def create_survey_response(self, data: SurveyResponseCreate) -> SurveyResponseOut:
        return self.survey_responses.create(**data.model_dump())

    async def get_survey_responses(self, survey_id: int) -> List[SurveyResponseOut]:
        return self.survey_responses.filter(lambda r: r.survey_id == survey_id)

    # workshops
    async def create_workshop(self, data: WorkshopCreate) -> WorkshopOut:
        return self.workshops.create(**data.model_dump())

    async def get_workshop(self, workshop_id: int) -> Optional[WorkshopOut]:
        return self.workshops.get(workshop_id)

    async def get_workshops(self) -> List[WorkshopOut]:
        return self.workshops.all()

    async def register_for_workshop(self, data: WorkshopRegistrationCreate) -> WorkshopRegistrationOut:
        return self.registrations.create(**data.model_dump())

    async def get_workshop_registrations(self, workshop_id: int) -> List[WorkshopRegistrationOut]:
        return self.registrations.filter(lambda r: r.workshop_id == workshop_id)

    # verification codes
    async def create_verification_code(self, data: VerificationCodeCreate) -> VerificationCodeOut:
        record = self.verification_codes.create(**data.model_dump(), verified=False)
        self._codes_by_email.setdefault(email_key(record.email), []).append(record.id)
        return record

    def _codes_for(self, email: str) -> List[VerificationCodeOut]:
        found = (self.verification_codes.get(code_id) for code_id in self._codes_by_email.get(email_key(email), []))
        return [record for record in found if record is not None]

    async def get_verification_code(self, email: str, code: str) -> Optional[VerificationCodeOut]:
        for record in self._codes_for(email):
            if record.code == code:
                return record
        return None

    async def verify_code(self, code_id: int) -> VerificationCodeOut:
        return self.verification_codes.update(code_id, verified=True)

    async def get_pending_verifications(self, email: str) -> List[VerificationCodeOut]:
        now = utcnow()
        return _newest_first(record for record in self._codes_for(email) if record.is_valid(now))

    async def purge_verification_codes(self, before: datetime) -> int:
        stale = self.verification_codes.filter(lambda r: r.expires_at < before)
        for record in stale:
            self.verification_codes.delete(record.id)
            ids = self._codes_by_email.get(email_key(record.email), [])
            if record.id in ids:
                ids.remove(record.id)
            if not ids:
                self._codes_by_email.pop(email_key(record.email), None)
        return len(stale)

    # membership roll
    async def create_member(self, email: str, first_name: str, last_name: str,
                            category: Optional[str] = None) -> MemberOut:
        return self.members.create(email=email, first_name=first_name, last_name=last_name, category=category)

    async def find_member(self, email: str, first_name: str, last_name: str) -> Optional[MemberOut]:
        wanted = email_key(email)
        for member in self.members.all():
            if email_key(member.email or "") == wanted and member_name_matches(
                member.first_name, member.last_name, first_name, last_name
            ):
                return member
        return None
