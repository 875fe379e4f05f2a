# storage/database_storage.py

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from database import Base, make_session_factory
from models.message_model import Message, MessageGroup, MessageGroupMember, MessageRecipient
from models.survey_model import Survey, SurveyResponse
from models.user_model import Member, User
from models.verification_model import VerificationCode
from models.workshop_model import Workshop, WorkshopRegistration
from schemas.message_schema import MessageCreate, MessageGroupMemberOut, MessageGroupOut, MessageOut
from schemas.survey_schema import SurveyCreate, SurveyOut, SurveyResponseCreate, SurveyResponseOut
from schemas.user_schema import InsertUser, MemberOut, Role, UserInDB, default_permissions
from schemas.verification_schema import VerificationCodeCreate, VerificationCodeOut
from schemas.workshop_schema import (
    WorkshopCreate, WorkshopOut, WorkshopRegistrationCreate, WorkshopRegistrationOut
)
from storage.errors import BackendError, ConflictError, NotFoundError, ValidationError
from storage.identity_index import apply_user_changes, clean_user_changes, email_key
from storage.interface import Storage, check_message_target, member_name_matches
from storage.session_store import DatabaseSessionStore, SessionStore
from utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def _require(fields: dict, *names: str) -> None:
    for name in names:
        if fields.get(name) in (None, ""):
            raise ValidationError(f"{name.replace('_', ' ').capitalize()} is required")


def _role_value(role) -> str:
    return role.value if isinstance(role, Role) else role


def _email_column(column):
    # same normalisation as identity_index.email_key
    return func.lower(func.trim(column))


class DatabaseStorage(Storage):
    """
    Storage persisted through async SQLAlchemy.

    Each call runs in its own session and commits before returning, so a
    call is atomic but a sequence of calls is not. Driver failures surface
    as BackendError.
    """

    def __init__(self, engine: AsyncEngine, session_store: Optional[SessionStore] = None,
                 seed_demo_data: bool = False):
        self.engine = engine
        self.session_factory = make_session_factory(engine)
        self.session_store = session_store or DatabaseSessionStore(self.session_factory)
        self.seed_demo_data = seed_demo_data

    async def init(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        if self.seed_demo_data and await self.get_user_by_username("demo") is None:
            await self.seed()

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_factory() as db:
                yield db
        except SQLAlchemyError as exc:
            logger.error("Database error: %s", exc)
            raise BackendError(str(exc)) from exc

    # users
    async def get_user(self, user_id: int) -> Optional[UserInDB]:
        async with self._session() as db:
            user = await db.get(User, user_id)
            return UserInDB.model_validate(user) if user else None

    async def get_user_by_username(self, username: str) -> Optional[UserInDB]:
        async with self._session() as db:
            user = await db.scalar(select(User).where(User.username == username))
            return UserInDB.model_validate(user) if user else None

    async def get_user_by_email(self, email: str) -> Optional[UserInDB]:
        async with self._session() as db:
            user = await db.scalar(select(User).where(_email_column(User.email) == email_key(email)))
            return UserInDB.model_validate(user) if user else None

    async def get_user_by_email_and_role(self, email: str, role: str) -> Optional[UserInDB]:
        async with self._session() as db:
            user = await db.scalar(
                select(User)
                .where(_email_column(User.email) == email_key(email), User.role == _role_value(role))
                .order_by(User.id)
                .limit(1)
            )
            if user is None:
                logger.debug("No user with email %s and role %s", email, role)
                return None
            return UserInDB.model_validate(user)

    async def get_users_by_ids(self, ids: List[int]) -> List[UserInDB]:
        if not ids:
            return []
        async with self._session() as db:
            result = await db.scalars(select(User).where(User.id.in_(ids)))
            by_id = {user.id: UserInDB.model_validate(user) for user in result.all()}
        return [by_id[user_id] for user_id in ids if user_id in by_id]

    async def _check_identity_free(self, db: AsyncSession, username: Optional[str], email: Optional[str],
                                   user_id: Optional[int] = None) -> None:
        checks = (("username", username, User.username == username),
                  ("email", email, _email_column(User.email) == email_key(email or "")))
        for field, value, condition in checks:
            if not value:
                continue
            query = select(User.id).where(condition)
            if user_id is not None:
                query = query.where(User.id != user_id)
            if await db.scalar(query) is not None:
                raise ConflictError(field, value)

    async def create_user(self, data: InsertUser) -> UserInDB:
        fields = data.model_dump()
        _require(fields, "username", "email", "password")
        for flag, value in default_permissions(fields["role"]).items():
            if fields.get(flag) is None:
                fields[flag] = value
        fields["role"] = _role_value(fields["role"])

        async with self._session() as db:
            await self._check_identity_free(db, fields["username"], fields["email"])
            user = User(**fields)
            db.add(user)
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise ConflictError("username or email", fields["username"]) from exc
            return UserInDB.model_validate(user)

    async def update_user(self, user_id: int, data: dict) -> UserInDB:
        changes = clean_user_changes(data)
        async with self._session() as db:
            user = await db.get(User, user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            await self._check_identity_free(db, changes.get("username"), changes.get("email"), user_id)
            # nothing is written unless the whole record still validates
            updated = apply_user_changes(UserInDB.model_validate(user), changes)
            for key in changes:
                value = getattr(updated, key)
                setattr(user, key, _role_value(value) if key == "role" else value)
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise ConflictError("username or email", changes.get("username") or changes.get("email")) from exc
            return UserInDB.model_validate(user)

    # direct messages
    async def create_message(self, data: MessageCreate) -> MessageOut:
        check_message_target(data)
        _require(data.model_dump(), "content")
        async with self._session() as db:
            message = Message(**data.model_dump(), read=False)
            db.add(message)
            await db.commit()
            return MessageOut.model_validate(message)

    async def get_message(self, message_id: int) -> Optional[MessageOut]:
        async with self._session() as db:
            message = await db.get(Message, message_id)
            return MessageOut.model_validate(message) if message else None

    async def _list_messages(self, query) -> List[MessageOut]:
        async with self._session() as db:
            result = await db.scalars(query.order_by(Message.created_at.desc(), Message.id.desc()))
            return [MessageOut.model_validate(message) for message in result.all()]

    async def get_messages_by_user(self, user_id: int) -> List[MessageOut]:
        return await self._list_messages(
            select(Message).where(or_(Message.from_user_id == user_id, Message.to_user_id == user_id))
        )

    async def mark_message_as_read(self, message_id: int) -> MessageOut:
        async with self._session() as db:
            message = await db.get(Message, message_id)
            if message is None:
                raise NotFoundError("Message", message_id)
            message.read = True
            await db.commit()
            return MessageOut.model_validate(message)

    # message groups
    async def _get_group(self, db: AsyncSession, group_id: int) -> MessageGroup:
        group = await db.get(MessageGroup, group_id)
        if group is None:
            raise NotFoundError("Message group", group_id)
        return group

    async def create_message_group(self, name: str, description: Optional[str],
                                   created_by_id: int) -> MessageGroupOut:
        _require({"name": name}, "name")
        async with self._session() as db:
            now = utcnow()
            group = MessageGroup(name=name, description=description, created_by_id=created_by_id,
                                 created_at=now, updated_at=now)
            db.add(group)
            await db.commit()
            return MessageGroupOut.model_validate(group)

    async def get_message_groups(self) -> List[MessageGroupOut]:
        async with self._session() as db:
            result = await db.scalars(select(MessageGroup).order_by(MessageGroup.id))
            return [MessageGroupOut.model_validate(group) for group in result.all()]

    async def get_message_group_by_id(self, group_id: int) -> Optional[MessageGroupOut]:
        async with self._session() as db:
            group = await db.get(MessageGroup, group_id)
            return MessageGroupOut.model_validate(group) if group else None

    async def update_message_group(self, group_id: int, name: Optional[str] = None,
                                   description: Optional[str] = None) -> MessageGroupOut:
        async with self._session() as db:
            group = await self._get_group(db, group_id)
            if name:
                group.name = name
            if description is not None:
                group.description = description
            group.updated_at = utcnow()
            await db.commit()
            return MessageGroupOut.model_validate(group)

    async def delete_message_group(self, group_id: int) -> None:
        async with self._session() as db:
            group = await self._get_group(db, group_id)
            group_messages = select(Message.id).where(Message.to_group_id == group_id)
            await db.execute(delete(MessageRecipient).where(MessageRecipient.message_id.in_(group_messages)))
            await db.execute(delete(Message).where(Message.to_group_id == group_id))
            await db.execute(delete(MessageGroupMember).where(MessageGroupMember.group_id == group_id))
            await db.delete(group)
            await db.commit()

    async def add_member_to_group(self, group_id: int, member_id: int,
                                  added_by_id: int) -> MessageGroupMemberOut:
        async with self._session() as db:
            await self._get_group(db, group_id)
            if await db.get(User, member_id) is None:
                raise NotFoundError("User", member_id)
            existing = await db.scalar(select(MessageGroupMember.id).where(
                MessageGroupMember.group_id == group_id, MessageGroupMember.member_id == member_id
            ))
            if existing is not None:
                raise ConflictError("member", member_id)
            row = MessageGroupMember(group_id=group_id, member_id=member_id, added_by_id=added_by_id)
            db.add(row)
            await db.commit()
            return MessageGroupMemberOut.model_validate(row)

    async def remove_member_from_group(self, group_id: int, member_id: int) -> None:
        async with self._session() as db:
            result = await db.execute(delete(MessageGroupMember).where(
                MessageGroupMember.group_id == group_id, MessageGroupMember.member_id == member_id
            ))
            await db.commit()
            if not result.rowcount:
                raise NotFoundError("Group member", member_id)

    async def get_group_members(self, group_id: int) -> List[MessageGroupMemberOut]:
        async with self._session() as db:
            result = await db.scalars(
                select(MessageGroupMember)
                .where(MessageGroupMember.group_id == group_id)
                .order_by(MessageGroupMember.id)
            )
            return [MessageGroupMemberOut.model_validate(row) for row in result.all()]

    async def send_message_to_group(self, from_user_id: int, group_id: int, content: str) -> MessageOut:
        _require({"content": content}, "content")
        async with self._session() as db:
            await self._get_group(db, group_id)
            message = Message(from_user_id=from_user_id, to_group_id=group_id, content=content, read=False)
            db.add(message)
            await db.flush()
            roster = (await db.scalars(
                select(MessageGroupMember.member_id).where(MessageGroupMember.group_id == group_id)
            )).all()
            db.add_all(MessageRecipient(message_id=message.id, user_id=member_id) for member_id in roster)
            await db.commit()
            logger.info("Group message %s delivered to %d members of group %s", message.id, len(roster), group_id)
            return MessageOut.model_validate(message)

    async def get_messages_for_group(self, group_id: int) -> List[MessageOut]:
        return await self._list_messages(select(Message).where(Message.to_group_id == group_id))

    async def get_group_messages_for_user(self, user_id: int) -> List[MessageOut]:
        return await self._list_messages(
            select(Message)
            .join(MessageRecipient, MessageRecipient.message_id == Message.id)
            .where(MessageRecipient.user_id == user_id)
        )

    # surveys
    async def create_survey(self, data: SurveyCreate) -> SurveyOut:
        _require(data.model_dump(), "title")
        async with self._session() as db:
            survey = Survey(**data.model_dump())
            db.add(survey)
            await db.commit()
            return SurveyOut.model_validate(survey)

    async def get_survey(self, survey_id: int) -> Optional[SurveyOut]:
        async with self._session() as db:
            survey = await db.get(Survey, survey_id)
            return SurveyOut.model_validate(survey) if survey else None

    async def get_surveys(self) -> List[SurveyOut]:
        async with self._session() as db:
            result = await db.scalars(select(Survey).order_by(Survey.id))
            return [SurveyOut.model_validate(survey) for survey in result.all()]

    async def create_survey_response(self, data: SurveyResponseCreate) -> SurveyResponseOut:
        async with self._session() as db:
            response = SurveyResponse(**data.model_dump())
            db.add(response)
            await db.commit()
            return SurveyResponseOut.model_validate(response)

    async def get_survey_responses(self, survey_id: int) -> List[SurveyResponseOut]:
        async with self._session() as db:
            result = await db.scalars(
                select(SurveyResponse).where(SurveyResponse.survey_id == survey_id).order_by(SurveyResponse.id)
            )
            return [SurveyResponseOut.model_validate(response) for response in result.all()]

    # workshops
    async def create_workshop(self, data: WorkshopCreate) -> WorkshopOut:
        _require(data.model_dump(), "title")
        async with self._session() as db:
            workshop = Workshop(**data.model_dump())
            db.add(workshop)
            await db.commit()
            return WorkshopOut.model_validate(workshop)

    async def get_workshop(self, workshop_id: int) -> Optional[WorkshopOut]:
        async with self._session() as db:
            workshop = await db.get(Workshop, workshop_id)
            return WorkshopOut.model_validate(workshop) if workshop else None

    async def get_workshops(self) -> List[WorkshopOut]:
        async with self._session() as db:
            result = await db.scalars(select(Workshop).order_by(Workshop.id))
            return [WorkshopOut.model_validate(workshop) for workshop in result.all()]

    async def register_for_workshop(self, data: WorkshopRegistrationCreate) -> WorkshopRegistrationOut:
        async with self._session() as db:
            registration = WorkshopRegistration(**data.model_dump())
            db.add(registration)
            await db.commit()
            return WorkshopRegistrationOut.model_validate(registration)

    async def get_workshop_registrations(self, workshop_id: int) -> List[WorkshopRegistrationOut]:
        async with self._session() as db:
            result = await db.scalars(
                select(WorkshopRegistration)
                .where(WorkshopRegistration.workshop_id == workshop_id)
                .order_by(WorkshopRegistration.id)
            )
            return [WorkshopRegistrationOut.model_validate(row) for row in result.all()]

    # verification codes
    async def create_verification_code(self, data: VerificationCodeCreate) -> VerificationCodeOut:
        _require(data.model_dump(), "email", "code")
        async with self._session() as db:
            record = VerificationCode(**data.model_dump(), verified=False)
            db.add(record)
            await db.commit()
            return VerificationCodeOut.model_validate(record)

    async def get_verification_code(self, email: str, code: str) -> Optional[VerificationCodeOut]:
        async with self._session() as db:
            record = await db.scalar(
                select(VerificationCode)
                .where(_email_column(VerificationCode.email) == email_key(email), VerificationCode.code == code)
                .order_by(VerificationCode.id)
                .limit(1)
            )
            return VerificationCodeOut.model_validate(record) if record else None

    async def verify_code(self, code_id: int) -> VerificationCodeOut:
        async with self._session() as db:
            record = await db.get(VerificationCode, code_id)
            if record is None:
                raise NotFoundError("Verification code", code_id)
            record.verified = True
            await db.commit()
            return VerificationCodeOut.model_validate(record)

    async def get_pending_verifications(self, email: str) -> List[VerificationCodeOut]:
        async with self._session() as db:
            result = await db.scalars(
                select(VerificationCode)
                .where(
                    _email_column(VerificationCode.email) == email_key(email),
                    VerificationCode.verified.is_(False),
                    VerificationCode.expires_at > utcnow(),
                )
                .order_by(VerificationCode.created_at.desc(), VerificationCode.id.desc())
            )
            return [VerificationCodeOut.model_validate(record) for record in result.all()]

    async def purge_verification_codes(self, before: datetime) -> int:
        async with self._session() as db:
            result = await db.execute(delete(VerificationCode).where(VerificationCode.expires_at < before))
            await db.commit()
            return result.rowcount or 0

    # membership roll
    async def create_member(self, email: str, first_name: str, last_name: str,
                            category: Optional[str] = None) -> MemberOut:
        async with self._session() as db:
            member = Member(email=email, first_name=first_name, last_name=last_name, category=category)
            db.add(member)
            await db.commit()
            return MemberOut.model_validate(member)

    async def find_member(self, email: str, first_name: str, last_name: str) -> Optional[MemberOut]:
        async with self._session() as db:
            result = await db.scalars(
                select(Member).where(_email_column(Member.email) == email_key(email)).order_by(Member.id)
            )
            for member in result.all():
                if member_name_matches(member.first_name, member.last_name, first_name, last_name):
                    return MemberOut.model_validate(member)
        return None
