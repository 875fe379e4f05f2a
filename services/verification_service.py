import logging
import random
from datetime import timedelta
from typing import List, Optional

from fastapi import HTTPException, status

from core.config import Settings
from schemas.verification_schema import (
    CodeConfirmation, MemberVerificationRequest, VerificationCodeCreate, VerificationCodeOut, VerificationResult
)
from storage.interface import Storage
from utils.email_service import EmailService
from utils.time_utils import utcnow

logger = logging.getLogger(__name__)

_random = random.SystemRandom()


def generate_code() -> str:
    return str(_random.randint(1000000, 9999999))


class VerificationService:
    def __init__(self, storage: Storage, email_service: EmailService, settings: Settings):
        self.storage = storage
        self.email_service = email_service
        self.settings = settings

    async def issue_code(self, email: str, first_name: str, last_name: str) -> tuple[VerificationCodeOut, bool]:
        ttl = self.settings.VERIFICATION_CODE_TTL_MINUTES
        record = await self.storage.create_verification_code(VerificationCodeCreate(
            email=email,
            first_name=first_name,
            last_name=last_name,
            code=generate_code(),
            expires_at=utcnow() + timedelta(minutes=ttl),
        ))
        # the code stays valid even if the mail never leaves; it simply expires
        sent = await self.email_service.send_verification_email(email, first_name, record.code, ttl)
        if self.settings.is_development:
            logger.info("Verification code for %s: %s", email, record.code)
        return record, sent

    async def request_member_code(self, data: MemberVerificationRequest) -> VerificationResult:
        member = await self.storage.find_member(data.email, data.first_name, data.last_name)
        if member is None and not self.settings.is_development:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                                detail="No matching record found for this name and email.")

        record, sent = await self.issue_code(data.email, data.first_name, data.last_name)
        return VerificationResult(
            message="Verification code sent to email" if sent
            else "Verification code generated but email delivery failed",
            code=record.code if self.settings.is_development else None,
            member_level=member.category if member else None,
        )

    async def confirm_code(self, data: CodeConfirmation) -> VerificationCodeOut:
        record = await self.storage.get_verification_code(data.email, data.code)
        if record is None:
            raise HTTPException(status_code=404, detail="The verification code is invalid or has expired.")
        if record.verified:
            raise HTTPException(status_code=400, detail="The verification code has already been used.")
        if record.expires_at <= utcnow():
            raise HTTPException(status_code=400, detail="The verification code has expired.")
        return await self.storage.verify_code(record.id)

    async def member_level(self, email: str, first_name: str, last_name: str) -> Optional[str]:
        member = await self.storage.find_member(email, first_name, last_name)
        return member.category if member else None

    async def pending(self, email: str) -> List[VerificationCodeOut]:
        return await self.storage.get_pending_verifications(email)
