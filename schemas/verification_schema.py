from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

CODE_LENGTH = 7


class VerificationCodeCreate(BaseModel):
    email: str
    first_name: str
    last_name: str
    code: str = Field(min_length=CODE_LENGTH, max_length=CODE_LENGTH)
    expires_at: datetime

    @field_validator("expires_at")
    @classmethod
    def naive_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class VerificationCodeOut(VerificationCodeCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    verified: bool = False
    created_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return not self.verified and self.expires_at > now


class MemberVerificationRequest(BaseModel):
    email: EmailStr
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)


class CodeConfirmation(BaseModel):
    email: EmailStr
    code: str = Field(min_length=CODE_LENGTH, max_length=CODE_LENGTH)


class VerificationResult(BaseModel):
    success: bool = True
    message: str
    # only filled outside production so the flow can be exercised without a mailbox
    code: Optional[str] = None
    # from the membership roll so registration can prefill it
    member_level: Optional[str] = None
