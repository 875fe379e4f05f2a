from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    COMMITTEE_CHAIR = "committee_chair"
    COMMITTEE_COCHAIR = "committee_cochair"
    COMMITTEE_MEMBER = "committee_member"


MEMBER_LEVELS = ("Affiliate", "Associate", "Companion", "Full Life", "Full", "Student")


def default_permissions(role: Role) -> dict:
    role = Role(role)
    return {
        "can_manage_committees": role in (Role.ADMIN, Role.COMMITTEE_CHAIR),
        "can_manage_workshops": role in (Role.ADMIN, Role.COMMITTEE_CHAIR, Role.COMMITTEE_COCHAIR),
    }


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    first_name: str
    last_name: str
    username: Optional[str] = None
    member_level: Optional[str] = None


class InsertUser(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # identity fields are checked by the store so a missing one is a storage ValidationError
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Role = Role.USER
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    alternate_email: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    member_level: Optional[str] = None
    gender: Optional[str] = None
    lgbtq2_status: Optional[str] = None
    bipoc_status: Optional[str] = None
    ethnicity: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    languages: List[str] = Field(default_factory=list)
    can_manage_committees: Optional[bool] = None
    can_manage_workshops: Optional[bool] = None
    has_completed_onboarding: bool = False


class UserUpdate(BaseModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    alternate_email: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    member_level: Optional[str] = None
    gender: Optional[str] = None
    lgbtq2_status: Optional[str] = None
    bipoc_status: Optional[str] = None
    ethnicity: Optional[List[str]] = None
    location: Optional[str] = None
    languages: Optional[List[str]] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: Role = Role.USER
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    alternate_email: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    member_level: Optional[str] = None
    gender: Optional[str] = None
    lgbtq2_status: Optional[str] = None
    bipoc_status: Optional[str] = None
    ethnicity: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    languages: List[str] = Field(default_factory=list)
    can_manage_committees: bool = False
    can_manage_workshops: bool = False
    has_completed_onboarding: bool = False
    created_at: datetime


class UserInDB(UserOut):
    password: str


class UserLogin(BaseModel):
    # username or email
    username: str
    password: str
    role: Optional[Role] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class ResetPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordForm(BaseModel):
    email: EmailStr
    new_password: str = Field(min_length=8)
    token: str


class MemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    category: Optional[str] = None
