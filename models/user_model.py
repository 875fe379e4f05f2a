# models/user_model.py

from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON
from database import Base
from utils.time_utils import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    role = Column(String, nullable=False, default="user")
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    # contact
    phone_number = Column(String, nullable=True)
    alternate_email = Column(String, nullable=True)
    emergency_contact = Column(String, nullable=True)
    emergency_phone = Column(String, nullable=True)
    # demographics
    member_level = Column(String, nullable=True)
    gender = Column(String, nullable=True)
    lgbtq2_status = Column(String, nullable=True)
    bipoc_status = Column(String, nullable=True)
    ethnicity = Column(JSON, nullable=False, default=list)
    location = Column(String, nullable=True)
    languages = Column(JSON, nullable=False, default=list)
    # permissions and onboarding
    can_manage_committees = Column(Boolean, default=False)
    can_manage_workshops = Column(Boolean, default=False)
    has_completed_onboarding = Column(Boolean, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Member(Base):
    """Imported membership roll, checked before a verification code is issued."""

    __tablename__ = "members"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, index=True, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    category = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)
