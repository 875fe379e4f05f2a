# models/workshop_model.py

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from database import Base
from utils.time_utils import utcnow


class Workshop(Base):
    __tablename__ = "workshops"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=False)
    date = Column(DateTime, nullable=False)
    start_time = Column(String, nullable=True)
    end_time = Column(String, nullable=True)
    capacity = Column(Integer, nullable=False)
    committee_id = Column(Integer, nullable=True)
    location_address = Column(String, nullable=True)
    location_details = Column(String, nullable=True)
    materials = Column(String, nullable=True)
    is_paid = Column(Boolean, default=False)
    base_cost = Column(Integer, nullable=True)
    sponsored_by = Column(String, nullable=True)
    is_online = Column(Boolean, default=False)
    meeting_link = Column(String, nullable=True)
    requires_approval = Column(Boolean, default=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class WorkshopRegistration(Base):
    __tablename__ = "workshop_registrations"

    id = Column(Integer, primary_key=True, index=True)
    workshop_id = Column(Integer, ForeignKey("workshops.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    is_approved = Column(Boolean, default=False)
    payment_status = Column(String, nullable=False, default="not_required")
    notes = Column(String, nullable=True)
    registered_at = Column(DateTime, nullable=False, default=utcnow)
