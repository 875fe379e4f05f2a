from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PaymentStatus = Literal["unpaid", "pending", "paid", "refunded", "not_required"]


class WorkshopCreate(BaseModel):
    title: str
    description: str
    date: datetime
    start_time: Optional[str] = None  # "HH:mm", 24-hour
    end_time: Optional[str] = None
    capacity: int = Field(gt=0)
    committee_id: Optional[int] = None
    location_address: Optional[str] = None
    location_details: Optional[str] = None
    materials: Optional[str] = None
    is_paid: bool = False
    base_cost: Optional[int] = None  # cents
    sponsored_by: Optional[str] = None
    is_online: bool = False
    meeting_link: Optional[str] = None
    requires_approval: bool = False
    created_by_id: Optional[int] = None


class WorkshopOut(WorkshopCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime


class WorkshopRegistrationCreate(BaseModel):
    workshop_id: int
    user_id: int
    is_approved: bool = False
    payment_status: PaymentStatus = "not_required"
    notes: Optional[str] = None


class WorkshopRegistrationOut(WorkshopRegistrationCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    registered_at: datetime
