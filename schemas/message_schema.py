from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class MessageCreate(BaseModel):
    from_user_id: int
    to_user_id: Optional[int] = None
    to_group_id: Optional[int] = None
    content: str


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    from_user_id: Optional[int] = None
    to_user_id: Optional[int] = None
    to_group_id: Optional[int] = None
    content: str
    read: bool = False
    created_at: datetime

    @property
    def is_group_message(self) -> bool:
        return self.to_group_id is not None


class DirectMessageIn(BaseModel):
    to_user_id: int
    content: str


class GroupMessageIn(BaseModel):
    content: str


class MessageGroupCreate(BaseModel):
    name: str
    description: Optional[str] = None


class MessageGroupUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class MessageGroupOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class GroupMemberAdd(BaseModel):
    member_id: int


class MessageGroupMemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    group_id: int
    member_id: int
    added_by_id: Optional[int] = None
    added_at: datetime
