# models/message_model.py

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from database import Base
from utils.time_utils import utcnow


class MessageGroup(Base):
    __tablename__ = "message_groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class MessageGroupMember(Base):
    __tablename__ = "message_group_members"
    __table_args__ = (UniqueConstraint("group_id", "member_id"),)

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("message_groups.id"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    added_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    added_at = Column(DateTime, nullable=False, default=utcnow)


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    # set for direct messages only
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    # set for group messages only
    to_group_id = Column(Integer, ForeignKey("message_groups.id"), nullable=True, index=True)
    content = Column(String, nullable=False)
    read = Column(Boolean, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class MessageRecipient(Base):
    """Group roster snapshot taken when a group message is sent."""

    __tablename__ = "message_recipients"

    message_id = Column(Integer, ForeignKey("messages.id"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True, index=True)
