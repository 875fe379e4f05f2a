# models/session_model.py

from sqlalchemy import Column, String, DateTime, JSON
from database import Base


class SessionRecord(Base):
    __tablename__ = "sessions"

    sid = Column(String, primary_key=True)
    sess = Column(JSON, nullable=False)
    expire = Column(DateTime, nullable=False, index=True)
