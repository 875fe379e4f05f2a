# utils/auth_utils.py

import secrets
from datetime import timedelta
from typing import Optional

from passlib.context import CryptContext
from jose import jwt, JWTError
from core.config import Settings
from utils.time_utils import utcnow

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class Hasher:
    @staticmethod
    def get_password_hash(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        try:
            return pwd_context.verify(plain_password, hashed_password)
        except ValueError:
            # stored value is not a hash we recognise
            return False


def create_access_token(data: dict | int | str, settings: Settings, expires_delta: timedelta = None):
    to_encode = dict(data) if isinstance(data, dict) else {"sub": str(data)}
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def new_session_id() -> str:
    return secrets.token_urlsafe(32)
