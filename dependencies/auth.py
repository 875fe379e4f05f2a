from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from core.config import Settings
from schemas.user_schema import Role, UserInDB
from storage.interface import Storage
from utils.auth_utils import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def _user_id_from_session(request: Request, storage: Storage, settings: Settings) -> Optional[int]:
    sid = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not sid:
        return None
    session = await storage.session_store.get(sid)
    if not session:
        return None
    await storage.session_store.touch(sid)
    return session.get("user_id")


async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> UserInDB:
    # bearer token first, then the session cookie
    if token:
        payload = decode_access_token(token, settings)
        if payload is None or payload.get("sub") is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token validation failed")
        user_id = payload["sub"]
    else:
        user_id = await _user_id_from_session(request, storage, settings)
        if user_id is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    user = await storage.get_user(int(user_id))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token or user")
    return user


def require_admin(user: UserInDB = Depends(get_current_user)) -> UserInDB:
    if user.role != Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


def require_committee_manager(user: UserInDB = Depends(get_current_user)) -> UserInDB:
    if user.role != Role.ADMIN and not user.can_manage_committees:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Committee management access required")
    return user


def require_workshop_manager(user: UserInDB = Depends(get_current_user)) -> UserInDB:
    if user.role != Role.ADMIN and not user.can_manage_workshops:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Workshop management access required")
    return user
