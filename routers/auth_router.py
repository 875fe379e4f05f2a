from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from core.config import Settings
from dependencies.auth import get_current_user, get_settings, get_storage, require_admin
from dependencies.services import get_user_service, get_verification_service
from schemas.user_schema import (
    UserCreate, UserLogin, UserOut, UserUpdate, TokenResponse, UserInDB, ResetPasswordRequest, ResetPasswordForm
)
from schemas.verification_schema import (
    CodeConfirmation, MemberVerificationRequest, VerificationCodeOut, VerificationResult
)
from services.user_service import UserService
from services.verification_service import VerificationService
from storage.interface import Storage
from utils.auth_utils import create_access_token, new_session_id

router = APIRouter()


async def _start_session(response: Response, user: UserInDB, storage: Storage, settings: Settings) -> str:
    sid = new_session_id()
    await storage.session_store.set(sid, {"user_id": user.id})
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=sid,
        max_age=settings.SESSION_TTL_DAYS * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
    )
    return create_access_token(user.id, settings)


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    response: Response,
    service: UserService = Depends(get_user_service),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    user = await service.create_user(user_data)
    token = await _start_session(response, user, storage, settings)
    return TokenResponse(access_token=token, user=UserOut.model_validate(user.model_dump()))


@router.post("/login", response_model=TokenResponse)
async def login(
    user_data: UserLogin,
    response: Response,
    service: UserService = Depends(get_user_service),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    user = await service.authenticate_user(user_data)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    token = await _start_session(response, user, storage, settings)
    return TokenResponse(access_token=token, user=UserOut.model_validate(user.model_dump()))


@router.post("/logout", response_model=dict)
async def logout(
    request: Request,
    response: Response,
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    sid = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if sid:
        await storage.session_store.destroy(sid)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserOut)
async def me(user: UserInDB = Depends(get_current_user)):
    return user


@router.patch("/me", response_model=UserOut)
async def update_me(
    data: UserUpdate,
    user: UserInDB = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return await service.update_profile(user, data)


@router.post("/complete-onboarding", response_model=UserOut)
async def complete_onboarding(
    user: UserInDB = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return await service.complete_onboarding(user)


@router.post("/verify/member", response_model=VerificationResult)
async def verify_member(
    data: MemberVerificationRequest,
    verification: VerificationService = Depends(get_verification_service),
):
    return await verification.request_member_code(data)


@router.post("/verify/code", response_model=dict)
async def verify_code(
    data: CodeConfirmation,
    verification: VerificationService = Depends(get_verification_service),
):
    record = await verification.confirm_code(data)
    return {
        "message": "Verification successful",
        "email": record.email,
        "first_name": record.first_name,
        "last_name": record.last_name,
        "member_level": await verification.member_level(record.email, record.first_name, record.last_name),
    }


@router.get("/verify/pending", response_model=List[VerificationCodeOut])
async def pending_verifications(
    email: str,
    _: UserInDB = Depends(require_admin),
    verification: VerificationService = Depends(get_verification_service),
):
    return await verification.pending(email)


@router.post("/request-reset", response_model=dict)
async def request_password_reset(
    data: ResetPasswordRequest,
    service: UserService = Depends(get_user_service),
    verification: VerificationService = Depends(get_verification_service),
):
    await service.send_reset_code(data.email, verification)
    return {"message": "Reset code sent"}


@router.post("/reset-password", response_model=dict)
async def reset_password(
    form_data: ResetPasswordForm,
    service: UserService = Depends(get_user_service),
    verification: VerificationService = Depends(get_verification_service),
):
    await service.reset_password(form_data.email, form_data.token, form_data.new_password, verification)
    return {"message": "Password reset successful"}
