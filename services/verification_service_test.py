from datetime import timedelta

import pytest
from fastapi import HTTPException

from core.config import Settings
from schemas.verification_schema import CodeConfirmation, MemberVerificationRequest, VerificationCodeCreate
from services.verification_service import VerificationService, generate_code
from storage.memory_storage import MemStorage
from utils.email_service import EmailService
from utils.time_utils import utcnow


def make_service(app_env="production"):
    settings = Settings(APP_ENV=app_env)
    storage = MemStorage()
    return VerificationService(storage, EmailService(settings), settings)


def test_generate_code_is_seven_digits():
    for _ in range(50):
        code = generate_code()
        assert len(code) == 7
        assert code.isdigit()


async def test_member_gets_a_code_by_email():
    service = make_service()
    await service.storage.create_member("jane@example.com", "Jane", "Doe")

    with service.email_service.fm.record_messages() as outbox:
        result = await service.request_member_code(
            MemberVerificationRequest(email="jane@example.com", first_name="Jane", last_name="Doe")
        )

    assert result.success
    assert result.code is None
    assert len(outbox) == 1
    pending = await service.pending("jane@example.com")
    assert len(pending) == 1
    assert pending[0].expires_at > utcnow() + timedelta(minutes=9)


async def test_unknown_member_is_rejected():
    service = make_service()
    with pytest.raises(HTTPException) as exc:
        await service.request_member_code(
            MemberVerificationRequest(email="nobody@example.com", first_name="No", last_name="Body")
        )
    assert exc.value.status_code == 404
    assert await service.pending("nobody@example.com") == []


async def test_development_mode_approves_everyone_and_returns_the_code():
    service = make_service("development")
    result = await service.request_member_code(
        MemberVerificationRequest(email="nobody@example.com", first_name="No", last_name="Body")
    )
    assert result.code is not None
    assert [p.code for p in await service.pending("nobody@example.com")] == [result.code]


async def test_confirm_code_once():
    service = make_service()
    record, _ = await service.issue_code("jane@example.com", "Jane", "Doe")

    confirmed = await service.confirm_code(CodeConfirmation(email="jane@example.com", code=record.code))
    assert confirmed.verified is True
    assert await service.pending("jane@example.com") == []

    with pytest.raises(HTTPException) as exc:
        await service.confirm_code(CodeConfirmation(email="jane@example.com", code=record.code))
    assert exc.value.status_code == 400


async def test_confirm_wrong_or_expired_code():
    service = make_service()
    with pytest.raises(HTTPException) as exc:
        await service.confirm_code(CodeConfirmation(email="jane@example.com", code="0000000"))
    assert exc.value.status_code == 404

    await service.storage.create_verification_code(VerificationCodeCreate(
        email="jane@example.com", first_name="Jane", last_name="Doe", code="1234567",
        expires_at=utcnow() - timedelta(seconds=1),
    ))
    with pytest.raises(HTTPException) as exc:
        await service.confirm_code(CodeConfirmation(email="jane@example.com", code="1234567"))
    assert exc.value.status_code == 400


async def test_member_level_comes_from_the_roll():
    service = make_service()
    await service.storage.create_member("jane@example.com", "Jane", "Doe", category="Full Life")

    result = await service.request_member_code(
        MemberVerificationRequest(email="jane@example.com", first_name="Jane", last_name="Doe")
    )
    assert result.member_level == "Full Life"
    assert await service.member_level("jane@example.com", "Jane", "Doe") == "Full Life"


async def test_development_mode_without_roll_entry_has_no_level():
    service = make_service("development")
    result = await service.request_member_code(
        MemberVerificationRequest(email="nobody@example.com", first_name="No", last_name="Body")
    )
    assert result.member_level is None
