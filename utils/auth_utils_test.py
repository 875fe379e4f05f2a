from datetime import timedelta

import pytest

from core.config import Settings
from utils.auth_utils import Hasher, create_access_token, decode_access_token, new_session_id


@pytest.fixture
def settings():
    return Settings(SECRET_KEY="first-secret")


def test_password_hash_round_trip():
    hashed = Hasher.get_password_hash("correct horse")
    assert hashed != "correct horse"
    assert Hasher.verify_password("correct horse", hashed)
    assert not Hasher.verify_password("wrong horse", hashed)


def test_verify_against_a_non_hash():
    assert not Hasher.verify_password("password", "plain-text-password")


def test_access_token_carries_user_id(settings):
    payload = decode_access_token(create_access_token(42, settings), settings)
    assert payload["sub"] == "42"


def test_expired_or_tampered_token(settings):
    assert decode_access_token(create_access_token(42, settings, expires_delta=timedelta(minutes=-1)), settings) is None
    assert decode_access_token(create_access_token(42, settings) + "x", settings) is None


def test_token_signed_with_another_key_is_rejected(settings):
    token = create_access_token(42, Settings(SECRET_KEY="second-secret"))
    assert decode_access_token(token, settings) is None


def test_token_lifetime_comes_from_settings(settings):
    short = Settings(SECRET_KEY="first-secret", ACCESS_TOKEN_EXPIRE_MINUTES=-1)
    assert decode_access_token(create_access_token(42, short), settings) is None


def test_session_ids_are_unique():
    assert len({new_session_id() for _ in range(100)}) == 100
