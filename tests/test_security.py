"""Tests for access token handling."""

from datetime import timedelta
from uuid import uuid4

from jose import jwt

from scheduling.config import settings
from scheduling.core.security import create_access_token, decode_access_token, subject_from_token


def test_access_token_round_trip():
    token = create_access_token({"sub": "4f8d0c3e-1111-4c1a-9d55-0d7c8f2b6a01"})

    payload = decode_access_token(token)

    assert payload["sub"] == "4f8d0c3e-1111-4c1a-9d55-0d7c8f2b6a01"
    assert payload["type"] == "access"
    assert payload["exp"] > payload["iat"]


def test_expired_token_is_rejected():
    token = create_access_token({"sub": "someone"}, expires_delta=timedelta(minutes=-5))

    assert decode_access_token(token) is None


def test_token_of_another_type_is_rejected():
    token = jwt.encode(
        {"sub": "someone", "type": "refresh"},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )

    assert decode_access_token(token) is None


def test_token_with_wrong_signature_is_rejected():
    token = jwt.encode(
        {"sub": "someone", "type": "access"},
        "not-the-secret",
        algorithm=settings.jwt_algorithm,
    )

    assert decode_access_token(token) is None


def test_subject_from_token():
    user_id = uuid4()

    assert subject_from_token(create_access_token({"sub": str(user_id)})) == user_id
    assert subject_from_token(create_access_token({"sub": "not-a-uuid"})) is None
    assert subject_from_token(create_access_token({"email": "pat@hospital.test"})) is None
    assert subject_from_token("garbage") is None
