from datetime import timedelta
from uuid import uuid4

import pytest

from lms_quiz.core.security import (
    TokenType,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    issue_tokens,
    verify_password,
)


def test_password_hash_round_trip():
    hashed = hash_password("Password123")

    assert hashed != "Password123"
    assert verify_password("Password123", hashed)
    assert not verify_password("password123", hashed)


def test_empty_password_is_rejected():
    with pytest.raises(ValueError):
        hash_password("")
    assert not verify_password("", hash_password("Password123"))


def test_access_token_carries_subject_and_role():
    user_id = uuid4()
    payload = decode_token(create_access_token(user_id, role="instructor"))

    assert payload["sub"] == str(user_id)
    assert payload["role"] == "instructor"
    assert payload["type"] == "access"


def test_token_type_must_match():
    user_id = uuid4()

    assert decode_token(create_refresh_token(user_id)) is None
    assert decode_token(create_access_token(user_id), TokenType.REFRESH) is None
    assert decode_token(create_refresh_token(user_id), TokenType.REFRESH) is not None


def test_expired_token_is_rejected():
    token = create_access_token(uuid4(), expires_delta=timedelta(seconds=-5))

    assert decode_token(token) is None


def test_garbage_token_is_rejected():
    assert decode_token("not-a-jwt") is None


def test_issue_tokens_returns_a_pair():
    tokens = issue_tokens(uuid4(), role="student")

    assert tokens["token_type"] == "bearer"
    assert tokens["expires_in"] > 0
    assert tokens["access_token"] != tokens["refresh_token"]
