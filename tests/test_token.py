from __future__ import annotations

import time
from datetime import timedelta

import jwt

from auth import token as tokens


def test_access_token_expires_after_one_hour() -> None:
    before = time.time()
    encoded = tokens.create_access_token({"sub": "user-1"})

    payload = tokens.decode_token(encoded)
    assert payload is not None
    assert payload["sub"] == "user-1"
    assert payload["type"] == "access"
    assert before + 3600 - 5 <= payload["exp"] <= time.time() + 3600 + 5


def test_expired_token_is_rejected() -> None:
    encoded = tokens.create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-5))

    assert tokens.decode_token(encoded) is None


def test_token_signed_with_other_secret_is_rejected() -> None:
    forged = jwt.encode({"sub": "user-1", "type": "access"}, "not-the-secret", algorithm="HS256")

    assert tokens.decode_token(forged) is None


def test_non_access_token_is_rejected() -> None:
    other = jwt.encode({"sub": "user-1", "type": "refresh"}, tokens.SECRET_KEY, algorithm=tokens.ALGORITHM)

    assert tokens.decode_token(other) is None


def test_garbage_is_rejected() -> None:
    assert tokens.decode_token("not.a.jwt") is None
