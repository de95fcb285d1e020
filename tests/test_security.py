from __future__ import annotations

import time
from uuid import uuid4

import pytest
from jose import jwt

from monetiq.config import settings
from monetiq.security import AuthError, decode_access_token, user_id_from_payload

SECRET = "test-secret"


@pytest.fixture(autouse=True)
def jwt_settings(monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET", SECRET)
    monkeypatch.setattr(settings, "JWT_AUDIENCE", "authenticated")
    monkeypatch.setattr(settings, "JWT_ISSUER", None)


def _token(**claims):
    payload = {"aud": "authenticated", "exp": int(time.time()) + 600, **claims}
    return jwt.encode(payload, SECRET, algorithm="HS256")


def test_decodes_supabase_token():
    uid = str(uuid4())
    payload = decode_access_token(_token(sub=uid))
    assert user_id_from_payload(payload) == uid


def test_expired_token():
    with pytest.raises(AuthError, match="token_expired"):
        decode_access_token(_token(sub=str(uuid4()), exp=int(time.time()) - 10))


def test_wrong_secret():
    bad = jwt.encode({"sub": str(uuid4()), "aud": "authenticated"}, "other", algorithm="HS256")
    with pytest.raises(AuthError, match="invalid_token"):
        decode_access_token(bad)


def test_sub_must_be_uuid():
    with pytest.raises(AuthError, match="token_sub_not_uuid"):
        user_id_from_payload({"sub": "not-a-uuid"})


def test_missing_secret(monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET", "")
    with pytest.raises(AuthError, match="jwt_secret_missing"):
        decode_access_token("abc")
