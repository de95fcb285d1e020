from __future__ import annotations

from typing import Any
from uuid import UUID

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError

from monetiq.config import settings


class AuthError(Exception):
    pass


def decode_access_token(token: str) -> dict[str, Any]:
    tok = (token or "").strip()
    if not tok:
        raise AuthError("missing_token")

    secret = (settings.JWT_SECRET or "").strip()
    if not secret:
        raise AuthError("jwt_secret_missing")

    alg = (settings.JWT_ALG or "HS256").strip()
    issuer = (settings.JWT_ISSUER or "").strip() or None
    audience = (settings.JWT_AUDIENCE or "").strip() or None

    try:
        return jwt.decode(
            tok,
            secret,
            algorithms=[alg],
            issuer=issuer,
            audience=audience,
            options={"verify_aud": bool(audience), "verify_iss": bool(issuer)},
        )
    except ExpiredSignatureError as e:
        raise AuthError("token_expired") from e
    except JWTClaimsError as e:
        raise AuthError(f"token_claims_invalid:{e}") from e
    except JWTError as e:
        raise AuthError("invalid_token") from e


def user_id_from_payload(payload: dict[str, Any]) -> str:
    raw = payload.get("sub") or payload.get("user_id")
    if not raw:
        raise AuthError("token_missing_sub")
    try:
        return str(UUID(str(raw)))
    except ValueError as e:
        raise AuthError("token_sub_not_uuid") from e
