"""Session token encoding and decoding.

Tokens are compact HS256 JWTs carrying the user's identity claims (``sub``,
``username``, ``email``, ``role``, ``first_name``, ``last_name``) plus ``iat``,
``exp`` and ``iss``. Nothing is stored server side, so a token stays valid
until ``exp`` even after logout.
"""

import base64
import hashlib
import hmac
import json
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

_HEADER = {"alg": "HS256", "typ": "JWT"}
_PROFILE_CLAIMS = ("username", "email", "first_name", "last_name")


@dataclass(frozen=True)
class TokenPayload:
    sub: str
    role: str
    exp: datetime
    issuer: str = ""
    username: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""


def _urlsafe(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _from_urlsafe(data: bytes) -> bytes:
    return base64.urlsafe_b64decode(data + b"=" * (-len(data) % 4))


def _sign(signing_input: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()


def create_token(
    subject: str,
    role: str,
    secret: str,
    algorithm: str = "HS256",
    expires_minutes: int = 60,
    issuer: str = "audittrail",
    username: str = "",
    email: str = "",
    first_name: str = "",
    last_name: str = "",
) -> str:
    """Issue a signed token for ``subject`` (a user id).

    A negative ``expires_minutes`` yields a token that is already expired.
    Only HS256 is supported; anything else raises ``ValueError``.
    """
    if algorithm != "HS256":
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    issued_at = int(time.time())
    claims = {
        "sub": subject,
        "role": role,
        "username": username,
        "email": email,
        "first_name": first_name,
        "last_name": last_name,
        "iat": issued_at,
        "exp": issued_at + expires_minutes * 60,
        "iss": issuer,
    }
    header_b64 = _urlsafe(json.dumps(_HEADER, separators=(",", ":")).encode())
    claims_b64 = _urlsafe(json.dumps(claims, separators=(",", ":")).encode())
    signing_input = header_b64 + b"." + claims_b64
    return (signing_input + b"." + _urlsafe(_sign(signing_input, secret))).decode()


def decode_token(
    token: str,
    secret: str,
    algorithm: str = "HS256",
    issuer: Optional[str] = None,
) -> Optional[TokenPayload]:
    """Verify ``token`` and return its claims, or None when it is not acceptable.

    Rejects bad signatures, expired tokens, malformed input and, when
    ``issuer`` is given, tokens minted by another issuer.
    """
    if algorithm != "HS256" or token.count(".") != 2:
        return None
    try:
        signing_input, _, signature = token.encode().rpartition(b".")
        if not hmac.compare_digest(_sign(signing_input, secret), _from_urlsafe(signature)):
            return None
        claims = json.loads(_from_urlsafe(signing_input.split(b".")[1]))
        exp = int(claims["exp"])
    except (ValueError, KeyError, TypeError, IndexError):
        return None

    if time.time() > exp:
        return None
    if issuer is not None and claims.get("iss") != issuer:
        return None

    return TokenPayload(
        sub=str(claims.get("sub", "")),
        role=claims.get("role", ""),
        exp=datetime.fromtimestamp(exp, tz=timezone.utc),
        issuer=claims.get("iss", ""),
        **{name: claims.get(name) or "" for name in _PROFILE_CLAIMS},
    )


def create_refresh_token() -> str:
    """Opaque random refresh token. Not persisted."""
    return secrets.token_urlsafe(48)
