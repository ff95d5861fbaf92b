"""
JSON Web Token helpers.

The API signs and verifies tokens. The panel only decodes them (no signature check) to
learn who is logged in; verification happens again on every API call.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt

ALGORITHM = "HS256"

USER_TYPES = ("user", "customer")


class TokenError(RuntimeError):
    pass


@dataclass(frozen=True)
class Principal:
    id: str
    user_type: str
    name: str | None = None
    role: str | None = None
    phone_number: str | None = None

    @property
    def is_staff(self) -> bool:
        return self.user_type == "user"

    @property
    def is_customer(self) -> bool:
        return self.user_type == "customer"


def issue_token(
    secret: str,
    *,
    subject_id: int | str,
    user_type: str,
    name: str | None = None,
    phone_number: str | None = None,
    role: str | None = None,
    expires_days: int = 7,
    extra: dict[str, Any] | None = None,
) -> str:
    if user_type not in USER_TYPES:
        raise TokenError(f"Unknown user type: {user_type}")
    now = datetime.utcnow()
    claims: dict[str, Any] = {
        "sub": str(subject_id),
        "userType": user_type,
        "name": name,
        "phoneNumber": phone_number,
        "iat": now,
        "exp": now + timedelta(days=expires_days),
    }
    # legacy subject claims, kept for clients that read them directly
    if user_type == "customer":
        claims["customerId"] = str(subject_id)
    else:
        claims["userId"] = str(subject_id)
        if role:
            claims["role"] = role
    if extra:
        claims.update(extra)
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def verify_token(token: str, secret: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError as e:
        raise TokenError(str(e)) from e


def decode_unverified(token: str | None) -> dict[str, Any] | None:
    """Read the claims without checking the signature. Returns None for garbage."""
    if not token:
        return None
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    return claims if isinstance(claims, dict) else None


def is_expired(claims: dict[str, Any], now: float | None = None) -> bool:
    exp = claims.get("exp")
    if exp is None:
        return False
    try:
        return float(exp) <= (now if now is not None else time.time())
    except (TypeError, ValueError):
        return True


def subject_id(claims: dict[str, Any] | None) -> str | None:
    if not claims:
        return None
    sid = claims.get("sub") or claims.get("userId") or claims.get("customerId")
    return str(sid) if sid else None


def principal_from_claims(claims: dict[str, Any] | None) -> Principal | None:
    sid = subject_id(claims)
    if not claims or not sid:
        return None
    user_type = claims.get("userType") or ("customer" if claims.get("customerId") else "user")
    return Principal(
        id=sid,
        user_type=user_type,
        name=claims.get("name"),
        role=claims.get("role"),
        phone_number=claims.get("phoneNumber"),
    )


def bearer_token(header_value: str | None) -> str | None:
    if not header_value:
        return None
    scheme, _, value = header_value.strip().partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()
