# stockledger/core/security.py
#
# Tokens are issued by the authentication service; this module only needs
# to read the actor id out of them. create_access_token exists for local
# tooling and tests.

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from fastapi import HTTPException, status

from stockledger.core.config import (
    JWT_ACCESS_SECRET_KEY,
    JWT_ALGORITHM,
    ACCESS_TOKEN_EXPIRE_MINUTES,
)


# =====================================================
# ACCESS TOKEN
# =====================================================
def create_access_token(
    subject: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta
        if expires_delta
        else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )

    payload = {
        "sub": subject,
        "type": "access",
        "iat": now,
        "exp": expire,
    }

    return jwt.encode(payload, JWT_ACCESS_SECRET_KEY, algorithm=JWT_ALGORITHM)


# =====================================================
# DECODE + VALIDATE TOKEN
# =====================================================
def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(
            token,
            JWT_ACCESS_SECRET_KEY,
            algorithms=[JWT_ALGORITHM],
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
        )

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
        )

    return payload
