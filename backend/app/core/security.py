# app/core/security.py
# 비밀번호 해시(bcrypt) + 토큰 발급/검증(JWT)

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
import jwt

from app.core.config import settings
from app.core.errors import AuthenticationError


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=10)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), (password_hash or "").encode("utf-8"))
    except ValueError:
        # 저장된 해시 형식이 깨진 경우
        return False


def issue_token(user: Dict[str, Any]) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "_id": str(user["_id"]),
        "email": user.get("email"),
        "username": user.get("username"),
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRES_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> Dict[str, Any]:
    """토큰 → {"_id", "email", "username"}. 위조/만료는 403"""
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError:
        raise AuthenticationError("Invalid or expired token.", status_code=403)
    if not claims.get("_id"):
        raise AuthenticationError("Invalid or expired token.", status_code=403)
    return claims
