# 공용 의존성/헬퍼 (Bearer 토큰 → 현재 사용자)
from dataclasses import dataclass
from typing import Optional

from bson import ObjectId
from fastapi import Header

from app.core.errors import AuthenticationError
from app.core.security import verify_token

SCHEME = "bearer"


@dataclass(frozen=True)
class CurrentUser:
    id: ObjectId
    email: Optional[str] = None
    username: Optional[str] = None


def get_current_user(authorization: Optional[str] = Header(None)) -> CurrentUser:
    # "Bearer abc.def.ghi" 형태만 허용, 없으면 401
    token = None
    if authorization:
        parts = authorization.split(" ", 1)
        if len(parts) == 2 and parts[0].lower() == SCHEME:
            token = parts[1].strip()
    if not token:
        raise AuthenticationError("Access denied: missing token.")

    claims = verify_token(token)
    if not ObjectId.is_valid(claims["_id"]):
        raise AuthenticationError("Invalid or expired token.", status_code=403)
    return CurrentUser(
        id=ObjectId(claims["_id"]),
        email=claims.get("email"),
        username=claims.get("username"),
    )
