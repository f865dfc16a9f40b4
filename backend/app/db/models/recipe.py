# 레시피 문서 스키마 (공식 / 커뮤니티 / 사용자 레시피)
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

# 공개 사본/트윈에 복사되는 "내용" 필드 (평점 집계 필드는 절대 포함하지 않음)
CONTENT_FIELDS = ("title", "difficulty", "time", "imgSrc", "image", "ingredients", "steps")

STEP_FIELDS = (
    "type", "src", "description", "timerSeconds",
    "mediaPublicId", "mediaWidth", "mediaHeight", "mediaFormat",
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MediaImage(BaseModel):
    url: Optional[str] = None
    publicId: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None


class _Doc(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    title: str
    difficulty: str
    time: str
    imgSrc: Optional[str] = None
    image: Optional[MediaImage] = None
    ingredients: List[str] = Field(default_factory=list)
    steps: List[Dict[str, Any]] = Field(default_factory=list)
    createdAt: datetime = Field(default_factory=_now)
    updatedAt: datetime = Field(default_factory=_now)


class CommunityRecipeDoc(_Doc):
    sourceRecipeId: Optional[ObjectId] = None
    owner: Optional[ObjectId] = None
    # 집계 필드: ratings 모듈만 갱신
    rating: int = 0
    ratingAvg: float = 0.0
    ratingCount: int = 0
    ratings: List[Dict[str, Any]] = Field(default_factory=list)
    revision: int = 0


class UserRecipeDoc(_Doc):
    owner: ObjectId
    rating: int = 0
    isPublic: bool = False
    publicRecipeId: Optional[ObjectId] = None


def clean_step(step: Dict[str, Any]) -> Dict[str, Any]:
    # 서브도큐먼트 _id, 다국어(Cs) 필드 등은 버리고 단계 필드만 유지
    return {k: step[k] for k in STEP_FIELDS if step.get(k) is not None}


def content_of(doc: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k in CONTENT_FIELDS:
        if k not in doc:
            continue
        v = doc[k]
        if k == "steps":
            v = [clean_step(s) for s in (v or []) if isinstance(s, dict)]
        elif k == "ingredients":
            v = [str(x) for x in (v or [])]
        out[k] = v
    return out
