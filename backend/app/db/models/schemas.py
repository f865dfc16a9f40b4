# app/db/models/schemas.py
# Pydantic 입력 모델 정의
# - 프론트(웹/모바일)는 camelCase로 보내므로 필드명도 camelCase 유지
# - shop 참조는 "id 문자열" 또는 {"_id","name"} 객체 둘 다 허용 → 서비스에서 id로 정규화
from __future__ import annotations
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.difficulty import Difficulty


# 인증
class RegisterIn(BaseModel):
    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)

    @field_validator("username", "email", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class LoginIn(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


# 평점/저장
class RateIn(BaseModel):
    # 정수 검증은 ratings.validate_rating_value 에서 (400 메시지 통일)
    value: Any = None


class SaveRecipeIn(BaseModel):
    recipeId: Optional[str] = None


# 레시피 단계
class StepIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["image", "video", "text"]
    src: Optional[str] = None
    description: str = Field(..., min_length=1)
    timerSeconds: Optional[float] = Field(default=None, ge=0)
    mediaPublicId: Optional[str] = None
    mediaWidth: Optional[int] = None
    mediaHeight: Optional[int] = None
    mediaFormat: Optional[str] = None

    @model_validator(mode="after")
    def _src_for_media(self):
        if self.type in ("image", "video") and not self.src:
            raise ValueError("src is required for image/video steps")
        return self


class MyRecipeIn(BaseModel):
    title: str = Field(..., min_length=1)
    difficulty: Difficulty
    time: str = Field(..., min_length=1)
    imgSrc: Optional[str] = None
    ingredients: List[str] = Field(default_factory=list)
    steps: List[StepIn] = Field(default_factory=list)
    isPublic: bool = False

    @field_validator("title", "time", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("ingredients", mode="before")
    @classmethod
    def _clean_ingredients(cls, v):
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("ingredients must be a list of strings")
        return [str(x).strip() for x in v if str(x).strip()]


class MyRecipePatch(BaseModel):
    # 들어온 키만 반영 (model_fields_set 기준)
    title: Optional[str] = Field(default=None, min_length=1)
    difficulty: Optional[Difficulty] = None
    time: Optional[str] = Field(default=None, min_length=1)
    imgSrc: Optional[str] = None
    ingredients: Optional[List[str]] = None
    steps: Optional[List[StepIn]] = None
    isPublic: Optional[bool] = None

    @field_validator("ingredients", mode="before")
    @classmethod
    def _clean_ingredients(cls, v):
        if v is None:
            return v
        if not isinstance(v, list):
            raise ValueError("ingredients must be a list of strings")
        return [str(x).strip() for x in v if str(x).strip()]


# 장보기/가게/즐겨찾기
class ShopObj(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., alias="_id")
    name: Optional[str] = None


ShopRef = Union[str, ShopObj]


class ShopIn(BaseModel):
    name: str = Field(..., min_length=1)

    @field_validator("name", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class ShoppingItemIn(BaseModel):
    text: str = Field(..., min_length=1)
    shop: List[ShopRef] = Field(default_factory=list)

    @field_validator("text", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class ShoppingItemPatch(BaseModel):
    text: Optional[str] = Field(default=None, min_length=1)
    checked: Optional[bool] = None
    shop: Optional[List[ShopRef]] = None


class FavoriteItemIn(ShoppingItemIn):
    pass


class FavoriteItemPatch(BaseModel):
    text: Optional[str] = Field(default=None, min_length=1)
    shop: Optional[List[ShopRef]] = None
