# app/db/models/user.py
from datetime import datetime, timezone
from typing import Any, Dict, List

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field


# DB 저장 문서
class UserDoc(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    username: str
    email: str
    password: str                                    # bcrypt 해시
    shoppingList: List[Dict[str, Any]] = Field(default_factory=list)
    favoriteItems: List[Dict[str, Any]] = Field(default_factory=list)
    savedCommunityRecipes: List[ObjectId] = Field(default_factory=list)
    itemSuggestions: List[str] = Field(default_factory=list)
    createdAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
