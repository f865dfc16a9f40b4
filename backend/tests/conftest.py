import os

# 설정 로딩 전에 테스트용 값 주입
os.environ.setdefault("JWT_SECRET", "test-secret-for-jwt-signing-0123456789")
os.environ.setdefault("MONGO_DB", "stressfreechef_test")

from typing import Any, Dict, List, Optional, Tuple

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from app.core.security import hash_password, issue_token
from app.db.indexes import COMMUNITY_RECIPES, RECIPES, USER_RECIPES, USERS
from app.db.init import get_db
from app.db.models.recipe import CommunityRecipeDoc
from app.db.models.user import UserDoc
from app.main import app
from app.services.media import MediaStoreError, UploadResult, get_media_store


class FakeMediaStore:
    """메모리 미디어 저장소. 호출 기록 + 실패 주입"""

    def __init__(self):
        self.uploads: List[str] = []
        self.destroy_calls: List[Tuple[str, str]] = []
        self.destroyed: List[str] = []
        self.fail_upload = False
        self.fail_destroy_types: set = set()
        self.next_resource_type = "image"
        self._n = 0

    async def upload(self, data: bytes, folder: str) -> UploadResult:
        if self.fail_upload:
            raise MediaStoreError("upload timed out")
        self._n += 1
        public_id = f"{folder}/media{self._n}"
        self.uploads.append(public_id)
        return UploadResult(
            url=f"https://cdn.test/{public_id}",
            id=public_id,
            width=640,
            height=480,
            format="mp4" if self.next_resource_type == "video" else "jpg",
            resource_type=self.next_resource_type,
        )

    async def destroy(self, public_id: str, resource_type: str = "auto") -> None:
        self.destroy_calls.append((public_id, resource_type))
        if resource_type in self.fail_destroy_types or "*" in self.fail_destroy_types:
            raise MediaStoreError(f"destroy failed ({resource_type})")
        self.destroyed.append(public_id)


@pytest.fixture
def db():
    client = AsyncMongoMockClient()
    return client[os.environ["MONGO_DB"]]


@pytest.fixture
def store():
    return FakeMediaStore()


@pytest.fixture
async def client(db, store):
    """DB/미디어 저장소 override. ASGITransport는 startup 이벤트를 돌리지 않는다"""
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_media_store] = lambda: store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def make_user(db, username: str = "alice", email: Optional[str] = None, password: str = "pw") -> Dict[str, Any]:
    doc = UserDoc(
        username=username,
        email=email or f"{username}@example.com",
        password=hash_password(password),
    ).model_dump()
    res = await db[USERS].insert_one(doc)
    doc["_id"] = res.inserted_id
    return doc


def auth_header(user: Dict[str, Any]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user)}"}


async def make_official(db, title: str = "Pancakes", difficulty: str = "Beginner", **extra) -> ObjectId:
    doc = {
        "title": title,
        "titleCs": title,
        "difficulty": difficulty,
        "time": "20 min",
        "imgSrc": "/img/x.jpg",
        "ingredients": ["flour", "milk"],
        "steps": [{"type": "text", "description": "Mix.", "descriptionCs": "Zamichat.", "timerSeconds": 60}],
        **extra,
    }
    res = await db[RECIPES].insert_one(doc)
    return res.inserted_id


async def make_community(db, title: str = "Soup", difficulty: str = "Beginner", **extra) -> ObjectId:
    doc = CommunityRecipeDoc(title=title, difficulty=difficulty, time="10 min").model_dump()
    doc.update(extra)
    res = await db[COMMUNITY_RECIPES].insert_one(doc)
    return res.inserted_id


async def make_user_recipe(db, owner: ObjectId, steps: Optional[List[Dict[str, Any]]] = None, **extra) -> ObjectId:
    doc = {
        "title": "Mine",
        "difficulty": "Beginner",
        "time": "5 min",
        "ingredients": [],
        "steps": steps if steps is not None else [{"type": "text", "description": "Boil."}],
        "owner": owner,
        "isPublic": False,
        **extra,
    }
    res = await db[USER_RECIPES].insert_one(doc)
    return res.inserted_id


@pytest.fixture
async def alice(db):
    return await make_user(db, "alice")


@pytest.fixture
async def bob(db):
    return await make_user(db, "bob")
