# 컬렉션 인덱스 생성
# 앱 스타트업에서 한 번 ensure_indexes(db)를 await로 호출한다.

from pymongo.errors import OperationFailure

# 컬렉션 이름 (기존 mongoose 컬렉션명 유지)
USERS = "users"
RECIPES = "recipes"
COMMUNITY_RECIPES = "communityrecipes"
USER_RECIPES = "userrecipes"
SHOPS = "shops"


async def _safe_create(col, keys, **opts):
    try:
        return await col.create_index(keys, **opts)
    except OperationFailure as e:
        if getattr(e, "code", None) in (85, 86):  # IndexOptionsConflict / IndexKeySpecsConflict
            return None
        raise


# 커뮤니티 레시피: 공식 레시피당 트윈 1개 (sourceRecipeId가 ObjectId인 문서만 대상)
async def ensure_community_indexes(db):
    col = db[COMMUNITY_RECIPES]
    await _safe_create(
        col,
        [("sourceRecipeId", 1)],
        unique=True,
        partialFilterExpression={"sourceRecipeId": {"$type": "objectId"}},
        name="uniq_source_recipe",
    )
    await _safe_create(col, [("createdAt", -1)], name="created_desc")
    await _safe_create(col, [("ratingAvg", -1), ("ratingCount", -1), ("createdAt", -1)], name="rating_desc")
    await _safe_create(col, [("owner", 1)], name="owner_1")


async def ensure_indexes(db):
    await _safe_create(db[USERS], "email", unique=True, name="email_1")
    await _safe_create(db[USERS], "username", unique=True, name="username_1")

    await _safe_create(db[SHOPS], [("owner", 1), ("name", 1)], unique=True, name="owner_1_name_1")

    await _safe_create(db[USER_RECIPES], [("owner", 1), ("createdAt", -1)], name="owner_created")

    await ensure_community_indexes(db)
