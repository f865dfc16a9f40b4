# app/main.py
# FastAPI 앱 초기화 및 라우터 설정
# 라우터는 각 기능별로 분리하여 관리

from __future__ import annotations

import logging
from asyncio import sleep

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes_auth import router as auth_router
from app.api.routes_community import router as community_router
from app.api.routes_favorites import router as favorites_router, suggestions as suggestions_router
from app.api.routes_my_recipes import router as my_recipes_router
from app.api.routes_recipes import router as recipes_router
from app.api.routes_saved import router as saved_router
from app.api.routes_shopping import router as shopping_router
from app.api.routes_uploads import router as uploads_router
from app.core.config import settings
from app.core.errors import AppError, app_error_handler, request_validation_handler

# DB 초기화/인덱스
# init_db/close_db: 앱 시작/종료 시 커넥션 생성/정리
# get_db: 런타임에 DB 핸들 얻기
from app.db.init import close_db, get_db, init_db
from app.db.indexes import ensure_indexes

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("app")

app = FastAPI(title="StressFreeChef - API", version="0.1.0")

# CORS: 웹(3000/5173) + 모바일(expo) 허용
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)


# 앱 시작/종료 이벤트 핸들러
@app.on_event("startup")
async def on_startup() -> None:
    # 1) DB 먼저 붙는다 (DB_INIT_RETRIES회, 1초 간격)
    db = None
    for i in range(settings.DB_INIT_RETRIES):
        try:
            db = await init_db()
            log.info("[startup] db ready")
            break
        except Exception as e:
            log.warning("[startup] db init retry %d: %s", i + 1, e)
            await sleep(1.0)
    if db is None:
        log.error("[startup] db init failed after retries")
        return

    # 2) 인덱스 보장 (트윈 unique 인덱스 포함)
    try:
        await ensure_indexes(db)
        log.info("[startup] indexes ensured")
    except Exception:
        log.exception("[startup] ensure_indexes failed")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    # 몽고db 커넥션 정리
    await close_db()


@app.get("/")
async def root():
    return {"status": "ok"}


@app.get("/api/ping")
async def ping():
    return {"status": "ok"}


@app.get("/health")
async def health():
    ok = {"status": "ok", "db": "skip"}
    try:
        db = get_db()
        await db.command("ping")
        ok["db"] = "ok"
    except Exception as e:
        ok["db"] = f"error: {e}"
    return ok


# 라우터 prefix는 각 파일 내에서 정의함 , 중복 prefix 금지
app.include_router(auth_router)
app.include_router(recipes_router)
app.include_router(community_router)
app.include_router(saved_router)
app.include_router(my_recipes_router)
app.include_router(uploads_router)
app.include_router(shopping_router)
app.include_router(favorites_router)
app.include_router(suggestions_router)
