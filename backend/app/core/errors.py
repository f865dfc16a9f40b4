# app/core/errors.py
# 도메인 예외: 서비스 계층은 HTTPException 대신 이 예외들을 던지고
# main.py의 핸들러가 {"detail": ...} 응답으로 변환한다.

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

log = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500

    def __init__(self, detail: str = "Server error.", status_code: int | None = None):
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    # 잘못된 id / 범위 밖 평점 / 필수 필드 누락
    status_code = 400


class AuthenticationError(AppError):
    # 토큰 없음 401, 위조/만료 토큰은 403으로 생성
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class UpstreamError(AppError):
    # 미디어 저장소 등 외부 의존성 실패
    status_code = 500


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # 바디/쿼리 스키마 위반도 400으로 통일
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})
