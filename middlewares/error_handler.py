import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.airtable_client import AirtableConfigError, AirtableError, BatchLimitError
from services.training_service import TrainingError

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, details=None) -> JSONResponse:
    content = {"error": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Requête invalide"
    first = errors[0]
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def add_error_handlers(app: FastAPI):
    # ✅ 업스트림(Airtable) 오류: 상태 코드 그대로 전달
    @app.exception_handler(AirtableError)
    async def airtable_exception_handler(request: Request, exc: AirtableError):
        logger.error(f"{request.method} {request.url.path} → Airtable {exc.status_code}: {exc.message}")
        return _error(exc.status_code, exc.message)

    # ✅ 설정 누락 (API 키/베이스 ID)
    @app.exception_handler(AirtableConfigError)
    async def config_exception_handler(request: Request, exc: AirtableConfigError):
        logger.error(f"{request.method} {request.url.path} → {exc}")
        return _error(500, str(exc))

    # ✅ 배치 크기 위반 (업스트림 호출 전 거부)
    @app.exception_handler(BatchLimitError)
    async def batch_exception_handler(request: Request, exc: BatchLimitError):
        logger.warning(f"{request.method} {request.url.path} → {exc}")
        return _error(400, str(exc))

    # ✅ 도메인 오류 (404 연결 누락, 409 이미 서명됨 등)
    @app.exception_handler(TrainingError)
    async def training_exception_handler(request: Request, exc: TrainingError):
        logger.warning(f"{request.method} {request.url.path} → {exc.status_code}: {exc.message}")
        return _error(exc.status_code, exc.message)

    # ✅ 요청 검증 실패는 400으로 통일
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        message = _validation_message(exc)
        logger.warning(f"{request.method} {request.url.path} → 400: {message}")
        return _error(400, message, details=jsonable_errors(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} → {exc.status_code}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"{request.method} {request.url.path} → unhandled error")
        return _error(500, str(exc) or "Erreur interne du serveur")


def jsonable_errors(exc: RequestValidationError):
    return [
        {"loc": [str(p) for p in e.get("loc", ())], "msg": e.get("msg"), "type": e.get("type")}
        for e in exc.errors()
    ]
