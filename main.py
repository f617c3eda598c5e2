from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from config.settings import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# HTTP 라이브러리 디버그 로그 비활성화
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)


# ✅ 미들웨어 임포트
from middlewares.timing import TimingMiddleware
from middlewares.error_handler import add_error_handlers
from dependencies.security import require_admin_token

# ✅ 라우터 임포트
from routers import (
    airtable, students, courses, sessions, enrollments,
    attendance, reports, dashboard, meta,
    signoff,  # ← 학생용 공개 서명 (인증 없음)
)

app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
)

# ✅ CORS 설정 (프론트엔드 연동)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ 요청 지연 측정 미들웨어 (응답 헤더 X-Latency-Ms 추가)
app.add_middleware(TimingMiddleware)

# ✅ 전역 에러 핸들러 등록 ({"error": "..."} 포맷)
add_error_handlers(app)

# ✅ /v1 프리픽스 라우터 등록 (관리자 라우터는 토큰 필요)
admin = [Depends(require_admin_token)]

app.include_router(airtable.router,     prefix="/v1", dependencies=admin)
app.include_router(students.router,     prefix="/v1", dependencies=admin)
app.include_router(courses.router,      prefix="/v1", dependencies=admin)
app.include_router(sessions.router,     prefix="/v1", dependencies=admin)
app.include_router(enrollments.router,  prefix="/v1", dependencies=admin)
app.include_router(attendance.router,   prefix="/v1", dependencies=admin)
app.include_router(reports.router,      prefix="/v1", dependencies=admin)
app.include_router(dashboard.router,    prefix="/v1", dependencies=admin)
app.include_router(meta.router,         prefix="/v1")
app.include_router(signoff.router,      prefix="/v1")   # ✅ 공개 서명 라우터

# ✅ 헬스체크 엔드포인트
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "API is running"}

# ✅ 루트 엔드포인트
@app.get("/")
def root():
    return {"message": f"{settings.APP_TITLE} - Centre de formation"}
