"""
config/settings.py

- .env에 정의한 환경변수를 읽어 애플리케이션 전역 설정으로 제공합니다.
- pydantic v2 / pydantic-settings v2 사용.
- Airtable 키/베이스 ID는 선택값으로 두고, 누락 시 요청 시점에 500(설정 누락)으로 응답합니다.
"""

from typing import Annotated, List, Optional, Literal
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    # =========================
    # 앱/런타임
    # =========================
    ENV: Literal["dev", "stage", "prod"] = "dev"
    APP_TITLE: str = "Design.academy API"
    APP_DESCRIPTION: str = "교육센터(코스/세션/등록/출석 서명) 관리 백엔드 API"
    APP_VERSION: str = "1.0.0"

    # 서명 링크 생성에 사용하는 프론트엔드 주소
    APP_BASE_URL: str = "http://localhost:3000"
    TIMEZONE: str = "Europe/Paris"

    # =========================
    # CORS
    # =========================
    # 콤마(,)로 구분된 문자열 → List[str] 로 파싱
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3000"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _split_origins(cls, v):
        if isinstance(v, str):
            # "a,b , c" → ["a","b","c"]
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    # =========================
    # Airtable (호스팅 데이터 서비스)
    # =========================
    AIRTABLE_API_KEY: Optional[str] = None
    AIRTABLE_BASE_ID: Optional[str] = None
    AIRTABLE_API_URL: str = "https://api.airtable.com/v0"
    AIRTABLE_TIMEOUT: int = 15
    # tableName 파라미터가 없을 때 사용할 기본 테이블
    AIRTABLE_TABLE_NAME: Optional[str] = None

    AIRTABLE_TABLE_ETUDIANTS: str = "Étudiants"
    AIRTABLE_TABLE_COURS: str = "Cours"
    AIRTABLE_TABLE_SESSIONS: str = "Sessions"
    AIRTABLE_TABLE_INSCRIPTIONS: str = "Inscriptions"
    AIRTABLE_TABLE_PRESENCES: str = "Présences"

    # 0이면 캐시 비활성화
    CACHE_TTL_SECONDS: int = 30

    def linked_tables(self, table: str) -> List[str]:
        """연결 필드로 이어진 테이블 (한쪽 쓰기 시 반대쪽 역링크 필드도 바뀜)"""
        links = {
            self.AIRTABLE_TABLE_ETUDIANTS: [self.AIRTABLE_TABLE_INSCRIPTIONS, self.AIRTABLE_TABLE_PRESENCES],
            self.AIRTABLE_TABLE_COURS: [self.AIRTABLE_TABLE_SESSIONS, self.AIRTABLE_TABLE_INSCRIPTIONS],
            self.AIRTABLE_TABLE_SESSIONS: [self.AIRTABLE_TABLE_COURS, self.AIRTABLE_TABLE_PRESENCES],
            self.AIRTABLE_TABLE_INSCRIPTIONS: [self.AIRTABLE_TABLE_ETUDIANTS, self.AIRTABLE_TABLE_COURS],
            self.AIRTABLE_TABLE_PRESENCES: [self.AIRTABLE_TABLE_SESSIONS, self.AIRTABLE_TABLE_ETUDIANTS],
        }
        return links.get(table, [])

    # =========================
    # 보안
    # =========================
    # 비어 있으면 관리자 라우터 토큰 검사 생략 (개발용)
    ADMIN_API_TOKEN: Optional[str] = None

    # =========================
    # Logging / Misc
    # =========================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # =========================
    # BaseSettings Config
    # =========================
    model_config = SettingsConfigDict(
        env_file=".env",               # .env에서 값 로드
        env_file_encoding="utf-8",
        case_sensitive=False,          # 환경변수 대소문자 비구분
        extra="ignore",                # 정의되지 않은 키는 무시
    )


# ✅ settings 객체를 통해 어디서든 접근 가능
settings = Settings()
