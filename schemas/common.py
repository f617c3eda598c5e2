"""
schemas/common.py

- 프로젝트 전반에서 재사용할 공용 스키마 모음
- 에러 응답 표준: 모든 에러는 {"error": "<메시지>"} 형태 (검증 실패 시 details 추가)
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """전역 에러 핸들러(middlewares/error_handler.py)가 내려주는 표준 에러 응답"""
    error: str = Field(..., description="사람이 읽을 수 있는 에러 메시지")
    details: Optional[List[Dict[str, Any]]] = Field(default=None, description="요청 검증 실패 상세")

    model_config = ConfigDict(extra="ignore")


# ✅ 라우터 데코레이터 responses= 에 그대로 사용
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Paramètre manquant ou invalide"},
    404: {"model": ErrorResponse, "description": "Record introuvable"},
    500: {"model": ErrorResponse, "description": "Configuration manquante ou erreur Airtable"},
}


class DeleteResponse(BaseModel):
    success: bool = True
    message: str
    count: Optional[int] = None
