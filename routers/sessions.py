from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from config.settings import settings
from schemas.training import SessionCreate, SessionUpdate
from services.airtable_client import AirtableClient, get_airtable_client
from services.training_service import list_sessions, require_changes, sessions_calendar

router = APIRouter(prefix="/sessions", tags=["Sessions"])

TABLE = settings.AIRTABLE_TABLE_SESSIONS


# ==========================================================
# [1단계] 목록 / 캘린더
# ==========================================================

# ✅ [READ] 세션 목록 (코스 필터, 날짜 정렬, 예정 여부)
@router.get("/")
def read_sessions(
    course_id: Optional[str] = None,
    order: Literal["asc", "desc"] = "asc",
    client: AirtableClient = Depends(get_airtable_client),
):
    sessions = list_sessions(client, course_id=course_id, order=order)
    return {
        "success": True,
        "data": sessions,
        "meta": {
            "total": len(sessions),
            "upcoming": sum(1 for s in sessions if s["upcoming"]),
        },
    }


# ✅ [CALENDAR] 월간 캘린더 이벤트
@router.get("/calendar")
def read_calendar(
    month: str = Query(..., description="조회할 월 (예: 2025-10)"),
    client: AirtableClient = Depends(get_airtable_client),
):
    try:
        year, mon = map(int, month.split("-"))
        if not 1 <= mon <= 12:
            raise ValueError(month)
    except ValueError:
        raise HTTPException(status_code=400, detail="Le paramètre month doit être au format YYYY-MM")

    return {"success": True, "data": sessions_calendar(client, year, mon)}


# ==========================================================
# [2단계] 개별 조회 / 생성 / 수정 / 삭제
# ==========================================================

@router.get("/{session_id}")
def read_session(session_id: str, client: AirtableClient = Depends(get_airtable_client)):
    return {"success": True, "data": client.get_record(TABLE, session_id)}


@router.post("/")
def create_session(session: SessionCreate, client: AirtableClient = Depends(get_airtable_client)):
    record = client.create_record(TABLE, session.to_fields())
    return {"success": True, "data": record, "message": "Session créée avec succès"}


@router.patch("/{session_id}")
def update_session(session_id: str, updated: SessionUpdate, client: AirtableClient = Depends(get_airtable_client)):
    record = client.update_record(TABLE, session_id, require_changes(updated.to_fields(partial=True)))
    return {"success": True, "data": record, "message": "Session mise à jour avec succès"}


@router.delete("/{session_id}")
def delete_session(session_id: str, client: AirtableClient = Depends(get_airtable_client)):
    client.delete_record(TABLE, session_id)
    return {"success": True, "data": {"session_id": session_id}, "message": "Session supprimée avec succès"}
