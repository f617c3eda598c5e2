from typing import Literal, Optional

from fastapi import APIRouter, Depends

from config.settings import settings
from schemas.training import AttendanceCreate, AttendanceUpdate
from services.airtable_client import AirtableClient, get_airtable_client
from services.training_service import (
    enrich_presence,
    filter_presences,
    generate_attendance,
    index_by_id,
    load_attendance_rows,
    presence_stats,
    require_changes,
    session_links,
)

router = APIRouter(prefix="/attendance", tags=["Présences"])

TABLE = settings.AIRTABLE_TABLE_PRESENCES


# ==========================================================
# [1단계] 출석 목록 (코스/상태/검색 필터) + 통계
# ==========================================================

@router.get("/")
def read_attendance_list(
    course_id: Optional[str] = None,
    status: Literal["all", "present", "absent"] = "all",
    search: Optional[str] = None,
    client: AirtableClient = Depends(get_airtable_client),
):
    loaded = load_attendance_rows(client)
    rows = filter_presences(
        loaded["rows"],
        loaded["presences_by_id"],
        course_id=course_id,
        status=status,
        search=search,
    )
    return {
        "success": True,
        "data": rows,
        "meta": presence_stats(loaded["presences"]),
    }


# ✅ [STATS] 전체 출석 통계
@router.get("/stats")
def read_attendance_stats(client: AirtableClient = Depends(get_airtable_client)):
    return {"success": True, "data": presence_stats(client.list_records(TABLE))}


# ==========================================================
# [2단계] 세션 단위: 출석 행 일괄 생성 / 서명 링크
# ==========================================================

# ✅ [GENERATE] 세션 코스의 등록 학생마다 출석 행 생성 (중복 건너뜀)
@router.post("/sessions/{session_id}/generate")
def generate_session_attendance(session_id: str, client: AirtableClient = Depends(get_airtable_client)):
    result = generate_attendance(client, session_id)
    return {
        "success": True,
        "data": result,
        "message": f"{result['count']} présence(s) générée(s)",
    }


# ✅ [LINKS] 학생별 공개 서명 링크
@router.get("/sessions/{session_id}/links")
def read_session_links(session_id: str, client: AirtableClient = Depends(get_airtable_client)):
    links = session_links(client, session_id)
    return {
        "success": True,
        "data": links,
        "meta": {"total": len(links), "signed": sum(1 for link in links if link["signed"])},
    }


# ==========================================================
# [3단계] 개별 조회 / 생성 / 수정 / 삭제
# ==========================================================

@router.get("/{presence_id}")
def read_attendance(presence_id: str, client: AirtableClient = Depends(get_airtable_client)):
    presence = client.get_record(TABLE, presence_id)
    data = enrich_presence(
        presence,
        index_by_id(client.list_records(settings.AIRTABLE_TABLE_SESSIONS)),
        index_by_id(client.list_records(settings.AIRTABLE_TABLE_ETUDIANTS)),
        index_by_id(client.list_records(settings.AIRTABLE_TABLE_COURS)),
    )
    return {"success": True, "data": data}


@router.post("/")
def create_attendance(attendance: AttendanceCreate, client: AirtableClient = Depends(get_airtable_client)):
    record = client.create_record(TABLE, attendance.to_fields())
    return {"success": True, "data": record, "message": "Présence créée avec succès"}


@router.patch("/{presence_id}")
def update_attendance(presence_id: str, updated: AttendanceUpdate, client: AirtableClient = Depends(get_airtable_client)):
    record = client.update_record(TABLE, presence_id, require_changes(updated.to_fields(partial=True)))
    return {"success": True, "data": record, "message": "Présence mise à jour avec succès"}


@router.delete("/{presence_id}")
def delete_attendance(presence_id: str, client: AirtableClient = Depends(get_airtable_client)):
    client.delete_record(TABLE, presence_id)
    return {"success": True, "data": {"presence_id": presence_id}, "message": "Présence supprimée avec succès"}
