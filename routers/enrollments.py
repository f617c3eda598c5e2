from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends

from config.settings import settings
from schemas.training import EnrollmentCreate, EnrollmentUpdate
from services.airtable_client import AirtableClient, get_airtable_client
from services.report_service import enrollment_series, enrollment_stats
from services.training_service import STATUS_ENROLLED, filter_enrollments, index_by_id, require_changes

router = APIRouter(prefix="/enrollments", tags=["Inscriptions"])

TABLE = settings.AIRTABLE_TABLE_INSCRIPTIONS


# ==========================================================
# [1단계] 목록 (상태 필터, 검색, 정렬) / 통계
# ==========================================================

@router.get("/")
def read_enrollments(
    statut: Optional[str] = None,
    search: Optional[str] = None,
    sort: Literal["date", "status", "student"] = "date",
    client: AirtableClient = Depends(get_airtable_client),
):
    enrollments = client.list_records(TABLE)
    students = index_by_id(client.list_records(settings.AIRTABLE_TABLE_ETUDIANTS))
    courses = index_by_id(client.list_records(settings.AIRTABLE_TABLE_COURS))

    rows = filter_enrollments(enrollments, students, courses, statut=statut, search=search, sort=sort)
    return {
        "success": True,
        "data": rows,
        "meta": enrollment_stats(enrollments),
    }


# ✅ [STATS] 상태별 건수 + 최근 30일 일별 등록 추이
@router.get("/stats")
def read_enrollment_stats(client: AirtableClient = Depends(get_airtable_client)):
    enrollments = client.list_records(TABLE)
    return {
        "success": True,
        "data": {
            "by_status": enrollment_stats(enrollments),
            "last_30_days": enrollment_series(enrollments),
        },
    }


# ==========================================================
# [2단계] 개별 조회 / 생성 / 수정 / 삭제
# ==========================================================

@router.get("/{enrollment_id}")
def read_enrollment(enrollment_id: str, client: AirtableClient = Depends(get_airtable_client)):
    return {"success": True, "data": client.get_record(TABLE, enrollment_id)}


# ✅ [CREATE] 등록일 기본값 오늘, 상태 기본값 Inscrit
@router.post("/")
def create_enrollment(enrollment: EnrollmentCreate, client: AirtableClient = Depends(get_airtable_client)):
    fields = enrollment.to_fields()
    fields.setdefault("Date d'inscription", date.today().isoformat())
    fields.setdefault("Statut", STATUS_ENROLLED)

    record = client.create_record(TABLE, fields)
    return {"success": True, "data": record, "message": "Inscription créée avec succès"}


@router.patch("/{enrollment_id}")
def update_enrollment(enrollment_id: str, updated: EnrollmentUpdate, client: AirtableClient = Depends(get_airtable_client)):
    record = client.update_record(TABLE, enrollment_id, require_changes(updated.to_fields(partial=True)))
    return {"success": True, "data": record, "message": "Inscription mise à jour avec succès"}


@router.delete("/{enrollment_id}")
def delete_enrollment(enrollment_id: str, client: AirtableClient = Depends(get_airtable_client)):
    client.delete_record(TABLE, enrollment_id)
    return {"success": True, "data": {"enrollment_id": enrollment_id}, "message": "Inscription supprimée avec succès"}
