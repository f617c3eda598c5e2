from typing import Optional

from fastapi import APIRouter, Depends, Query

from config.settings import settings
from schemas.training import CourseCreate, CourseUpdate, Niveau
from services.airtable_client import AirtableClient, get_airtable_client
from services.training_service import course_detail, filter_courses, require_changes

router = APIRouter(prefix="/courses", tags=["Cours"])

TABLE = settings.AIRTABLE_TABLE_COURS


# ==========================================================
# [1단계] 목록 (필터: 주제/레벨/강사)
# ==========================================================

@router.get("/")
def read_courses(
    sujet: Optional[str] = None,
    niveau: Optional[Niveau] = Query(None),
    formateur: Optional[str] = None,
    client: AirtableClient = Depends(get_airtable_client),
):
    courses = client.list_records(TABLE)
    filtered = filter_courses(courses, sujet=sujet, niveau=niveau, formateur=formateur)
    return {
        "success": True,
        "data": filtered,
        "meta": {
            "total": len(courses),
            "filtered": len(filtered),
            "levels": len({c["fields"].get("Niveau") for c in courses if c["fields"].get("Niveau")}),
            "trainers": len({c["fields"].get("Formateur") for c in courses if c["fields"].get("Formateur")}),
        },
        "message": "Liste des cours récupérée",
    }


# ==========================================================
# [2단계] 상세 (코스 + 세션 + 등록 학생)
# ==========================================================

@router.get("/{course_id}")
def read_course(course_id: str, client: AirtableClient = Depends(get_airtable_client)):
    return {"success": True, "data": course_detail(client, course_id)}


# ==========================================================
# [3단계] 생성 / 수정 / 삭제
# ==========================================================

@router.post("/")
def create_course(course: CourseCreate, client: AirtableClient = Depends(get_airtable_client)):
    record = client.create_record(TABLE, course.to_fields())
    return {"success": True, "data": record, "message": "Cours créé avec succès"}


@router.patch("/{course_id}")
def update_course(course_id: str, updated: CourseUpdate, client: AirtableClient = Depends(get_airtable_client)):
    record = client.update_record(TABLE, course_id, require_changes(updated.to_fields(partial=True)))
    return {"success": True, "data": record, "message": "Cours mis à jour avec succès"}


@router.delete("/{course_id}")
def delete_course(course_id: str, client: AirtableClient = Depends(get_airtable_client)):
    client.delete_record(TABLE, course_id)
    return {"success": True, "data": {"course_id": course_id}, "message": "Cours supprimé avec succès"}
