from typing import Optional

from fastapi import APIRouter, Depends

from config.settings import settings
from schemas.training import StudentCreate, StudentUpdate
from services.airtable_client import AirtableClient, get_airtable_client
from services.training_service import require_changes, search_students

router = APIRouter(prefix="/students", tags=["Étudiants"])

TABLE = settings.AIRTABLE_TABLE_ETUDIANTS


# ==========================================================
# [1단계] 목록 / 검색
# ==========================================================

# ✅ [READ] 전체 학생 조회 (+ 이름/이메일 검색)
@router.get("/")
def read_students(search: Optional[str] = None, client: AirtableClient = Depends(get_airtable_client)):
    students = client.list_records(TABLE)
    filtered = search_students(students, search)
    return {
        "success": True,
        "data": filtered,
        "meta": {
            "total": len(students),
            "filtered": len(filtered),
            "with_email": sum(1 for s in students if s["fields"].get("Email")),
            "with_phone": sum(1 for s in students if s["fields"].get("Téléphone")),
        },
        "message": "Liste des étudiants récupérée",
    }


# ==========================================================
# [2단계] 개별 조회 / 생성 / 수정 / 삭제
# ==========================================================

# ✅ [READ] 특정 학생 상세 조회
@router.get("/{student_id}")
def read_student(student_id: str, client: AirtableClient = Depends(get_airtable_client)):
    return {"success": True, "data": client.get_record(TABLE, student_id)}


# ✅ [CREATE] 학생 추가
@router.post("/")
def create_student(student: StudentCreate, client: AirtableClient = Depends(get_airtable_client)):
    record = client.create_record(TABLE, student.to_fields())
    return {"success": True, "data": record, "message": "Étudiant créé avec succès"}


# ✅ [UPDATE] 학생 정보 수정 (보낸 필드만 변경)
@router.patch("/{student_id}")
def update_student(student_id: str, updated: StudentUpdate, client: AirtableClient = Depends(get_airtable_client)):
    record = client.update_record(TABLE, student_id, require_changes(updated.to_fields(partial=True)))
    return {"success": True, "data": record, "message": "Étudiant mis à jour avec succès"}


# ✅ [DELETE] 학생 삭제
@router.delete("/{student_id}")
def delete_student(student_id: str, client: AirtableClient = Depends(get_airtable_client)):
    client.delete_record(TABLE, student_id)
    return {"success": True, "data": {"student_id": student_id}, "message": "Étudiant supprimé avec succès"}
