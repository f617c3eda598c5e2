import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from config.settings import settings
from services.airtable_client import AirtableClient, get_airtable_client
from services.pdf_service import pdf_service
from services.report_service import (
    ATTENDANCE_SHEET_HEADERS,
    PRESENCE_EXPORT_HEADERS,
    REGISTER_HEADERS,
    STUDENT_HEADERS,
    SUMMARY_HEADERS,
    attendance_register_rows,
    attendance_sheet_rows,
    presence_export_rows,
    sheet_context,
    student_rows,
    to_csv,
    training_summary_rows,
)
from services.training_service import NotFoundError, filter_presences, first_link, has_link, index_by_id, load_attendance_rows
from utils.dates import format_date_time, utc_now_iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Rapports Qualiopi"])

# ==========================================================
# [REPORTS] Qualiopi 보고서 다운로드
# - CSV: UTF-8 BOM, 모든 셀 따옴표 (엑셀 호환)
# - 파일명은 ASCII (Content-Disposition 헤더는 latin-1)
# ==========================================================


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def _today() -> str:
    return date.today().isoformat()


# ✅ [CSV] 세션별 서명부
@router.get("/sessions/{session_id}/attendance-sheet.csv")
def export_attendance_sheet(session_id: str, client: AirtableClient = Depends(get_airtable_client)):
    session = client.get_record(settings.AIRTABLE_TABLE_SESSIONS, session_id)
    rows = attendance_sheet_rows(
        session,
        client.list_records(settings.AIRTABLE_TABLE_PRESENCES),
        index_by_id(client.list_records(settings.AIRTABLE_TABLE_ETUDIANTS)),
        index_by_id(client.list_records(settings.AIRTABLE_TABLE_COURS)),
    )
    return _csv_response(
        to_csv(ATTENDANCE_SHEET_HEADERS, rows),
        f"feuille_emargement_{session_id}_{_today()}.csv",
    )


# ✅ [PDF] 세션별 서명부 (Jinja2 템플릿 → WeasyPrint)
@router.get("/sessions/{session_id}/attendance-sheet.pdf")
def export_attendance_sheet_pdf(session_id: str, client: AirtableClient = Depends(get_airtable_client)):
    session = client.get_record(settings.AIRTABLE_TABLE_SESSIONS, session_id)
    presences = [
        p for p in client.list_records(settings.AIRTABLE_TABLE_PRESENCES)
        if has_link(p["fields"], "Session", session_id)
    ]
    if not presences:
        raise NotFoundError("Aucune présence enregistrée pour cette session")

    course_id = first_link(session["fields"], "Cours")
    course = client.get_record(settings.AIRTABLE_TABLE_COURS, course_id) if course_id else None
    data = sheet_context(
        session,
        course,
        presences,
        index_by_id(client.list_records(settings.AIRTABLE_TABLE_ETUDIANTS)),
    )
    data["generated_at"] = format_date_time(utc_now_iso())

    pdf_content = pdf_service.generate_attendance_sheet_pdf(data)
    logger.info(f"Attendance sheet PDF generated: session={session_id} lines={len(data['lines'])}")
    return Response(
        content=pdf_content,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=feuille_emargement_{session_id}.pdf"},
    )


# ✅ [CSV] 코스별 출석 대장
@router.get("/courses/{course_id}/register.csv")
def export_course_register(course_id: str, client: AirtableClient = Depends(get_airtable_client)):
    course = client.get_record(settings.AIRTABLE_TABLE_COURS, course_id)
    rows = attendance_register_rows(
        course,
        client.list_records(settings.AIRTABLE_TABLE_SESSIONS),
        client.list_records(settings.AIRTABLE_TABLE_PRESENCES),
        index_by_id(client.list_records(settings.AIRTABLE_TABLE_ETUDIANTS)),
    )
    return _csv_response(
        to_csv(REGISTER_HEADERS, rows),
        f"registre_presence_{course_id}_{_today()}.csv",
    )


# ✅ [CSV] 교육 종합 보고서
@router.get("/summary.csv")
def export_training_summary(client: AirtableClient = Depends(get_airtable_client)):
    courses = client.list_records(settings.AIRTABLE_TABLE_COURS)
    if not courses:
        raise NotFoundError("Aucun cours à exporter")

    rows = training_summary_rows(
        courses,
        client.list_records(settings.AIRTABLE_TABLE_SESSIONS),
        client.list_records(settings.AIRTABLE_TABLE_PRESENCES),
    )
    return _csv_response(to_csv(SUMMARY_HEADERS, rows), f"bilan_formation_{_today()}.csv")


# ✅ [CSV] 학생 명단
@router.get("/students.csv")
def export_students(client: AirtableClient = Depends(get_airtable_client)):
    rows = student_rows(client.list_records(settings.AIRTABLE_TABLE_ETUDIANTS))
    return _csv_response(to_csv(STUDENT_HEADERS, rows), f"etudiants_{_today()}.csv")


# ✅ [CSV] 출석 목록 (출석 화면과 동일한 필터)
@router.get("/presences.csv")
def export_presences(
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
    return _csv_response(
        to_csv(PRESENCE_EXPORT_HEADERS, presence_export_rows(rows)),
        f"presences_{_today()}.csv",
    )
