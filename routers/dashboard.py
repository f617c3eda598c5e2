from fastapi import APIRouter, Depends

from config.settings import settings
from services.airtable_client import AirtableClient, get_airtable_client
from services.report_service import attendance_chart, dashboard_cards, enrollment_series, enrollment_stats

router = APIRouter(prefix="/dashboard", tags=["Tableau de bord"])


# ==========================================================
# [DASHBOARD] 관리자 대시보드 (카드 + 코스별 출석률 + 등록 통계)
# 프론트 대시보드 화면을 한 번에 반환
# ==========================================================
@router.get("/")
def get_dashboard(client: AirtableClient = Depends(get_airtable_client)):
    students = client.list_records(settings.AIRTABLE_TABLE_ETUDIANTS)
    courses = client.list_records(settings.AIRTABLE_TABLE_COURS)
    sessions = client.list_records(settings.AIRTABLE_TABLE_SESSIONS)
    enrollments = client.list_records(settings.AIRTABLE_TABLE_INSCRIPTIONS)
    presences = client.list_records(settings.AIRTABLE_TABLE_PRESENCES)

    return {
        "success": True,
        "data": {
            # ✅ 1. 요약 카드
            "cards": dashboard_cards(students, courses, sessions, enrollments),
            # ✅ 2. 코스별 출석률 차트
            "attendance_chart": attendance_chart(courses, sessions, presences),
            # ✅ 3. 등록 현황
            "enrollments": {
                "by_status": enrollment_stats(enrollments),
                "last_30_days": enrollment_series(enrollments),
            },
        },
    }
