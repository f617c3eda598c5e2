from fastapi import APIRouter, Depends

from schemas.training import SignOffRequest
from services.airtable_client import AirtableClient, get_airtable_client
from services.training_service import course_name, session_form, session_name, sign_presence, signoff_context, student_name
from utils.dates import format_date_long

router = APIRouter(tags=["Émargement"])

# ==========================================================
# [PUBLIC] 학생용 공개 서명 (토큰 인증 없음)
# - 링크: {APP_BASE_URL}/emargement/{presence_id}
# ==========================================================


@router.get("/emargement/{presence_id}")
def read_signoff(presence_id: str, client: AirtableClient = Depends(get_airtable_client)):
    ctx = signoff_context(client, presence_id)
    return {
        "success": True,
        "data": {
            "presence_id": presence_id,
            "presence": ctx["presence"],
            "student": ctx["student"],
            "session": ctx["session"],
            "course": ctx["course"],
            "student_name": student_name(ctx["student"]),
            "session_name": session_name(ctx["session"]),
            "session_date": format_date_long(ctx["session"]["fields"].get("Date de la session")),
            "course_name": course_name(ctx["course"]) if ctx["course"] else None,
            "already_signed": ctx["already_signed"],
            "timestamp": ctx["presence"]["fields"].get("Horodatage"),
        },
    }


# ✅ [SIGN] 서명 제출: 이미 서명된 경우 409
@router.post("/emargement/{presence_id}")
def submit_signoff(presence_id: str, req: SignOffRequest, client: AirtableClient = Depends(get_airtable_client)):
    record = sign_presence(client, presence_id)
    return {
        "success": True,
        "data": record,
        "message": "Présence signée avec succès",
    }


# ✅ [FORM] 세션 단위 서명 폼 (등록 학생 목록)
@router.get("/formulaires/{session_id}")
def read_session_form(session_id: str, client: AirtableClient = Depends(get_airtable_client)):
    form = session_form(client, session_id)
    return {
        "success": True,
        "data": {
            "session_id": session_id,
            "session": form["session"],
            "course": form["course"],
            "session_name": session_name(form["session"]),
            "session_date": format_date_long(form["session"]["fields"].get("Date de la session")),
            "course_name": course_name(form["course"]) if form["course"] else None,
            "students": [
                {"id": s["id"], "name": student_name(s), "email": s["fields"].get("Email", "")}
                for s in form["students"]
            ],
        },
    }
