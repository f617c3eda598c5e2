"""
services/training_service.py

- 교육센터 도메인 로직 (Airtable 레코드 조인/필터/출석 서명)
- 모든 조회는 "목록 조회 → 메모리에서 필터/정렬" 방식
- 연결 레코드(linked record)는 ID 배열이며 첫 번째 원소를 참조로 사용
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from config.settings import settings
from services.airtable_client import MAX_BATCH_SIZE, AirtableClient
from utils.dates import is_upcoming, parse_airtable_date, session_day, to_local, utc_now_iso

logger = logging.getLogger(__name__)

PRESENT_STRINGS = {"oui", "présent", "present"}
PENDING_STATUS = "À saisir"

STATUS_ENROLLED = "Inscrit"
STATUS_COMPLETED = "Terminé"
STATUS_CANCELLED = "Annulé"


class TrainingError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(TrainingError):
    status_code = 404


class AlreadySignedError(TrainingError):
    status_code = 409


# ==========================================================
# [공통] 필드 헬퍼
# ==========================================================

def first_link(fields: Dict[str, Any], key: str) -> Optional[str]:
    value = fields.get(key)
    if isinstance(value, list):
        return value[0] if value else None
    return value or None


def has_link(fields: Dict[str, Any], key: str, record_id: str) -> bool:
    value = fields.get(key)
    if isinstance(value, list):
        return record_id in value
    return value == record_id


def require_changes(fields: Dict[str, Any]) -> Dict[str, Any]:
    if not fields:
        raise TrainingError("Aucun champ à mettre à jour")
    return fields


def index_by_id(records: Iterable[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    return {r["id"]: r for r in records}


def is_present_value(value: Any) -> bool:
    """'Présent ?' 값 판정: 체크박스(bool) 또는 레거시 문자열(Oui/Présent/Present)"""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in PRESENT_STRINGS
    return False


def presence_status_label(value: Any) -> str:
    if is_present_value(value):
        return "Présent"
    if isinstance(value, str) and value.strip():
        return value  # "À saisir" 등은 그대로 노출
    return "Absent"


def is_signed(fields: Dict[str, Any]) -> bool:
    """서명 완료 기준: Signature 체크 또는 Horodatage 기록 여부"""
    return bool(fields.get("Signature")) or bool(fields.get("Horodatage"))


def student_name(record: Optional[Dict[str, Any]], last_first: bool = False) -> str:
    if not record:
        return "Étudiant inconnu"
    f = record["fields"]
    parts = [f.get("Nom", ""), f.get("Prénom", "")] if last_first else [f.get("Prénom", ""), f.get("Nom", "")]
    return " ".join(p for p in parts if p).strip() or "Étudiant inconnu"


def course_name(record: Optional[Dict[str, Any]]) -> str:
    if not record:
        return "Cours inconnu"
    return record["fields"].get("Nom du cours") or record["fields"].get("Sujet") or "Cours inconnu"


def session_name(record: Optional[Dict[str, Any]]) -> str:
    if not record:
        return "Session inconnue"
    return record["fields"].get("Nom de la session") or "Session inconnue"


def session_sort_key(record: Dict[str, Any]):
    dt = parse_airtable_date(record["fields"].get("Date de la session"))
    # 날짜 없는 세션은 맨 뒤로
    return (dt is None, to_local(dt).replace(tzinfo=None) if dt else datetime.min)


def signoff_link(presence_id: str) -> str:
    return f"{settings.APP_BASE_URL.rstrip('/')}/emargement/{presence_id}"


# ==========================================================
# [조회] 학생 / 코스 / 세션 / 등록
# ==========================================================

def search_students(students: List[Dict[str, Any]], search: Optional[str]) -> List[Dict[str, Any]]:
    if not search:
        return students
    needle = search.lower()
    return [
        s for s in students
        if any(
            needle in str(s["fields"].get(key, "")).lower()
            for key in ("Prénom", "Nom", "Email")
        )
    ]


def filter_courses(
    courses: List[Dict[str, Any]],
    sujet: Optional[str] = None,
    niveau: Optional[str] = None,
    formateur: Optional[str] = None,
) -> List[Dict[str, Any]]:
    result = courses
    if sujet:
        result = [c for c in result if sujet.lower() in str(c["fields"].get("Sujet", "")).lower()]
    if niveau:
        result = [c for c in result if c["fields"].get("Niveau") == niveau]
    if formateur:
        result = [c for c in result if formateur.lower() in str(c["fields"].get("Formateur", "")).lower()]
    return result


def enrollments_for_course(
    enrollments: List[Dict[str, Any]],
    course_id: str,
    include_cancelled: bool = True,
) -> List[Dict[str, Any]]:
    return [
        e for e in enrollments
        if has_link(e["fields"], "Cours", course_id)
        and (include_cancelled or e["fields"].get("Statut") != STATUS_CANCELLED)
    ]


def enrolled_students(
    client: AirtableClient,
    course_id: str,
    include_cancelled: bool = True,
) -> List[Dict[str, Any]]:
    enrollments = client.list_records(settings.AIRTABLE_TABLE_INSCRIPTIONS)
    student_ids = [
        first_link(e["fields"], "Étudiant")
        for e in enrollments_for_course(enrollments, course_id, include_cancelled)
    ]
    return client.find_records_by_ids(settings.AIRTABLE_TABLE_ETUDIANTS, [i for i in student_ids if i])


def course_detail(client: AirtableClient, course_id: str) -> Dict[str, Any]:
    course = client.get_record(settings.AIRTABLE_TABLE_COURS, course_id)

    sessions = [
        s for s in client.list_records(settings.AIRTABLE_TABLE_SESSIONS)
        if has_link(s["fields"], "Cours", course_id)
    ]
    sessions.sort(key=session_sort_key)

    return {
        "course": course,
        "sessions": sessions,
        "students": enrolled_students(client, course_id),
    }


def list_sessions(
    client: AirtableClient,
    course_id: Optional[str] = None,
    order: str = "asc",
) -> List[Dict[str, Any]]:
    sessions = client.list_records(settings.AIRTABLE_TABLE_SESSIONS)
    courses = index_by_id(client.list_records(settings.AIRTABLE_TABLE_COURS))

    if course_id:
        sessions = [s for s in sessions if first_link(s["fields"], "Cours") == course_id]

    dated = sorted(
        [s for s in sessions if parse_airtable_date(s["fields"].get("Date de la session"))],
        key=session_sort_key,
        reverse=(order == "desc"),
    )
    undated = [s for s in sessions if not parse_airtable_date(s["fields"].get("Date de la session"))]

    result = []
    for s in dated + undated:
        linked = first_link(s["fields"], "Cours")
        result.append({
            **s,
            "course_name": course_name(courses.get(linked)) if linked else None,
            "upcoming": is_upcoming(s["fields"].get("Date de la session")),
        })
    return result


def sessions_calendar(client: AirtableClient, year: int, month: int) -> List[Dict[str, Any]]:
    """월간 캘린더 이벤트 (세션 하루 단위)"""
    events = []
    for s in list_sessions(client):
        dt = parse_airtable_date(s["fields"].get("Date de la session"))
        day = session_day(s["fields"].get("Date de la session"))
        # 현지 날짜 기준으로 월 판정
        if day is None or day.year != year or day.month != month:
            continue
        name = session_name(s)
        course = s.get("course_name") or "Sans cours"
        events.append({
            "id": s["id"],
            "title": f"{course} - {name}",
            "start": dt.isoformat(),
            "end": dt.isoformat(),
            "session_name": name,
            "course_name": course,
        })
    return events


def filter_enrollments(
    enrollments: List[Dict[str, Any]],
    students_by_id: Dict[str, Dict[str, Any]],
    courses_by_id: Dict[str, Dict[str, Any]],
    statut: Optional[str] = None,
    search: Optional[str] = None,
    sort: str = "date",
) -> List[Dict[str, Any]]:
    rows = []
    for e in enrollments:
        f = e["fields"]
        student = students_by_id.get(first_link(f, "Étudiant") or "")
        course = courses_by_id.get(first_link(f, "Cours") or "")

        if statut and (f.get("Statut") or "").lower() != statut.lower():
            continue

        row = {
            **e,
            "student_name": student_name(student),
            "course_name": course_name(course),
        }
        if search:
            needle = search.lower()
            haystack = " ".join([row["student_name"], row["course_name"], f.get("Statut") or ""]).lower()
            if needle not in haystack:
                continue
        rows.append(row)

    if sort == "status":
        rows.sort(key=lambda r: r["fields"].get("Statut") or "")
    elif sort == "student":
        rows.sort(key=lambda r: r["student_name"].lower())
    else:
        # 최신 등록일 순
        rows.sort(key=lambda r: r["fields"].get("Date d'inscription") or "", reverse=True)
    return rows


# ==========================================================
# [출석] 목록 / 통계 / 생성
# ==========================================================

def enrich_presence(
    presence: Dict[str, Any],
    sessions_by_id: Dict[str, Dict[str, Any]],
    students_by_id: Dict[str, Dict[str, Any]],
    courses_by_id: Dict[str, Dict[str, Any]],
) -> Dict[str, Any]:
    f = presence["fields"]
    session_id = first_link(f, "Session")
    student_id = first_link(f, "Étudiant")
    session = sessions_by_id.get(session_id or "")
    student = students_by_id.get(student_id or "")
    course_id = first_link(session["fields"], "Cours") if session else None

    return {
        "id": presence["id"],
        "session_id": session_id,
        "session_name": session_name(session),
        "session_date": session["fields"].get("Date de la session") if session else None,
        "course_id": course_id,
        "course_name": course_name(courses_by_id.get(course_id or "")) if course_id else "",
        "student_id": student_id,
        "student_name": student_name(student),
        "student_email": student["fields"].get("Email", "") if student else "",
        "present": is_present_value(f.get("Présent ?")),
        "status": presence_status_label(f.get("Présent ?")),
        "signed": is_signed(f),
        "signature": f.get("Signature"),
        "timestamp": f.get("Horodatage"),
        "link": signoff_link(presence["id"]),
    }


def filter_presences(
    rows: List[Dict[str, Any]],
    presences_by_id: Dict[str, Dict[str, Any]],
    course_id: Optional[str] = None,
    status: str = "all",
    search: Optional[str] = None,
) -> List[Dict[str, Any]]:
    result = []
    for row in rows:
        # 세션/학생 연결이 없는 행은 제외
        if not row["session_id"] or not row["student_id"]:
            continue
        if course_id and row["course_id"] != course_id:
            continue

        raw_value = presences_by_id[row["id"]]["fields"].get("Présent ?")
        if status == "present" and not row["present"]:
            continue
        if status == "absent" and (row["present"] or raw_value == PENDING_STATUS):
            continue

        if search:
            needle = search.lower()
            if not any(needle in row[k].lower() for k in ("student_name", "session_name", "course_name")):
                continue
        result.append(row)
    return result


def presence_stats(presences: List[Dict[str, Any]]) -> Dict[str, Any]:
    total = len(presences)
    present = sum(1 for p in presences if is_present_value(p["fields"].get("Présent ?")))
    rate = round(present / total * 100, 1) if total else 0
    return {"total": total, "present": present, "absent": total - present, "rate": rate}


def load_attendance_rows(client: AirtableClient) -> Dict[str, Any]:
    presences = client.list_records(settings.AIRTABLE_TABLE_PRESENCES)
    sessions = index_by_id(client.list_records(settings.AIRTABLE_TABLE_SESSIONS))
    students = index_by_id(client.list_records(settings.AIRTABLE_TABLE_ETUDIANTS))
    courses = index_by_id(client.list_records(settings.AIRTABLE_TABLE_COURS))

    rows = [enrich_presence(p, sessions, students, courses) for p in presences]
    return {
        "presences": presences,
        "presences_by_id": index_by_id(presences),
        "rows": rows,
        "sessions": sessions,
        "students": students,
        "courses": courses,
    }


def generate_attendance(client: AirtableClient, session_id: str) -> Dict[str, Any]:
    """세션 코스의 등록 학생마다 출석 행 1개 생성 (기존 (세션, 학생) 쌍은 건너뜀)"""
    session = client.get_record(settings.AIRTABLE_TABLE_SESSIONS, session_id)
    course_id = first_link(session["fields"], "Cours")
    if not course_id:
        raise TrainingError("La session n'est liée à aucun cours")

    enrollments = client.list_records(settings.AIRTABLE_TABLE_INSCRIPTIONS)
    student_ids: List[str] = []
    for e in enrollments_for_course(enrollments, course_id, include_cancelled=False):
        sid = first_link(e["fields"], "Étudiant")
        if sid and sid not in student_ids:
            student_ids.append(sid)

    existing = {
        first_link(p["fields"], "Étudiant")
        for p in client.list_records(settings.AIRTABLE_TABLE_PRESENCES)
        if has_link(p["fields"], "Session", session_id)
    }
    missing = [sid for sid in student_ids if sid not in existing]

    created: List[Dict[str, Any]] = []
    for i in range(0, len(missing), MAX_BATCH_SIZE):
        chunk = missing[i:i + MAX_BATCH_SIZE]
        created.extend(client.create_records(
            settings.AIRTABLE_TABLE_PRESENCES,
            [{"Session": [session_id], "Étudiant": [sid], "Présent ?": False} for sid in chunk],
        ))

    logger.info(f"Attendance generated: session={session_id} created={len(created)} skipped={len(student_ids) - len(missing)}")
    return {
        "records": created,
        "count": len(created),
        "skipped": len(student_ids) - len(missing),
    }


def session_links(client: AirtableClient, session_id: str) -> List[Dict[str, Any]]:
    client.get_record(settings.AIRTABLE_TABLE_SESSIONS, session_id)
    presences = [
        p for p in client.list_records(settings.AIRTABLE_TABLE_PRESENCES)
        if has_link(p["fields"], "Session", session_id)
    ]
    students = index_by_id(client.find_records_by_ids(
        settings.AIRTABLE_TABLE_ETUDIANTS,
        [first_link(p["fields"], "Étudiant") for p in presences],
    ))
    return [
        {
            "presence_id": p["id"],
            "student_id": first_link(p["fields"], "Étudiant"),
            "student_name": student_name(students.get(first_link(p["fields"], "Étudiant") or "")),
            "signed": is_signed(p["fields"]),
            "link": signoff_link(p["id"]),
        }
        for p in presences
    ]


# ==========================================================
# [서명] 공개 서명 페이지 (unsigned → signed)
# ==========================================================

def signoff_context(client: AirtableClient, presence_id: str) -> Dict[str, Any]:
    presence = client.get_record(settings.AIRTABLE_TABLE_PRESENCES, presence_id)

    student_id = first_link(presence["fields"], "Étudiant")
    if not student_id:
        raise NotFoundError("Aucun étudiant lié à cette présence")
    session_id = first_link(presence["fields"], "Session")
    if not session_id:
        raise NotFoundError("Aucune session liée à cette présence")

    student = client.get_record(settings.AIRTABLE_TABLE_ETUDIANTS, student_id)
    session = client.get_record(settings.AIRTABLE_TABLE_SESSIONS, session_id)
    course_id = first_link(session["fields"], "Cours")
    course = client.get_record(settings.AIRTABLE_TABLE_COURS, course_id) if course_id else None

    return {
        "presence": presence,
        "student": student,
        "session": session,
        "course": course,
        "already_signed": is_signed(presence["fields"]),
    }


def sign_presence(client: AirtableClient, presence_id: str) -> Dict[str, Any]:
    context = signoff_context(client, presence_id)
    if context["already_signed"]:
        raise AlreadySignedError("Présence déjà signée")

    # 부분 수정(merge) - 동시 서명은 마지막 쓰기가 반영됨
    record = client.update_record(
        settings.AIRTABLE_TABLE_PRESENCES,
        presence_id,
        {"Signature": True, "Horodatage": utc_now_iso(), "Présent ?": True},
    )
    logger.info(f"Presence signed: presence={presence_id} student={first_link(record['fields'], 'Étudiant')}")
    return record


def session_form(client: AirtableClient, session_id: str) -> Dict[str, Any]:
    """세션 단위 공개 서명 폼: 세션 + 코스 + 등록 학생 목록"""
    session = client.get_record(settings.AIRTABLE_TABLE_SESSIONS, session_id)
    course_id = first_link(session["fields"], "Cours")
    course = client.get_record(settings.AIRTABLE_TABLE_COURS, course_id) if course_id else None
    students = enrolled_students(client, course_id, include_cancelled=False) if course_id else []
    return {"session": session, "course": course, "students": students}
