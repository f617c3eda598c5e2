"""
services/report_service.py

- Qualiopi 보고서(CSV) 및 대시보드 집계
- CSV는 엑셀 호환을 위해 UTF-8 BOM + 모든 셀 따옴표 처리
"""

import csv
import io
from collections import Counter
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence

from services.training_service import (
    NotFoundError,
    STATUS_ENROLLED,
    course_name,
    first_link,
    has_link,
    is_present_value,
    session_name,
    student_name,
)
from utils.dates import format_date_numeric, format_date_time, is_upcoming, parse_airtable_date


def to_csv(headers: Sequence[str], rows: List[Sequence[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if cell is None else cell for cell in row])
    return "\ufeff" + buffer.getvalue()


def _csv_date(value: Optional[str]) -> str:
    formatted = format_date_numeric(value)
    return "" if formatted == "-" else formatted


def _csv_datetime(value: Optional[str]) -> str:
    formatted = format_date_time(value)
    return "" if formatted == "-" else formatted


# ==========================================================
# [1] 세션별 서명부 (Feuille d'émargement)
# ==========================================================

def attendance_sheet_rows(
    session: Dict[str, Any],
    presences: List[Dict[str, Any]],
    students: Dict[str, Dict[str, Any]],
    courses: Dict[str, Dict[str, Any]],
) -> List[List[Any]]:
    session_presences = [p for p in presences if first_link(p["fields"], "Session") == session["id"]]
    if not session_presences:
        raise NotFoundError("Aucune présence enregistrée pour cette session")

    course_id = first_link(session["fields"], "Cours")
    cours = course_name(courses.get(course_id)) if course_id else "Non spécifié"
    session_date = _csv_date(session["fields"].get("Date de la session"))

    rows = []
    for p in session_presences:
        student = students.get(first_link(p["fields"], "Étudiant") or "")
        rows.append([
            session_date,
            session_name(session),
            cours,
            student_name(student, last_first=True) if student else "",
            student["fields"].get("Email", "") if student else "",
            "Oui" if is_present_value(p["fields"].get("Présent ?")) else "Non",
            "Oui" if p["fields"].get("Signature") is True else (p["fields"].get("Signature") or ""),
            _csv_datetime(p["fields"].get("Horodatage")),
        ])
    return rows


ATTENDANCE_SHEET_HEADERS = ["Date", "Session", "Cours", "Nom Prénom", "Email", "Présent", "Signature", "Horodatage"]


# ==========================================================
# [2] 코스별 출석 대장 (Registre de présence)
# ==========================================================

REGISTER_HEADERS = ["Cours", "Session", "Date", "Étudiant", "Email", "Statut", "Horodatage"]


def attendance_register_rows(
    course: Dict[str, Any],
    sessions: List[Dict[str, Any]],
    presences: List[Dict[str, Any]],
    students: Dict[str, Dict[str, Any]],
) -> List[List[Any]]:
    course_sessions = {s["id"]: s for s in sessions if first_link(s["fields"], "Cours") == course["id"]}
    if not course_sessions:
        raise NotFoundError("Aucune session trouvée pour ce cours")

    rows = []
    for p in presences:
        session = course_sessions.get(first_link(p["fields"], "Session") or "")
        if session is None:
            continue
        student = students.get(first_link(p["fields"], "Étudiant") or "")
        rows.append([
            course_name(course),
            session_name(session),
            _csv_date(session["fields"].get("Date de la session")),
            student_name(student, last_first=True) if student else "",
            student["fields"].get("Email", "") if student else "",
            "Présent" if is_present_value(p["fields"].get("Présent ?")) else "Absent",
            _csv_datetime(p["fields"].get("Horodatage")),
        ])
    return rows


# ==========================================================
# [3] 교육 종합 보고서 (Bilan de formation)
# ==========================================================

SUMMARY_HEADERS = [
    "Cours",
    "Nombre de sessions",
    "Nombre d'étudiants uniques",
    "Total présences",
    "Présents",
    "Absents",
    "Taux de présence (%)",
]


def course_attendance(
    course: Dict[str, Any],
    sessions: List[Dict[str, Any]],
    presences: List[Dict[str, Any]],
) -> Dict[str, Any]:
    session_ids = {s["id"] for s in sessions if has_link(s["fields"], "Cours", course["id"])}
    # 코스 레코드의 Sessions 연결도 함께 인정 (양방향 링크)
    session_ids.update(i for i in course["fields"].get("Sessions") or [] if i)

    course_presences = [p for p in presences if first_link(p["fields"], "Session") in session_ids]
    total = len(course_presences)
    present = sum(1 for p in course_presences if is_present_value(p["fields"].get("Présent ?")))
    unique_students = {first_link(p["fields"], "Étudiant") for p in course_presences} - {None}

    return {
        "course_id": course["id"],
        "cours": course_name(course),
        "sessions": len(session_ids),
        "students": len(unique_students),
        "total": total,
        "presents": present,
        "absents": total - present,
        "taux": round(present / total * 100, 1) if total else 0,
    }


def training_summary_rows(
    courses: List[Dict[str, Any]],
    sessions: List[Dict[str, Any]],
    presences: List[Dict[str, Any]],
) -> List[List[Any]]:
    rows = []
    for c in courses:
        stats = course_attendance(c, sessions, presences)
        rows.append([
            stats["cours"],
            stats["sessions"],
            stats["students"],
            stats["total"],
            stats["presents"],
            stats["absents"],
            f"{stats['taux']:.1f}" if stats["total"] else "0",
        ])
    return rows


# ==========================================================
# [4] 학생 명단 / 출석 목록 내보내기
# ==========================================================

STUDENT_HEADERS = ["Nom", "Prénom", "Email", "Téléphone", "Adresse"]


def student_rows(students: List[Dict[str, Any]]) -> List[List[Any]]:
    if not students:
        raise NotFoundError("Aucun étudiant à exporter")
    return [
        [
            s["fields"].get("Nom", ""),
            s["fields"].get("Prénom", ""),
            s["fields"].get("Email", ""),
            s["fields"].get("Téléphone", ""),
            s["fields"].get("Adresse", ""),
        ]
        for s in students
    ]


PRESENCE_EXPORT_HEADERS = ["Date", "Session", "Cours", "Étudiant", "Statut", "Signature", "Horodatage"]


def presence_export_rows(rows: List[Dict[str, Any]]) -> List[List[Any]]:
    if not rows:
        raise NotFoundError("Aucune donnée à exporter")
    return [
        [
            _csv_date(r["session_date"]),
            r["session_name"],
            r["course_name"],
            r["student_name"],
            r["status"],
            "Oui" if r["signature"] is True else (r["signature"] or ""),
            _csv_datetime(r["timestamp"]),
        ]
        for r in rows
    ]


# ==========================================================
# [5] 대시보드 집계
# ==========================================================

def dashboard_cards(
    students: List[Dict[str, Any]],
    courses: List[Dict[str, Any]],
    sessions: List[Dict[str, Any]],
    enrollments: List[Dict[str, Any]],
) -> Dict[str, int]:
    return {
        "total_students": len(students),
        "total_courses": len(courses),
        "upcoming_sessions": sum(1 for s in sessions if is_upcoming(s["fields"].get("Date de la session"))),
        # 진행 중 등록: Inscrit 또는 상태 미지정
        "open_enrollments": sum(
            1 for e in enrollments
            if e["fields"].get("Statut") in (STATUS_ENROLLED, None)
        ),
    }


def enrollment_stats(enrollments: List[Dict[str, Any]]) -> Dict[str, int]:
    counter = Counter(e["fields"].get("Statut") for e in enrollments)
    return {
        "inscrit": counter.get("Inscrit", 0),
        "termine": counter.get("Terminé", 0),
        "annule": counter.get("Annulé", 0),
        "non_defini": counter.get(None, 0),
        "total": len(enrollments),
    }


def enrollment_series(enrollments: List[Dict[str, Any]], today: Optional[date] = None, days: int = 30) -> List[Dict[str, Any]]:
    """최근 N일(오늘 포함) 일별 등록 수"""
    today = today or date.today()
    start = today - timedelta(days=days - 1)
    counts = Counter()
    for e in enrollments:
        dt = parse_airtable_date(e["fields"].get("Date d'inscription"))
        if dt and start <= dt.date() <= today:
            counts[dt.date()] += 1
    return [
        {"date": (start + timedelta(days=i)).isoformat(), "count": counts.get(start + timedelta(days=i), 0)}
        for i in range(days)
    ]


def attendance_chart(
    courses: List[Dict[str, Any]],
    sessions: List[Dict[str, Any]],
    presences: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """코스별 출석률 (출석 기록이 있는 코스만)"""
    data = []
    for c in courses:
        stats = course_attendance(c, sessions, presences)
        if stats["total"]:
            data.append({k: stats[k] for k in ("course_id", "cours", "taux", "presents", "total")})
    return data


def sheet_context(
    session: Dict[str, Any],
    course: Optional[Dict[str, Any]],
    presences: List[Dict[str, Any]],
    students: Dict[str, Dict[str, Any]],
) -> Dict[str, Any]:
    """PDF 서명부 템플릿 렌더링용 데이터"""
    lines = []
    for p in presences:
        student = students.get(first_link(p["fields"], "Étudiant") or "")
        lines.append({
            "name": student_name(student, last_first=True),
            "email": student["fields"].get("Email", "") if student else "",
            "present": is_present_value(p["fields"].get("Présent ?")),
            "signed": bool(p["fields"].get("Signature")),
            "timestamp": format_date_time(p["fields"].get("Horodatage")),
        })
    lines.sort(key=lambda line: line["name"].lower())
    return {
        "session_name": session_name(session),
        "session_date": format_date_numeric(session["fields"].get("Date de la session")),
        "course_name": course_name(course) if course else "Non spécifié",
        "lines": lines,
    }

