"""
utils/dates.py

- Airtable 날짜 문자열 파싱/포맷 유틸
- ISO(YYYY-MM-DD, YYYY-MM-DDTHH:MM:SS.fffZ)와 유럽식(DD/MM/YYYY, DD/MM/YYYY HH:MM) 모두 허용
- 파싱 불가 값은 None, 포맷 결과는 "-"
"""

from datetime import date, datetime, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from config.settings import settings

EUROPEAN_FORMATS = ("%d/%m/%Y", "%d/%m/%Y %H:%M")

MOIS = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]
JOURS = ["lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche"]


def parse_airtable_date(value: Optional[str]) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    # ✅ ISO 먼저 (Python 3.11 미만 호환을 위해 Z → +00:00)
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass

    for fmt in EUROPEAN_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def is_valid_airtable_date(value: Optional[str]) -> bool:
    return parse_airtable_date(value) is not None


def to_local(dt: datetime) -> datetime:
    """시간대가 있는 값만 설정된 현지 시간대로 변환 (날짜만 있는 값은 그대로)"""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(ZoneInfo(settings.TIMEZONE))


def _format(value: Union[str, datetime, None], fmt: str) -> str:
    dt = value if isinstance(value, datetime) else parse_airtable_date(value)
    if dt is None:
        return "-"
    return to_local(dt).strftime(fmt)


def format_date_numeric(value: Union[str, datetime, None]) -> str:
    """15/10/2025"""
    return _format(value, "%d/%m/%Y")


def format_date_time(value: Union[str, datetime, None]) -> str:
    """15/10/2025 14:30"""
    return _format(value, "%d/%m/%Y %H:%M")


def format_date_long(value: Union[str, datetime, None]) -> str:
    """mercredi 15 octobre 2025"""
    dt = value if isinstance(value, datetime) else parse_airtable_date(value)
    if dt is None:
        return "-"
    dt = to_local(dt)
    return f"{JOURS[dt.weekday()]} {dt.day:02d} {MOIS[dt.month - 1]} {dt.year}"


def session_day(value: Optional[str]) -> Optional[date]:
    dt = parse_airtable_date(value)
    return to_local(dt).date() if dt else None


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def is_upcoming(value: Optional[str], now: Optional[datetime] = None) -> bool:
    """세션 날짜가 현재 시각 이후인지 (날짜만 있는 값은 자정 기준)"""
    dt = parse_airtable_date(value)
    if dt is None:
        return False
    now = now or datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo(settings.TIMEZONE))
    return dt > now
