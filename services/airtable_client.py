import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

import httpx

from config.settings import settings
from services.record_cache import RecordCache

logger = logging.getLogger(__name__)

# Airtable 배치 요청(생성/삭제)은 요청당 최대 10건
MAX_BATCH_SIZE = 10
PAGE_SIZE = 100


class AirtableError(Exception):
    """Airtable 연동 관련 예외 (업스트림 상태 코드를 그대로 보존)"""

    def __init__(self, message: str, status_code: int = 500, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


class AirtableConfigError(Exception):
    """API 키/베이스 ID 누락"""
    pass


class BatchLimitError(ValueError):
    """배치 크기 위반 (네트워크 호출 전에 거부)"""
    pass


def _check_batch(items: Sequence, label: str) -> None:
    if not items:
        raise BatchLimitError(f"Le tableau {label} ne peut pas être vide")
    if len(items) > MAX_BATCH_SIZE:
        raise BatchLimitError(f"Maximum {MAX_BATCH_SIZE} records par requête")


def _to_record(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": raw.get("id"),
        "fields": raw.get("fields") or {},
        "createdTime": raw.get("createdTime"),
    }


def _error_message(response: httpx.Response) -> Tuple[str, Any]:
    """Airtable 에러 본문: {"error": {"type", "message"}} 또는 {"error": "NOT_FOUND"}"""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}", None

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        message = error.get("message") or error.get("type") or f"HTTP {response.status_code}"
    elif error:
        message = str(error)
    else:
        message = f"HTTP {response.status_code}"
    return message, body


class AirtableClient:
    """Airtable REST API 클라이언트 (목록/조회/생성/수정/삭제 + 메타데이터)"""

    def __init__(
        self,
        api_key: Optional[str],
        base_id: Optional[str],
        api_url: str = "https://api.airtable.com/v0",
        timeout: int = 15,
        cache: Optional[RecordCache] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not api_key or not base_id:
            raise AirtableConfigError("Configuration Airtable manquante")
        self.base_id = base_id
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.cache = cache if cache is not None else RecordCache(0)
        self.transport = transport
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    # ===============================================================
    # 공통 HTTP 처리
    # ===============================================================

    def _table_url(self, table: str, record_id: Optional[str] = None) -> str:
        # 테이블명에 악센트/공백이 들어가므로 반드시 인코딩
        url = f"{self.api_url}/{self.base_id}/{quote(table, safe='')}"
        if record_id:
            url = f"{url}/{quote(record_id, safe='')}"
        return url

    def _make_request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.request(method, url, headers=self.headers, **kwargs)
        except httpx.TimeoutException:
            logger.error(f"Airtable timeout: {method} {url}")
            raise AirtableError("Délai d'attente Airtable dépassé", status_code=500)
        except httpx.HTTPError as e:
            logger.error(f"Airtable connection failed: {method} {url} ({e})")
            raise AirtableError(f"Connexion Airtable impossible: {e}", status_code=500)

        if response.is_error:
            message, details = _error_message(response)
            logger.warning(f"Airtable {response.status_code}: {method} {url} → {message}")
            raise AirtableError(message, status_code=response.status_code, details=details)

        return response.json()

    # ===============================================================
    # 조회
    # ===============================================================

    def list_records(
        self,
        table: str,
        view: Optional[str] = None,
        filter_by_formula: Optional[str] = None,
        max_records: Optional[int] = None,
        fields: Optional[List[str]] = None,
        sort: Optional[List[Dict[str, str]]] = None,
    ) -> List[Dict[str, Any]]:
        """offset 페이지네이션을 끝까지 따라가며 전체 레코드 반환"""
        cache_key = RecordCache.make_key(
            op="list", view=view, formula=filter_by_formula,
            max_records=max_records, fields=fields, sort=sort,
        )
        cached = self.cache.get(table, cache_key)
        if cached is not None:
            return cached

        params: List[Tuple[str, Any]] = [("pageSize", PAGE_SIZE)]
        if view:
            params.append(("view", view))
        if filter_by_formula:
            params.append(("filterByFormula", filter_by_formula))
        if max_records:
            params.append(("maxRecords", max_records))
        for name in fields or []:
            params.append(("fields[]", name))
        for i, rule in enumerate(sort or []):
            params.append((f"sort[{i}][field]", rule["field"]))
            params.append((f"sort[{i}][direction]", rule.get("direction", "asc")))

        records: List[Dict[str, Any]] = []
        offset = None
        while True:
            page_params = params + ([("offset", offset)] if offset else [])
            data = self._make_request("GET", self._table_url(table), params=page_params)
            records.extend(_to_record(r) for r in data.get("records", []))
            offset = data.get("offset")
            if not offset or (max_records and len(records) >= max_records):
                break

        if max_records:
            records = records[:max_records]

        self.cache.set(table, cache_key, records)
        return records

    def get_record(self, table: str, record_id: str) -> Dict[str, Any]:
        cache_key = RecordCache.make_key(op="get", id=record_id)
        cached = self.cache.get(table, cache_key)
        if cached is not None:
            return cached

        record = _to_record(self._make_request("GET", self._table_url(table, record_id)))
        self.cache.set(table, cache_key, record)
        return record

    def find_records_by_ids(self, table: str, record_ids: Sequence[str]) -> List[Dict[str, Any]]:
        """연결 레코드 ID 목록 → 레코드 목록 (중복 제거, 순서 유지)"""
        seen = []
        for record_id in record_ids:
            if record_id and record_id not in seen:
                seen.append(record_id)
        return [self.get_record(table, record_id) for record_id in seen]

    # ===============================================================
    # 생성 / 수정 / 삭제 (성공 시해당 테이블 + 연결 테이블 캐시 무효화)
    # ===============================================================

    def _invalidate(self, table: str) -> None:
        for name in [table, *settings.linked_tables(table)]:
            self.cache.invalidate(name)

    def create_record(self, table: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        data = self._make_request("POST", self._table_url(table), json={"fields": fields})
        self._invalidate(table)
        return _to_record(data)

    def create_records(self, table: str, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        _check_batch(records, "records")
        payload = {"records": [{"fields": fields} for fields in records]}
        data = self._make_request("POST", self._table_url(table), json=payload)
        self._invalidate(table)
        return [_to_record(r) for r in data.get("records", [])]

    def update_record(self, table: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """부분 수정 (PATCH, 전달하지 않은 필드는 유지)"""
        data = self._make_request("PATCH", self._table_url(table, record_id), json={"fields": fields})
        self._invalidate(table)
        return _to_record(data)

    def replace_record(self, table: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """전체 교체 (PUT, 전달하지 않은 필드는 비워짐)"""
        data = self._make_request("PUT", self._table_url(table, record_id), json={"fields": fields})
        self._invalidate(table)
        return _to_record(data)

    def delete_record(self, table: str, record_id: str) -> bool:
        data = self._make_request("DELETE", self._table_url(table, record_id))
        self._invalidate(table)
        return bool(data.get("deleted", True))

    def delete_records(self, table: str, record_ids: List[str]) -> List[str]:
        _check_batch(record_ids, "recordIds")
        params = [("records[]", record_id) for record_id in record_ids]
        data = self._make_request("DELETE", self._table_url(table), params=params)
        self._invalidate(table)
        return [r.get("id") for r in data.get("records", []) if r.get("deleted")]

    # ===============================================================
    # 메타데이터 (필드 구조 / Single Select 옵션)
    # ===============================================================

    def get_table_metadata(self, table: str) -> Dict[str, Any]:
        url = f"{self.api_url}/meta/bases/{self.base_id}/tables"
        data = self._make_request("GET", url)

        match = next((t for t in data.get("tables", []) if t.get("name") == table), None)
        if match is None:
            raise AirtableError(f'Table "{table}" non trouvée', status_code=404)

        return {
            "id": match.get("id"),
            "name": match.get("name"),
            "fields": [
                {
                    "id": f.get("id"),
                    "name": f.get("name"),
                    "type": f.get("type"),
                    "options": f.get("options") or None,
                }
                for f in match.get("fields", [])
            ],
        }


record_cache = RecordCache(settings.CACHE_TTL_SECONDS)


def get_airtable_client() -> AirtableClient:
    """FastAPI 의존성: 설정값으로 클라이언트 생성 (캐시는 프로세스 단위로 공유)"""
    return AirtableClient(
        api_key=settings.AIRTABLE_API_KEY,
        base_id=settings.AIRTABLE_BASE_ID,
        api_url=settings.AIRTABLE_API_URL,
        timeout=settings.AIRTABLE_TIMEOUT,
        cache=record_cache,
    )
