import itertools
import json
from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from config.settings import settings
from main import app
from services.airtable_client import AirtableClient, get_airtable_client
from services.record_cache import RecordCache

BASE_ID = "appTEST"


class FakeAirtable:
    """Airtable REST API를 흉내내는 인메모리 서버 (httpx.MockTransport 핸들러)"""

    def __init__(self, page_size: Optional[int] = None):
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.schemas: List[Dict[str, Any]] = []
        self.requests: List[httpx.Request] = []
        self.page_size = page_size
        self._ids = itertools.count(1)

    # ✅ 테스트 데이터 주입
    def seed(self, table: str, fields: Dict[str, Any]) -> str:
        record_id = f"rec{next(self._ids):05d}"
        self.tables.setdefault(table, {})[record_id] = {
            "id": record_id,
            "fields": dict(fields),
            "createdTime": "2025-10-01T08:00:00.000Z",
        }
        return record_id

    def fields(self, table: str, record_id: str) -> Dict[str, Any]:
        return self.tables[table][record_id]["fields"]

    def mutations(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method != "GET"]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def _not_found(self) -> httpx.Response:
        return httpx.Response(404, json={"error": "NOT_FOUND"})

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = [p for p in request.url.path.split("/") if p]  # ["v0", base, table, (id)]

        if parts[1] == "meta":
            return httpx.Response(200, json={"tables": self.schemas})

        table = parts[2]
        record_id = parts[3] if len(parts) > 3 else None
        rows = self.tables.setdefault(table, {})
        body = json.loads(request.content) if request.content else {}

        if request.method == "GET" and record_id:
            return httpx.Response(200, json=rows[record_id]) if record_id in rows else self._not_found()

        if request.method == "GET":
            records = list(rows.values())
            size = self.page_size or int(request.url.params.get("pageSize", 100))
            start = int(request.url.params.get("offset", 0))
            page = {"records": records[start:start + size]}
            if start + size < len(records):
                page["offset"] = str(start + size)
            return httpx.Response(200, json=page)

        if request.method == "POST":
            if "records" in body:
                created = [rows[self.seed(table, r["fields"])] for r in body["records"]]
                return httpx.Response(200, json={"records": created})
            return httpx.Response(200, json=rows[self.seed(table, body["fields"])])

        if request.method in ("PATCH", "PUT"):
            if record_id not in rows:
                return self._not_found()
            if request.method == "PUT":
                rows[record_id]["fields"] = {}
            rows[record_id]["fields"].update(body["fields"])
            return httpx.Response(200, json=rows[record_id])

        if request.method == "DELETE" and record_id:
            if rows.pop(record_id, None) is None:
                return self._not_found()
            return httpx.Response(200, json={"id": record_id, "deleted": True})

        if request.method == "DELETE":
            ids = request.url.params.get_list("records[]")
            if any(i not in rows for i in ids):
                return self._not_found()
            for i in ids:
                del rows[i]
            return httpx.Response(200, json={"records": [{"id": i, "deleted": True} for i in ids]})

        return httpx.Response(405, json={"error": "METHOD_NOT_ALLOWED"})


@pytest.fixture
def fake():
    return FakeAirtable()


@pytest.fixture
def airtable(fake):
    return AirtableClient(api_key="keyTEST", base_id=BASE_ID, transport=fake.transport())


@pytest.fixture
def client(airtable, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_TOKEN", None)
    app.dependency_overrides[get_airtable_client] = lambda: airtable
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def cached_client(fake, client):
    """운영과 같이 캐시(TTL 30초)를 켠 클라이언트"""
    cached = AirtableClient(api_key="keyTEST", base_id=BASE_ID, transport=fake.transport(), cache=RecordCache(30))
    app.dependency_overrides[get_airtable_client] = lambda: cached
    return client


@pytest.fixture
def training(fake):
    """학생 3명, 코스 1개, 세션 2개, 등록 3건(1건 취소)"""
    alice = fake.seed(settings.AIRTABLE_TABLE_ETUDIANTS, {"Prénom": "Alice", "Nom": "Martin", "Email": "alice@example.com", "Téléphone": "0600000001"})
    bruno = fake.seed(settings.AIRTABLE_TABLE_ETUDIANTS, {"Prénom": "Bruno", "Nom": "Durand", "Email": "bruno@example.com"})
    chloe = fake.seed(settings.AIRTABLE_TABLE_ETUDIANTS, {"Prénom": "Chloé", "Nom": "Petit", "Email": "chloe@example.com"})

    course = fake.seed(settings.AIRTABLE_TABLE_COURS, {
        "Nom du cours": "Figma avancé",
        "Sujet": "Design",
        "Niveau": "Avancé",
        "Formateur": "Léa Bernard",
        "Date de début": "2025-10-01",
        "Durée (jours)": 2,
        "Modalité": "Présentiel",
    })
    past = fake.seed(settings.AIRTABLE_TABLE_SESSIONS, {"Nom de la session": "Jour 1", "Date de la session": "2025-10-01", "Cours": [course]})
    future = fake.seed(settings.AIRTABLE_TABLE_SESSIONS, {"Nom de la session": "Jour 2", "Date de la session": "2099-01-15", "Cours": [course]})

    fake.seed(settings.AIRTABLE_TABLE_INSCRIPTIONS, {"Étudiant": [alice], "Cours": [course], "Statut": "Inscrit", "Date d'inscription": "2025-09-20"})
    fake.seed(settings.AIRTABLE_TABLE_INSCRIPTIONS, {"Étudiant": [bruno], "Cours": [course], "Statut": "Terminé", "Date d'inscription": "2025-09-21"})
    fake.seed(settings.AIRTABLE_TABLE_INSCRIPTIONS, {"Étudiant": [chloe], "Cours": [course], "Statut": "Annulé", "Date d'inscription": "2025-09-22"})

    return {
        "alice": alice,
        "bruno": bruno,
        "chloe": chloe,
        "course": course,
        "past": past,
        "future": future,
    }
