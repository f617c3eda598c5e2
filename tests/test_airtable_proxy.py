import httpx

from services.airtable_client import AirtableClient, get_airtable_client
from main import app


def test_create_then_get_returns_submitted_fields(client):
    res = client.post("/v1/airtable", json={"tableName": "Cours", "fields": {"Nom du cours": "Test"}})
    assert res.status_code == 200
    record = res.json()["record"]
    assert record["id"]

    res = client.get("/v1/airtable", params={"tableName": "Cours", "recordId": record["id"]})
    assert res.status_code == 200
    assert res.json()["record"]["fields"]["Nom du cours"] == "Test"


def test_list_returns_records_and_count(client, fake):
    fake.seed("Cours", {"Sujet": "Design"})
    fake.seed("Cours", {"Sujet": "UX"})

    res = client.get("/v1/airtable", params={"tableName": "Cours", "sort": "Sujet,-Niveau", "fields": "Sujet"})
    body = res.json()
    assert body["count"] == 2
    assert {r["fields"]["Sujet"] for r in body["records"]} == {"Design", "UX"}

    params = fake.requests[-1].url.params
    assert params["sort[1][field]"] == "Niveau"
    assert params["sort[1][direction]"] == "desc"
    assert params.get_list("fields[]") == ["Sujet"]


def test_update_changes_only_submitted_fields(client, fake):
    record_id = fake.seed("Étudiants", {"Prénom": "Alice", "Nom": "Martin"})

    for method in ("PATCH", "PUT"):
        res = client.request(method, "/v1/airtable", json={
            "tableName": "Étudiants",
            "recordId": record_id,
            "fields": {"Nom": f"Martin-{method}"},
        })
        assert res.status_code == 200
        assert fake.fields("Étudiants", record_id) == {"Prénom": "Alice", "Nom": f"Martin-{method}"}


def test_delete_then_get_is_not_found(client, fake):
    record_id = fake.seed("Cours", {"Sujet": "Design"})

    res = client.request("DELETE", "/v1/airtable", json={"tableName": "Cours", "recordId": record_id})
    assert res.status_code == 200
    assert res.json() == {"success": True, "message": "Record supprimé avec succès"}

    res = client.get("/v1/airtable", params={"tableName": "Cours", "recordId": record_id})
    assert res.status_code == 404
    assert "error" in res.json()


def test_batch_create_accepts_both_record_shapes(client, fake):
    res = client.post("/v1/airtable", json={
        "tableName": "Cours",
        "records": [{"Sujet": "A"}, {"fields": {"Sujet": "B"}}],
    })
    assert res.status_code == 200
    assert res.json()["count"] == 2
    assert sorted(r["fields"]["Sujet"] for r in fake.tables["Cours"].values()) == ["A", "B"]


def test_batch_create_over_limit_is_rejected_without_writes(client, fake):
    res = client.post("/v1/airtable", json={
        "tableName": "Cours",
        "records": [{"Sujet": str(i)} for i in range(11)],
    })
    assert res.status_code == 400
    assert fake.mutations() == []


def test_batch_delete_over_limit_removes_nothing(client, fake):
    ids = [fake.seed("Cours", {"Sujet": str(i)}) for i in range(11)]

    res = client.request("DELETE", "/v1/airtable", json={"tableName": "Cours", "recordIds": ids})
    assert res.status_code == 400
    assert res.json()["error"]
    assert len(fake.tables["Cours"]) == 11
    assert fake.mutations() == []


def test_batch_delete(client, fake):
    ids = [fake.seed("Cours", {"Sujet": str(i)}) for i in range(3)]

    res = client.request("DELETE", "/v1/airtable", json={"tableName": "Cours", "recordIds": ids})
    assert res.status_code == 200
    assert res.json()["count"] == 3
    assert fake.tables["Cours"] == {}


def test_missing_parameters_are_400(client):
    assert client.get("/v1/airtable").status_code == 400
    assert client.post("/v1/airtable", json={"tableName": "Cours"}).status_code == 400
    assert client.post("/v1/airtable", json={"tableName": "Cours", "records": []}).status_code == 400
    assert client.patch("/v1/airtable", json={"tableName": "Cours", "fields": {"a": 1}}).status_code == 400
    assert client.patch("/v1/airtable", json={"tableName": "Cours", "recordId": "rec1", "fields": {}}).status_code == 400
    assert client.request("DELETE", "/v1/airtable", json={"tableName": "Cours"}).status_code == 400

    res = client.get("/v1/airtable/metadata")
    assert res.status_code == 400
    assert res.json() == {"error": "Le paramètre tableName est requis"}


def test_metadata(client, fake):
    fake.schemas = [{
        "id": "tblCours",
        "name": "Cours",
        "fields": [{"id": "fld1", "name": "Niveau", "type": "singleSelect", "options": {"choices": [{"name": "Expert"}]}}],
    }]
    res = client.get("/v1/airtable/metadata", params={"tableName": "Cours"})
    assert res.status_code == 200
    assert res.json()["table"]["fields"][0]["options"]["choices"] == [{"name": "Expert"}]

    assert client.get("/v1/airtable/metadata", params={"tableName": "Autre"}).status_code == 404


def test_missing_configuration_is_500(client):
    app.dependency_overrides[get_airtable_client] = lambda: AirtableClient(api_key=None, base_id=None)
    res = client.get("/v1/airtable", params={"tableName": "Cours"})
    assert res.status_code == 500
    assert res.json() == {"error": "Configuration Airtable manquante"}


def test_network_failure_is_500(client):
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    airtable = AirtableClient(api_key="keyTEST", base_id="appTEST", transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_airtable_client] = lambda: airtable
    res = client.get("/v1/airtable", params={"tableName": "Cours"})
    assert res.status_code == 500
    assert "error" in res.json()
