import csv
import io

from config.settings import settings
from services import pdf_service as pdf_module
from services.pdf_service import PDFService

PRESENCES = settings.AIRTABLE_TABLE_PRESENCES
COURSES = settings.AIRTABLE_TABLE_COURS
SESSIONS = settings.AIRTABLE_TABLE_SESSIONS


def _rows(res):
    text = res.content.decode("utf-8")
    assert text.startswith("\ufeff")
    return list(csv.reader(io.StringIO(text[1:])))


def _seed_presences(fake, training):
    fake.seed(PRESENCES, {
        "Session": [training["past"]],
        "Étudiant": [training["alice"]],
        "Présent ?": True,
        "Signature": True,
        "Horodatage": "2025-10-01T07:30:00.000Z",
    })
    fake.seed(PRESENCES, {"Session": [training["past"]], "Étudiant": [training["bruno"]], "Présent ?": False})


def test_attendance_sheet_csv(client, fake, training):
    _seed_presences(fake, training)

    res = client.get(f"/v1/reports/sessions/{training['past']}/attendance-sheet.csv")
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    assert "attachment; filename=feuille_emargement_" in res.headers["content-disposition"]

    rows = _rows(res)
    assert rows[0] == ["Date", "Session", "Cours", "Nom Prénom", "Email", "Présent", "Signature", "Horodatage"]
    # Europe/Paris: 07:30Z → 09:30
    assert rows[1] == ["01/10/2025", "Jour 1", "Figma avancé", "Martin Alice", "alice@example.com", "Oui", "Oui", "01/10/2025 09:30"]
    assert rows[2][5:] == ["Non", "", ""]


def test_every_cell_is_quoted(client, fake, training):
    _seed_presences(fake, training)
    text = client.get(f"/v1/reports/sessions/{training['past']}/attendance-sheet.csv").content.decode("utf-8")
    assert text.splitlines()[0].lstrip("\ufeff").startswith('"Date","Session"')


def test_empty_session_sheet_is_404(client, training):
    res = client.get(f"/v1/reports/sessions/{training['future']}/attendance-sheet.csv")
    assert res.status_code == 404
    assert res.json() == {"error": "Aucune présence enregistrée pour cette session"}


def test_course_register_csv(client, fake, training):
    _seed_presences(fake, training)

    rows = _rows(client.get(f"/v1/reports/courses/{training['course']}/register.csv"))
    assert rows[0] == ["Cours", "Session", "Date", "Étudiant", "Email", "Statut", "Horodatage"]
    assert [r[5] for r in rows[1:]] == ["Présent", "Absent"]


def test_training_summary_csv(client, fake, training):
    _seed_presences(fake, training)

    rows = _rows(client.get("/v1/reports/summary.csv"))
    assert rows[1] == ["Figma avancé", "2", "2", "2", "1", "1", "50.0"]


def test_students_csv(client, training):
    rows = _rows(client.get("/v1/reports/students.csv"))
    assert rows[0] == ["Nom", "Prénom", "Email", "Téléphone", "Adresse"]
    assert rows[1] == ["Martin", "Alice", "alice@example.com", "0600000001", ""]
    assert len(rows) == 4


def test_students_csv_empty_is_404(client):
    assert client.get("/v1/reports/students.csv").status_code == 404


def test_presences_export_uses_list_filters(client, fake, training):
    _seed_presences(fake, training)

    rows = _rows(client.get("/v1/reports/presences.csv", params={"status": "present"}))
    assert len(rows) == 2
    assert rows[1][3] == "Alice Martin"

    assert client.get("/v1/reports/presences.csv", params={"search": "zzz"}).status_code == 404


def test_presences_export_leaves_missing_dates_empty(client, fake, training):
    _seed_presences(fake, training)
    undated = fake.seed(SESSIONS, {"Nom de la session": "Atelier", "Cours": [training["course"]]})
    fake.seed(PRESENCES, {"Session": [undated], "Étudiant": [training["alice"]], "Présent ?": True})

    rows = {(r[1], r[3]): r for r in _rows(client.get("/v1/reports/presences.csv"))[1:]}
    assert rows[("Jour 1", "Bruno Durand")][0] == "01/10/2025"
    assert rows[("Jour 1", "Bruno Durand")][6] == ""
    assert rows[("Atelier", "Alice Martin")][0] == ""


def test_attendance_sheet_pdf(client, fake, training, monkeypatch):
    _seed_presences(fake, training)
    captured = {}

    def fake_pdf(data):
        captured.update(data)
        return b"%PDF-1.7 test"

    monkeypatch.setattr(pdf_module.pdf_service, "generate_attendance_sheet_pdf", fake_pdf)

    res = client.get(f"/v1/reports/sessions/{training['past']}/attendance-sheet.pdf")
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"
    assert res.content.startswith(b"%PDF")
    assert captured["course_name"] == "Figma avancé"
    assert [line["name"] for line in captured["lines"]] == ["Durand Bruno", "Martin Alice"]


def test_attendance_sheet_template_renders():
    html = PDFService().render_html("attendance_sheet.html", {
        "session_name": "Jour 1",
        "course_name": "Figma <avancé>",
        "session_date": "01/10/2025",
        "generated_at": "01/10/2025 10:00",
        "lines": [{"name": "Martin Alice", "email": "alice@example.com", "present": True, "signed": True, "timestamp": "01/10/2025 09:30"}],
    })
    assert "Martin Alice" in html
    assert "Figma &lt;avancé&gt;" in html
    assert "Signé" in html


def test_summary_refetches_linked_tables_after_session_delete(cached_client, fake, training):
    _seed_presences(fake, training)
    course = fake.fields(COURSES, training["course"])
    course["Sessions"] = [training["past"], training["future"]]

    rows = _rows(cached_client.get("/v1/reports/summary.csv"))
    assert rows[1][1] == "2"

    assert cached_client.delete(f"/v1/sessions/{training['future']}").status_code == 200
    # Airtable이 반대쪽 역링크 필드를 갱신
    course["Sessions"] = [training["past"]]

    rows = _rows(cached_client.get("/v1/reports/summary.csv"))
    assert rows[1] == ["Figma avancé", "1", "2", "2", "1", "1", "50.0"]
