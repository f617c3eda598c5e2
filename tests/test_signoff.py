from config.settings import settings

PRESENCES = settings.AIRTABLE_TABLE_PRESENCES


def test_signoff_page_context(client, fake, training):
    presence = fake.seed(PRESENCES, {"Session": [training["past"]], "Étudiant": [training["alice"]], "Présent ?": False})

    res = client.get(f"/v1/emargement/{presence}")
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["student_name"] == "Alice Martin"
    assert data["session_name"] == "Jour 1"
    assert data["session_date"] == "mercredi 01 octobre 2025"
    assert data["course_name"] == "Figma avancé"
    assert data["already_signed"] is False


def test_sign_then_resign_is_409(client, fake, training):
    presence = fake.seed(PRESENCES, {"Session": [training["past"]], "Étudiant": [training["alice"]], "Présent ?": False})

    res = client.post(f"/v1/emargement/{presence}", json={"signature": "data:image/png;base64,iVBORw0KGgo="})
    assert res.status_code == 200
    fields = fake.fields(PRESENCES, presence)
    assert fields["Signature"] is True
    assert fields["Présent ?"] is True
    assert fields["Horodatage"].endswith("Z")

    assert client.get(f"/v1/emargement/{presence}").json()["data"]["already_signed"] is True

    res = client.post(f"/v1/emargement/{presence}", json={"signature": "data:image/png;base64,AAAA"})
    assert res.status_code == 409
    assert res.json() == {"error": "Présence déjà signée"}


def test_timestamp_alone_counts_as_signed(client, fake, training):
    presence = fake.seed(PRESENCES, {
        "Session": [training["past"]],
        "Étudiant": [training["alice"]],
        "Horodatage": "2025-10-01T09:00:00.000Z",
    })
    res = client.post(f"/v1/emargement/{presence}", json={"signature": "x"})
    assert res.status_code == 409


def test_empty_signature_is_400(client, fake, training):
    presence = fake.seed(PRESENCES, {"Session": [training["past"]], "Étudiant": [training["alice"]]})
    res = client.post(f"/v1/emargement/{presence}", json={"signature": ""})
    assert res.status_code == 400
    assert "Signature" not in fake.fields(PRESENCES, presence)


def test_missing_links_are_404(client, fake, training):
    no_student = fake.seed(PRESENCES, {"Session": [training["past"]]})
    no_session = fake.seed(PRESENCES, {"Étudiant": [training["alice"]]})

    res = client.get(f"/v1/emargement/{no_student}")
    assert res.status_code == 404
    assert res.json() == {"error": "Aucun étudiant lié à cette présence"}
    assert client.post(f"/v1/emargement/{no_session}", json={"signature": "x"}).status_code == 404
    assert client.get("/v1/emargement/recMISSING").status_code == 404


def test_session_form_lists_active_enrollments(client, training):
    res = client.get(f"/v1/formulaires/{training['future']}")
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["course_name"] == "Figma avancé"
    assert [s["name"] for s in data["students"]] == ["Alice Martin", "Bruno Durand"]


def test_signoff_is_public_when_admin_token_is_set(client, fake, training, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_TOKEN", "s3cret")
    presence = fake.seed(PRESENCES, {"Session": [training["past"]], "Étudiant": [training["alice"]]})

    assert client.get(f"/v1/emargement/{presence}").status_code == 200
    assert client.get("/v1/students/").status_code == 401
    assert client.get("/v1/students/", headers={"Authorization": "Bearer wrong"}).status_code == 401
    assert client.get("/v1/students/", headers={"Authorization": "Bearer s3cret"}).status_code == 200
