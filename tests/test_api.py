"""
HTTP-level tests: register -> first login -> activate -> authenticated calls.
"""
from onboarding.security import create_access_token, create_activation_token
from tests.fakes import pending_document

REGISTER = {
    "student_number": "2024-001",
    "full_name": "Alice Example",
    "email": "alice@example.com",
    "class_code": "CS101",
}


def _register(client):
    return client.post("/api/students/register", json=REGISTER)


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_register(client, notifier):
    res = _register(client)
    assert res.status_code == 201
    body = res.json()
    assert body["status"] == "pending"
    assert body["delivered"] is True
    assert body["temp_credential"] is None
    assert "Check your email" in body["message"]
    assert len(notifier.sent) == 1


def test_register_without_email_delivery_returns_password(client, notifier):
    notifier.fail = True
    body = _register(client).json()
    assert body["delivered"] is False
    assert body["temp_credential"]
    assert body["temp_credential"] in body["message"]


def test_register_duplicate_and_unknown_class(client):
    assert _register(client).status_code == 201
    res = _register(client)
    assert res.status_code == 409
    assert res.json()["detail"] == "Email already registered in this class"

    res = client.post("/api/students/register", json={**REGISTER, "email": "x@example.com", "class_code": "ZZZ"})
    assert res.status_code == 404
    assert res.json()["detail"] == "Class code not found"


def test_register_rejects_blank_name(client):
    res = client.post("/api/students/register", json={**REGISTER, "full_name": "  "})
    assert res.status_code == 422


def test_full_onboarding_flow(client, store, notifier):
    _register(client)
    temp = notifier.sent[0]["credential"]

    res = client.post("/api/auth/login", json={"email": "alice@example.com", "password": temp})
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "activation_required"
    assert body["access_token"] is None
    activation_token = body["activation_token"]

    res = client.post(
        "/api/auth/activate",
        json={"activation_token": activation_token, "new_password": "NewPass1", "confirm_password": "NewPass1"},
    )
    assert res.status_code == 200
    tokens = res.json()

    res = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert res.status_code == 200
    me = res.json()
    assert me["status"] == "active"
    assert me["first_login"] is False
    assert me["email"] == "alice@example.com"
    assert store.student("class-cs101", "alice@example.com") is None
    assert store.student("class-cs101", me["uid"]) is not None

    # temporary password no longer works, the new one does
    res = client.post("/api/auth/login", json={"email": "alice@example.com", "password": temp})
    assert res.status_code == 401
    res = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "NewPass1"})
    assert res.status_code == 200
    assert res.json()["status"] == "ok"

    res = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert res.status_code == 200

    # replaying the activation token finds no pending record
    res = client.post(
        "/api/auth/activate",
        json={"activation_token": activation_token, "new_password": "Other99", "confirm_password": "Other99"},
    )
    assert res.status_code == 409


def test_login_wrong_temporary_password(client):
    _register(client)
    res = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "wrong"})
    assert res.status_code == 401
    assert res.json()["detail"] == "Incorrect temporary password."


def test_login_invalid_email(client):
    res = client.post("/api/auth/login", json={"email": "not-an-email", "password": "x"})
    assert res.status_code == 422
    assert res.json()["detail"] == "Please enter a valid email address."


def test_activate_password_mismatch(client):
    token = create_activation_token("class-cs101", "alice@example.com")
    res = client.post(
        "/api/auth/activate",
        json={"activation_token": token, "new_password": "NewPass1", "confirm_password": "NewPass2"},
    )
    assert res.status_code == 422
    assert res.json()["detail"] == "Passwords do not match."


def test_activate_short_password(client, notifier):
    _register(client)
    temp = notifier.sent[0]["credential"]
    token = client.post("/api/auth/login", json={"email": "alice@example.com", "password": temp}).json()[
        "activation_token"
    ]
    res = client.post(
        "/api/auth/activate", json={"activation_token": token, "new_password": "abc", "confirm_password": "abc"}
    )
    assert res.status_code == 422


def test_activate_rejects_bad_token(client):
    res = client.post(
        "/api/auth/activate",
        json={"activation_token": "garbage", "new_password": "NewPass1", "confirm_password": "NewPass1"},
    )
    assert res.status_code == 401


def test_activate_rejects_access_token(client):
    token = create_access_token("alice@example.com", "Player")
    res = client.post(
        "/api/auth/activate",
        json={"activation_token": token, "new_password": "NewPass1", "confirm_password": "NewPass1"},
    )
    assert res.status_code == 401


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401
    res = client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
    assert res.status_code == 401


def test_activation_of_legacy_record_keeps_class_code(client, store):
    doc = pending_document("alice@example.com")
    del doc["classCode"]
    store.students[("class-cs101", "alice@example.com")] = doc

    token = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Temp1234"}).json()[
        "activation_token"
    ]
    res = client.post(
        "/api/auth/activate",
        json={"activation_token": token, "new_password": "NewPass1", "confirm_password": "NewPass1"},
    )
    assert res.status_code == 200
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {res.json()['access_token']}"}).json()
    assert me["class_code"] == "CS101"
    assert store.student("class-cs101", me["uid"])["classCode"] == "CS101"


def test_register_counts_students_in_class(client, store):
    _register(client)
    client.post("/api/students/register", json={**REGISTER, "email": "bob@example.com", "student_number": "2024-002"})
    assert store.class_docs["class-cs101"]["studentCount"] == 2
