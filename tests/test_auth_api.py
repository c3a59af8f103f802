import sqlite3


def test_register_validation(app_client):
    _, client, _ = app_client

    response = client.post("/toontick/api/auth/register", json={"email": "not-an-email", "password": "abcdefg1"})
    assert response.status_code == 400
    assert response.get_json()["error"] == "Please enter a valid email address."

    response = client.post("/toontick/api/auth/register", json={"email": "a@b.co", "password": "short1"})
    assert response.status_code == 400

    response = client.post("/toontick/api/auth/register", json={"email": "a@b.co", "password": "lettersonly"})
    assert response.get_json()["error"] == "Password must contain at least one letter and one number."


def test_register_login_logout_cycle(app_client):
    _, client, _ = app_client

    response = client.post("/toontick/api/auth/register", json={"email": " Reader@Example.com ", "password": "hunter2hunter"})
    assert response.status_code == 201
    assert response.get_json()["user"]["email"] == "reader@example.com"

    duplicate = client.post("/toontick/api/auth/register", json={"email": "reader@example.com", "password": "hunter2hunter"})
    assert duplicate.status_code == 400

    assert client.post("/toontick/api/auth/logout").get_json() == {"ok": True}
    assert client.get("/toontick/api/session").get_json()["logged_in"] is False

    bad = client.post("/toontick/api/auth/login", json={"email": "reader@example.com", "password": "wrongpass1"})
    assert bad.status_code == 401

    good = client.post("/toontick/api/auth/login", json={"email": "READER@example.com", "password": "hunter2hunter"})
    assert good.status_code == 200
    assert client.get("/toontick/api/session").get_json()["logged_in"] is True
    assert client.post("/toontick/api/auth/refresh").status_code == 200


def test_login_migrates_guest_library_and_logout_clears_it(app_client):
    _, client, _ = app_client
    client.post("/toontick/api/auth/register", json={"email": "reader@example.com", "password": "hunter2hunter"})
    client.post("/toontick/api/library", json={"id": 42, "title": "Solo Leveling"})
    client.post("/toontick/api/auth/logout")

    # Guest picks two titles, one already in the remote library.
    client.post("/toontick/api/library", json={"id": 42, "title": "Solo Leveling"})
    client.post("/toontick/api/library", json={"id": 7, "title": "Bastard"})

    response = client.post("/toontick/api/auth/login", json={"email": "reader@example.com", "password": "hunter2hunter"})
    library = response.get_json()["library"]
    assert sorted(row["manhwa_id"] for row in library) == ["42", "7"]

    client.post("/toontick/api/auth/logout")
    with client.session_transaction() as session_state:
        assert "manhwaLibrary" not in session_state
        assert "user_id" not in session_state
    assert client.get("/toontick/api/library").get_json()["items"] == []


def test_change_password_and_delete_account(app_client):
    _, client, db_path = app_client
    client.post("/toontick/api/auth/register", json={"email": "reader@example.com", "password": "hunter2hunter"})
    client.post("/toontick/api/library", json={"id": 42, "title": "Solo Leveling"})

    wrong = client.post(
        "/toontick/api/auth/change-password",
        json={"current_password": "nope12345", "new_password": "newpass123"},
    )
    assert wrong.status_code == 400

    ok = client.post(
        "/toontick/api/auth/change-password",
        json={"current_password": "hunter2hunter", "new_password": "newpass123"},
    )
    assert ok.status_code == 200

    assert client.post("/toontick/api/auth/delete-account").status_code == 200
    with sqlite3.connect(db_path) as conn:
        assert conn.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 0
        assert conn.execute("SELECT COUNT(*) FROM user_library").fetchone()[0] == 0


def test_auth_required_routes(app_client):
    _, client, _ = app_client
    assert client.post("/toontick/api/auth/refresh").status_code == 401
    assert client.post("/toontick/api/auth/delete-account").status_code == 401


def test_failed_migration_leaves_guest_signed_out(app_client, monkeypatch):
    from toontick.repos import library as library_repo

    _, client, _ = app_client
    client.post("/toontick/api/auth/register", json={"email": "reader@example.com", "password": "hunter2hunter"})
    client.post("/toontick/api/auth/logout")
    client.post("/toontick/api/library", json={"id": 7, "title": "Bastard"})

    def locked(*_args, **_kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(library_repo, "list_by_user", locked)
    response = client.post("/toontick/api/auth/login", json={"email": "reader@example.com", "password": "hunter2hunter"})

    assert response.status_code == 503
    assert response.get_json()["setup_required"] is False
    with client.session_transaction() as session_state:
        assert "user_id" not in session_state
        assert [item["id"] for item in session_state["manhwaLibrary"]] == [7]
    assert client.get("/toontick/api/session").get_json()["logged_in"] is False
