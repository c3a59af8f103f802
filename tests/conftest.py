import pytest
import responses

from toontick.app import create_app


CATALOG_URL = "http://catalog.test/graphql"


@pytest.fixture()
def app_client(tmp_path, monkeypatch):
    """Create an isolated Flask test client backed by a temporary sqlite DB."""
    db_path = tmp_path / "test.db"
    monkeypatch.setenv("TOONTICK_DB_PATH", str(db_path))
    monkeypatch.setenv("FLASK_SECRET_KEY", "test-secret-key-0123456789")
    monkeypatch.setenv("CATALOG_MIN_INTERVAL", "0")

    app = create_app({"TESTING": True, "ANILIST_API_URL": CATALOG_URL})

    with app.test_client() as client:
        yield app, client, db_path


@pytest.fixture()
def app_ctx(app_client):
    """Request context so service calls can reach the per-request DB."""
    app, _, _ = app_client
    with app.test_request_context():
        yield app


@pytest.fixture()
def responses_mock():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps
