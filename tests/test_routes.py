"""End-to-end request handling through the FastAPI app."""

from __future__ import annotations

from fastapi.testclient import TestClient

from app.errors import StorageError
from app.main import create_app, get_services

REGISTRATION = {
    "username": "alice",
    "password": "s3cret-pass",
    "password_confirmation": "s3cret-pass",
    "first_name": "Alice",
    "last_name": "Liddell",
    "email": "alice@example.com",
    "credit_card": "4111111111111111",
}


def _client(make_settings, seeded_database_url) -> TestClient:
    return TestClient(create_app(make_settings(DATABASE_URL=seeded_database_url)))


def _register_and_login(client: TestClient) -> None:
    response = client.post("/register", data=REGISTRATION, follow_redirects=False)
    assert response.status_code == 303
    response = client.post(
        "/login",
        data={"username": "alice", "password": "s3cret-pass"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/"


def test_healthcheck(make_settings, seeded_database_url) -> None:
    with _client(make_settings, seeded_database_url) as client:
        assert client.get("/healthz").json() == {"status": "ok"}


def test_forms_render(make_settings, seeded_database_url) -> None:
    with _client(make_settings, seeded_database_url) as client:
        login = client.get("/login")
        register = client.get("/register")

    assert login.status_code == 200
    assert 'name="password"' in login.text
    assert 'name="password_confirmation"' in register.text


def test_registration_does_not_log_in(make_settings, seeded_database_url) -> None:
    with _client(make_settings, seeded_database_url) as client:
        response = client.post("/register", data=REGISTRATION)

        assert response.status_code == 200
        assert response.json()["user"] == ""
        assert client.get("/me").status_code == 401


def test_login_session_and_logout(make_settings, seeded_database_url) -> None:
    with _client(make_settings, seeded_database_url) as client:
        _register_and_login(client)

        assert client.get("/").json()["user"] == "alice"
        profile = client.get("/me").json()
        assert profile["customerId"] == "cust0001"
        assert "creditCard" not in profile

        response = client.get("/logout", follow_redirects=False)
        assert response.status_code == 303
        assert client.get("/").json()["user"] == ""


def test_duplicate_registration_reports_conflict(make_settings, seeded_database_url) -> None:
    with _client(make_settings, seeded_database_url) as client:
        client.post("/register", data=REGISTRATION, follow_redirects=False)
        response = client.post("/register", data=REGISTRATION, follow_redirects=False)

    assert response.status_code == 409
    assert "Username already exists" in response.text


def test_invalid_registration_highlights_fields(make_settings, seeded_database_url) -> None:
    with _client(make_settings, seeded_database_url) as client:
        response = client.post(
            "/register",
            data={**REGISTRATION, "username": "abc", "email": "nope"},
            follow_redirects=False,
        )

    assert response.status_code == 400
    assert 'class="field-error"' in response.text
    assert 's3cret-pass' not in response.text


def test_bad_credentials_are_generic(make_settings, seeded_database_url) -> None:
    with _client(make_settings, seeded_database_url) as client:
        client.post("/register", data=REGISTRATION, follow_redirects=False)
        wrong = client.post(
            "/login",
            data={"username": "alice", "password": "wrong-pass"},
            follow_redirects=False,
        )
        unknown = client.post(
            "/login",
            data={"username": "nobody", "password": "s3cret-pass"},
            follow_redirects=False,
        )

    assert wrong.status_code == unknown.status_code == 401
    assert "Invalid User Name or Password" in wrong.text
    assert "Invalid User Name or Password" in unknown.text


def test_login_accepts_json_body(make_settings, seeded_database_url) -> None:
    with _client(make_settings, seeded_database_url) as client:
        client.post("/register", json=REGISTRATION, follow_redirects=False)
        response = client.post(
            "/login",
            json={"username": "alice", "password": "s3cret-pass"},
            follow_redirects=False,
        )

    assert response.status_code == 303


def test_anonymous_queue_is_empty(make_settings, seeded_database_url) -> None:
    with _client(make_settings, seeded_database_url) as client:
        response = client.get("/queue")
        redirect = client.get("/addtoqueue/s1", follow_redirects=False)
        after = client.post("/queue")

    assert response.status_code == 200
    assert response.json()["queue"] == []
    assert redirect.status_code == 303
    assert after.json()["queue"] == []


def test_queue_flow(make_settings, seeded_database_url) -> None:
    with _client(make_settings, seeded_database_url) as client:
        _register_and_login(client)
        assert client.get("/shows/s1").json()["inQueue"] is False

        response = client.get("/addtoqueue/s1", follow_redirects=False)
        assert response.status_code == 303

        show = client.get("/shows/s1").json()
        queue = client.get("/queue").json()["queue"]

    assert show["inQueue"] is True
    assert show["user"] == "alice"
    assert [member["role"] for member in show["mainCast"]] == ["Don Draper", "Peggy Olson"]
    assert show["recurringCast"][0]["appearances"] == 3
    assert [(item["showId"], item["title"]) for item in queue] == [("s1", "Mad Men")]


def test_watch_flow(make_settings, seeded_database_url) -> None:
    with _client(make_settings, seeded_database_url) as client:
        anonymous = client.get("/watch_episode/s1&101").json()
        _register_and_login(client)
        first = client.get("/watch_episode/s1&101").json()
        second = client.get("/watch_episode/s1&101").json()
        watched = client.get("/watched/s1").json()

    assert anonymous["found"] is True
    assert anonymous["recorded"] is False
    assert first["recorded"] is True
    assert first["episode"]["title"] == "Smoke Gets in Your Eyes"
    assert second["recorded"] is False
    assert [row["episodeId"] for row in watched["watched"]] == ["101"]


def test_watched_requires_session(make_settings, seeded_database_url) -> None:
    with _client(make_settings, seeded_database_url) as client:
        response = client.get("/watched/s1")

    assert response.status_code == 200
    assert response.json()["watched"] == []


def test_catalog_pages(make_settings, seeded_database_url) -> None:
    with _client(make_settings, seeded_database_url) as client:
        episodes = client.get("/show_episodes/s1").json()
        info = client.get("/episodeinfo/s1&102").json()
        actor = client.get("/actor/a4").json()
        search = client.post("/search", data={"search": "man"}).json()
        search_get = client.get("/search", params={"search": "office"}).json()

    assert [episode["episodeId"] for episode in episodes["episodes"]] == ["101", "102", "201"]
    assert episodes["episodes"][0]["season"] == "1"
    assert info["episode"]["title"] == "Ladies Room"
    assert [member["lastName"] for member in info["recurringCast"]] == ["Jacinto", "Pickman"]
    assert [role["role"] for role in actor["recurringRoles"]] == ["Bartender"]
    assert [show["title"] for show in search["shows"]] == ["Batman Beyond", "MANHUNT"]
    assert [actor["lastName"] for actor in search["actors"]] == ["Jacinto", "Pickman"]
    assert [show["title"] for show in search_get["shows"]] == ["The Office"]


def test_missing_catalog_rows_render_empty(make_settings, seeded_database_url) -> None:
    with _client(make_settings, seeded_database_url) as client:
        show = client.get("/shows/missing")
        episode = client.get("/episodeinfo/s1&999")
        actor = client.get("/actor/missing")

    assert show.status_code == 200
    assert show.json()["found"] is False
    assert show.json()["mainCast"] == []
    assert episode.json()["found"] is False
    assert actor.json()["found"] is False


def test_storage_failures_become_server_errors(make_settings, seeded_database_url) -> None:
    app = create_app(make_settings(DATABASE_URL=seeded_database_url))

    async def broken(auth):
        raise StorageError("disk on fire")

    with TestClient(app) as client:
        get_services(app).queue.list_queue = broken  # type: ignore[method-assign]
        response = client.get("/queue")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
