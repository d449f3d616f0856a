"""HTTP-level flows through the Flask test client and its cookie jar."""

from urllib.parse import parse_qs, urlparse

from models.user import Achievement

from conftest import MEMBER_EMAIL, MEMBER_PASSWORD

RESET_MESSAGE = "Password successfully changed — logging out of all devices"


def _login(client, email=MEMBER_EMAIL, password=MEMBER_PASSWORD):
    return client.post("/auth/login", json={"email": email, "password": password})


def _cookie(client, name):
    cookie = client.get_cookie(name)
    return cookie.value if cookie is not None else None


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok", "database": "ok"}


def test_health_reports_unreachable_database(client, services, monkeypatch):
    monkeypatch.setattr(services.storage, "ping", lambda: False)
    resp = client.get("/health")
    assert resp.status_code == 503
    assert resp.get_json()["database"] == "unreachable"


def test_login_sets_cookies_and_me_returns_identity(client, member):
    resp = _login(client)
    assert resp.status_code == 200
    # tokens travel only in cookies
    assert resp.get_json() == {}

    set_cookies = resp.headers.getlist("Set-Cookie")
    assert len(set_cookies) == 2
    assert all("HttpOnly" in h for h in set_cookies)
    assert _cookie(client, "accessToken")
    assert _cookie(client, "refreshToken")

    me = client.get("/auth/me")
    assert me.status_code == 200
    body = me.get_json()
    assert body["user"]["id"] == member.id
    assert body["user"]["email"] == MEMBER_EMAIL
    assert "password_hash" not in body["user"]
    assert body["roles"] == ["Member"]
    assert body["achievements"] == []


def test_me_with_bearer_header(app, member):
    login_client = app.test_client()
    _login(login_client)
    token = _cookie(login_client, "accessToken")

    resp = app.test_client().get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["id"] == member.id


def test_me_lists_achievements(client, services, member):
    badge = Achievement(title="First Degree")
    services.storage.new(badge)
    services.storage.save()
    services.users.award_achievement(member.id, badge.id)

    _login(client)
    achievements = client.get("/auth/me").get_json()["achievements"]
    assert [a["title"] for a in achievements] == ["First Degree"]
    assert achievements[0]["awardedAt"]


def test_me_requires_authentication(client):
    resp = client.get("/auth/me")
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Please sign in"}

    resp = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Invalid token"}


def test_login_rejects_bad_credentials(client, member):
    for email, password in ((MEMBER_EMAIL, "wrong-password"), ("ghost@example.com", MEMBER_PASSWORD)):
        resp = _login(client, email, password)
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid email or password"}
        assert not resp.headers.getlist("Set-Cookie")


def test_login_validates_body(client):
    resp = client.post("/auth/login", json={"email": "not-an-email"})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "Invalid input"
    assert set(body["details"]) == {"email", "password"}


def test_login_refresh_logout_sequence(client, member):
    assert _login(client).status_code == 200
    access, refresh = _cookie(client, "accessToken"), _cookie(client, "refreshToken")

    resp = client.post("/auth/refresh")
    assert resp.status_code == 200
    assert resp.get_json() == {}
    assert _cookie(client, "refreshToken") != refresh
    assert _cookie(client, "accessToken") != access

    resp = client.post("/auth/logout")
    assert resp.status_code == 200
    assert resp.get_json() == {"message": "Logged out from this device"}
    assert _cookie(client, "accessToken") is None
    assert _cookie(client, "refreshToken") is None

    assert client.post("/auth/refresh").status_code == 401


def test_logged_out_access_token_is_rejected(client, member):
    _login(client)
    access = _cookie(client, "accessToken")
    client.post("/auth/logout")

    resp = client.get("/auth/me", headers={"Authorization": f"Bearer {access}"})
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Token revoked"}


def test_logout_without_session_still_succeeds(client):
    resp = client.post("/auth/logout")
    assert resp.status_code == 200


def test_refresh_without_cookie(client):
    resp = client.post("/auth/refresh")
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Missing refresh token"}


def test_replayed_refresh_cookie_ends_all_sessions(client, member):
    _login(client)
    stolen = _cookie(client, "refreshToken")
    assert client.post("/auth/refresh").status_code == 200
    current = _cookie(client, "refreshToken")

    client.set_cookie("refreshToken", stolen)
    resp = client.post("/auth/refresh")
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Invalid refresh token"}

    client.set_cookie("refreshToken", current)
    assert client.post("/auth/refresh").status_code == 401


def test_reset_password_rejects_earlier_access_token(client, services, member, mailer):
    _login(client)
    access = _cookie(client, "accessToken")

    assert client.post("/auth/forgot-password", json={"email": MEMBER_EMAIL}).status_code == 204
    token = parse_qs(urlparse(mailer.sent[0][1]).query)["token"][0]

    resp = client.post("/auth/reset-password", json={"token": token, "password": "new-password-123"})
    assert resp.status_code == 200
    assert resp.get_json() == {"message": RESET_MESSAGE}
    assert _cookie(client, "accessToken") is None

    resp = client.get("/auth/me", headers={"Authorization": f"Bearer {access}"})
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Session expired"}

    assert _login(client, password=MEMBER_PASSWORD).status_code == 401
    assert _login(client, password="new-password-123").status_code == 200
    # the fresh session outlives the reset that preceded it
    assert client.get("/auth/me").status_code == 200


def test_reset_password_errors(client, member):
    resp = client.post("/auth/reset-password", json={"token": "not-a-real-token", "password": "long-enough-1"})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Invalid or expired token"}

    resp = client.post("/auth/reset-password", json={"token": "not-a-real-token", "password": "short"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Invalid input"
    assert "password" in resp.get_json()["details"]


def test_forgot_password_does_not_reveal_accounts(client, member, mailer):
    known = client.post("/auth/forgot-password", json={"email": MEMBER_EMAIL})
    unknown = client.post("/auth/forgot-password", json={"email": "ghost@example.com"})
    assert known.status_code == unknown.status_code == 204
    assert known.data == unknown.data == b""
    assert len(mailer.sent) == 1

    assert client.post("/auth/forgot-password", json={"email": "nope"}).status_code == 400


def test_revoke_all_ends_every_session(app, client, member):
    _login(client)
    other = app.test_client()
    _login(other)
    other_access = _cookie(other, "accessToken")

    resp = client.post("/auth/revoke-all")
    assert resp.status_code == 200
    assert resp.get_json() == {"message": "All sessions revoked"}

    resp = other.get("/auth/me", headers={"Authorization": f"Bearer {other_access}"})
    assert resp.status_code == 401
    assert other.post("/auth/refresh").status_code == 401
    assert client.post("/auth/refresh").status_code == 401


def test_revoke_all_requires_authentication(client):
    assert client.post("/auth/revoke-all").status_code == 401


def test_login_after_revoke_all_gets_working_session(client, member):
    _login(client)
    assert client.post("/auth/revoke-all").status_code == 200

    assert _login(client).status_code == 200
    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.get_json()["user"]["id"] == member.id
    assert client.post("/auth/refresh").status_code == 200


CAROL = {
    "email": "Carol@Example.com",
    "password": "carol-password",
    "firstname": "Carol",
    "lastname": "Mason",
}


def test_register_by_admin(client, admin):
    _login(client, "alice@example.com", "alice-password-1")

    resp = client.post("/auth/register", json=CAROL)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["user"]["email"] == "carol@example.com"
    assert body["roles"] == ["Member"]

    assert client.post("/auth/register", json=CAROL).status_code == 409
    assert _login(client, "carol@example.com", "carol-password").status_code == 200


def test_register_by_editor(client, services):
    services.users.create_user(
        email="erin@example.com",
        password_hash=services.hasher.hash("erin-password-1"),
        roles=["Editor"],
    )
    _login(client, "erin@example.com", "erin-password-1")
    assert client.post("/auth/register", json=CAROL).status_code == 201


def test_register_requires_sign_in(client, services):
    resp = client.post("/auth/register", json=CAROL)
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Please sign in"}
    assert services.users.find_by_email("carol@example.com") is None


def test_register_refuses_members(client, services, member):
    _login(client)
    resp = client.post("/auth/register", json=CAROL)
    assert resp.status_code == 403
    assert resp.get_json() == {"error": "Insufficient role"}
    assert services.users.find_by_email("carol@example.com") is None


def test_register_validates_body(client, admin):
    _login(client, "alice@example.com", "alice-password-1")
    resp = client.post("/auth/register", json={"email": "dave@example.com", "password": "short"})
    assert resp.status_code == 400
    assert {"password", "firstname", "lastname"} <= set(resp.get_json()["details"])
