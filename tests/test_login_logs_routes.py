import pytest

from conftest import bearer


@pytest.fixture
def admin_token(make_user, login):
    admin = make_user(role="admin")
    return login(admin.username)["token"]


def test_non_admin_is_refused(client, make_user, login):
    user = make_user()
    token = login(user.username)["token"]

    response = client.get("/login-logs/", headers=bearer(token))

    assert response.status_code == 403
    assert response.json() == {
        "error": "Admin privileges required",
        "code": "insufficient_role",
    }


def test_list_all_hides_tokens(client, admin_token, make_user, login):
    user = make_user()
    login(user.username)

    response = client.get("/login-logs/", headers=bearer(admin_token))

    assert response.status_code == 200
    entries = response.json()
    assert len(entries) == 2
    assert entries[0]["userId"] == user.id
    assert entries[0]["isActiveSession"] is True
    assert "sessionToken" not in entries[0]
    assert "refreshToken" not in entries[0]


def test_list_only_active(client, admin_token, make_user, login):
    user = make_user()
    token = login(user.username)["token"]
    client.post("/auth/logout", headers=bearer(token))

    response = client.get("/login-logs/?active=true", headers=bearer(admin_token))

    entries = response.json()
    assert len(entries) == 1
    assert user.id not in [e["userId"] for e in entries]
    assert entries[0]["isActiveSession"] is True


def test_logs_of_one_user(client, admin_token, make_user, login):
    user = make_user()
    login(user.username)
    login(user.username)

    response = client.get(f"/login-logs/{user.id}", headers=bearer(admin_token))

    assert response.status_code == 200
    assert len(response.json()) == 2


def test_logs_with_invalid_user_id(client, admin_token):
    response = client.get("/login-logs/0", headers=bearer(admin_token))
    assert response.status_code == 400
    assert response.json()["errors"] == ["Invalid user id."]


def test_force_logout_closes_every_session(client, admin_token, make_user, login):
    user = make_user()
    first = login(user.username)["token"]
    second = login(user.username)["token"]

    response = client.post(f"/login-logs/logout/{user.id}", headers=bearer(admin_token))

    assert response.status_code == 200
    body = response.json()
    assert body["closed"] == 2
    assert "logoutTime" in body
    for token in (first, second):
        assert client.get("/auth/profile", headers=bearer(token)).status_code == 401


def test_force_logout_without_sessions(client, admin_token, make_user):
    user = make_user()

    response = client.post(f"/login-logs/logout/{user.id}", headers=bearer(admin_token))

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"
