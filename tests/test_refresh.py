from conftest import bearer
from models.models import PlanStatus
from services.session_ledger import SessionLedger


def test_refresh_rotates_the_token_pair(client, session, make_user, login):
    user = make_user()
    issued = login(user.username)

    response = client.post("/auth/refresh", json={"refreshToken": issued["refreshToken"]})

    assert response.status_code == 200
    body = response.json()
    assert body["token"] != issued["token"]
    assert body["refreshToken"] != issued["refreshToken"]

    # Old access token is dead, the new one works
    assert client.get("/auth/profile", headers=bearer(issued["token"])).status_code == 401
    assert client.get("/auth/profile", headers=bearer(body["token"])).status_code == 200

    session.expire_all()
    entries = SessionLedger(session).list_entries(user_id=user.id)
    assert [e.closed_reason for e in entries] == [None, "session_replaced"]


def test_refresh_token_is_single_use(client, make_user, login):
    user = make_user()
    refresh_token = login(user.username)["refreshToken"]

    assert client.post("/auth/refresh", json={"refreshToken": refresh_token}).status_code == 200

    response = client.post("/auth/refresh", json={"refreshToken": refresh_token})
    assert response.status_code == 403
    assert response.json()["code"] == "refresh_token_invalid"


def test_refresh_after_logout_is_refused(client, make_user, login):
    user = make_user()
    issued = login(user.username)
    client.post("/auth/logout", headers=bearer(issued["token"]))

    response = client.post("/auth/refresh", json={"refreshToken": issued["refreshToken"]})
    assert response.status_code == 403


def test_access_token_cannot_be_used_to_refresh(client, make_user, login):
    user = make_user()
    issued = login(user.username)

    response = client.post("/auth/refresh", json={"refreshToken": issued["token"]})
    assert response.status_code == 403


def test_refresh_requires_a_token(client):
    response = client.post("/auth/refresh", json={})
    assert response.status_code == 401
    assert response.json()["error"] == "Refresh token required."


def test_refresh_checks_the_plan(client, session, make_user, login):
    user = make_user()
    issued = login(user.username)

    plan = user.plan
    plan.status = PlanStatus.INACTIVE.value
    session.add(plan)
    session.commit()

    response = client.post("/auth/refresh", json={"refreshToken": issued["refreshToken"]})
    assert response.status_code == 403
    assert response.json()["code"] == "plan_inactive"
