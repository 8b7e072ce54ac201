from datetime import timedelta

import pytest

from conftest import bearer
from core.errors import PlanNotFound
from models.models import PlanStatus, utcnow
from services.request_gate import RequestGate
from services.session_ledger import SessionLedger


def test_protected_route_without_token(client):
    response = client.get("/auth/profile")

    assert response.status_code == 401
    assert response.json()["code"] == "missing_token"
    assert response.headers["www-authenticate"] == "Bearer"


def test_profile_with_valid_session(client, make_user, login):
    user = make_user(first_name="Lucia")
    token = login(user.username)["token"]

    response = client.get("/auth/profile", headers=bearer(token))

    assert response.status_code == 200
    profile = response.json()["user"]
    assert profile["id"] == user.id
    assert profile["firstName"] == "Lucia"
    assert profile["loginCount"] == 1
    assert profile["plan"]["status"] == "active"


def test_logout_kills_the_token(client, session, make_user, login):
    user = make_user()
    token = login(user.username)["token"]

    response = client.post("/auth/logout", headers=bearer(token))
    assert response.status_code == 200
    assert response.json() == {"message": "Logged out successfully"}

    response = client.get("/auth/profile", headers=bearer(token))
    assert response.status_code == 401
    assert response.json()["code"] == "session_not_active"

    session.expire_all()
    entry = SessionLedger(session).list_entries(user_id=user.id)[0]
    assert entry.closed_reason == "logout"


def test_other_sessions_survive_a_logout(client, make_user, login):
    user = make_user()
    first = login(user.username)["token"]
    second = login(user.username)["token"]

    client.post("/auth/logout", headers=bearer(first))

    assert client.get("/auth/profile", headers=bearer(second)).status_code == 200


def test_forged_token_is_rejected(client):
    response = client.get("/auth/profile", headers=bearer("not.a.token"))
    assert response.status_code == 401
    assert response.json()["code"] == "invalid_token"


def test_expired_token_closes_its_session(client, session, tokens, make_user):
    user = make_user()
    token = tokens.issue(user, expires_delta=timedelta(seconds=-1))
    SessionLedger(session).record_login(user.id, token)

    response = client.get("/auth/profile", headers=bearer(token))

    assert response.status_code == 401
    assert response.json()["code"] == "invalid_token"
    assert response.json()["error"] == "Token has expired."
    session.expire_all()
    entry = SessionLedger(session).list_entries(user_id=user.id)[0]
    assert entry.is_active_session is False
    assert entry.closed_reason == "token_expired"


def test_plan_deactivated_after_login(client, session, make_user, login):
    user = make_user()
    token = login(user.username)["token"]

    plan = user.plan
    plan.status = PlanStatus.INACTIVE.value
    session.add(plan)
    session.commit()

    response = client.get("/auth/profile", headers=bearer(token))
    assert response.status_code == 403
    assert response.json()["code"] == "plan_inactive"

    # The session is closed, so reactivating the plan does not revive it
    plan.status = PlanStatus.ACTIVE.value
    session.add(plan)
    session.commit()

    response = client.get("/auth/profile", headers=bearer(token))
    assert response.status_code == 401
    assert response.json()["code"] == "session_not_active"


def test_plan_expires_after_login(client, session, make_user, login):
    user = make_user()
    token = login(user.username)["token"]

    plan = user.plan
    plan.end_date = utcnow() - timedelta(minutes=1)
    session.add(plan)
    session.commit()

    response = client.get("/auth/profile", headers=bearer(token))
    assert response.status_code == 403
    assert response.json()["code"] == "plan_expired"

    session.expire_all()
    entry = SessionLedger(session).list_entries(user_id=user.id)[0]
    assert entry.closed_reason == "plan_expired"


def test_user_deactivated_after_login(client, session, store, make_user, login):
    user = make_user()
    token = login(user.username)["token"]

    session.expire_all()
    store.update_user(user, is_active=False)

    response = client.get("/auth/profile", headers=bearer(token))
    assert response.status_code == 403
    assert response.json()["code"] == "user_inactive"


def test_gate_heals_dangling_plan(client, session, store, make_user, login):
    user = make_user()
    token = login(user.username)["token"]

    session.expire_all()
    store.update_user(user, plan_id=4242)

    response = client.get("/auth/profile", headers=bearer(token))

    assert response.status_code == 200
    assert response.json()["user"]["plan"]["name"] == f"Emergency plan - {user.username}"


def test_gate_without_self_heal_closes_session(session, tokens, store, make_user):
    user = make_user()
    token = tokens.issue(user)
    SessionLedger(session).record_login(user.id, token)
    store.update_user(user, plan_id=4242)

    with pytest.raises(PlanNotFound):
        RequestGate(session, tokens, self_heal=False).authenticate(token)

    assert SessionLedger(session).find_active(user.id, token) is None


def test_gate_reports_live_role(session, tokens, store, make_user):
    user = make_user()
    token = tokens.issue(user)
    SessionLedger(session).record_login(user.id, token)
    store.update_user(user, role="supervisor")

    context = RequestGate(session, tokens).authenticate(token)

    assert context.role == "supervisor"
    assert context.id == user.id
