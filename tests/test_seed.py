from sqlmodel import select

from conftest import bearer
from models.models import Plan, User
from scripts.seed import DEMO_PLAN_TOKEN, seed_dev_data


def test_seed_is_idempotent(session):
    first = seed_dev_data(session)
    second = seed_dev_data(session)

    assert first.id == second.id
    assert len(session.exec(select(Plan)).all()) == 1
    users = session.exec(select(User)).all()
    assert sorted(u.username for u in users) == ["admin", "member", "supervisor"]
    assert all(u.plan_id == first.id for u in users)


def test_seeded_admin_can_list_sessions(client, session, login):
    seed_dev_data(session)

    token = login("admin@chronodesk.io", "Admin123")["token"]

    response = client.get("/login-logs/", headers=bearer(token))
    assert response.status_code == 200


def test_seeded_plan_accepts_one_more_supervisor(client, session):
    seed_dev_data(session)

    response = client.post("/auth/validate-secret-key", json={"secretKey": DEMO_PLAN_TOKEN})

    assert response.json()["availableSlots"] == {"users": 4, "supervisors": 1}
