# scripts/seed.py

import os
import sys
import argparse

from dotenv import load_dotenv
from sqlmodel import Session

# Ensure root path for relative imports
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# ✅ Load environment variables before settings are read
load_dotenv()

from core.crypto import get_field_cipher  # noqa: E402
from core.database import create_db_and_tables, engine  # noqa: E402
from models.models import Plan, PlanStatus, UserRole, utcnow  # noqa: E402
from services.credential_store import CredentialStore  # noqa: E402
from services.plan_registry import PlanRegistry, add_months  # noqa: E402

DEMO_PLAN_TOKEN = "demo-plan-secret-key"

DEMO_USERS = [
    # username, email, role, password
    ("admin", "admin@chronodesk.io", UserRole.ADMIN.value, "Admin123"),
    ("supervisor", "supervisor@chronodesk.io", UserRole.SUPERVISOR.value, "Super123"),
    ("member", "member@chronodesk.io", UserRole.USER.value, "Member123"),
]


def seed_dev_data(session: Session, plan_token: str = DEMO_PLAN_TOKEN) -> Plan:
    """Seed a demo plan with an admin, a supervisor and a user. Safe to re-run."""
    print("🌱 Seeding development data...")
    registry = PlanRegistry(session)
    store = CredentialStore(session, get_field_cipher())

    # -----------------------------
    # 📦 Demo Plan
    # -----------------------------
    plan = registry.find_by_token(plan_token)
    if not plan:
        now = utcnow()
        plan = registry.create_plan(
            name="Demo Plan",
            description="Demo plan for local development",
            start_date=now,
            end_date=add_months(now, 12),
            max_users=5,
            max_supervisors=2,
            main_token=plan_token,
            status=PlanStatus.ACTIVE.value,
        )
        print("✅ Created Demo Plan")

    # -----------------------------
    # 👥 Demo Users
    # -----------------------------
    for username, email, role, password in DEMO_USERS:
        if store.exists_with_username_or_email(username, email):
            continue
        store.create_user(
            first_name=username.capitalize(),
            last_name="Demo",
            username=username,
            email=email,
            phone="+1 555 0100",
            password=password,
            role=role,
            is_active=True,
            created_by="seed",
            plan_id=plan.id,
        )
        print(f"✅ Added {role} '{username}'")

    print(f"🔑 Demo plan secret key: {plan.main_token}")
    return plan


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the ChronoDesk development database.")
    parser.add_argument(
        "--plan-key",
        default=DEMO_PLAN_TOKEN,
        help="Secret key of the demo plan (reused when it already exists)",
    )
    args = parser.parse_args()

    create_db_and_tables()
    with Session(engine) as session:
        seed_dev_data(session, plan_token=args.plan_key)
    print("🌱 Done.")
