# ================================================================
# services/plan_registry.py: Plan lookup, provisioning and validity
# ================================================================
import calendar
import logging
import secrets
from datetime import datetime
from typing import Optional

from sqlmodel import Session, select

from core.config import settings
from core.errors import PlanExpired, PlanInactive
from models.models import Plan, PlanStatus, User, utcnow

logger = logging.getLogger(__name__)


def add_months(value: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def generate_plan_token() -> str:
    return secrets.token_hex(16)


class PlanRegistry:
    """Access to subscription plans, plus the self-healing provisioner."""

    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, plan_id: Optional[int]) -> Optional[Plan]:
        if plan_id is None:
            return None
        return self.session.get(Plan, plan_id)

    def find_by_token(self, token: str) -> Optional[Plan]:
        if not token:
            return None
        return self.session.exec(select(Plan).where(Plan.main_token == token.strip())).first()

    def create_plan(self, **fields) -> Plan:
        fields.setdefault("main_token", generate_plan_token())
        plan = Plan(**fields)
        self.session.add(plan)
        self.session.commit()
        self.session.refresh(plan)
        return plan

    def provision_single_seat(self, name: str, description: str, now: Optional[datetime] = None) -> Plan:
        """Create a fresh active plan with one user seat and no supervisor seats."""
        now = now or utcnow()
        return self.create_plan(
            name=name,
            description=description,
            start_date=now,
            end_date=add_months(now, settings.AUTO_PLAN_DURATION_MONTHS),
            max_supervisors=0,
            max_users=1,
            is_extension=False,
            status=PlanStatus.ACTIVE.value,
            created_by="system",
        )

    def heal_user_plan(self, user: User) -> Plan:
        """
        Replace a missing or dangling plan reference with a new single-seat plan.

        Not transactional across steps: if the process dies between creating
        the plan and re-attaching the user, the next login or request heals again.
        """
        if user.plan_id is None:
            name = f"Automatic plan - {user.username}"
            description = "Plan created automatically for a user without a plan"
        else:
            name = f"Emergency plan - {user.username}"
            description = f"Plan created automatically because plan {user.plan_id} was missing"

        plan = self.provision_single_seat(name=name, description=description)
        previous = user.plan_id
        user.plan_id = plan.id
        user.updated_at = utcnow()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.warning(f"🩹 Plan self-heal for user {user.id}: {previous} -> {plan.id}")
        return plan

    @staticmethod
    def check_validity(plan: Plan, now: Optional[datetime] = None) -> None:
        """Raise PlanInactive / PlanExpired when the plan no longer grants access."""
        if plan.status != PlanStatus.ACTIVE.value:
            raise PlanInactive()
        if plan.is_expired(now):
            raise PlanExpired()
