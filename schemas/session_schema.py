# session_schema.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime


class LoginLogRead(BaseModel):
    """A session ledger entry as shown to administrators (tokens omitted)."""
    id: int
    user_id: int
    is_active_session: bool
    login_time: datetime
    logout_time: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    closed_reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class RevokeSessionsResponse(BaseModel):
    message: str
    closed: int
    logout_time: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
