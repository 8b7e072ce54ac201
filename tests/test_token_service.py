from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from core.security import TokenExpired, TokenInvalid, TokenService


class DummyUser:
    def __init__(self, id=7, role="supervisor", username="ana"):
        self.id = id
        self.role = role
        self.username = username


@pytest.fixture
def service():
    return TokenService(secret_key="access-secret", refresh_secret="refresh-secret")


def test_issue_and_verify_carries_identity_only(service):
    token = service.issue(DummyUser())
    claims = service.verify(token)

    assert claims["user_id"] == 7
    assert claims["role"] == "supervisor"
    assert claims["username"] == "ana"
    assert claims["type"] == "access"
    assert "plan" not in claims


def test_default_expiry_is_one_hour_and_remember_me_is_seven_days(service):
    short = service.verify(service.issue(DummyUser()))
    long = service.verify(service.issue(DummyUser(), remember_me=True))

    assert short["exp"] - short["iat"] == 3600
    assert long["exp"] - long["iat"] == 7 * 24 * 3600


def test_tokens_issued_back_to_back_are_distinct(service):
    user = DummyUser()
    assert service.issue(user) != service.issue(user)


def test_expired_token_raises_token_expired(service):
    token = service.issue(DummyUser(), expires_delta=timedelta(seconds=-5))
    with pytest.raises(TokenExpired):
        service.verify(token)


def test_bad_signature_raises_token_invalid(service):
    other = TokenService(secret_key="someone-else", refresh_secret="x")
    with pytest.raises(TokenInvalid):
        service.verify(other.issue(DummyUser()))


def test_garbage_raises_token_invalid(service):
    for token in ("", "not-a-jwt", "a.b.c"):
        with pytest.raises(TokenInvalid):
            service.verify(token)


def test_refresh_and_access_tokens_are_not_interchangeable(service):
    user = DummyUser()
    access = service.issue(user)
    refresh = service.issue_refresh(user)

    assert service.verify_refresh(refresh)["user_id"] == 7
    with pytest.raises(TokenInvalid):
        service.verify(refresh)
    with pytest.raises(TokenInvalid):
        service.verify_refresh(access)


def test_token_without_user_id_is_invalid(service):
    token = jwt.encode(
        {"type": "access", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        "access-secret",
        algorithm="HS256",
    )
    with pytest.raises(TokenInvalid):
        service.verify(token)


def test_issue_requires_persisted_user(service):
    with pytest.raises(ValueError):
        service.issue(DummyUser(id=None))
