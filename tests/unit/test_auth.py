from datetime import datetime, timedelta, timezone

import jwt
import pytest

from portalar.core.errors import AuthenticationError
from portalar.services.auth import AuthGate


@pytest.fixture
def gate(settings):
    return AuthGate(settings)


def reason_for(gate, token):
    with pytest.raises(AuthenticationError) as exc:
        gate.verify(token)
    return exc.value.reason


@pytest.mark.asyncio
async def test_login_issues_verifiable_token(gate, admin_password):
    token = await gate.login(admin_password)

    claims = gate.verify(token)
    assert claims["sub"] == "admin"
    assert claims["role"] == "admin"
    assert claims["exp"] - claims["iat"] == gate.expires_in


@pytest.mark.asyncio
async def test_login_wrong_password(gate):
    with pytest.raises(AuthenticationError) as exc:
        await gate.login("wrong-password")

    assert exc.value.status_code == 401
    assert exc.value.reason == "bad_password"


def test_overlong_password_is_rejected_not_raised(gate):
    assert gate.check_password("x" * 100) is False


def test_missing_token(gate):
    assert reason_for(gate, None) == "missing"
    assert reason_for(gate, "") == "missing"


def test_expired_token(gate):
    token = gate.issue_token(now=datetime.now(timezone.utc) - timedelta(seconds=gate.expires_in + 60))
    assert reason_for(gate, token) == "expired"


def test_token_signed_with_other_secret(gate):
    forged = jwt.encode(
        {"sub": "admin", "iat": datetime.now(timezone.utc), "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        "another-secret-that-is-long-enough-to-sign",
        algorithm="HS256"
    )
    assert reason_for(gate, forged) == "invalid_signature"


def test_malformed_token(gate):
    assert reason_for(gate, "not-a-jwt") == "malformed"


def test_token_missing_claims(gate, settings):
    token = jwt.encode({"sub": "admin"}, settings.admin_jwt_secret, algorithm="HS256")
    assert reason_for(gate, token) == "invalid_claims"


def test_token_for_other_subject(gate, settings):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "visitor", "iat": now, "exp": now + timedelta(hours=1)},
        settings.admin_jwt_secret,
        algorithm="HS256"
    )
    assert reason_for(gate, token) == "invalid_claims"
