from datetime import timedelta

import pytest
from jose import jwt

from trademaster.config import Settings, settings
from trademaster.core.exceptions import ConfigurationError
from trademaster.core.security import (
    create_access_token,
    create_refresh_token,
    issue_token_pair,
    verify_access_token,
    verify_refresh_token,
)


def test_access_token_round_trip():
    token = create_access_token(7, "alice@example.com")
    claims = verify_access_token(token)
    assert claims is not None
    assert claims.subject_id == 7
    assert claims.subject_email == "alice@example.com"


def test_access_token_carries_kind_issuer_and_audience():
    token = create_access_token(7, "alice@example.com")
    payload = jwt.get_unverified_claims(token)
    assert payload["typ"] == "access"
    assert payload["iss"] == "trademaster"
    assert payload["aud"] == "trademaster-users"
    assert payload["exp"] > payload["iat"]


def test_access_token_rejected_as_refresh():
    token = create_access_token(1, "a@b.com")
    assert verify_refresh_token(token) is None


def test_refresh_token_rejected_as_access():
    token = create_refresh_token(1, "a@b.com")
    assert verify_access_token(token) is None
    assert verify_refresh_token(token).subject_id == 1


def test_kind_is_checked_even_with_shared_secret(monkeypatch):
    monkeypatch.setattr(settings, "JWT_REFRESH_SECRET", settings.JWT_SECRET)
    access = create_access_token(1, "a@b.com")
    refresh = create_refresh_token(1, "a@b.com")
    assert verify_refresh_token(access) is None
    assert verify_access_token(refresh) is None


def test_token_valid_before_expiry_and_rejected_after():
    live = create_access_token(3, "c@d.com", expires_delta=timedelta(minutes=1))
    expired = create_access_token(3, "c@d.com", expires_delta=timedelta(seconds=-1))
    assert verify_access_token(live) is not None
    assert verify_access_token(expired) is None


def test_expires_at_matches_exp_claim():
    token = create_access_token(3, "c@d.com")
    exp = jwt.get_unverified_claims(token)["exp"]
    assert int(verify_access_token(token).expires_at.timestamp()) == exp


def test_tampered_signature_rejected():
    token = create_access_token(3, "c@d.com")
    head, body, sig = token.split(".")
    forged = ".".join([head, body, ("B" if sig[0] == "A" else "A") + sig[1:]])
    assert verify_access_token(forged) is None


def test_wrong_audience_rejected(monkeypatch):
    token = create_access_token(3, "c@d.com")
    monkeypatch.setattr(settings, "JWT_AUDIENCE", "someone-else")
    assert verify_access_token(token) is None


def test_wrong_issuer_rejected(monkeypatch):
    monkeypatch.setattr(settings, "JWT_ISSUER", "other-issuer")
    token = create_access_token(3, "c@d.com")
    monkeypatch.setattr(settings, "JWT_ISSUER", "trademaster")
    assert verify_access_token(token) is None


@pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c"])
def test_garbage_rejected(garbage):
    assert verify_access_token(garbage) is None


def test_token_pair_differs_per_issue():
    first = issue_token_pair(5, "e@f.com")
    second = issue_token_pair(5, "e@f.com")
    assert first.access_token != second.access_token
    assert first.refresh_token != second.refresh_token
    assert first.expires_in == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60


def test_missing_secret_fails_closed(monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET", "")
    with pytest.raises(ConfigurationError):
        create_access_token(1, "a@b.com")
    with pytest.raises(ConfigurationError):
        verify_access_token("anything")


def test_startup_validation_requires_secrets():
    with pytest.raises(ConfigurationError):
        Settings(JWT_SECRET="", JWT_REFRESH_SECRET="x" * 40).validate_security_settings()
    with pytest.raises(ConfigurationError):
        Settings(JWT_SECRET="x" * 40, JWT_REFRESH_SECRET="").validate_security_settings()


def test_production_rejects_weak_or_shared_secrets():
    with pytest.raises(ConfigurationError):
        Settings(ENVIRONMENT="production", JWT_SECRET="short", JWT_REFRESH_SECRET="y" * 40).validate_security_settings()
    with pytest.raises(ConfigurationError):
        Settings(ENVIRONMENT="production", JWT_SECRET="x" * 40, JWT_REFRESH_SECRET="x" * 40).validate_security_settings()
    Settings(ENVIRONMENT="production", JWT_SECRET="x" * 40, JWT_REFRESH_SECRET="y" * 40).validate_security_settings()
