"""
Tests for bearer token issuance and verification.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from api.errors import ConfigurationError, InvalidToken, MissingClaim
from api.tokens import TokenErr, TokenOk, TokenService

SECRET = "token-test-secret"
ISSUED_AT = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock returning a settable instant."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class TestTokenService:
    """Test cases for TokenService."""

    @pytest.fixture
    def clock(self):
        return FixedClock(ISSUED_AT)

    @pytest.fixture
    def service(self, clock):
        return TokenService(SECRET, clock=clock)

    def test_requires_secret(self):
        """Test that an empty secret is refused."""
        with pytest.raises(ConfigurationError):
            TokenService("")

    def test_issue_embeds_email_and_expiry_only(self, service):
        """Test the token carries exactly the email claim and exp."""
        token = service.issue({"email": "a@example.com", "name": "Alice"})

        claims = jwt.decode(token, SECRET, algorithms=["HS256"], options={"verify_exp": False})
        assert set(claims) == {"email", "exp"}
        assert claims["email"] == "a@example.com"
        assert claims["exp"] == (ISSUED_AT + timedelta(days=7)).timestamp()

    def test_issue_without_email(self, service):
        """Test issuing for an identity without email fails."""
        with pytest.raises(MissingClaim):
            service.issue({"name": "Alice"})

    def test_verify_valid_token(self, service):
        """Test a fresh token verifies."""
        result = service.verify(service.issue({"email": "a@example.com"}))

        assert isinstance(result, TokenOk)
        assert result.ok
        assert result.email == "a@example.com"

    def test_accepted_until_exact_expiry(self, service, clock):
        """Test the token is still valid at exactly seven days."""
        token = service.issue({"email": "a@example.com"})

        clock.now = ISSUED_AT + timedelta(days=7)
        assert service.verify(token).ok

    def test_rejected_after_expiry(self, service, clock):
        """Test the token is rejected the instant after seven days."""
        token = service.issue({"email": "a@example.com"})

        clock.now = ISSUED_AT + timedelta(days=7, microseconds=1)
        result = service.verify(token)

        assert isinstance(result, TokenErr)
        assert isinstance(result.error, InvalidToken)
        assert result.error.expired
        assert result.reason == "expired"

    def test_fractional_issue_keeps_full_lifetime(self, clock):
        """Test a token issued mid-second lives the whole seven days."""
        issued_at = ISSUED_AT + timedelta(milliseconds=900)
        clock.now = issued_at
        service = TokenService(SECRET, clock=clock)
        token = service.issue({"email": "a@example.com"})

        clock.now = issued_at + timedelta(days=7, milliseconds=-500)
        assert service.verify(token).ok

        clock.now = issued_at + timedelta(days=7)
        assert service.verify(token).ok

        clock.now = issued_at + timedelta(days=7, milliseconds=1)
        result = service.verify(token)
        assert not result.ok
        assert result.reason == "expired"

    def test_custom_expiry(self, clock):
        """Test a configured lifetime is honoured."""
        service = TokenService(SECRET, expires_in=timedelta(hours=1), clock=clock)
        token = service.issue({"email": "a@example.com"})

        clock.now = ISSUED_AT + timedelta(hours=1, seconds=1)
        assert not service.verify(token).ok

    def test_rejects_wrong_signature(self, service):
        """Test a token signed with another secret is rejected."""
        forged = TokenService("other-secret", clock=service.clock).issue({"email": "a@example.com"})

        result = service.verify(forged)

        assert not result.ok
        assert isinstance(result.error, InvalidToken)
        assert result.reason == "invalid"

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
    def test_rejects_malformed_token(self, service, token):
        """Test garbage strings are rejected."""
        result = service.verify(token)

        assert not result.ok
        assert isinstance(result.error, InvalidToken)

    def test_rejects_token_without_expiry(self, service):
        """Test a signed token lacking exp is rejected."""
        token = jwt.encode({"email": "a@example.com"}, SECRET, algorithm="HS256")

        with pytest.raises(InvalidToken):
            service.decode(token)

    def test_missing_email_claim(self, service):
        """Test a valid signature without email yields MissingClaim."""
        exp = int((ISSUED_AT + timedelta(days=1)).timestamp())
        token = jwt.encode({"exp": exp, "sub": "someone"}, SECRET, algorithm="HS256")

        result = service.verify(token)

        assert not result.ok
        assert isinstance(result.error, MissingClaim)
        assert result.reason == "missing_claim"

    @pytest.mark.parametrize("email", [{"$ne": None}, ["a@example.com"], 42, ""])
    def test_non_string_email_claim(self, service, email):
        """Test a signed email claim that is not a non-empty string is refused."""
        exp = (ISSUED_AT + timedelta(days=1)).timestamp()
        token = jwt.encode({"email": email, "exp": exp}, SECRET, algorithm="HS256")

        result = service.verify(token)

        assert not result.ok
        assert isinstance(result.error, MissingClaim)

    @pytest.mark.parametrize("email", [{"$ne": None}, 42])
    def test_issue_with_non_string_email(self, service, email):
        with pytest.raises(MissingClaim):
            service.issue({"email": email})
