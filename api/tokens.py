"""
Signed, time-limited bearer tokens.

Tokens are HS256 JWTs carrying a single ``email`` claim and an absolute
``exp``. Nothing is persisted; every protected request re-verifies the
signature and expiry.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping, Union

import jwt
import structlog

from api.errors import ConfigurationError, InvalidToken, MissingClaim, TokenError

logger = structlog.get_logger(__name__)

EMAIL_CLAIM = "email"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenOk:
    """Successful verification."""
    claims: Dict[str, Any]

    @property
    def ok(self) -> bool:
        return True

    @property
    def email(self) -> str:
        return self.claims[EMAIL_CLAIM]


@dataclass(frozen=True)
class TokenErr:
    """Failed verification; ``error`` says why."""
    error: TokenError

    @property
    def ok(self) -> bool:
        return False

    @property
    def reason(self) -> str:
        return self.error.reason


TokenResult = Union[TokenOk, TokenErr]


class TokenService:
    """Issues and verifies bearer tokens with a process-wide secret."""

    def __init__(
        self,
        secret: str,
        expires_in: timedelta = timedelta(days=7),
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = utcnow,
    ):
        if not secret:
            raise ConfigurationError("A token signing secret is required")
        self._secret = secret
        self.expires_in = expires_in
        self.algorithm = algorithm
        self.clock = clock

    def issue(self, identity: Mapping[str, Any]) -> str:
        """
        Issue a token for an identity record.

        Args:
            identity: Record containing at least an ``email`` field

        Returns:
            Signed token string

        Raises:
            MissingClaim: If the identity has no email
        """
        email = identity.get(EMAIL_CLAIM)
        if not isinstance(email, str) or not email:
            raise MissingClaim(EMAIL_CLAIM)

        # exp keeps sub-second precision
        expires_at = self.clock() + self.expires_in
        payload = {EMAIL_CLAIM: email, "exp": expires_at.timestamp()}
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def decode(self, token: str) -> Dict[str, Any]:
        """
        Decode and validate a token.

        Expiry is checked against this service's clock; a token is valid up
        to and including its ``exp`` instant.

        Raises:
            InvalidToken: Bad signature, malformed token or expired token
            MissingClaim: Valid token without an email claim
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "require": ["exp"]},
            )
        except jwt.InvalidTokenError as e:
            raise InvalidToken(str(e)) from e

        exp = claims["exp"]
        if not isinstance(exp, (int, float)):
            raise InvalidToken("Expiration time must be numeric")
        if self.clock().timestamp() > exp:
            raise InvalidToken("Token has expired", expired=True)

        email = claims.get(EMAIL_CLAIM)
        if not isinstance(email, str) or not email:
            raise MissingClaim(EMAIL_CLAIM)
        return claims

    def verify(self, token: str) -> TokenResult:
        """Verify a token, returning ``TokenOk`` or ``TokenErr``."""
        try:
            return TokenOk(self.decode(token))
        except TokenError as e:
            logger.debug("Token verification failed", reason=e.reason, error=str(e))
            return TokenErr(e)
