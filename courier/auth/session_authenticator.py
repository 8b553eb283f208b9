"""
Session authenticator.

Issues and verifies HMAC-signed bearer tokens whose "sub" claim is the
identity. Verification fails closed: any decode problem becomes
Unauthorized, never an anonymous identity.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from ..exceptions import Unauthorized, create_error_context
from ..structured_logging.logging_config import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "bearer "


def strip_bearer(token: str | None) -> str | None:
    """Return the raw token from either "<token>" or "Bearer <token>"."""
    if token is None:
        return None
    token = token.strip()
    if token.lower().startswith(BEARER_PREFIX):
        token = token[len(BEARER_PREFIX) :].strip()
    return token or None


class SessionAuthenticator:
    """Issues and verifies JWT bearer tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", ttl_minutes: int | None = None) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.ttl_minutes = ttl_minutes

    @classmethod
    def from_config(cls, auth_config) -> "SessionAuthenticator":
        return cls(auth_config.jwt_secret, auth_config.algorithm, auth_config.token_ttl_minutes)

    def issue(self, identity: str) -> str:
        """
        Create a signed token for an identity.

        Tokens carry no expiry unless a TTL is configured.
        """
        claims: dict[str, object] = {"sub": identity, "iat": datetime.now(UTC)}
        if self.ttl_minutes is not None:
            claims["exp"] = datetime.now(UTC) + timedelta(minutes=self.ttl_minutes)
        token = jwt.encode(claims, self.secret, algorithm=self.algorithm)
        logger.debug("Token issued", identity=identity, expires=self.ttl_minutes is not None)
        return token

    def verify(self, token: str | None) -> str:
        """
        Resolve a token to its identity.

        Args:
            token: Raw token or "Bearer <token>"

        Returns:
            The identity in the token's "sub" claim

        Raises:
            Unauthorized: If the token is missing, malformed, tampered with or expired
        """
        raw = strip_bearer(token)
        if raw is None:
            raise Unauthorized("Missing bearer token", create_error_context(), reason="missing_token")

        try:
            payload = jwt.decode(raw, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            raise Unauthorized(
                f"Token verification failed: {e}",
                create_error_context(),
                reason="invalid_token",
                details={"error_type": type(e).__name__},
            ) from e

        identity = payload.get("sub")
        if not isinstance(identity, str) or not identity:
            raise Unauthorized("Token has no subject", create_error_context(), reason="missing_subject")
        return identity
