"""JWT access tokens for API users."""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Tuple
from uuid import UUID, uuid4

import jwt

from ..core.errors import UnauthorizedError
from ..core.ids import utc_now


class JWTTokenManager:
    """Issues and verifies short-lived HS256 access tokens."""

    algorithm = "HS256"

    def __init__(
        self,
        secret_key: str,
        issuer: str,
        access_token_expires_minutes: int = 15,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.secret_key = secret_key
        self.issuer = issuer
        self.access_token_expires_minutes = access_token_expires_minutes
        self._clock = clock

    def create_access_token(self, user_id: UUID, email: str) -> Tuple[str, datetime]:
        """
        Create an access token.

        Returns:
            Tuple of (access_token, expires_at)
        """
        now = self._clock()
        expires_at = now + timedelta(minutes=self.access_token_expires_minutes)
        payload = {
            "iss": self.issuer,
            "sub": str(user_id),
            "email": email,
            "iat": now,
            "nbf": now,
            "exp": expires_at,
            "jti": str(uuid4()),
        }
        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return token, expires_at

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode an access token.

        Raises:
            UnauthorizedError: If the token is malformed, expired, or from another issuer
        """
        if not token:
            raise UnauthorizedError("missing access token")
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require": ["exp", "iat", "sub", "iss"]},
            )
        except jwt.ExpiredSignatureError:
            raise UnauthorizedError("access token has expired")
        except jwt.InvalidTokenError:
            raise UnauthorizedError("invalid access token")
