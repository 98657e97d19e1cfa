"""API users: bootstrap account, login, token checks."""

from typing import Any, Dict, Optional

from ..auth.security import DummyCredentials, hash_password, verify_password
from ..core.errors import UnauthorizedError, ValidationError
from ..core.validation import validate_email
from ..db.models import User
from ..store.integrity_policy import ExpectedIntegrityTag
from ..store.savepoints import expected_conflict_savepoint
from ..utils.logging_config import get_logger
from .context import ServiceContext
from .types import LoginResult

logger = get_logger('auth')

MIN_PASSWORD_LENGTH = 8


def _normalize_email(email: Optional[str]) -> str:
    email = (email or "").strip().lower()
    if not validate_email(email):
        raise ValidationError("invalid email")
    return email


class UserService:
    def __init__(self, ctx: ServiceContext):
        self.ctx = ctx
        self._dummy: Optional[DummyCredentials] = None

    def ensure_user(self, email: str, password: str) -> bool:
        """Create the user unless an active one already has this email.

        A concurrent creation of the same user is not an error.

        Returns:
            True when this call inserted the user
        """
        email = _normalize_email(email)
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"password must have at least {MIN_PASSWORD_LENGTH} characters"
            )

        with self.ctx.gateway.transaction() as repos:
            if repos.users.get_active_by_email(email) is not None:
                return False

            salt_hex, hash_hex = hash_password(
                password, iterations=self.ctx.password_hash_iterations
            )
            now = self.ctx.clock()
            user = User(
                id=self.ctx.new_id(),
                email=email,
                password_hash=hash_hex,
                password_salt=salt_hex,
                created_at=now,
                updated_at=now,
            )
            context = {"operation": "ensure_user", "entity_type": "user", "entity_id": email}
            with expected_conflict_savepoint(
                repos.session, {ExpectedIntegrityTag.USER_EMAIL_TAKEN}, context
            ):
                repos.users.add(user)

            created = "integrity_tag" not in context

        if created:
            logger.info(f"Created user {user.id}")
        return created

    def login(self, email: str, password: str) -> LoginResult:
        email = _normalize_email(email)
        if not (password or "").strip():
            raise ValidationError("password is required")

        with self.ctx.gateway.read() as repos:
            user = repos.users.get_active_by_email(email)
            if user is None:
                # Same hashing cost as a real check, so timing does not reveal unknown emails
                self._dummy_credentials().burn(password)
                raise UnauthorizedError("invalid credentials")
            user_id, user_email = user.id, user.email
            salt_hex, hash_hex = user.password_salt, user.password_hash

        if not verify_password(
            password, salt_hex, hash_hex, iterations=self.ctx.password_hash_iterations
        ):
            raise UnauthorizedError("invalid credentials")

        token, expires_at = self.ctx.tokens.create_access_token(user_id, user_email)
        expires_in = int((expires_at - self.ctx.clock()).total_seconds())
        logger.info(f"User {user_id} logged in")
        return LoginResult(
            access_token=token,
            token_type="Bearer",
            expires_in=max(expires_in, 0),
            user_id=user_id,
            email=user_email,
        )

    def validate_access_token(self, token: str) -> Dict[str, Any]:
        """Return the token claims, raising UnauthorizedError when invalid."""
        return self.ctx.tokens.verify_access_token((token or "").strip())

    def _dummy_credentials(self) -> DummyCredentials:
        if self._dummy is None:
            self._dummy = DummyCredentials(self.ctx.password_hash_iterations)
        return self._dummy
