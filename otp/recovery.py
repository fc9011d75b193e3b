import hashlib
import secrets
from datetime import datetime, timedelta

from sqlalchemy import select, update

from models.recovery_token import RecoveryToken
from otp.errors import InvalidRecoveryToken


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class RecoveryTokenStore:
    """Capabilities that bind a verified recovery code to one password reset."""

    def __init__(self, session, ttl: timedelta):
        self.session = session
        self.ttl = ttl

    def issue(self, user_id: int, now: datetime) -> str:
        raw_token = secrets.token_urlsafe(32)
        self.session.add(
            RecoveryToken(
                user_id=user_id,
                token_hash=_hash_token(raw_token),
                created_at=now,
                expires_at=now + self.ttl,
            )
        )
        self.session.flush()
        return raw_token

    def redeem(self, raw_token: str, now: datetime) -> int:
        """Consume the token and return the user it was issued for."""
        if not raw_token or not isinstance(raw_token, str):
            raise InvalidRecoveryToken()

        row = self.session.execute(
            select(RecoveryToken.id, RecoveryToken.user_id).where(
                RecoveryToken.token_hash == _hash_token(raw_token),
                RecoveryToken.consumed_at.is_(None),
                RecoveryToken.expires_at >= now,
            )
        ).first()
        if row is None:
            raise InvalidRecoveryToken()

        result = self.session.execute(
            update(RecoveryToken)
            .where(RecoveryToken.id == row.id, RecoveryToken.consumed_at.is_(None))
            .values(consumed_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidRecoveryToken()
        return row.user_id
