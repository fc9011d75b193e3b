from datetime import datetime, timedelta
from typing import NamedTuple

from flask import request, current_app
from sqlalchemy import and_, select, update

from models import db
from models.login_attempt import LoginAttempt


class AttemptKey(NamedTuple):
    scope: str
    identifier: str
    ip: str = ""

    @classmethod
    def for_code(cls, target, flow_type) -> "AttemptKey":
        # one counter for every client
        return cls(f"otp:{flow_type.value}", target.value)


class AttemptTracker:
    """Counts failed credential checks and locks the key once a limit is hit.

    Increments are a single UPDATE so concurrent failures are all counted.
    The caller owns the transaction.
    """

    def __init__(self, session, max_attempts: int, lockout: timedelta):
        self.session = session
        self.max_attempts = max_attempts
        self.lockout = lockout

    @staticmethod
    def _match(key: AttemptKey):
        return and_(
            LoginAttempt.scope == key.scope,
            LoginAttempt.identifier == key.identifier,
            LoginAttempt.ip == key.ip,
        )

    def is_locked(self, key: AttemptKey, now: datetime) -> tuple[bool, int]:
        """
        Returns (locked, seconds_remaining)
        """
        locked_until = self.session.execute(
            select(LoginAttempt.locked_until).where(self._match(key))
        ).scalar_one_or_none()
        if locked_until is None or locked_until <= now:
            return False, 0
        return True, max(int((locked_until - now).total_seconds()), 1)

    def register_failure(self, key: AttemptKey, now: datetime, create: bool = True) -> tuple[int, bool]:
        """
        Increments the failure counter. Returns (fail_count, locked_now).

        With ``create=False`` a key without a counter row is not tracked.
        """
        changed = self.session.execute(
            update(LoginAttempt)
            .where(self._match(key))
            .values(fail_count=LoginAttempt.fail_count + 1, last_fail_at=now)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not changed:
            if not create:
                return 0, False
            self.session.add(LoginAttempt(
                scope=key.scope, identifier=key.identifier, ip=key.ip, fail_count=1, last_fail_at=now,
            ))
            self.session.flush()

        fail_count = self.session.execute(
            select(LoginAttempt.fail_count).where(self._match(key))
        ).scalar_one()
        if fail_count < self.max_attempts:
            return fail_count, False

        self.session.execute(
            update(LoginAttempt)
            .where(self._match(key))
            .values(locked_until=now + self.lockout)
            .execution_options(synchronize_session=False)
        )
        return fail_count, True

    def reset(self, key: AttemptKey, create: bool = False) -> None:
        """Clears the counter; ``create`` starts tracking a key not seen before."""
        changed = self.session.execute(
            update(LoginAttempt)
            .where(self._match(key))
            .values(fail_count=0, last_fail_at=None, locked_until=None)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not changed and create:
            self.session.add(LoginAttempt(scope=key.scope, identifier=key.identifier, ip=key.ip, fail_count=0))
            self.session.flush()


def _client_ip() -> str:
    return request.headers.get("X-Forwarded-For", request.remote_addr) or "unknown"


def _login_tracker() -> AttemptTracker:
    return AttemptTracker(
        db.session,
        max_attempts=current_app.config.get("MAX_LOGIN_ATTEMPTS", 5),
        lockout=timedelta(minutes=current_app.config.get("LOCKOUT_MINUTES", 10)),
    )


def _login_key(identifier: str) -> AttemptKey:
    return AttemptKey("login", identifier, _client_ip())


def is_locked(identifier: str) -> tuple[bool, int]:
    return _login_tracker().is_locked(_login_key(identifier), datetime.utcnow())


def register_failure(identifier: str) -> tuple[int, bool]:
    """
    Counts a failed password login for this identifier and client ip.
    """
    result = _login_tracker().register_failure(_login_key(identifier), datetime.utcnow())
    db.session.commit()
    return result


def reset_attempts(identifier: str):
    """
    Clears failure counter after successful login.
    """
    _login_tracker().reset(_login_key(identifier))
    db.session.commit()
