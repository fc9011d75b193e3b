import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError

from otp.codes import is_well_formed
from otp.errors import (
    AccountAlreadyExists,
    AccountNotFound,
    InvalidOrExpiredCode,
    InvalidRequest,
    PasswordRequired,
    TooManyAttempts,
    WeakPassword,
)
from otp.flows import FlowType
from otp.policy import OtpPolicy, utcnow
from otp.store import ConsumeResult
from otp.targets import Target, mask
from security.bruteforce import AttemptKey
from security.password import hash_password
from security.password_policy import validate_password

logger = logging.getLogger(__name__)


@dataclass
class VerifyResult:
    flow_type: FlowType
    account: Optional[object] = None
    account_created: bool = False
    recovery_token: Optional[str] = None


class VerificationService:
    """Consume a code and finish the flow it was issued for.

    Consumption and the flow's writes share one transaction: if completion
    fails the code is left unconsumed. Wrong codes are counted per target and
    flow; once ``policy.max_attempts`` is reached the pending codes are voided
    and further attempts get ``TooManyAttempts`` until a new code is issued.
    """

    def __init__(self, policy: OtpPolicy, store, gate, accounts, recovery_tokens, session, establish_session, clock=utcnow, attempts=None):
        self.policy = policy
        self.store = store
        self.gate = gate
        self.accounts = accounts
        self.recovery_tokens = recovery_tokens
        self.session = session
        self.establish_session = establish_session
        self.clock = clock
        self.attempts = attempts
        self._completions = {
            FlowType.SIGNUP: self._complete_signup,
            FlowType.LOGIN: self._complete_login,
            FlowType.RECOVERY: self._complete_recovery,
        }

    def verify(self, target: Target, code, flow_type=FlowType.LOGIN, password: Optional[str] = None) -> VerifyResult:
        flow_type = FlowType.parse(flow_type, default=FlowType.LOGIN)
        code = code.strip() if isinstance(code, str) else code
        if not is_well_formed(code, self.policy.code_length):
            raise InvalidRequest(f"Code must be {self.policy.code_length} digits")

        # validated up front so a missing or weak password does not burn the code
        if flow_type is FlowType.SIGNUP:
            if not password:
                raise PasswordRequired()
            valid, errors = validate_password(password)
            if not valid:
                raise WeakPassword(errors)

        now = self.clock()
        key = AttemptKey.for_code(target, flow_type)
        if self.attempts is not None:
            locked, seconds_left = self.attempts.is_locked(key, now)
            if locked:
                raise TooManyAttempts(seconds_left)

        try:
            if self.store.consume(target.value, code, flow_type, now) is not ConsumeResult.CONSUMED:
                raise InvalidOrExpiredCode()
            result = self._completions[flow_type](target, password, now)
            if self.attempts is not None:
                self.attempts.reset(key)
            self.session.commit()
        except InvalidOrExpiredCode:
            self.session.rollback()
            if self._register_failure(key, target, flow_type, now):
                raise TooManyAttempts(self.policy.ttl_seconds) from None
            raise
        except IntegrityError:
            self.session.rollback()
            if flow_type is FlowType.SIGNUP:
                raise AccountAlreadyExists()
            raise
        except Exception:
            self.session.rollback()
            raise

        logger.info("Verified %s code for %s", flow_type.value, mask(target))
        return result

    def _register_failure(self, key: AttemptKey, target: Target, flow_type: FlowType, now) -> bool:
        """Count a wrong code in its own transaction; True once the key is locked."""
        if self.attempts is None:
            return False
        try:
            fail_count, locked_now = self.attempts.register_failure(key, now, create=False)
            if locked_now:
                voided = self.store.invalidate_outstanding(target.value, flow_type, now)
                logger.warning(
                    "Locked %s verification for %s after %d failures, voided %d code(s)",
                    flow_type.value, mask(target), fail_count, voided,
                )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return locked_now

    def _complete_signup(self, target: Target, password: str, now) -> VerifyResult:
        # another signup may have won the race since the code was issued
        if self.gate.exists(target):
            raise AccountAlreadyExists()
        account = self.accounts.create(target, hash_password(password))
        self.establish_session(account.id, account.is_admin)
        return VerifyResult(FlowType.SIGNUP, account=account, account_created=True)

    def _complete_login(self, target: Target, password, now) -> VerifyResult:
        account = self.accounts.find_by_target(target)
        if account is None:
            raise AccountNotFound()
        self.establish_session(account.id, account.is_admin)
        return VerifyResult(FlowType.LOGIN, account=account)

    def _complete_recovery(self, target: Target, password, now) -> VerifyResult:
        account = self.accounts.find_by_target(target)
        if account is None:
            raise AccountNotFound()
        token = self.recovery_tokens.issue(account.id, now)
        return VerifyResult(FlowType.RECOVERY, recovery_token=token)
