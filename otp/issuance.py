import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError

from otp import messages
from otp.codes import generate_code
from otp.flows import Channel, FlowType
from otp.policy import OtpPolicy, utcnow
from otp.targets import Target, mask, resolve_target
from security.bruteforce import AttemptKey

logger = logging.getLogger(__name__)


@dataclass
class IssueResult:
    target: Target
    flow_type: FlowType
    delivered: bool
    expires_at: datetime

    @property
    def channel(self) -> Channel:
        return self.target.channel


class IssuanceService:
    """Existence gate, code generation, persistence, then delivery.

    The code is committed before delivery is attempted; a failed delivery
    is reported through ``IssueResult.delivered`` and the code stays valid.
    """

    def __init__(self, policy: OtpPolicy, store, gate, messenger, session, clock=utcnow, attempts=None):
        self.policy = policy
        self.store = store
        self.gate = gate
        self.messenger = messenger
        self.session = session
        self.clock = clock
        self.attempts = attempts

    def issue(self, email: Optional[str] = None, phone: Optional[str] = None, flow_type=FlowType.LOGIN) -> IssueResult:
        target = resolve_target(email=email, phone=phone)
        flow_type = FlowType.parse(flow_type, default=FlowType.LOGIN)

        self.gate.enforce(target, flow_type)

        code = generate_code(self.policy.code_length)
        now = self.clock()
        expires_at = now + self.policy.ttl

        self._reset_attempts(target, flow_type)

        try:
            if self.policy.invalidate_prior:
                superseded = self.store.invalidate_outstanding(target.value, flow_type, now)
                if superseded:
                    logger.info("Superseded %d pending %s code(s) for %s", superseded, flow_type.value, mask(target))
            self.store.create(target.value, code, flow_type, expires_at, now)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        delivered = self._deliver(target, flow_type, code)
        if not delivered:
            logger.warning("OTP delivery failed via %s for %s", target.channel.value, mask(target))
        return IssueResult(target=target, flow_type=flow_type, delivered=delivered, expires_at=expires_at)

    def _deliver(self, target: Target, flow_type: FlowType, code: str) -> bool:
        ttl_minutes = max(1, self.policy.ttl_seconds // 60)
        if target.channel is Channel.PHONE:
            subject = None
            body = messages.render_sms(code, ttl_minutes, self.policy.brand)
        else:
            subject, body = messages.render(flow_type, code, ttl_minutes, self.policy.brand)
        return bool(self.messenger.send(target.value, target.channel, subject, body))

    def _reset_attempts(self, target: Target, flow_type: FlowType) -> None:
        """A fresh code starts with a fresh failure budget."""
        if self.attempts is None:
            return
        key = AttemptKey.for_code(target, flow_type)
        try:
            self.attempts.reset(key, create=True)
            self.session.commit()
        except IntegrityError:
            # a concurrent issuance created the counter first
            self.session.rollback()
            self.attempts.reset(key)
            self.session.commit()
