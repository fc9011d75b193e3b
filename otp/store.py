from datetime import datetime
from enum import Enum

from sqlalchemy import delete, select, update

from models.otp_code import OtpCode
from otp.flows import FlowType


class ConsumeResult(Enum):
    CONSUMED = "consumed"
    ALREADY_CONSUMED_OR_EXPIRED = "already_consumed_or_expired"


class OtpStore:
    """Persistence for issued codes.

    The store never commits; the calling service owns the transaction.
    """

    def __init__(self, session):
        self.session = session

    def create(self, target: str, code: str, flow_type: FlowType, expires_at: datetime, now: datetime) -> OtpCode:
        row = OtpCode(
            target=target,
            code=code,
            flow_type=flow_type.value,
            consumed=False,
            created_at=now,
            expires_at=expires_at,
        )
        self.session.add(row)
        self.session.flush()
        return row

    def consume(self, target: str, code: str, flow_type: FlowType, now: datetime) -> ConsumeResult:
        """Match the newest pending record and mark it consumed in one step.

        The UPDATE repeats the pending conditions, so when two callers pick
        the same row only one of them changes it.
        """
        candidate_id = self.session.execute(
            select(OtpCode.id)
            .where(
                OtpCode.target == target,
                OtpCode.code == code,
                OtpCode.flow_type == flow_type.value,
                OtpCode.consumed.is_(False),
                OtpCode.expires_at >= now,
            )
            .order_by(OtpCode.created_at.desc(), OtpCode.id.desc())
            .limit(1)
        ).scalar()
        if candidate_id is None:
            return ConsumeResult.ALREADY_CONSUMED_OR_EXPIRED

        result = self.session.execute(
            update(OtpCode)
            .where(
                OtpCode.id == candidate_id,
                OtpCode.consumed.is_(False),
                OtpCode.expires_at >= now,
            )
            .values(consumed=True, consumed_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return ConsumeResult.ALREADY_CONSUMED_OR_EXPIRED
        return ConsumeResult.CONSUMED

    def invalidate_outstanding(self, target: str, flow_type: FlowType, now: datetime) -> int:
        result = self.session.execute(
            update(OtpCode)
            .where(
                OtpCode.target == target,
                OtpCode.flow_type == flow_type.value,
                OtpCode.consumed.is_(False),
                OtpCode.expires_at >= now,
            )
            .values(consumed=True, consumed_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def outstanding(self, target: str, flow_type: FlowType, now: datetime) -> list:
        return list(
            self.session.execute(
                select(OtpCode)
                .where(
                    OtpCode.target == target,
                    OtpCode.flow_type == flow_type.value,
                    OtpCode.consumed.is_(False),
                    OtpCode.expires_at >= now,
                )
                .order_by(OtpCode.created_at.desc())
            ).scalars()
        )

    def purge(self, before: datetime) -> int:
        result = self.session.execute(
            delete(OtpCode)
            .where(OtpCode.expires_at < before)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
