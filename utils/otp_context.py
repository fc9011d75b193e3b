from flask import current_app

from models import db
from otp import ExistenceGate, IssuanceService, OtpPolicy, OtpStore, RecoveryTokenStore, VerificationService
from otp.policy import utcnow
from security.bruteforce import AttemptTracker
from security.session import establish_session
from utils.accounts import AccountStore


def otp_policy() -> OtpPolicy:
    return OtpPolicy.from_config(current_app.config)


def otp_clock():
    return current_app.extensions.get("otp_clock", utcnow)


def otp_attempts(policy: OtpPolicy) -> AttemptTracker:
    return AttemptTracker(db.session, max_attempts=policy.max_attempts, lockout=policy.ttl)


def recovery_token_store() -> RecoveryTokenStore:
    return RecoveryTokenStore(db.session, otp_policy().recovery_token_ttl)


def issuance_service() -> IssuanceService:
    accounts = AccountStore(db.session)
    policy = otp_policy()
    return IssuanceService(
        policy=policy,
        store=OtpStore(db.session),
        gate=ExistenceGate(accounts),
        messenger=current_app.extensions["otp_messenger"],
        session=db.session,
        clock=otp_clock(),
        attempts=otp_attempts(policy),
    )


def verification_service(establish=establish_session) -> VerificationService:
    accounts = AccountStore(db.session)
    policy = otp_policy()
    return VerificationService(
        policy=policy,
        store=OtpStore(db.session),
        gate=ExistenceGate(accounts),
        accounts=accounts,
        recovery_tokens=recovery_token_store(),
        session=db.session,
        establish_session=establish,
        clock=otp_clock(),
        attempts=otp_attempts(policy),
    )
