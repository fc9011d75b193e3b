from concurrent.futures import ThreadPoolExecutor

import pytest

from models import db
from models.otp_code import OtpCode
from models.recovery_token import RecoveryToken
from models.user import User
from otp.errors import (
    AccountAlreadyExists,
    InvalidOrExpiredCode,
    InvalidRecoveryToken,
    InvalidRequest,
    PasswordRequired,
    TooManyAttempts,
    WeakPassword,
)
from otp.flows import Channel, FlowType
from otp.targets import Target
from security.password import verify_password
from utils.otp_context import issuance_service, recovery_token_store, verification_service


class SessionRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, account_id, is_privileged):
        self.calls.append((account_id, is_privileged))


def _issue(email=None, phone=None, flow_type=FlowType.LOGIN):
    issuance_service().issue(email=email, phone=phone, flow_type=flow_type)


def test_signup_scenario(app_ctx, messenger):
    _issue(email="new@x.com", flow_type=FlowType.SIGNUP)
    assert OtpCode.query.one().consumed is False

    sessions = SessionRecorder()
    result = verification_service(establish=sessions).verify(
        Target("new@x.com", Channel.EMAIL), messenger.last_code(), FlowType.SIGNUP, password="Secret123"
    )

    assert result.account_created is True
    user = User.query.filter_by(email="new@x.com").one()
    assert verify_password("Secret123", user.password_hash)
    assert [r.name for r in user.roles] == ["USER"]
    assert sessions.calls == [(user.id, False)]
    assert OtpCode.query.one().consumed is True


def test_signup_over_phone_stores_phone(app_ctx, messenger):
    _issue(phone="+15550100", flow_type=FlowType.SIGNUP)
    result = verification_service(establish=SessionRecorder()).verify(
        Target("+15550100", Channel.PHONE), messenger.last_code(), FlowType.SIGNUP, password="Secret123"
    )
    assert result.account.phone == "+15550100"
    assert result.account.email is None


def test_code_is_single_use(make_account, app_ctx, messenger):
    user_id = make_account(email="a@x.com", admin=True)
    _issue(email="a@x.com")
    code = messenger.last_code()
    sessions = SessionRecorder()
    service = verification_service(establish=sessions)
    target = Target("a@x.com", Channel.EMAIL)

    result = service.verify(target, code, FlowType.LOGIN)
    assert result.account.id == user_id
    assert sessions.calls == [(user_id, True)]

    with pytest.raises(InvalidOrExpiredCode):
        service.verify(target, code, FlowType.LOGIN)
    assert len(sessions.calls) == 1


def test_recovery_code_expires_after_ten_minutes(make_account, app_ctx, messenger, clock):
    make_account(email="a@x.com")
    _issue(email="a@x.com", flow_type=FlowType.RECOVERY)
    clock.advance(minutes=11)

    with pytest.raises(InvalidOrExpiredCode):
        verification_service(establish=SessionRecorder()).verify(
            Target("a@x.com", Channel.EMAIL), messenger.last_code(), FlowType.RECOVERY
        )
    assert OtpCode.query.one().consumed is False


def test_code_issued_for_other_flow_is_rejected(make_account, app_ctx, messenger):
    make_account(email="a@x.com")
    _issue(email="a@x.com", flow_type=FlowType.RECOVERY)
    with pytest.raises(InvalidOrExpiredCode):
        verification_service(establish=SessionRecorder()).verify(
            Target("a@x.com", Channel.EMAIL), messenger.last_code(), FlowType.LOGIN
        )


def test_signup_without_password_keeps_the_code(app_ctx, messenger):
    _issue(email="new@x.com", flow_type=FlowType.SIGNUP)
    service = verification_service(establish=SessionRecorder())
    target = Target("new@x.com", Channel.EMAIL)

    with pytest.raises(PasswordRequired):
        service.verify(target, messenger.last_code(), FlowType.SIGNUP)
    with pytest.raises(WeakPassword) as exc:
        service.verify(target, messenger.last_code(), FlowType.SIGNUP, password="short")
    assert exc.value.details

    assert OtpCode.query.one().consumed is False
    assert service.verify(target, messenger.last_code(), FlowType.SIGNUP, password="Secret123").account_created


def test_signup_race_rolls_back_consumption(make_account, app_ctx, messenger):
    _issue(email="new@x.com", flow_type=FlowType.SIGNUP)
    # someone registered the address after the code went out
    make_account(email="new@x.com")

    sessions = SessionRecorder()
    with pytest.raises(AccountAlreadyExists):
        verification_service(establish=sessions).verify(
            Target("new@x.com", Channel.EMAIL), messenger.last_code(), FlowType.SIGNUP, password="Secret123"
        )
    assert sessions.calls == []
    assert User.query.filter_by(email="new@x.com").count() == 1
    assert OtpCode.query.one().consumed is False


def test_malformed_code_is_rejected_before_lookup(make_account, app_ctx, messenger):
    make_account(email="a@x.com")
    _issue(email="a@x.com")
    with pytest.raises(InvalidRequest):
        verification_service(establish=SessionRecorder()).verify(Target("a@x.com", Channel.EMAIL), "12 34", FlowType.LOGIN)
    assert OtpCode.query.one().consumed is False


def test_recovery_returns_single_use_token(make_account, app_ctx, messenger, clock):
    user_id = make_account(email="a@x.com")
    _issue(email="a@x.com", flow_type=FlowType.RECOVERY)
    sessions = SessionRecorder()

    result = verification_service(establish=sessions).verify(
        Target("a@x.com", Channel.EMAIL), messenger.last_code(), FlowType.RECOVERY
    )

    assert result.account is None
    assert result.recovery_token
    assert sessions.calls == []
    assert RecoveryToken.query.one().token_hash != result.recovery_token

    tokens = recovery_token_store()
    assert tokens.redeem(result.recovery_token, clock()) == user_id
    db.session.commit()
    with pytest.raises(InvalidRecoveryToken):
        tokens.redeem(result.recovery_token, clock())


def test_recovery_token_expires(make_account, app_ctx, messenger, clock):
    make_account(email="a@x.com")
    _issue(email="a@x.com", flow_type=FlowType.RECOVERY)
    result = verification_service(establish=SessionRecorder()).verify(
        Target("a@x.com", Channel.EMAIL), messenger.last_code(), FlowType.RECOVERY
    )
    clock.advance(minutes=16)
    with pytest.raises(InvalidRecoveryToken):
        recovery_token_store().redeem(result.recovery_token, clock())


def test_concurrent_verifications_succeed_once(app, make_account, messenger):
    make_account(email="race@x.com")
    with app.app_context():
        _issue(email="race@x.com")
    code = messenger.last_code()
    sessions = SessionRecorder()

    def attempt():
        with app.app_context():
            try:
                verification_service(establish=sessions).verify(
                    Target("race@x.com", Channel.EMAIL), code, FlowType.LOGIN
                )
                return "ok"
            except (InvalidOrExpiredCode, TooManyAttempts):
                return "rejected"

    with ThreadPoolExecutor(max_workers=8) as ex:
        outcomes = list(ex.map(lambda _: attempt(), range(8)))

    assert outcomes.count("ok") == 1
    assert outcomes.count("rejected") == 7
    assert len(sessions.calls) == 1


def _wrong(*codes):
    return next(c for c in ("000000", "111111", "222222") if c not in codes)


def test_repeated_wrong_codes_void_pending_codes(make_account, app_ctx, messenger):
    make_account(email="a@x.com")
    _issue(email="a@x.com")
    code = messenger.last_code()
    service = verification_service(establish=SessionRecorder())
    target = Target("a@x.com", Channel.EMAIL)

    for _ in range(4):
        with pytest.raises(InvalidOrExpiredCode):
            service.verify(target, _wrong(code), FlowType.LOGIN)
    with pytest.raises(TooManyAttempts) as exc:
        service.verify(target, _wrong(code), FlowType.LOGIN)
    assert exc.value.status_code == 429
    assert exc.value.retry_after == 600

    # the right code no longer works either
    with pytest.raises(TooManyAttempts):
        service.verify(target, code, FlowType.LOGIN)
    assert OtpCode.query.one().consumed is True


def test_new_code_lifts_the_lock(make_account, app_ctx, messenger):
    make_account(email="a@x.com")
    _issue(email="a@x.com")
    service = verification_service(establish=SessionRecorder())
    target = Target("a@x.com", Channel.EMAIL)
    for _ in range(5):
        with pytest.raises((InvalidOrExpiredCode, TooManyAttempts)):
            service.verify(target, _wrong(messenger.last_code()), FlowType.LOGIN)

    _issue(email="a@x.com")
    assert service.verify(target, messenger.last_code(), FlowType.LOGIN).account is not None


def test_lock_applies_only_to_its_flow(make_account, app_ctx, messenger):
    make_account(email="a@x.com")
    _issue(email="a@x.com", flow_type=FlowType.RECOVERY)
    recovery_code = messenger.last_code()
    _issue(email="a@x.com")
    service = verification_service(establish=SessionRecorder())
    target = Target("a@x.com", Channel.EMAIL)
    for _ in range(5):
        with pytest.raises((InvalidOrExpiredCode, TooManyAttempts)):
            service.verify(target, _wrong(messenger.last_code()), FlowType.LOGIN)

    assert service.verify(target, recovery_code, FlowType.RECOVERY).recovery_token


def test_success_clears_failure_count(app, make_account, app_ctx, messenger):
    app.config["OTP_MAX_ATTEMPTS"] = 3
    app.config["OTP_INVALIDATE_PRIOR"] = False
    make_account(email="a@x.com")
    _issue(email="a@x.com")
    first = messenger.last_code()
    _issue(email="a@x.com")
    second = messenger.last_code()
    service = verification_service(establish=SessionRecorder())
    target = Target("a@x.com", Channel.EMAIL)

    for code in (first, second):
        for _ in range(2):
            with pytest.raises(InvalidOrExpiredCode):
                service.verify(target, _wrong(first, second), FlowType.LOGIN)
        assert service.verify(target, code, FlowType.LOGIN).account is not None
