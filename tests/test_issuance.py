from datetime import timedelta

import pytest

from models import db
from models.otp_code import OtpCode
from otp.errors import AccountAlreadyExists, AccountNotFound, InvalidRequest
from otp.flows import Channel, FlowType
from otp.store import OtpStore
from utils.otp_context import issuance_service


def test_signup_issue_creates_pending_record(app_ctx, messenger, clock):
    result = issuance_service().issue(email="New@X.com", flow_type=FlowType.SIGNUP)

    assert result.channel is Channel.EMAIL
    assert result.delivered is True
    assert result.expires_at == clock() + timedelta(minutes=10)

    row = OtpCode.query.one()
    assert row.target == "new@x.com"
    assert row.flow_type == "signup"
    assert row.consumed is False
    assert row.code == messenger.last_code()
    assert messenger.sent[-1].target == "new@x.com"
    assert "Verify your new account" in messenger.sent[-1].subject


def test_login_for_unknown_account_creates_nothing(app_ctx, messenger):
    with pytest.raises(AccountNotFound) as exc:
        issuance_service().issue(email="missing@x.com", flow_type=FlowType.LOGIN)

    assert exc.value.error_code == "USER_NOT_FOUND"
    assert OtpCode.query.count() == 0
    assert messenger.sent == []


def test_recovery_for_unknown_account_is_rejected(app_ctx):
    with pytest.raises(AccountNotFound):
        issuance_service().issue(phone="+15550100", flow_type=FlowType.RECOVERY)


def test_signup_for_existing_account_is_rejected(make_account, app_ctx):
    make_account(email="taken@x.com")
    with pytest.raises(AccountAlreadyExists) as exc:
        issuance_service().issue(email="TAKEN@x.com", flow_type=FlowType.SIGNUP)
    assert exc.value.error_code == "USER_EXISTS"
    assert OtpCode.query.count() == 0


def test_phone_account_gets_sms(make_account, app_ctx, messenger):
    make_account(phone="+15550100")
    result = issuance_service().issue(phone="+1 555 0100", flow_type="login")

    assert result.channel is Channel.PHONE
    sent = messenger.sent[-1]
    assert sent.channel is Channel.PHONE
    assert sent.subject is None
    assert "expires in 10 minutes" in sent.body


def test_delivery_failure_still_leaves_a_usable_code(make_account, app_ctx, messenger, clock):
    make_account(email="a@x.com")
    messenger.delivered = False

    result = issuance_service().issue(email="a@x.com", flow_type=FlowType.LOGIN)

    assert result.delivered is False
    assert len(OtpStore(db.session).outstanding("a@x.com", FlowType.LOGIN, clock())) == 1


def test_reissue_supersedes_earlier_codes(make_account, app_ctx, messenger, clock):
    make_account(email="a@x.com")
    service = issuance_service()
    service.issue(email="a@x.com", flow_type=FlowType.LOGIN)
    first = messenger.last_code()
    service.issue(email="a@x.com", flow_type=FlowType.LOGIN)
    second = messenger.last_code()

    pending = OtpStore(db.session).outstanding("a@x.com", FlowType.LOGIN, clock())
    assert [row.code for row in pending] == [second]
    assert OtpCode.query.filter_by(code=first, consumed=True).count() >= 1


def test_reissue_keeps_earlier_codes_when_configured(app, make_account, messenger, clock):
    app.config["OTP_INVALIDATE_PRIOR"] = False
    make_account(email="a@x.com")
    with app.app_context():
        service = issuance_service()
        service.issue(email="a@x.com", flow_type=FlowType.LOGIN)
        service.issue(email="a@x.com", flow_type=FlowType.LOGIN)
        assert len(OtpStore(db.session).outstanding("a@x.com", FlowType.LOGIN, clock())) == 2


def test_policy_is_read_from_config(app, make_account, messenger, clock):
    app.config["OTP_TTL_SECONDS"] = 120
    app.config["OTP_LENGTH"] = 8
    make_account(email="a@x.com")
    with app.app_context():
        result = issuance_service().issue(email="a@x.com", flow_type=FlowType.LOGIN)
        assert result.expires_at == clock() + timedelta(minutes=2)
        assert len(OtpCode.query.one().code) == 8


def test_missing_target_fails_before_store_access(app_ctx, messenger):
    with pytest.raises(InvalidRequest):
        issuance_service().issue(flow_type=FlowType.LOGIN)
    assert OtpCode.query.count() == 0
