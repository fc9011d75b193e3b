from datetime import datetime

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User
from otp import FlowType, InvalidRequest, OtpError, TooManyAttempts, WeakPassword, resolve_target
from security.bruteforce import is_locked, register_failure, reset_attempts
from security.password import hash_password, verify_password
from security.password_policy import validate_password
from security.session import create_session, revoke_session, revoke_all_sessions
from utils.accounts import AccountStore
from utils.audit import log_event
from utils.auth_context import login_required
from utils.otp_context import issuance_service, verification_service, recovery_token_store, otp_clock


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _otp_error(exc: OtpError):
    body = {"error": exc.message, "error_code": exc.error_code}
    if isinstance(exc, WeakPassword):
        body["details"] = exc.details
    if isinstance(exc, TooManyAttempts) and exc.retry_after:
        body["retry_after_seconds"] = exc.retry_after
    return jsonify(body), exc.status_code


def _flow_type(data):
    return FlowType.parse(data.get("flow_type") or data.get("type"), default=FlowType.LOGIN)


@auth_bp.post("/otp/send")
def send_otp():
    data = request.get_json(silent=True) or {}
    try:
        flow_type = _flow_type(data)
        result = issuance_service().issue(
            email=data.get("email"),
            phone=data.get("phone"),
            flow_type=flow_type,
        )
    except OtpError as exc:
        log_event("OTP_SEND_FAIL", metadata={"error_code": exc.error_code})
        return _otp_error(exc)

    log_event(
        "OTP_SENT",
        channel=result.channel,
        flow_type=result.flow_type,
        metadata={"delivered": result.delivered},
    )
    return jsonify(success=True, channel=result.channel.value, delivered=result.delivered), 200


@auth_bp.post("/otp/verify")
def verify_otp():
    data = request.get_json(silent=True) or {}
    try:
        flow_type = _flow_type(data)
        target = resolve_target(email=data.get("email"), phone=data.get("phone"))
        result = verification_service().verify(
            target,
            data.get("code"),
            flow_type,
            password=data.get("password"),
        )
    except OtpError as exc:
        # the staged session row was rolled back with the rest
        g.pop("issued_session_token", None)
        log_event("OTP_VERIFY_FAIL", metadata={"error_code": exc.error_code})
        return _otp_error(exc)

    body = {"success": True, "verified": True}
    if result.account is not None:
        body["account"] = result.account.to_view()
    if result.flow_type is FlowType.SIGNUP:
        body["account_created"] = result.account_created
        log_event("SIGNUP_SUCCESS", user_id=result.account.id, channel=target.channel, flow_type=flow_type)
    elif result.flow_type is FlowType.LOGIN:
        log_event("LOGIN_SUCCESS", user_id=result.account.id, channel=target.channel, flow_type=flow_type)
    else:
        body["recovery_token"] = result.recovery_token
        log_event("OTP_VERIFIED", channel=target.channel, flow_type=flow_type)
    return jsonify(body), 200


@auth_bp.post("/password/reset")
def reset_password():
    data = request.get_json(silent=True) or {}
    new_password = data.get("new_password") or ""

    valid, errors = validate_password(new_password)
    if not valid:
        return _otp_error(WeakPassword(errors))

    try:
        user_id = recovery_token_store().redeem(data.get("recovery_token"), otp_clock()())
        user = db.session.get(User, user_id)
        user.password_hash = hash_password(new_password)
        user.password_changed_at = datetime.utcnow()
        revoked = revoke_all_sessions(user.id, commit=False)
        db.session.commit()
    except OtpError as exc:
        db.session.rollback()
        log_event("PASSWORD_RESET_FAIL", metadata={"error_code": exc.error_code})
        return _otp_error(exc)

    log_event("PASSWORD_RESET", user_id=user.id, metadata={"revoked_sessions": revoked})
    return jsonify(success=True, message="Password updated"), 200


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    password = data.get("password") or ""
    try:
        target = resolve_target(email=data.get("email"), phone=data.get("phone"))
    except InvalidRequest:
        log_event("LOGIN_FAIL")
        return jsonify(error="Invalid credentials"), 401

    locked, seconds_left = is_locked(target.value)
    if locked:
        log_event("LOGIN_LOCKED", channel=target.channel, metadata={"seconds_left": seconds_left})
        return jsonify(
            error="Account temporarily locked. Try again later.",
            error_code=TooManyAttempts.error_code,
            retry_after_seconds=seconds_left,
        ), 429

    user = AccountStore(db.session).find_by_target(target)
    if not user or not isinstance(password, str) or not verify_password(password, user.password_hash):
        fail_count, locked_now = register_failure(target.value)
        log_event(
            "LOGIN_FAIL",
            user_id=user.id if user else None,
            channel=target.channel,
            metadata={"fail_count": fail_count, "locked_now": locked_now},
        )
        if locked_now:
            return jsonify(
                error="Too many failed attempts. Account locked.",
                error_code=TooManyAttempts.error_code,
                lockout_minutes=current_app.config.get("LOCKOUT_MINUTES", 10),
            ), 429
        return jsonify(error="Invalid credentials"), 401

    reset_attempts(target.value)
    g.issued_session_token = create_session(user.id, user.is_admin)
    log_event("LOGIN_SUCCESS", user_id=user.id, channel=target.channel)
    return jsonify(success=True, account=user.to_view()), 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(account=g.user.to_view(), is_privileged=g.session.is_privileged), 200


@auth_bp.post("/logout")
@login_required
def logout():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "storefront_session")
    revoke_session(request.cookies.get(cookie_name))
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(success=True)
    resp.delete_cookie(cookie_name, path="/")
    return resp, 200
