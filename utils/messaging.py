import smtplib
from email.message import EmailMessage

import httpx
from flask import current_app

from otp.flows import Channel
from otp.targets import Target, mask


def send_email(to_email: str, subject: str, body: str):
    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)

    if not host or not from_email:
        return False, "Email not configured"

    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(host, port, timeout=10) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        return False, str(exc)


def send_sms(phone: str, body: str):
    url = (current_app.config.get("SMS_GATEWAY_URL") or "").strip()
    if not url:
        return False, "SMS gateway not configured"

    payload = {"to": phone, "message": body}
    sender = current_app.config.get("SMS_SENDER")
    if sender:
        payload["sender"] = sender
    headers = {"Content-Type": "application/json"}
    token = current_app.config.get("SMS_GATEWAY_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"

    try:
        resp = httpx.post(url, json=payload, headers=headers, timeout=5.0)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return False, str(exc)
    if resp.status_code >= 400:
        return False, f"SMS gateway returned {resp.status_code}"
    return True, None


class Messenger:
    """Out-of-band delivery for verification codes.

    send() reports failure as False and never raises.
    """

    def send(self, target: str, channel: Channel, subject, body: str) -> bool:
        if channel is Channel.EMAIL:
            ok, error = send_email(target, subject or "", body)
        else:
            ok, error = send_sms(target, body)

        if not ok:
            current_app.logger.warning(
                "Delivery via %s to %s failed: %s", channel.value, mask(Target(target, channel)), error
            )
            if current_app.config.get("OTP_LOG_CODES"):
                # local development without a mail server or SMS gateway
                current_app.logger.info("Undelivered %s message for %s:\n%s", channel.value, target, body)
        return ok
