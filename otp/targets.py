import re
from typing import NamedTuple, Optional

from otp.errors import InvalidRequest
from otp.flows import Channel

_PHONE_SEPARATORS = re.compile(r"[\s\-.()]")
_PHONE = re.compile(r"^\+?\d{3,15}$")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class Target(NamedTuple):
    value: str
    channel: Channel


def normalize_email(value: str) -> str:
    return (value or "").strip().lower()


def normalize_phone(value: str) -> str:
    raw = _PHONE_SEPARATORS.sub("", value or "")
    if raw.startswith("00"):
        raw = "+" + raw[2:]
    return raw


def _is_valid_email(email: str) -> bool:
    return len(email) <= 255 and _EMAIL.match(email) is not None


def resolve_target(email: Optional[str] = None, phone: Optional[str] = None) -> Target:
    """Pick the authoritative target of a request.

    Email wins whenever it is present, even if a phone number was sent too.
    """
    if email is not None and not isinstance(email, str):
        raise InvalidRequest("Invalid email")
    if phone is not None and not isinstance(phone, str):
        raise InvalidRequest("Invalid phone")

    email = normalize_email(email)
    if email:
        if not _is_valid_email(email):
            raise InvalidRequest("Invalid email")
        return Target(email, Channel.EMAIL)

    phone = normalize_phone(phone)
    if phone:
        if not _PHONE.match(phone):
            raise InvalidRequest("Invalid phone")
        return Target(phone, Channel.PHONE)

    raise InvalidRequest()


def mask(target: Target) -> str:
    """Redacted form of a target for log lines."""
    value = target.value
    if target.channel is Channel.EMAIL:
        local, _, domain = value.partition("@")
        return f"{local[:1]}***@{domain}"
    if len(value) <= 2:
        return value
    return "*" * (len(value) - 2) + value[-2:]
