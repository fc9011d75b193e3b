import re
from typing import List, Tuple

try:
    from flask import current_app
except Exception:  # pragma: no cover - used outside app context (tests/CLI)
    current_app = None

_LETTER = re.compile(r"[A-Za-z]")
_DIGIT = re.compile(r"\d")

_DEFAULTS = {
    "PASSWORD_MIN_LEN": 8,
    "PASSWORD_MAX_LEN": 128,
    "PASSWORD_REQUIRE_LETTER": True,
    "PASSWORD_REQUIRE_DIGIT": True,
}


def _cfg(name: str):
    if current_app is None:
        return _DEFAULTS[name]
    try:
        return current_app.config.get(name, _DEFAULTS[name])
    except RuntimeError:
        return _DEFAULTS[name]


def validate_password(pw: str) -> Tuple[bool, List[str]]:
    """Returns (valid, errors) for a candidate signup or reset password."""
    if not isinstance(pw, str):
        return False, ["Password must be a string"]

    errors: List[str] = []
    min_len = int(_cfg("PASSWORD_MIN_LEN"))
    max_len = int(_cfg("PASSWORD_MAX_LEN"))

    if len(pw) < min_len:
        errors.append(f"Password must be at least {min_len} characters")
    if len(pw) > max_len:
        errors.append(f"Password must be at most {max_len} characters")
    if _cfg("PASSWORD_REQUIRE_LETTER") and not _LETTER.search(pw):
        errors.append("Password must include at least 1 letter")
    if _cfg("PASSWORD_REQUIRE_DIGIT") and not _DIGIT.search(pw):
        errors.append("Password must include at least 1 number")

    return (len(errors) == 0), errors
