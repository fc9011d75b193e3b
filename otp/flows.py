from enum import Enum

from otp.errors import InvalidRequest


class FlowType(str, Enum):
    LOGIN = "login"
    SIGNUP = "signup"
    RECOVERY = "recovery"

    @classmethod
    def parse(cls, value, default=None) -> "FlowType":
        if value is None or value == "":
            if default is None:
                raise InvalidRequest("flow_type is required")
            return default
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidRequest(f"Unknown flow_type: {value}")


class Channel(str, Enum):
    EMAIL = "email"
    PHONE = "phone"
