from dataclasses import dataclass
from datetime import datetime, timedelta

from otp.codes import DEFAULT_CODE_LENGTH


def utcnow() -> datetime:
    return datetime.utcnow()


@dataclass(frozen=True)
class OtpPolicy:
    code_length: int = DEFAULT_CODE_LENGTH
    ttl_seconds: int = 10 * 60
    invalidate_prior: bool = True
    # wrong codes allowed per target and flow before pending codes are voided
    max_attempts: int = 5
    recovery_token_ttl_seconds: int = 15 * 60
    brand: str = "Storefront"

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.ttl_seconds)

    @property
    def recovery_token_ttl(self) -> timedelta:
        return timedelta(seconds=self.recovery_token_ttl_seconds)

    @classmethod
    def from_config(cls, config) -> "OtpPolicy":
        return cls(
            code_length=int(config.get("OTP_LENGTH", DEFAULT_CODE_LENGTH)),
            ttl_seconds=int(config.get("OTP_TTL_SECONDS", 600)),
            invalidate_prior=bool(config.get("OTP_INVALIDATE_PRIOR", True)),
            max_attempts=int(config.get("OTP_MAX_ATTEMPTS", 5)),
            recovery_token_ttl_seconds=int(config.get("RECOVERY_TOKEN_TTL_SECONDS", 900)),
            brand=config.get("MAIL_BRAND") or "Storefront",
        )
