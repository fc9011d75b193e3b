class OtpError(Exception):
    """Base class for client-facing verification errors.

    Every subclass carries a stable ``error_code`` the client can branch on,
    separate from the human readable message.
    """

    error_code = "OTP_ERROR"
    status_code = 400
    default_message = "Verification failed"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidRequest(OtpError):
    error_code = "INVALID_REQUEST"
    default_message = "Email or phone is required"


class AccountNotFound(OtpError):
    error_code = "USER_NOT_FOUND"
    default_message = "No account is registered for this email or phone"


class AccountAlreadyExists(OtpError):
    error_code = "USER_EXISTS"
    default_message = "An account is already registered for this email or phone"


class InvalidOrExpiredCode(OtpError):
    error_code = "INVALID_CODE"
    default_message = "Invalid or expired code"


class PasswordRequired(OtpError):
    error_code = "PASSWORD_REQUIRED"
    default_message = "Password is required for signup"


class WeakPassword(OtpError):
    error_code = "WEAK_PASSWORD"
    default_message = "Password does not meet policy"

    def __init__(self, details=None):
        super().__init__()
        self.details = list(details or [])


class InvalidRecoveryToken(OtpError):
    error_code = "INVALID_RECOVERY_TOKEN"
    default_message = "Recovery session expired. Request a new code."


class TooManyAttempts(OtpError):
    error_code = "TOO_MANY_ATTEMPTS"
    status_code = 429
    default_message = "Too many failed attempts. Request a new code."

    def __init__(self, retry_after=None):
        super().__init__()
        self.retry_after = retry_after
