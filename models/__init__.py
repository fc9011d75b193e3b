from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .otp_code import OtpCode
from .recovery_token import RecoveryToken
from .login_attempt import LoginAttempt
