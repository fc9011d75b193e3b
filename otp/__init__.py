from .errors import (
    OtpError,
    InvalidRequest,
    AccountNotFound,
    AccountAlreadyExists,
    InvalidOrExpiredCode,
    PasswordRequired,
    WeakPassword,
    InvalidRecoveryToken,
    TooManyAttempts,
)
from .flows import FlowType, Channel
from .targets import Target, resolve_target
from .policy import OtpPolicy
from .store import OtpStore, ConsumeResult
from .gate import ExistenceGate
from .issuance import IssuanceService, IssueResult
from .verification import VerificationService, VerifyResult
from .recovery import RecoveryTokenStore
