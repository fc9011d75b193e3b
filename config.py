import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as storefront.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "storefront.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "storefront_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 20 minutes
    IDLE_TIMEOUT_SECONDS = 20 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # Password policy
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
    PASSWORD_MIN_LEN = 8
    PASSWORD_MAX_LEN = 128
    PASSWORD_REQUIRE_LETTER = True
    PASSWORD_REQUIRE_DIGIT = True

    # Brute-force lockout for password login (per identifier + ip)
    MAX_LOGIN_ATTEMPTS = int(os.getenv("MAX_LOGIN_ATTEMPTS", "5"))
    LOCKOUT_MINUTES = int(os.getenv("LOCKOUT_MINUTES", "10"))

    # One-time codes (login / signup / recovery)
    OTP_LENGTH = int(os.getenv("OTP_LENGTH", "6"))
    OTP_TTL_SECONDS = int(os.getenv("OTP_TTL_SECONDS", "600"))  # 10 minutes
    # Reissuing a code for the same target and flow voids the earlier ones
    OTP_INVALIDATE_PRIOR = os.getenv("OTP_INVALIDATE_PRIOR", "true").lower() == "true"
    # Print undelivered codes to the log (local development only)
    OTP_LOG_CODES = os.getenv("OTP_LOG_CODES", "false").lower() == "true"
    # Wrong codes per target and flow before the pending codes are voided
    OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", "5"))
    RECOVERY_TOKEN_TTL_SECONDS = int(os.getenv("RECOVERY_TOKEN_TTL_SECONDS", "900"))  # 15 minutes

    # Brand used in message subjects
    MAIL_BRAND = os.getenv("MAIL_BRAND", "Storefront")

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    # SMS gateway (JSON POST {to, message, sender})
    SMS_GATEWAY_URL = os.getenv("SMS_GATEWAY_URL")
    SMS_GATEWAY_TOKEN = os.getenv("SMS_GATEWAY_TOKEN")
    SMS_SENDER = os.getenv("SMS_SENDER")

    # Create tables at startup instead of running migrations (tests, local demos)
    CREATE_TABLES = os.getenv("CREATE_TABLES", "false").lower() == "true"

    # Basic app settings
    DEBUG = False
