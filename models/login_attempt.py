from datetime import datetime
from models.db import db


class LoginAttempt(db.Model):
    """Failure counter for one credential check.

    ``scope`` is ``login`` for passwords and ``otp:<flow>`` for one-time codes.
    """

    __tablename__ = "login_attempts"
    __table_args__ = (db.UniqueConstraint("scope", "identifier", "ip", name="uq_login_attempts_key"),)

    id = db.Column(db.Integer, primary_key=True)

    scope = db.Column(db.String(32), nullable=False)
    # normalized email or phone
    identifier = db.Column(db.String(255), nullable=False, index=True)
    # empty when the counter is shared by every client
    ip = db.Column(db.String(64), nullable=False, default="")

    fail_count = db.Column(db.Integer, default=0, nullable=False)
    last_fail_at = db.Column(db.DateTime, nullable=True)
    locked_until = db.Column(db.DateTime, nullable=True)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
