from datetime import datetime
from models.db import db


class OtpCode(db.Model):
    __tablename__ = "otp_codes"

    id = db.Column(db.Integer, primary_key=True)

    # normalized email (lowercase) or phone number
    target = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(16), nullable=False)
    flow_type = db.Column(db.String(16), nullable=False)  # login, signup, recovery

    # flips false -> true exactly once
    consumed = db.Column(db.Boolean, default=False, nullable=False)
    consumed_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    __table_args__ = (
        db.Index("ix_otp_codes_lookup", "target", "flow_type", "code"),
    )
