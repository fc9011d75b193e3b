from datetime import datetime
from models.db import db

class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=True)  # nullable for pre-auth events
    action = db.Column(db.String(80), nullable=False)  # e.g. OTP_SENT, OTP_VERIFY_FAIL
    channel = db.Column(db.String(16), nullable=True)  # email / phone
    flow_type = db.Column(db.String(16), nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
