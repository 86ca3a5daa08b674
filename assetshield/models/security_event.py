# assetshield/models/security_event.py

from datetime import datetime
from assetshield import db


class SecurityEvent(db.Model):
    __tablename__ = "security_events"

    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(64), nullable=False, index=True)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    event_data = db.Column(db.JSON, nullable=True)
    risk_level = db.Column(db.String(16), default="low")
    action_taken = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "event_type": self.event_type,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "event_data": self.event_data or {},
            "risk_level": self.risk_level,
            "action_taken": self.action_taken,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<SecurityEvent {self.event_type} {self.ip_address} {self.created_at}>"
