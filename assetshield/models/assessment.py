# assetshield/models/assessment.py

from datetime import datetime
from assetshield import db


class Assessment(db.Model):
    __tablename__ = "assessments"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)

    # Answers
    profession = db.Column(db.String(64), nullable=True)
    net_worth = db.Column(db.String(32), nullable=True)
    legal_threats = db.Column(db.String(32), nullable=True)
    has_real_estate = db.Column(db.Boolean, default=False)
    legal_history = db.Column(db.JSON, nullable=True)
    current_protection = db.Column(db.JSON, nullable=True)

    # Result
    risk_score = db.Column(db.Integer, nullable=False)
    risk_level = db.Column(db.String(10), nullable=False, index=True)
    wealth_at_risk = db.Column(db.BigInteger, nullable=False)
    recommendations = db.Column(db.JSON, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "risk_level": self.risk_level,
            "risk_score": self.risk_score,
            "wealth_at_risk": self.wealth_at_risk,
            "recommendations": self.recommendations or [],
            "user": {"name": self.name, "email": self.email},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Assessment {self.id} {self.risk_level}>"
