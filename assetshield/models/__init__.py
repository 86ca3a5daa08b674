from assetshield.models.user import User
from assetshield.models.security_event import SecurityEvent
from assetshield.models.assessment import Assessment

__all__ = ["User", "SecurityEvent", "Assessment"]
