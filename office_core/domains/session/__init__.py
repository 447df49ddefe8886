from office_core.domains.session.entities import Session, SessionState
from office_core.domains.session.services import AutosaveScheduler, SessionController

__all__ = ["Session", "SessionState", "AutosaveScheduler", "SessionController"]
