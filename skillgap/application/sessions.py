from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from ..domain.session import AssessmentSession, SessionState
from ..infrastructure.exceptions import ActiveSessionNotFoundError
from ..infrastructure.logging import get_logger

logger = get_logger(__name__)

_CLOSED = (SessionState.SCORED, SessionState.ABANDONED)


@dataclass
class ActiveSession:
    user_id: str
    kind: Literal["standard", "adaptive"]
    session: AssessmentSession
    assessment_id: int | None = None
    skill_id: int | None = None
    title: str = ""


class SessionRegistry:
    """
    Holds at most one assessment session per learner.

    Registering a new session abandons whatever the learner had open. Scored
    sessions stay readable until the learner starts another.
    """

    def __init__(self):
        self._sessions: dict[str, ActiveSession] = {}

    def register(self, active: ActiveSession) -> ActiveSession:
        previous = self._sessions.get(active.user_id)
        if previous is not None and previous.session is not active.session:
            if previous.session.state not in _CLOSED:
                logger.info(
                    f"Abandoning open {previous.kind} session for {active.user_id} "
                    f"in favour of a new one"
                )
                previous.session.abandon()
        self._sessions[active.user_id] = active
        return active

    def get(self, user_id: str) -> ActiveSession:
        active = self._sessions.get(user_id)
        if active is None:
            raise ActiveSessionNotFoundError(user_id)
        return active

    def abandon(self, user_id: str) -> ActiveSession:
        active = self.get(user_id)
        active.session.abandon()
        del self._sessions[user_id]
        return active

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def clear(self) -> None:
        """Abandon every open session (application shutdown)."""
        for user_id in list(self._sessions):
            active = self._sessions.pop(user_id)
            if active.session.state not in _CLOSED and not active.session.is_recording:
                active.session.abandon()
