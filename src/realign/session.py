from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import UnknownCheckError
from .models import CheckedPart

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckSession:
    check_id: str
    snapshot: str
    checked_part: CheckedPart | None = None


class CheckSessionStore:
    """Snapshot of the checked text per check id; the latest record for an id wins."""

    def __init__(self) -> None:
        self._sessions: dict[str, CheckSession] = {}

    def record(self, check_id: str, snapshot: str, checked_part: CheckedPart | None = None) -> CheckSession:
        session = CheckSession(check_id=check_id, snapshot=snapshot, checked_part=checked_part)
        if check_id in self._sessions:
            _logger.debug(f"Replacing snapshot of check {check_id}")
        self._sessions[check_id] = session
        return session

    def get(self, check_id: str) -> CheckSession:
        try:
            return self._sessions[check_id]
        except KeyError:
            raise UnknownCheckError(check_id) from None

    def lookup(self, check_id: str) -> str:
        return self.get(check_id).snapshot

    def forget(self, check_id: str) -> None:
        self._sessions.pop(check_id, None)

    def __contains__(self, check_id: object) -> bool:
        return check_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
