"""
In-process repositories for sessions, user profiles and the XP ledger.
Production deployments swap these for database-backed implementations
exposing the same methods.
"""
import logging
import threading
from typing import Dict, List, Optional, Set

from ..models.activity_session import ActivitySession
from ..models.rewards import XpTransaction
from ..models.user_profile import UserProfile

logger = logging.getLogger(__name__)


class InMemorySessionRepository:
    def __init__(self):
        self._sessions: Dict[str, ActivitySession] = {}
        self._by_user: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Optional[ActivitySession]:
        with self._lock:
            return self._sessions.get(session_id)

    def save(self, session: ActivitySession) -> None:
        with self._lock:
            self._sessions[session.id] = session
            self._by_user.setdefault(session.user_id, set()).add(session.id)

    def find_live_for_user(self, user_id: str) -> Optional[ActivitySession]:
        """The user's active or paused session, if any"""
        with self._lock:
            for session_id in self._by_user.get(user_id, ()):
                session = self._sessions[session_id]
                if session.is_live:
                    return session
        return None

    def list_for_user(self, user_id: str) -> List[ActivitySession]:
        with self._lock:
            sessions = [self._sessions[s] for s in self._by_user.get(user_id, ())]
        return sorted(sessions, key=lambda s: (s.created_at is None, s.created_at))


class InMemoryUserRepository:
    def __init__(self):
        self._users: Dict[str, UserProfile] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> Optional[UserProfile]:
        with self._lock:
            return self._users.get(user_id)

    def save(self, user: UserProfile) -> None:
        with self._lock:
            self._users[user.user_id] = user

    def restore(self, user: UserProfile) -> None:
        """Put back a previously saved profile (rollback of a failed commit)"""
        self.save(user)


class InMemoryXpLedger:
    """Append-only XP audit trail"""

    def __init__(self):
        self._transactions: List[XpTransaction] = []
        self._lock = threading.Lock()

    def record(self, transaction: XpTransaction) -> None:
        with self._lock:
            self._transactions.append(transaction)
        logger.debug(f"XP transaction recorded: {transaction.amount} XP for user {transaction.user_id}")

    def list_for_user(self, user_id: str) -> List[XpTransaction]:
        with self._lock:
            return [t for t in self._transactions if t.user_id == user_id]
