import time
import uuid
import logging
import threading
from typing import Optional, List, Dict, Sequence

from shared.state_machine import SessionStateMachine, SessionState

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class Session:
    """
    One running game: a fixed roster and the set of players eliminated so far.

    Mutators are not locked themselves; callers hold `session.lock` around a
    mutation and the events it produces so they are observed in order.
    """

    def __init__(self, session_id: str, players: Sequence[str], start_time: int = None):
        if len(set(players)) != len(players):
            raise ValueError("Session roster contains duplicate players")

        self.id = session_id
        self.players = tuple(players)
        self.eliminated = set()
        self.elimination_order: List[str] = []
        self.winner: Optional[str] = None
        self.start_time = start_time if start_time is not None else now_ms()
        self.end_time: Optional[int] = None
        self.lock = threading.RLock()

        self._roster = frozenset(self.players)
        self._machine = SessionStateMachine()

    @property
    def status(self) -> SessionState:
        return self._machine.state

    @property
    def is_finished(self) -> bool:
        return self._machine.is_terminal

    @property
    def remaining(self) -> int:
        return len(self.players) - len(self.eliminated)

    @property
    def duration(self) -> Optional[int]:
        if self.end_time is None:
            return None
        return max(0, self.end_time - self.start_time)

    def is_member(self, player: str) -> bool:
        return isinstance(player, str) and player in self._roster

    def survivors(self) -> List[str]:
        return [p for p in self.players if p not in self.eliminated]

    def eliminate(self, player: str) -> bool:
        """Record `player` as eliminated. Returns False when the report is ignored."""
        if not self._machine.can_transition('eliminate'):
            return False
        if not self.is_member(player) or player in self.eliminated:
            return False

        self._machine.transition('eliminate')
        self.eliminated.add(player)
        self.elimination_order.append(player)
        return True

    def finish(self) -> Optional[str]:
        """Close the session and return the winner (None when nobody is left)."""
        self._machine.transition('finish', {'remaining': self.remaining})

        survivors = self.survivors()
        self.winner = survivors[0] if len(survivors) == 1 else None
        self.end_time = now_ms()
        return self.winner

    def to_summary(self) -> Dict:
        return {
            'id': self.id,
            'playerCount': len(self.players),
            'status': self.status.value,
            'startTime': self.start_time
        }

    def to_dict(self) -> Dict:
        details = self.to_summary()
        details.update({
            'players': list(self.players),
            'eliminated': list(self.elimination_order),
            'remainingPlayers': self.remaining,
            'winner': self.winner,
            'endTime': self.end_time,
            'duration': self.duration
        })
        return details


class SessionRegistry:
    """
    Owns every live session:
    - Create sessions from a drained queue
    - Look up and list sessions
    - Remove finished sessions after the retention window
    """

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def _new_session_id(self) -> str:
        return f"game_{uuid.uuid4().hex[:12]}"

    def create(self, players: Sequence[str]) -> Session:
        """Create and store a new active session."""
        with self._lock:
            session_id = self._new_session_id()
            while session_id in self._sessions:
                session_id = self._new_session_id()

            session = Session(session_id, players)
            self._sessions[session_id] = session

        return session

    def get(self, session_id: str) -> Optional[Session]:
        if not isinstance(session_id, str):
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def list_sessions(self, status: str = None) -> List[Session]:
        """List sessions, oldest first, with optional status filtering."""
        with self._lock:
            sessions = list(self._sessions.values())

        if status:
            sessions = [s for s in sessions if s.status.value == status]

        return sorted(sessions, key=lambda s: s.start_time)

    def active_count(self) -> int:
        return len(self.list_sessions(status=SessionState.ACTIVE.value))

    def remove(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
            timer = self._timers.pop(session_id, None)

        if timer is not None:
            timer.cancel()
        if session is None:
            return False

        logger.info(f"Session {session_id} removed from registry")
        return True

    def schedule_removal(self, session_id: str, delay_seconds: float):
        """Remove `session_id` once `delay_seconds` have elapsed."""
        timer = threading.Timer(delay_seconds, self.remove, args=(session_id,))
        timer.daemon = True

        with self._lock:
            previous = self._timers.pop(session_id, None)
            self._timers[session_id] = timer

        if previous is not None:
            previous.cancel()
        timer.start()

    def shutdown(self):
        """Cancel pending removals."""
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()

        for timer in timers:
            timer.cancel()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
