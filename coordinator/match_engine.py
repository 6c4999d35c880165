import logging
import threading
from typing import Optional

from shared.events import (
    queue_update_event, start_match_event, player_eliminated_event, game_end_event
)
from shared.pubsub import BroadcastHub
from .errors import SessionNotFoundError, ValidationError
from .match_queue import MatchQueue
from .payout import PayoutDispatcher
from .session_registry import Session, SessionRegistry

logger = logging.getLogger(__name__)


class MatchStarter:
    """Turns a full queue into a new session, exactly once per fill."""

    def __init__(self, queue: MatchQueue, registry: SessionRegistry, hub: BroadcastHub, quota: int):
        self.queue = queue
        self.registry = registry
        self.hub = hub
        self.quota = quota
        self.matches_started = 0

    def try_start(self) -> Optional[Session]:
        players = self.queue.drain_if_full(self.quota)
        if players is None:
            return None

        session = self.registry.create(players)
        self.matches_started += 1
        logger.info(f"Match {session.id} started with {len(players)} players")

        self.hub.publish(start_match_event(session.id, session.players))
        return session


class MatchEngine:
    """
    Entry point for every state change, whichever ingress it came from.

    Queue admission (join, QUEUE_UPDATE, match start) runs under one lock so
    both ingress paths share a single serialized mutation path. Elimination
    handling runs under the session's own lock; distinct sessions proceed
    in parallel. Payouts are handed to the dispatcher and never awaited here.
    """

    def __init__(
        self,
        queue: MatchQueue,
        registry: SessionRegistry,
        hub: BroadcastHub,
        payouts: PayoutDispatcher,
        quota: int = 100,
        retention_seconds: float = 60.0,
        allow_declared_winners: bool = True
    ):
        if quota < 2:
            raise ValueError("Queue quota must be at least 2")

        self.queue = queue
        self.registry = registry
        self.hub = hub
        self.payouts = payouts
        self.quota = quota
        self.retention_seconds = retention_seconds
        self.allow_declared_winners = allow_declared_winners

        self.starter = MatchStarter(queue, registry, hub, quota)
        self._admission_lock = threading.Lock()

    # ==================== Queue ====================

    def join_queue(self, wallet: str) -> int:
        """Queue `wallet` and start a match if the quota is reached. Returns the queue size."""
        with self._admission_lock:
            size = self.queue.join(wallet)
            logger.info(f"Player {wallet} joined queue. Queue size: {size}")

            self.hub.publish(queue_update_event(self.queue.snapshot()))
            self.starter.try_start()

            return self.queue.size()

    def queue_status(self) -> dict:
        players = self.queue.snapshot()
        return {'queueSize': len(players), 'players': players}

    # ==================== Sessions ====================

    def get_session(self, game_id: str) -> Session:
        session = self.registry.get(game_id)
        if session is None:
            raise SessionNotFoundError(game_id)
        return session

    def report_elimination(self, game_id: str, player: str) -> int:
        """Record an elimination and return the number of players still in the game."""
        session = self.get_session(game_id)

        with session.lock:
            if not session.eliminate(player):
                self._log_ignored_report(session, player)
                return session.remaining

            remaining = session.remaining
            logger.info(f"Player {player} eliminated in game {game_id} ({remaining} remaining)")
            self.hub.publish(player_eliminated_event(game_id, player, remaining))

            if remaining <= 1:
                self._end_game(session)

            return remaining

    def _log_ignored_report(self, session: Session, player: str):
        if session.is_finished:
            reason = "game already finished"
        elif not session.is_member(player):
            reason = "not a player in this game"
        else:
            reason = "already eliminated"
        logger.warning(f"Ignoring elimination of {player} in game {session.id}: {reason}")

    def _end_game(self, session: Session):
        winner = session.finish()

        if winner is None:
            logger.warning(f"Game {session.id} ended with no players remaining; no winner declared")
        else:
            logger.info(f"Game {session.id} ended. Winner: {winner}")

        self.hub.publish(game_end_event(session.id, winner, session.duration))

        if winner is not None:
            self.payouts.request_payout(session.id, winner)

        self.registry.schedule_removal(session.id, self.retention_seconds)

    def declare_winner(self, game_id: str, winner: str) -> bool:
        """
        Pay out a client-declared winner. The declaration is trusted: it is not
        checked against the elimination state, only logged when it disagrees.
        Returns True when a payout was issued.
        """
        if not self.allow_declared_winners:
            raise ValidationError("Winner declarations are disabled")
        if not isinstance(winner, str) or not winner:
            raise ValidationError("Winner address required")

        session = self.get_session(game_id)
        logger.info(f"Winner declared for game {game_id}: {winner}")

        with session.lock:
            if not session.is_member(winner):
                logger.warning(f"Declared winner {winner} is not a player in game {game_id}")
            elif session.is_finished and session.winner != winner:
                logger.warning(f"Declared winner {winner} differs from computed winner {session.winner} in game {game_id}")

        return self.payouts.request_payout(game_id, winner) is not None

    # ==================== Status ====================

    def health(self) -> dict:
        return {
            'status': 'ok',
            'queueSize': self.queue.size(),
            'activeSessionCount': self.registry.active_count(),
            'connections': self.hub.connection_count,
            'payoutSystem': 'enabled' if self.payouts.available else 'disabled'
        }

    def shutdown(self):
        self.registry.shutdown()
        self.payouts.shutdown(wait=False)
