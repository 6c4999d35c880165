import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

import requests

from shared.events import payout_success_event, payout_failed_event
from shared.pubsub import BroadcastHub
from .errors import PayoutError, PayoutUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class PayoutResult:
    amount: float
    signature: str
    winner: str = None


class PayoutGateway:
    """Transfers the pot to a winner. Both calls may block for a long time."""

    def request_payout(self, winner: str) -> PayoutResult:
        raise NotImplementedError

    def get_balance(self) -> float:
        raise NotImplementedError


class HttpPayoutGateway(PayoutGateway):
    """
    Client for the external payout service.

    The service owns the game wallet: it checks the balance, builds, signs and
    confirms the transfer, and answers with the amount and transaction signature.
    """

    def __init__(self, base_url: str, timeout: float = 60.0, session: requests.Session = None):
        if not base_url:
            raise PayoutUnavailableError("PAYOUT_SERVICE_URL is required")

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.http = session or requests.Session()

    def _call(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            resp = self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise PayoutError(f"Payout service unavailable: {e}")

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if resp.status_code >= 400:
            reason = data.get('error') or f"Payout service returned {resp.status_code}"
            raise PayoutError(reason)

        return data

    def request_payout(self, winner: str) -> PayoutResult:
        logger.info(f"Processing payout to winner: {winner}")
        data = self._call('POST', '/payouts', json={'winner': winner})

        if 'signature' not in data or 'amount' not in data:
            raise PayoutError("Payout service response is missing amount or signature")

        return PayoutResult(
            amount=data['amount'],
            signature=data['signature'],
            winner=data.get('winner', winner)
        )

    def get_balance(self) -> float:
        data = self._call('GET', '/balance')
        if 'balance' not in data:
            raise PayoutError("Payout service response is missing balance")
        return data['balance']


class PayoutDispatcher:
    """
    Issues payouts without blocking the caller.

    Each request runs on a worker thread; its outcome is broadcast as
    WINNER_PAYOUT_SUCCESS or WINNER_PAYOUT_FAILED whenever it arrives, whether
    or not the session still exists. A session is paid at most once; the most
    recent `history_size` game ids are remembered, which must outlast the
    session retention window.
    """

    def __init__(self, gateway: Optional[PayoutGateway], hub: BroadcastHub, max_workers: int = 4,
                 history_size: int = 10000):
        self.gateway = gateway
        self.hub = hub
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='payout')
        self._requested = set()
        self._request_order = deque()
        self.history_size = history_size
        self._lock = threading.Lock()

    @property
    def available(self) -> bool:
        return self.gateway is not None

    def has_requested(self, game_id: str) -> bool:
        with self._lock:
            return game_id in self._requested

    def request_payout(self, game_id: str, winner: str) -> Optional[Future]:
        """Submit a payout for `winner`. Returns None when nothing was issued."""
        if self.gateway is None:
            logger.warning(f"Winner payout system not available; skipping payout for game {game_id}")
            return None

        with self._lock:
            if game_id in self._requested:
                logger.warning(f"Payout for game {game_id} already issued; ignoring request for {winner}")
                return None
            self._remember(game_id)

        return self._executor.submit(self._pay, game_id, winner)

    def _remember(self, game_id: str):
        self._requested.add(game_id)
        self._request_order.append(game_id)
        while len(self._request_order) > self.history_size:
            self._requested.discard(self._request_order.popleft())

    def _pay(self, game_id: str, winner: str) -> bool:
        try:
            result = self.gateway.request_payout(winner)
        except PayoutError as e:
            logger.error(f"Winner payout failed for game {game_id}: {e.message}")
            self.hub.publish(payout_failed_event(game_id, winner, e.message))
            return False
        except Exception as e:
            logger.exception(f"Unexpected error paying out game {game_id}")
            self.hub.publish(payout_failed_event(game_id, winner, str(e)))
            return False

        logger.info(f"Winner payout successful for game {game_id}: {result.amount} to {winner} ({result.signature})")
        self.hub.publish(payout_success_event(game_id, winner, result.amount, result.signature))
        return True

    def get_balance(self) -> float:
        if self.gateway is None:
            raise PayoutUnavailableError("Winner payout system not available")
        return self.gateway.get_balance()

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)


def create_gateway(base_url: str, timeout: float) -> Optional[PayoutGateway]:
    """Build the HTTP gateway, or return None so the service runs without payouts."""
    try:
        gateway = HttpPayoutGateway(base_url, timeout=timeout)
    except PayoutUnavailableError as e:
        logger.error(f"Failed to initialize winner payout system: {e.message}")
        logger.warning("Winner payouts will be disabled")
        return None

    logger.info(f"Winner payout system initialized ({gateway.base_url})")
    return gateway
