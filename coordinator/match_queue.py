import threading
from typing import List, Optional

from .errors import WalletRequiredError, AlreadyQueuedError


class MatchQueue:
    """
    Ordered, duplicate-free set of wallets waiting for a match.

    `join` and `drain_if_full` share one lock, so a drain either sees a join
    entirely or not at all.
    """

    def __init__(self):
        self._entries: List[str] = []
        self._members = set()
        self._lock = threading.Lock()

    def join(self, wallet: str) -> int:
        """Append `wallet` and return the new queue size."""
        if not isinstance(wallet, str) or not wallet:
            raise WalletRequiredError()

        with self._lock:
            if wallet in self._members:
                raise AlreadyQueuedError(wallet)
            self._entries.append(wallet)
            self._members.add(wallet)
            return len(self._entries)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def snapshot(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def drain_if_full(self, quota: int) -> Optional[List[str]]:
        """Remove and return every entry, in join order, if exactly `quota` are queued."""
        with self._lock:
            if len(self._entries) != quota:
                return None
            drained = self._entries
            self._entries = []
            self._members = set()
            return drained

    def __contains__(self, wallet: str) -> bool:
        with self._lock:
            return wallet in self._members

    def __len__(self) -> int:
        return self.size()
