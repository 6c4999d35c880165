"""
Pytest configuration and fixtures for coordinator tests.
"""
import os
import sys
import threading
import time
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Set testing environment before importing app
os.environ['FLASK_ENV'] = 'testing'

from coordinator.app import create_app
from coordinator.match_engine import MatchEngine
from coordinator.match_queue import MatchQueue
from coordinator.payout import PayoutDispatcher, PayoutGateway, PayoutResult
from coordinator.session_registry import SessionRegistry
from coordinator.errors import PayoutError
from shared.pubsub import BroadcastHub, Sink


class RecordingSink(Sink):
    """Sink that keeps every payload it receives."""

    def __init__(self, sink_id: str = 'recorder', open_: bool = True):
        self.sink_id = sink_id
        self.open = open_
        self.received = []
        self._lock = threading.Lock()

    def is_open(self) -> bool:
        return self.open

    def send(self, payload: dict):
        with self._lock:
            self.received.append(payload)

    def of_type(self, event_type: str) -> list:
        with self._lock:
            return [p for p in self.received if p['type'] == event_type]

    def types(self) -> list:
        with self._lock:
            return [p['type'] for p in self.received]


class FakeGateway(PayoutGateway):
    """In-memory payout gateway."""

    def __init__(self, amount: float = 69.0, fail_with: str = None, balance: float = 100.0):
        self.amount = amount
        self.fail_with = fail_with
        self.balance = balance
        self.paid = []

    def request_payout(self, winner: str) -> PayoutResult:
        if self.fail_with:
            raise PayoutError(self.fail_with)
        self.paid.append(winner)
        return PayoutResult(amount=self.amount, signature=f"sig-{len(self.paid)}", winner=winner)

    def get_balance(self) -> float:
        if self.fail_with:
            raise PayoutError(self.fail_with)
        return self.balance


@pytest.fixture
def hub():
    return BroadcastHub()


@pytest.fixture
def recorder(hub):
    sink = RecordingSink()
    hub.register(sink)
    return sink


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def payouts(gateway, hub):
    dispatcher = PayoutDispatcher(gateway, hub, max_workers=2)
    yield dispatcher
    dispatcher.shutdown()


@pytest.fixture
def registry():
    registry = SessionRegistry()
    yield registry
    registry.shutdown()


@pytest.fixture
def engine(hub, recorder, registry, payouts):
    """Engine with a quota of 4 and a long retention window."""
    return MatchEngine(
        queue=MatchQueue(),
        registry=registry,
        hub=hub,
        payouts=payouts,
        quota=4,
        retention_seconds=60
    )


@pytest.fixture
def started_session(engine):
    """A session with players A, B, C, D, started through the queue."""
    for wallet in ['A', 'B', 'C', 'D']:
        engine.join_queue(wallet)
    return engine.registry.list_sessions()[0]


@pytest.fixture
def app(gateway):
    """Create application for testing."""
    app = create_app('testing', gateway=gateway)
    yield app
    app.engine.shutdown()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def socket_client(app):
    """Create a connected Socket.IO test client."""
    client = app.socketio.test_client(app)
    yield client
    if client.is_connected():
        client.disconnect()


def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll `predicate` until it is truthy or `timeout` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())
