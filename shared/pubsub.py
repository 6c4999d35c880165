import os
import json
import queue
import logging
import threading
from typing import Dict, List, Optional

import redis

from .events import Event

logger = logging.getLogger(__name__)


class Sink:
    """
    A destination for broadcast events.

    Implementations report whether they can currently accept a message
    (`is_open`) and deliver a wire payload (`send`). `send` is only called
    on sinks that reported themselves open.
    """

    sink_id: str = None

    def is_open(self) -> bool:
        raise NotImplementedError

    def send(self, payload: dict):
        raise NotImplementedError


class BroadcastHub:
    """
    Fans out events to every live sink.

    Sinks may register and unregister while a publish is in progress; each
    publish iterates a snapshot taken under the lock. Delivery is best-effort
    and at-most-once per sink: closed sinks are skipped and send failures are
    logged, never retried.
    """

    def __init__(self):
        self._sinks: Dict[str, Sink] = {}
        self._lock = threading.Lock()

    def register(self, sink: Sink):
        with self._lock:
            self._sinks[sink.sink_id] = sink
        logger.debug(f"Registered sink {sink.sink_id}")

    def unregister(self, sink_id: str) -> Optional[Sink]:
        with self._lock:
            sink = self._sinks.pop(sink_id, None)
        if sink is not None:
            logger.debug(f"Unregistered sink {sink_id}")
        return sink

    def sinks(self) -> List[Sink]:
        with self._lock:
            return list(self._sinks.values())

    @property
    def connection_count(self) -> int:
        with self._lock:
            return len(self._sinks)

    def publish(self, event: Event) -> int:
        """Deliver `event` to every open sink. Returns the number of deliveries."""
        payload = event.to_dict()
        delivered = 0

        for sink in self.sinks():
            if not sink.is_open():
                continue
            try:
                sink.send(payload)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping {payload['type']} for sink {sink.sink_id}: {e}")

        return delivered

    def send_to(self, sink_id: str, event: Event) -> bool:
        """Deliver `event` to a single sink, if it is still registered and open."""
        with self._lock:
            sink = self._sinks.get(sink_id)
        if sink is None or not sink.is_open():
            return False
        try:
            sink.send(event.to_dict())
            return True
        except Exception as e:
            logger.warning(f"Dropping {event.type} for sink {sink_id}: {e}")
            return False


class RedisRelay(Sink):
    """
    Mirrors broadcast events into Redis so out-of-process observers can follow
    games: a pub/sub channel for live delivery and a capped list for replay.

    `send` only enqueues; a background worker performs the Redis calls, so a
    slow or unreachable server never holds up the caller. When more than
    `max_pending` events are waiting, new ones are dropped with a warning.
    """

    sink_id = "redis-relay"

    CHANNEL = "battle:events"
    EVENT_LOG_KEY = "battle:event_log"

    def __init__(self, redis_url: str = None, log_size: int = 1000, client: redis.Redis = None,
                 max_pending: int = 10000):
        self.redis_url = redis_url or os.getenv('REDIS_URL', 'redis://localhost:6379')
        self.redis = client or redis.from_url(
            self.redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5
        )
        self.log_size = log_size

        self._pending = queue.Queue(maxsize=max_pending)
        self._worker = threading.Thread(target=self._run, name='redis-relay', daemon=True)
        self._worker.start()

    def is_open(self) -> bool:
        return self._worker.is_alive()

    def send(self, payload: dict):
        try:
            self._pending.put_nowait(payload)
        except queue.Full:
            logger.warning(f"Redis relay backlog full; dropping {payload['type']}")

    def _run(self):
        while True:
            payload = self._pending.get()
            try:
                if payload is None:
                    return
                event = Event.from_dict(payload)
                self.publish(event)
                self.log_event(event)
            except Exception as e:
                logger.warning(f"Failed to relay {payload['type']} to Redis: {e}")
            finally:
                self._pending.task_done()

    def flush(self):
        """Block until every queued event has been handed to Redis."""
        self._pending.join()

    def close(self):
        try:
            self._pending.put(None, timeout=5)
        except queue.Full:
            logger.warning("Redis relay backlog still full at shutdown")
        self._worker.join(timeout=5)

    def publish(self, event: Event):
        self.redis.publish(self.CHANNEL, event.to_json())

    def log_event(self, event: Event):
        self.redis.lpush(self.EVENT_LOG_KEY, json.dumps(event.to_log_dict()))
        self.redis.ltrim(self.EVENT_LOG_KEY, 0, self.log_size - 1)

    def get_recent_events(self, count: int = 50) -> List[Event]:
        events_json = self.redis.lrange(self.EVENT_LOG_KEY, 0, count - 1)
        return [Event.from_json(e) for e in events_json]

    def ping(self) -> bool:
        try:
            return bool(self.redis.ping())
        except redis.exceptions.RedisError:
            return False
