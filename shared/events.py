from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List
import json


class EventType(str, Enum):
    # Queue
    QUEUE_UPDATE = "QUEUE_UPDATE"

    # Session lifecycle
    START_MATCH = "START_MATCH"
    PLAYER_ELIMINATED = "PLAYER_ELIMINATED"
    GAME_END = "GAME_END"

    # Payout outcome
    WINNER_PAYOUT_SUCCESS = "WINNER_PAYOUT_SUCCESS"
    WINNER_PAYOUT_FAILED = "WINNER_PAYOUT_FAILED"

    # Sent to the originating connection only
    ERROR = "ERROR"


@dataclass
class Event:
    type: EventType
    game_id: Optional[str] = None
    data: dict = field(default_factory=dict)
    timestamp: str = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.utcnow().isoformat() + "Z"

    def to_dict(self) -> dict:
        """Wire shape: `type` first, then `gameId` when bound to a session, then payload."""
        payload = {"type": self.type.value if isinstance(self.type, EventType) else self.type}
        if self.game_id is not None:
            payload["gameId"] = self.game_id
        payload.update(self.data)
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def to_log_dict(self) -> dict:
        log_entry = self.to_dict()
        log_entry["timestamp"] = self.timestamp
        return log_entry

    @classmethod
    def from_dict(cls, data: dict) -> "Event":
        data = dict(data)
        raw_type = data.pop("type")
        return cls(
            type=EventType(raw_type) if raw_type in [e.value for e in EventType] else raw_type,
            game_id=data.pop("gameId", None),
            timestamp=data.pop("timestamp", None),
            data=data
        )

    @classmethod
    def from_json(cls, json_str: str) -> "Event":
        return cls.from_dict(json.loads(json_str))


def queue_update_event(players: List[str]) -> Event:
    return Event(
        type=EventType.QUEUE_UPDATE,
        data={
            "queueSize": len(players),
            "players": list(players)
        }
    )


def start_match_event(game_id: str, players: List[str]) -> Event:
    return Event(
        type=EventType.START_MATCH,
        game_id=game_id,
        data={"players": list(players)}
    )


def player_eliminated_event(game_id: str, player: str, remaining: int) -> Event:
    return Event(
        type=EventType.PLAYER_ELIMINATED,
        game_id=game_id,
        data={
            "player": player,
            "remainingPlayers": remaining
        }
    )


def game_end_event(game_id: str, winner: Optional[str], duration_ms: int) -> Event:
    return Event(
        type=EventType.GAME_END,
        game_id=game_id,
        data={
            "winner": winner,
            "duration": duration_ms
        }
    )


def payout_success_event(game_id: str, winner: str, amount: float, signature: str) -> Event:
    return Event(
        type=EventType.WINNER_PAYOUT_SUCCESS,
        game_id=game_id,
        data={
            "winner": winner,
            "amount": amount,
            "signature": signature
        }
    )


def payout_failed_event(game_id: str, winner: str, error: str) -> Event:
    return Event(
        type=EventType.WINNER_PAYOUT_FAILED,
        game_id=game_id,
        data={
            "winner": winner,
            "error": error
        }
    )


def error_event(message: str) -> Event:
    return Event(type=EventType.ERROR, data={"message": message})
