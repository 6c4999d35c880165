import json
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from shared.events import Event, error_event
from .errors import ProtocolError, ValidationError
from .match_engine import MatchEngine

logger = logging.getLogger(__name__)


@dataclass
class JoinQueue:
    wallet: Optional[str]


@dataclass
class ReportElimination:
    game_id: Optional[str]
    player: Optional[str]


@dataclass
class DeclareWinner:
    game_id: Optional[str]
    winner: Optional[str]


Command = Union[JoinQueue, ReportElimination, DeclareWinner]


def _text_field(raw: dict, key: str) -> Optional[str]:
    """Read an identifier field; absent is allowed, any non-string value is not."""
    value = raw.get(key)
    if value is not None and not isinstance(value, str):
        raise ProtocolError(f"Field '{key}' must be a string, got {type(value).__name__}")
    return value


def decode_message(raw) -> Command:
    """Turn an inbound push-channel message (dict or JSON text) into a command."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise ProtocolError(f"Message is not valid JSON: {e}")

    if not isinstance(raw, dict):
        raise ProtocolError(f"Message must be an object, got {type(raw).__name__}")

    message_type = raw.get('type')

    if message_type == 'JOIN_QUEUE':
        return JoinQueue(wallet=_text_field(raw, 'wallet'))

    if message_type == 'GAME_ACTION':
        action = raw.get('action')
        if action != 'ELIMINATE':
            raise ProtocolError(f"Unknown game action: {action}")
        return ReportElimination(game_id=_text_field(raw, 'gameId'), player=_text_field(raw, 'player'))

    if message_type == 'DECLARE_WINNER':
        return DeclareWinner(game_id=_text_field(raw, 'gameId'), winner=_text_field(raw, 'winner'))

    raise ProtocolError(f"Unknown message type: {message_type}")


class Dispatcher:
    """
    Routes push-channel messages to the match engine.

    Validation failures are answered with an ERROR event to the sender only;
    protocol errors are logged and dropped without a response.
    """

    def __init__(self, engine: MatchEngine):
        self.engine = engine

    def dispatch(self, raw, reply: Callable[[Event], None]) -> Optional[Command]:
        try:
            command = decode_message(raw)
        except ProtocolError as e:
            logger.warning(f"Dropping inbound message: {e.message}")
            return None

        try:
            self.execute(command)
        except ValidationError as e:
            logger.info(f"Rejected {type(command).__name__}: {e.message}")
            reply(error_event(e.message))

        return command

    def execute(self, command: Command):
        if isinstance(command, JoinQueue):
            self.engine.join_queue(command.wallet)
        elif isinstance(command, ReportElimination):
            self.engine.report_elimination(command.game_id, command.player)
        elif isinstance(command, DeclareWinner):
            self.engine.declare_winner(command.game_id, command.winner)
        else:
            raise ProtocolError(f"Unsupported command: {command!r}")
