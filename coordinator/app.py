import os
import logging
from typing import Optional

from flask import Flask
from flask_socketio import SocketIO

from shared.pubsub import BroadcastHub, RedisRelay
from .config import config
from .dispatcher import Dispatcher
from .match_engine import MatchEngine
from .match_queue import MatchQueue
from .payout import PayoutDispatcher, PayoutGateway, create_gateway
from .realtime import register_socket_handlers
from .session_registry import SessionRegistry

logger = logging.getLogger(__name__)


def create_app(config_name: str = None, gateway: Optional[PayoutGateway] = None) -> Flask:
    """
    Application factory for the coordinator service.

    `gateway` overrides the payout gateway built from PAYOUT_SERVICE_URL.
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # Initialize services
    hub = BroadcastHub()

    relay = None
    if app.config['REDIS_URL']:
        relay = RedisRelay(app.config['REDIS_URL'], log_size=app.config['EVENT_LOG_SIZE'])
        hub.register(relay)
        logger.info(f"Relaying broadcast events to {app.config['REDIS_URL']}")

    if gateway is None:
        gateway = create_gateway(
            app.config['PAYOUT_SERVICE_URL'],
            timeout=app.config['PAYOUT_TIMEOUT_SECONDS']
        )

    payouts = PayoutDispatcher(
        gateway,
        hub,
        max_workers=app.config['PAYOUT_WORKERS'],
        history_size=app.config['PAYOUT_HISTORY_SIZE']
    )
    engine = MatchEngine(
        queue=MatchQueue(),
        registry=SessionRegistry(),
        hub=hub,
        payouts=payouts,
        quota=app.config['QUEUE_QUOTA'],
        retention_seconds=app.config['SESSION_RETENTION_SECONDS'],
        allow_declared_winners=app.config['ALLOW_DECLARED_WINNERS']
    )

    socketio = SocketIO(
        app,
        async_mode=app.config['SOCKETIO_ASYNC_MODE'],
        cors_allowed_origins=app.config['CORS_ALLOWED_ORIGINS']
    )

    # Store services on app for access in routes
    app.hub = hub
    app.relay = relay
    app.engine = engine
    app.socketio = socketio

    register_socket_handlers(socketio, hub, Dispatcher(engine))

    from .routes import api
    app.register_blueprint(api.bp)

    return app
