import logging

from flask import request
from flask_socketio import SocketIO

from shared.events import Event
from shared.pubsub import BroadcastHub, Sink
from .dispatcher import Dispatcher

logger = logging.getLogger(__name__)

MESSAGE_EVENT = 'message'


class SocketIOSink(Sink):
    """One connected Socket.IO client."""

    def __init__(self, socketio: SocketIO, sid: str, namespace: str = '/'):
        self.socketio = socketio
        self.sink_id = sid
        self.namespace = namespace

    def is_open(self) -> bool:
        server = self.socketio.server
        return server is not None and server.manager.is_connected(self.sink_id, self.namespace)

    def send(self, payload: dict):
        self.socketio.emit(MESSAGE_EVENT, payload, to=self.sink_id, namespace=self.namespace)


def register_socket_handlers(socketio: SocketIO, hub: BroadcastHub, dispatcher: Dispatcher):
    """Wire connection lifecycle and inbound messages to the hub and dispatcher."""

    @socketio.on('connect')
    def handle_connect(auth=None):
        hub.register(SocketIOSink(socketio, request.sid))
        logger.info(f"New client connected: {request.sid}")

    @socketio.on('disconnect')
    def handle_disconnect(reason=None):
        hub.unregister(request.sid)
        logger.info(f"Client disconnected: {request.sid}")

    @socketio.on(MESSAGE_EVENT)
    def handle_message(data):
        sid = request.sid
        logger.debug(f"Received from {sid}: {data}")

        def reply(event: Event):
            hub.send_to(sid, event)

        dispatcher.dispatch(data, reply)
