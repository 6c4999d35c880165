"""
Integration tests for the Socket.IO push channel.
Tests: inbound message routing, broadcasts, sender-only errors, connection lifecycle
"""
import json

from conftest import wait_for


def messages(client):
    return [m['args'] for m in client.get_received() if m['name'] == 'message']


class TestInbound:

    def test_join_queue_broadcasts_update(self, socket_client):
        socket_client.send({'type': 'JOIN_QUEUE', 'wallet': 'A'})

        assert messages(socket_client) == [{'type': 'QUEUE_UPDATE', 'queueSize': 1, 'players': ['A']}]

    def test_json_text_accepted(self, socket_client):
        socket_client.send(json.dumps({'type': 'JOIN_QUEUE', 'wallet': 'A'}))
        assert messages(socket_client)[0]['type'] == 'QUEUE_UPDATE'

    def test_error_goes_to_sender_only(self, app, socket_client):
        other = app.socketio.test_client(app)
        socket_client.send({'type': 'JOIN_QUEUE', 'wallet': 'A'})
        messages(socket_client)
        messages(other)

        socket_client.send({'type': 'JOIN_QUEUE', 'wallet': 'A'})

        assert messages(socket_client) == [{'type': 'ERROR', 'message': 'Already in queue'}]
        assert messages(other) == []
        other.disconnect()

    def test_protocol_errors_dropped(self, app, socket_client):
        socket_client.send('not json')
        socket_client.send({'type': 'DANCE'})
        socket_client.send({'type': 'GAME_ACTION', 'gameId': 'game_1', 'action': 'REVIVE', 'player': 'B'})

        assert messages(socket_client) == []
        assert socket_client.is_connected()
        assert app.engine.queue.size() == 0

    def test_unknown_game_error(self, socket_client):
        socket_client.send({'type': 'GAME_ACTION', 'gameId': 'game_missing', 'action': 'ELIMINATE', 'player': 'B'})
        assert messages(socket_client) == [{'type': 'ERROR', 'message': 'Game not found'}]


class TestBroadcast:

    def test_every_client_sees_broadcasts(self, app, socket_client):
        other = app.socketio.test_client(app)

        other.send({'type': 'JOIN_QUEUE', 'wallet': 'B'})

        expected = [{'type': 'QUEUE_UPDATE', 'queueSize': 1, 'players': ['B']}]
        assert messages(socket_client) == expected
        assert messages(other) == expected
        other.disconnect()

    def test_full_game(self, app, socket_client, gateway):
        for wallet in ['A', 'B', 'C', 'D']:
            socket_client.send({'type': 'JOIN_QUEUE', 'wallet': wallet})

        received = messages(socket_client)
        assert [m['type'] for m in received] == ['QUEUE_UPDATE'] * 4 + ['START_MATCH']
        start = received[-1]
        assert start['players'] == ['A', 'B', 'C', 'D']
        game_id = start['gameId']

        for player in ['B', 'C', 'A']:
            socket_client.send({'type': 'GAME_ACTION', 'gameId': game_id, 'action': 'ELIMINATE', 'player': player})

        received = messages(socket_client)
        game_events = [m for m in received if m['type'] in ('PLAYER_ELIMINATED', 'GAME_END')]
        assert [m['type'] for m in game_events] == ['PLAYER_ELIMINATED'] * 3 + ['GAME_END']
        assert [m['remainingPlayers'] for m in game_events[:3]] == [3, 2, 1]
        assert game_events[-1]['winner'] == 'D'
        assert game_events[-1]['gameId'] == game_id

        payouts = [m for m in received if m['type'] == 'WINNER_PAYOUT_SUCCESS']

        def payout_seen():
            payouts.extend(m for m in messages(socket_client) if m['type'] == 'WINNER_PAYOUT_SUCCESS')
            return payouts

        assert wait_for(payout_seen)
        assert len(payouts) == 1
        assert payouts[0]['winner'] == 'D'
        assert payouts[0]['gameId'] == game_id
        assert gateway.paid == ['D']


class TestLifecycle:

    def test_connect_registers_sink(self, app, socket_client):
        assert app.hub.connection_count == 1

    def test_disconnect_unregisters_sink(self, app, socket_client):
        other = app.socketio.test_client(app)
        assert app.hub.connection_count == 2

        other.disconnect()

        assert app.hub.connection_count == 1
        socket_client.send({'type': 'JOIN_QUEUE', 'wallet': 'A'})
        assert len(messages(socket_client)) == 1
