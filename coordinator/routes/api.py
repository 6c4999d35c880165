from flask import Blueprint, request, jsonify, current_app

from coordinator.errors import ValidationError, SessionNotFoundError, PayoutError, PayoutUnavailableError

bp = Blueprint('api', __name__)


def get_engine():
    return current_app.engine


# ==================== Queue ====================

@bp.route('/joinQueue', methods=['POST'])
def join_queue():
    """Queue a wallet for the next match."""
    data = request.get_json(silent=True) or {}

    try:
        queue_size = get_engine().join_queue(data.get('wallet'))
    except ValidationError as e:
        return jsonify({'error': e.message}), 400

    return jsonify({'ok': True, 'queueSize': queue_size})


@bp.route('/queue')
def queue_status():
    return jsonify(get_engine().queue_status())


# ==================== Sessions ====================

@bp.route('/games')
def list_games():
    status = request.args.get('status')
    sessions = get_engine().registry.list_sessions(status=status)
    return jsonify([s.to_summary() for s in sessions])


@bp.route('/games/<game_id>')
def get_game(game_id: str):
    try:
        session = get_engine().get_session(game_id)
    except SessionNotFoundError as e:
        return jsonify({'error': e.message}), 404

    with session.lock:
        return jsonify(session.to_dict())


# ==================== Payout ====================

@bp.route('/wallet/balance')
def wallet_balance():
    """Current balance of the game wallet, as reported by the payout service."""
    try:
        balance = get_engine().payouts.get_balance()
    except PayoutUnavailableError as e:
        return jsonify({'error': e.message}), 503
    except PayoutError as e:
        return jsonify({'error': e.message}), 500

    return jsonify({'balance': balance})


@bp.route('/payout/info')
def payout_info():
    return jsonify({
        'totalPot': current_app.config['TOTAL_POT_SOL'],
        'entryFee': current_app.config['ENTRY_FEE_SOL'],
        'playersPerGame': get_engine().quota,
        'payoutSystem': 'enabled' if get_engine().payouts.available else 'disabled'
    })


# ==================== Events ====================

@bp.route('/events/recent')
def recent_events():
    """Recently broadcast events, replayed from the Redis relay."""
    relay = current_app.relay
    if relay is None:
        return jsonify({'error': 'Event relay not configured'}), 503

    count = request.args.get('count', 50, type=int)
    events = relay.get_recent_events(count=max(1, min(count, 1000)))
    return jsonify({'events': [e.to_log_dict() for e in events], 'count': len(events)})


# ==================== Health Check ====================

@bp.route('/health')
def health_check():
    """Health check endpoint."""
    payload = get_engine().health()

    relay = current_app.relay
    if relay is not None:
        payload['redis'] = 'connected' if relay.ping() else 'disconnected'

    return jsonify(payload)
