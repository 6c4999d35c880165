#!/usr/bin/env python3
"""
Entry point for the Battle Royale Match Coordinator.

Usage:
    python run.py                    # Run the coordinator

Environment Variables:
    FLASK_ENV: development or production (default: development)
    HOST: Interface to bind (default: 0.0.0.0)
    PORT: Port to run on (default: 3001)
    LOG_LEVEL: Logging level (default: INFO)
    QUEUE_QUOTA: Players per match (default: 100)
    PAYOUT_SERVICE_URL: Payout service base URL; payouts are disabled when unset
    REDIS_URL: Optional Redis relay for broadcast events
"""
import os
import logging


def run_coordinator():
    """Run the coordinator service."""
    from coordinator.app import create_app

    logging.basicConfig(
        level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )

    app = create_app()
    host = os.getenv('HOST', '0.0.0.0')
    port = int(os.getenv('PORT', 3001))
    debug = os.getenv('FLASK_ENV', 'development') == 'development'

    print(f"Battle Royale coordinator running on port {port}...")
    try:
        app.socketio.run(app, host=host, port=port, debug=debug, use_reloader=False,
                         allow_unsafe_werkzeug=True)
    finally:
        app.engine.shutdown()
        if app.relay is not None:
            app.relay.close()


if __name__ == '__main__':
    run_coordinator()
