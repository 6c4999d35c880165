"""
Coordinator Service - Battle Royale Match Coordinator

Responsibilities:
- Match queue (join, dedup, drain at quota)
- Session registry and elimination tracking
- Winner resolution and payout dispatch
- Real-time broadcast to every connected client
- Request/response API for queue and session status
"""
