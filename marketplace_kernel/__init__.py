"""
Marketplace Kernel

The negotiation and settlement core of the service marketplace:
- Engagement lifecycle state machine
- Append-only negotiation chain with read-time resolution
- Daily-session completion tracking
- Exactly-once provider balance settlement
"""

__version__ = "0.1.0"
