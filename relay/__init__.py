"""
Session Relay

In-memory session relay: replays a session's event log to late joiners and
fans out new events to every other connected endpoint.
"""

__version__ = "0.1.0"
