"""
Session state.

This module provides:
- Session: Ordered log plus connected endpoints for one token
- SessionRegistry: Process-wide token -> Session mapping
- Eviction policies: RetainForever (default), IdleTimeout
"""

from .session import Session, SessionSummary, AppendResult
from .registry import SessionRegistry, RegistryStats
from .eviction import EvictionPolicy, RetainForever, IdleTimeout, policy_from_name

__all__ = [
    "Session",
    "SessionSummary",
    "AppendResult",
    "SessionRegistry",
    "RegistryStats",
    "EvictionPolicy",
    "RetainForever",
    "IdleTimeout",
    "policy_from_name",
]
