"""
Session eviction policies.

The registry never drops a session on its own. A policy decides, during an
explicit sweep, whether a session with no connected endpoints may go.
Sessions with connected endpoints are never offered to a policy.
"""

from abc import ABC, abstractmethod

from .session import SessionSummary


class EvictionPolicy(ABC):
    """Abstract eviction rule."""

    name = "abstract"

    @abstractmethod
    def should_evict(self, summary: SessionSummary, now: float) -> bool:
        """
        Decide whether an endpoint-less session may be dropped.

        Args:
            summary: Session view (endpoints is always 0 here)
            now: Current clock reading
        """
        ...


class RetainForever(EvictionPolicy):
    """Keep every session for the lifetime of the process."""

    name = "retain"

    def should_evict(self, summary: SessionSummary, now: float) -> bool:
        return False


class IdleTimeout(EvictionPolicy):
    """
    Evict sessions that have had no endpoints for at least grace_seconds.

    A watcher that reconnects within the grace period gets full replay.
    """

    name = "idle"

    def __init__(self, grace_seconds: float) -> None:
        if grace_seconds <= 0:
            raise ValueError("grace_seconds must be positive")
        self.grace_seconds = grace_seconds

    def should_evict(self, summary: SessionSummary, now: float) -> bool:
        if summary.endpoints or summary.idle_since is None:
            return False
        return now - summary.idle_since >= self.grace_seconds


def policy_from_name(name: str, grace_seconds: float) -> EvictionPolicy:
    """
    Build a policy from its configuration name.

    Raises:
        ValueError: If name is unknown
    """
    key = (name or "").strip().lower()
    if key == RetainForever.name:
        return RetainForever()
    if key == IdleTimeout.name:
        return IdleTimeout(grace_seconds)
    raise ValueError(f"unknown eviction policy: {name}")
