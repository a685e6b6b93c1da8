"""
Server configuration from environment variables.

Environment Variables:
    RELAY_HOST: Bind address - default: 0.0.0.0
    RELAY_PORT: HTTP/WebSocket port - default: 3000
    RELAY_EVICTION: Session retention policy (retain, idle) - default: retain
    RELAY_IDLE_GRACE_SECONDS: Idle period before eviction (idle policy) - default: 3600
    RELAY_SWEEP_INTERVAL_SECONDS: Seconds between eviction sweeps - default: 60
    METRICS_ENABLED: Enable Prometheus metrics server (true/false) - default: false
    METRICS_PORT: Port for the /metrics endpoint - default: 8080
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from relay.session import EvictionPolicy, policy_from_name


def _env_int(key: str, default: int) -> int:
    val = os.getenv(key)
    if not val:
        return default
    try:
        parsed = int(val)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _env_bool(key: str, default: bool) -> bool:
    val = os.getenv(key)
    if val is None:
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class RelayConfig:
    host: str = "0.0.0.0"
    port: int = 3000
    eviction: str = "retain"
    idle_grace_seconds: int = 3600
    sweep_interval_seconds: int = 60
    metrics_enabled: bool = False
    metrics_port: int = 8080

    @staticmethod
    def from_env() -> "RelayConfig":
        return RelayConfig(
            host=os.getenv("RELAY_HOST", "0.0.0.0"),
            port=_env_int("RELAY_PORT", 3000),
            eviction=os.getenv("RELAY_EVICTION", "retain").strip().lower(),
            idle_grace_seconds=_env_int("RELAY_IDLE_GRACE_SECONDS", 3600),
            sweep_interval_seconds=_env_int("RELAY_SWEEP_INTERVAL_SECONDS", 60),
            metrics_enabled=_env_bool("METRICS_ENABLED", False),
            metrics_port=_env_int("METRICS_PORT", 8080),
        )

    def eviction_policy(self) -> EvictionPolicy:
        """
        Raises:
            ValueError: If RELAY_EVICTION names an unknown policy
        """
        return policy_from_name(self.eviction, float(self.idle_grace_seconds))

    def sweeps_enabled(self) -> bool:
        return self.eviction != "retain"

