"""
Client configuration.

Values come from keyword arguments or from FLEETPROOF_* environment
variables via ClientConfig.from_env().
"""

from __future__ import annotations
from dataclasses import dataclass
import os


FLEETPROOF_ENV = os.getenv("FLEETPROOF_ENV", "development")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")


@dataclass
class ClientConfig:
    """Settings for a GameClient and the services it talks to."""
    prover_url: str | None = None

    # Seconds between liveness pings on the relay channel
    heartbeat_interval: float = 30.0

    # Retry policy for prover/ledger/relay calls
    retry_attempts: int = 3
    retry_backoff: float = 0.5
    call_timeout: float = 60.0

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Build a config from environment variables, keeping defaults for unset ones."""
        defaults = cls()
        return cls(
            prover_url=os.getenv("FLEETPROOF_PROVER_URL", defaults.prover_url),
            heartbeat_interval=float(
                os.getenv("FLEETPROOF_HEARTBEAT_INTERVAL", defaults.heartbeat_interval)
            ),
            retry_attempts=int(
                os.getenv("FLEETPROOF_RETRY_ATTEMPTS", defaults.retry_attempts)
            ),
            retry_backoff=float(
                os.getenv("FLEETPROOF_RETRY_BACKOFF", defaults.retry_backoff)
            ),
            call_timeout=float(
                os.getenv("FLEETPROOF_CALL_TIMEOUT", defaults.call_timeout)
            ),
        )
