"""External collaborators: proving service, ledger and relay channel."""

from .ledger import InMemoryLedger, LedgerClient
from .proving import HttpProvingService, MockProvingService, ProvingService
from .relay import InMemoryRelayChannel, RelayChannel
from .retry import retry_async

__all__ = [
    "HttpProvingService",
    "InMemoryLedger",
    "InMemoryRelayChannel",
    "LedgerClient",
    "MockProvingService",
    "ProvingService",
    "RelayChannel",
    "retry_async",
]
