"""
Relay Channel - Outbound side of the real-time session channel.

Inbound events are pushed to GameClient.handle_message by whatever owns
the transport; this interface only covers sending.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
import logging

from ..errors import ChannelError

if TYPE_CHECKING:
    from ..session.events import RelayCommand

logger = logging.getLogger(__name__)


class RelayChannel(ABC):
    """Abstract relay connection for one session."""

    @abstractmethod
    async def send(self, command: RelayCommand):
        """Send one command. Raises ChannelError."""
        pass

    async def close(self):
        pass


class InMemoryRelayChannel(RelayChannel):
    """Records outbound commands instead of sending them."""

    def __init__(self, fail_times: int = 0):
        self.fail_times = fail_times
        self.sent: list[RelayCommand] = []
        self.closed = False

    async def send(self, command: RelayCommand):
        if self.closed:
            raise ChannelError("Relay channel is closed")
        if self.fail_times > 0:
            self.fail_times -= 1
            raise ChannelError(f"Relay send of {command.type} failed")
        self.sent.append(command)
        logger.debug("Relay sent %s", command.type)

    async def close(self):
        self.closed = True

    def sent_of_type(self, kind: str) -> list[RelayCommand]:
        return [command for command in self.sent if command.type == kind]
