"""Message types and the abstract peer and transport interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

INCOMING_MESSAGE = 0x1
INCOMING_STREAM = 0x2


@dataclass
class RPC:
    """A message received from a peer."""

    from_addr: str = ""
    payload: bytes = b""
    stream: bool = False


class Peer(ABC):
    """A remote node in the network."""

    @property
    @abstractmethod
    def remote_addr(self) -> str:
        """Address of the remote end."""

    @abstractmethod
    def send(self, data: bytes) -> None:
        """Send all of ``data`` to the peer."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Write ``data`` to the peer and return the count written."""

    @abstractmethod
    def read(self, size: int) -> bytes:
        """Read at most ``size`` bytes; empty bytes at end of stream."""

    @abstractmethod
    def close_stream(self) -> None:
        """Signal that an incoming stream has been consumed."""

    @abstractmethod
    def close(self) -> None:
        """Close the connection."""


HandshakeFunc = Callable[[Peer], None]


def nop_handshake(peer: Peer) -> None:
    """Accept every peer without exchanging anything."""
    return None


class Transport(ABC):
    """Carries messages between nodes."""

    @abstractmethod
    def addr(self) -> str:
        """The listening address."""

    @abstractmethod
    def dial(self, addr: str) -> None:
        """Connect to a remote address."""

    @abstractmethod
    def listen_and_accept(self) -> None:
        """Start listening for connections."""

    @abstractmethod
    def consume(self, timeout: float | None = None) -> RPC:
        """Return the next incoming message."""

    @abstractmethod
    def close(self) -> None:
        """Shut the transport down."""