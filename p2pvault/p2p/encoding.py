"""Decoding of the framed messages that peers exchange."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol

from .transport import INCOMING_STREAM, RPC

MAX_PAYLOAD = 1028


class Reader(Protocol):
    def read(self, size: int) -> bytes: ...


class Decoder(ABC):
    """Turns bytes from a peer into an :class:`RPC`."""

    @abstractmethod
    def decode(self, reader: Reader) -> RPC | None:
        """Read one message; return None when the peer has nothing more."""


class DefaultDecoder(Decoder):
    """One type byte, then either a stream marker or a message payload.

    A stream marker yields an RPC with ``stream`` set and no payload; the
    stream's bytes are left for the reader's owner to consume. A message
    takes whatever one read of at most 1028 bytes returns.
    """

    def decode(self, reader: Reader) -> RPC | None:
        kind = reader.read(1)
        if not kind:
            return None
        if kind[0] == INCOMING_STREAM:
            return RPC(stream=True)
        payload = reader.read(MAX_PAYLOAD)
        if not payload:
            raise EOFError("connection closed before message payload")
        return RPC(payload=payload)