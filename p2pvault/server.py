"""Peer-to-peer file server that replicates encrypted files to its peers."""

from __future__ import annotations

import io
import json
import logging
import struct
import threading
import time
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Union

from .crypto import CHUNK_SIZE, BLOCK_SIZE, copy_encrypt, generate_id, hash_key, new_encryption_key
from .p2p.transport import INCOMING_MESSAGE, INCOMING_STREAM, RPC, Peer, Transport
from .store import PathTransform, Store

log = logging.getLogger(__name__)

_SIZE = struct.Struct("<q")
BROADCAST_SETTLE = 0.005
RESPONSE_WAIT = 0.5
POLL_INTERVAL = 0.1


@dataclass(frozen=True)
class MessageStoreFile:
    """Announces a file that the sender is about to stream."""

    owner_id: str
    key: str
    size: int


@dataclass(frozen=True)
class MessageGetFile:
    """Asks peers to stream back a stored file."""

    owner_id: str
    key: str


Payload = Union[MessageStoreFile, MessageGetFile]


class PeerNotFoundError(LookupError):
    """A message came from an address that is not a known peer."""


def encode_message(payload: Payload) -> bytes:
    """Serialise a message payload for the wire."""
    if isinstance(payload, MessageStoreFile):
        doc = {"type": "store", "id": payload.owner_id, "key": payload.key, "size": payload.size}
    elif isinstance(payload, MessageGetFile):
        doc = {"type": "get", "id": payload.owner_id, "key": payload.key}
    else:
        raise TypeError(f"cannot encode {type(payload).__name__}")
    return json.dumps(doc, separators=(",", ":")).encode()


def decode_message(data: bytes) -> Payload:
    """Parse a payload produced by :func:`encode_message`; ValueError if malformed."""
    try:
        doc = json.loads(data)
        kind = doc["type"]
        if kind == "store":
            return MessageStoreFile(str(doc["id"]), str(doc["key"]), int(doc["size"]))
        if kind == "get":
            return MessageGetFile(str(doc["id"]), str(doc["key"]))
    except (ValueError, KeyError, TypeError) as exc:
        raise ValueError(f"malformed message: {exc}") from exc
    raise ValueError(f"unknown message type {kind!r}")


class _LimitedReader:
    """Reads at most ``remaining`` bytes from a peer, filling each request."""

    def __init__(self, src: Peer, remaining: int):
        self._src = src
        self._remaining = max(remaining, 0)

    def read(self, size: int = -1) -> bytes:
        want = self._remaining if size is None or size < 0 else min(size, self._remaining)
        parts = []
        got = 0
        while got < want:
            chunk = self._src.read(min(want - got, CHUNK_SIZE))
            if not chunk:
                break
            parts.append(chunk)
            got += len(chunk)
        self._remaining -= got
        return b"".join(parts)


class _TeeReader:
    """Copies everything read from ``src`` into ``sink``."""

    def __init__(self, src: BinaryIO, sink: BinaryIO):
        self._src = src
        self._sink = sink

    def read(self, size: int = -1) -> bytes:
        chunk = self._src.read(size)
        if chunk:
            self._sink.write(chunk)
        return chunk


class _MultiWriter:
    """Writes the same bytes to every peer."""

    def __init__(self, peers: Iterable[Peer]):
        self._peers = list(peers)

    def write(self, data: bytes) -> int:
        for peer in self._peers:
            peer.write(data)
        return len(data)


def _read_exact(peer: Peer, size: int) -> bytes:
    data = _LimitedReader(peer, size).read()
    if len(data) < size:
        raise EOFError("peer closed the connection early")
    return data


class FileServer:
    """Stores files locally and replicates them, encrypted, to connected peers."""

    def __init__(
        self,
        transport: Transport,
        storage_root: str | None = None,
        path_transform: PathTransform | None = None,
        bootstrap_nodes: Iterable[str] = (),
        enc_key: bytes | None = None,
        server_id: str | None = None,
    ):
        self.transport = transport
        self.id = server_id or generate_id()
        self.enc_key = enc_key if enc_key is not None else new_encryption_key()
        self.bootstrap_nodes = list(bootstrap_nodes)
        self.storage = Store(storage_root, path_transform)
        self.peers: dict[str, Peer] = {}
        self._peer_lock = threading.Lock()
        self._quit = threading.Event()

    def _peer_list(self) -> list[Peer]:
        with self._peer_lock:
            return list(self.peers.values())

    def _peer(self, addr: str) -> Peer:
        with self._peer_lock:
            peer = self.peers.get(addr)
        if peer is None:
            raise PeerNotFoundError(f"peer ({addr}) could not be found in the peer list")
        return peer

    def _broadcast(self, payload: Payload) -> None:
        data = encode_message(payload)
        for peer in self._peer_list():
            peer.send(bytes([INCOMING_MESSAGE]))
            peer.send(data)

    def get(self, key: str) -> BinaryIO:
        """Return an open file with the key's contents, fetching it from peers if needed."""
        addr = self.transport.addr()
        if self.storage.has(self.id, key):
            log.info("[%s] serving file (%s) from local disk", addr, key)
            _, f = self.storage.read(self.id, key)
            return f

        log.info("[%s] dont have file (%s) locally, fetching from network...", addr, key)
        self._broadcast(MessageGetFile(owner_id=self.id, key=hash_key(key)))
        time.sleep(RESPONSE_WAIT)

        for peer in self._peer_list():
            (size,) = _SIZE.unpack(_read_exact(peer, _SIZE.size))
            n = self.storage.write_decrypt(self.enc_key, self.id, key, _LimitedReader(peer, size))
            log.info("[%s] received (%d) bytes over the network from (%s)", addr, n, peer.remote_addr)
            peer.close_stream()

        _, f = self.storage.read(self.id, key)
        return f

    def store(self, key: str, src: BinaryIO) -> None:
        """Store ``src`` locally under ``key`` and stream it, encrypted, to every peer."""
        buffer = io.BytesIO()
        size = self.storage.write(self.id, key, _TeeReader(src, buffer))
        self._broadcast(
            MessageStoreFile(owner_id=self.id, key=hash_key(key), size=size + BLOCK_SIZE)
        )
        time.sleep(BROADCAST_SETTLE)

        writer = _MultiWriter(self._peer_list())
        writer.write(bytes([INCOMING_STREAM]))
        buffer.seek(0)
        n = copy_encrypt(self.enc_key, buffer, writer)
        log.info("[%s] received and written (%d) bytes to disk", self.transport.addr(), n)

    def stop(self) -> None:
        """Ask the event loop to finish."""
        self._quit.set()

    def on_peer(self, peer: Peer) -> None:
        """Register a newly connected peer."""
        with self._peer_lock:
            self.peers[peer.remote_addr] = peer
        log.info("connected with remote %s", peer.remote_addr)

    def start(self) -> None:
        """Listen, connect to the bootstrap nodes and run the event loop until stopped."""
        log.info("[%s] starting fileserver...", self.transport.addr())
        self.transport.listen_and_accept()
        self._bootstrap_network()
        self._loop()

    def _bootstrap_network(self) -> None:
        for addr in self.bootstrap_nodes:
            if not addr:
                continue
            threading.Thread(target=self._dial, args=(addr,), daemon=True).start()

    def _dial(self, addr: str) -> None:
        log.info("[%s] attemping to connect with remote %s", self.transport.addr(), addr)
        try:
            self.transport.dial(addr)
        except (OSError, ValueError) as exc:
            log.warning("dial error: %s", exc)

    def _loop(self) -> None:
        try:
            while not self._quit.is_set():
                try:
                    rpc = self.transport.consume(timeout=POLL_INTERVAL)
                except TimeoutError:
                    continue
                self._handle_rpc(rpc)
        finally:
            log.info("file server stopped due to error or user quit action")
            self.transport.close()

    def _handle_rpc(self, rpc: RPC) -> None:
        try:
            msg = decode_message(rpc.payload)
        except ValueError as exc:
            log.warning("decoding error: %s", exc)
            return
        try:
            self._handle_message(rpc.from_addr, msg)
        except Exception as exc:  # a bad message must not stop the loop
            log.warning("handle message error: %s", exc)

    def _handle_message(self, from_addr: str, msg: Payload) -> None:
        if isinstance(msg, MessageStoreFile):
            self._handle_store_file(from_addr, msg)
        elif isinstance(msg, MessageGetFile):
            self._handle_get_file(from_addr, msg)

    def _handle_get_file(self, from_addr: str, msg: MessageGetFile) -> None:
        addr = self.transport.addr()
        if not self.storage.has(msg.owner_id, msg.key):
            raise FileNotFoundError(
                f"[{addr}] need to serve file ({msg.key}) but it does not exist on disk"
            )
        log.info("[%s] serving file (%s) over the network", addr, msg.key)

        size, f = self.storage.read(msg.owner_id, msg.key)
        with f:
            peer = self._peer(from_addr)
            peer.send(bytes([INCOMING_STREAM]))
            peer.send(_SIZE.pack(size))
            written = 0
            while chunk := f.read(CHUNK_SIZE):
                written += peer.write(chunk)
        log.info("[%s] written (%d) bytes over the network to %s", addr, written, from_addr)

    def _handle_store_file(self, from_addr: str, msg: MessageStoreFile) -> None:
        peer = self._peer(from_addr)
        n = self.storage.write(msg.owner_id, msg.key, _LimitedReader(peer, msg.size))
        log.info("[%s] written %d bytes to disk", self.transport.addr(), n)
        peer.close_stream()