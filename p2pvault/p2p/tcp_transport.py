"""TCP implementation of the peer and transport interfaces."""

from __future__ import annotations

import logging
import queue
import socket
import threading
from typing import Callable

from .encoding import Decoder, DefaultDecoder
from .transport import RPC, HandshakeFunc, Peer, Transport, nop_handshake

log = logging.getLogger(__name__)

RPC_QUEUE_SIZE = 1024

OnPeerFunc = Callable[[Peer], None]


def _split_addr(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"address {addr!r} is missing a port")
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"address {addr!r} has an invalid port") from None
    if not 0 <= port_number <= 65535:
        raise ValueError(f"address {addr!r} has a port out of range")
    return host.strip("[]"), port_number


def _format_addr(sockaddr) -> str:
    if isinstance(sockaddr, tuple):
        host, port = sockaddr[0], sockaddr[1]
        if ":" in host:
            return f"[{host}]:{port}"
        return f"{host}:{port}"
    return str(sockaddr)


class TCPPeer(Peer):
    """A remote node reached over a TCP connection."""

    def __init__(self, sock: socket.socket, outbound: bool):
        self.sock = sock
        self.outbound = outbound
        self._stream_done = threading.Semaphore(0)
        try:
            self._remote_addr = _format_addr(sock.getpeername())
        except OSError:
            self._remote_addr = ""

    @property
    def remote_addr(self) -> str:
        return self._remote_addr

    def send(self, data: bytes) -> None:
        """Send all of ``data``."""
        self.sock.sendall(data)

    def write(self, data: bytes) -> int:
        """Send all of ``data`` and return its length."""
        self.sock.sendall(data)
        return len(data)

    def read(self, size: int) -> bytes:
        """Read at most ``size`` bytes; empty bytes once the peer has closed."""
        return self.sock.recv(size)

    def close_stream(self) -> None:
        """Let the read loop resume after an incoming stream was consumed."""
        self._stream_done.release()

    def _wait_stream(self) -> None:
        self._stream_done.acquire()

    def close(self) -> None:
        self.sock.close()


class TCPTransport(Transport):
    """Listens for and dials TCP peers, queueing the messages they send."""

    def __init__(
        self,
        listen_addr: str,
        handshake: HandshakeFunc | None = None,
        decoder: Decoder | None = None,
        on_peer: OnPeerFunc | None = None,
    ):
        self.listen_addr = listen_addr
        self.handshake = handshake or nop_handshake
        self.decoder = decoder or DefaultDecoder()
        self.on_peer = on_peer
        self.listener: socket.socket | None = None
        self._rpcs: queue.Queue[RPC] = queue.Queue(maxsize=RPC_QUEUE_SIZE)
        self._closed = threading.Event()

    def addr(self) -> str:
        return self.listen_addr

    def consume(self, timeout: float | None = None) -> RPC:
        """Return the next incoming message; TimeoutError if none arrives in time."""
        try:
            return self._rpcs.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError("no message received") from None

    def close(self) -> None:
        if self.listener is None:
            raise RuntimeError("transport is not listening")
        self._closed.set()
        self.listener.close()

    def dial(self, addr: str) -> None:
        """Connect to ``addr`` and serve the connection in the background."""
        host, port = _split_addr(addr)
        sock = socket.create_connection((host or "localhost", port))
        threading.Thread(target=self._handle_conn, args=(sock, True), daemon=True).start()

    def listen_and_accept(self) -> None:
        """Bind the listening socket and accept connections in the background."""
        host, port = _split_addr(self.listen_addr)
        if host:
            listener = socket.create_server((host, port))
        elif socket.has_dualstack_ipv6():
            listener = socket.create_server(
                ("", port), family=socket.AF_INET6, dualstack_ipv6=True
            )
        else:
            listener = socket.create_server(("", port))
        self.listener = listener
        self._closed.clear()
        threading.Thread(target=self._accept_loop, args=(listener,), daemon=True).start()
        log.info("TCP transport listening on port: %s", self.listen_addr)

    def _accept_loop(self, listener: socket.socket) -> None:
        while True:
            try:
                sock, _ = listener.accept()
            except OSError as exc:
                if self._closed.is_set() or listener.fileno() == -1:
                    return
                log.warning("TCP accept error: %s", exc)
                continue
            threading.Thread(target=self._handle_conn, args=(sock, False), daemon=True).start()

    def _handle_conn(self, sock: socket.socket, outbound: bool) -> None:
        peer = TCPPeer(sock, outbound)
        error: BaseException | None = None
        try:
            self.handshake(peer)
            if self.on_peer is not None:
                self.on_peer(peer)
            while True:
                rpc = self.decoder.decode(peer)
                if rpc is None:
                    return
                rpc.from_addr = peer.remote_addr
                if rpc.stream:
                    log.info("[%s] incoming stream, waiting...", peer.remote_addr)
                    peer._wait_stream()
                    log.info("[%s] stream closed, resuming read loop", peer.remote_addr)
                    continue
                self._rpcs.put(rpc)
        except Exception as exc:  # any failure drops the peer
            error = exc
        finally:
            log.info("dropping peer connection: %s", error)
            sock.close()