"""Demo network of three file servers replicating files to each other."""

from __future__ import annotations

import argparse
import io
import logging
import threading
import time

from .crypto import new_encryption_key
from .p2p.encoding import DefaultDecoder
from .p2p.tcp_transport import TCPTransport
from .p2p.transport import nop_handshake
from .server import FileServer
from .store import cas_path_transform

log = logging.getLogger(__name__)

DEMO_DATA = b"my big data file here!"


def sanitize_addr(addr: str) -> str:
    """Strip colons so an address can name a directory."""
    return addr.replace(":", "")


def make_server(listen_addr: str, *args: str) -> FileServer:
    """Build a file server on ``listen_addr`` that bootstraps from the given nodes."""
    transport = TCPTransport(listen_addr, handshake=nop_handshake, decoder=DefaultDecoder())
    server = FileServer(
        transport,
        storage_root=sanitize_addr(listen_addr) + "_network",
        path_transform=cas_path_transform,
        bootstrap_nodes=args,
        enc_key=new_encryption_key(),
    )
    transport.on_peer = server.on_peer
    return server


def _run(server: FileServer) -> None:
    try:
        server.start()
    except Exception:
        log.exception("file server failed")


def _start_in_background(server: FileServer) -> None:
    threading.Thread(target=_run, args=(server,), daemon=True).start()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="p2pvault", description="Run three local nodes and replicate files between them."
    )
    parser.add_argument("--rounds", type=int, default=20, help="number of files to store and fetch")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    s1 = make_server(":3000", "")
    s2 = make_server(":7000", "")
    s3 = make_server(":5000", ":3000", ":7000")

    _start_in_background(s1)
    time.sleep(0.5)
    _start_in_background(s2)
    time.sleep(2)
    _start_in_background(s3)
    time.sleep(2)

    for i in range(args.rounds):
        key = f"picture_{i}.png"
        s3.store(key, io.BytesIO(DEMO_DATA))
        s3.storage.delete(s3.id, key)
        with s3.get(key) as f:
            print(f.read().decode())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())