import pytest

from p2pvault.p2p.transport import (
    RPC,
    Peer,
    Transport,
    nop_handshake,
)


class RecordingPeer(Peer):
    def __init__(self):
        self.sent = []
        self.closed = False
        self.streams_closed = 0

    @property
    def remote_addr(self):
        return "127.0.0.1:4000"

    def send(self, data):
        self.sent.append(data)

    def write(self, data):
        self.sent.append(data)
        return len(data)

    def read(self, size):
        return b""

    def close_stream(self):
        self.streams_closed += 1

    def close(self):
        self.closed = True


def test_rpc_defaults():
    rpc = RPC()
    assert rpc == RPC(from_addr="", payload=b"", stream=False)


def test_rpc_fields():
    rpc = RPC(from_addr="127.0.0.1:4000", payload=b"abc", stream=True)
    assert rpc.from_addr == "127.0.0.1:4000"
    assert rpc.payload == b"abc"
    assert rpc.stream is True


def test_nop_handshake_leaves_peer_untouched():
    peer = RecordingPeer()
    assert nop_handshake(peer) is None
    assert peer.sent == []
    assert peer.closed is False
    assert peer.streams_closed == 0


def test_peer_is_abstract():
    with pytest.raises(TypeError):
        Peer()


def test_transport_is_abstract():
    with pytest.raises(TypeError):
        Transport()