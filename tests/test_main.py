import pytest

from p2pvault.main import main, make_server, sanitize_addr
from p2pvault.store import cas_path_transform


def test_sanitize_addr_removes_colons():
    assert sanitize_addr(":3000") == "3000"
    assert sanitize_addr("localhost:5000") == "localhost5000"
    assert ":" not in sanitize_addr("[::1]:7000")


def test_make_server_wires_transport_and_store():
    server = make_server(":5000", ":3000", ":7000")
    assert server.transport.addr() == ":5000"
    assert server.storage.root == "5000_network"
    assert server.storage.path_transform is cas_path_transform
    assert server.bootstrap_nodes == [":3000", ":7000"]
    assert server.transport.on_peer == server.on_peer
    assert len(server.enc_key) == 32


def test_make_server_keys_differ():
    a = make_server(":3000", "")
    b = make_server(":7000", "")
    assert a.enc_key != b.enc_key
    assert a.id != b.id
    assert a.bootstrap_nodes == [""]


def test_main_rejects_bad_rounds():
    with pytest.raises(SystemExit):
        main(["--rounds", "many"])