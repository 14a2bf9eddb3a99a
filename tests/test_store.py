import io

import pytest

from p2pvault.crypto import copy_encrypt, generate_id, new_encryption_key
from p2pvault.store import (
    DEFAULT_ROOT,
    PathKey,
    Store,
    cas_path_transform,
    default_path_transform,
)


@pytest.fixture
def store(tmp_path):
    s = Store(root=str(tmp_path / "p2pnetwork"), path_transform=cas_path_transform)
    yield s
    s.clear()


def test_path_transform_func():
    path_key = cas_path_transform("anythingFile")
    assert path_key.path_name == "68044/29f74/181a6/3c50c/3d81d/733a1/2f14a/353ff"
    assert path_key.filename == "6804429f74181a63c50c3d81d733a12f14a353ff"


def test_path_key_helpers():
    path_key = cas_path_transform("anythingFile")
    assert path_key.first_path_name() == "68044"
    assert path_key.full_path() == (
        "68044/29f74/181a6/3c50c/3d81d/733a1/2f14a/353ff/"
        "6804429f74181a63c50c3d81d733a12f14a353ff"
    )
    assert PathKey("a", "b").full_path() == "a/b"


def test_default_path_transform():
    assert default_path_transform("photo") == PathKey("photo", "photo")


def test_store_defaults():
    s = Store()
    assert s.root == DEFAULT_ROOT == "p2pnetwork"
    assert s.path_transform("k") == PathKey("k", "k")


def test_store(store):
    owner_id = generate_id()
    data = b"some jpg bytes"
    for i in range(50):
        key = f"any_{i}"
        assert store.write(owner_id, key, io.BytesIO(data)) == len(data)
        assert store.has(owner_id, key)

        size, f = store.read(owner_id, key)
        with f:
            assert f.read() == data
        assert size == len(data)

        store.delete(owner_id, key)
        assert not store.has(owner_id, key)


def test_read_missing_raises(store):
    with pytest.raises(FileNotFoundError):
        store.read(generate_id(), "missing")


def test_delete_missing_is_quiet(store):
    owner_id = generate_id()
    store.delete(owner_id, "missing")
    assert not store.has(owner_id, "missing")


def test_owners_are_separate(store):
    a, b = generate_id(), generate_id()
    store.write(a, "file", io.BytesIO(b"data"))
    assert store.has(a, "file")
    assert not store.has(b, "file")


def test_write_decrypt_round_trip(store):
    key = new_encryption_key()
    payload = b"my big data file here!"
    enc = io.BytesIO()
    copy_encrypt(key, io.BytesIO(payload), enc)
    enc.seek(0)
    owner_id = generate_id()
    assert store.write_decrypt(key, owner_id, "pic.png", enc) == 16 + len(payload)
    size, f = store.read(owner_id, "pic.png")
    with f:
        assert f.read() == payload
    assert size == len(payload)


def test_clear_removes_root(tmp_path):
    root = tmp_path / "vault"
    s = Store(root=str(root), path_transform=cas_path_transform)
    s.write("owner", "k", io.BytesIO(b"abc"))
    assert root.exists()
    s.clear()
    assert not root.exists()
    s.clear()
    assert not root.exists()