"""Identifiers, key hashing and AES-CTR stream encryption."""

from __future__ import annotations

import hashlib
import os
import secrets
from typing import BinaryIO

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

CHUNK_SIZE = 32 * 1024
BLOCK_SIZE = 16


def generate_id() -> str:
    """Return a random 32-byte identifier as 64 hex characters."""
    return secrets.token_hex(32)


def hash_key(key: str) -> str:
    """Return the hex MD5 digest of a key."""
    return hashlib.md5(key.encode()).hexdigest()


def new_encryption_key() -> bytes:
    """Return a random 32-byte (AES-256) key."""
    return os.urandom(32)


def _aes(key: bytes) -> algorithms.AES:
    # Raises ValueError for key sizes AES does not accept.
    return algorithms.AES(key)


def _xor_copy(context, src: BinaryIO, dst: BinaryIO) -> int:
    written = BLOCK_SIZE
    while chunk := src.read(CHUNK_SIZE):
        out = context.update(chunk)
        dst.write(out)
        written += len(out)
    tail = context.finalize()
    if tail:
        dst.write(tail)
        written += len(tail)
    return written


def copy_encrypt(key: bytes, src: BinaryIO, dst: BinaryIO) -> int:
    """Encrypt ``src`` into ``dst``, prefixed by a random IV.

    Returns the number of bytes written, the IV included.
    """
    algorithm = _aes(key)
    iv = os.urandom(BLOCK_SIZE)
    dst.write(iv)
    encryptor = Cipher(algorithm, modes.CTR(iv)).encryptor()
    return _xor_copy(encryptor, src, dst)


def copy_decrypt(key: bytes, src: BinaryIO, dst: BinaryIO) -> int:
    """Decrypt IV-prefixed data from ``src`` into ``dst``.

    Returns the plaintext length plus the IV length.
    """
    algorithm = _aes(key)
    iv = src.read(BLOCK_SIZE)
    if len(iv) < BLOCK_SIZE:
        raise ValueError("input too short to hold an initialization vector")
    decryptor = Cipher(algorithm, modes.CTR(iv)).decryptor()
    return _xor_copy(decryptor, src, dst)