"""Content-addressed on-disk file store."""

from __future__ import annotations

import hashlib
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable

from .crypto import CHUNK_SIZE, copy_decrypt

log = logging.getLogger(__name__)

DEFAULT_ROOT = "p2pnetwork"
_BLOCK = 5


@dataclass(frozen=True)
class PathKey:
    """Directory path and filename under which a key is stored."""

    path_name: str
    filename: str

    def first_path_name(self) -> str:
        """Return the first component of the directory path."""
        return self.path_name.split("/")[0]

    def full_path(self) -> str:
        """Return the directory path joined with the filename."""
        return f"{self.path_name}/{self.filename}"


PathTransform = Callable[[str], PathKey]


def cas_path_transform(key: str) -> PathKey:
    """Map a key to a path built from 5-character blocks of its SHA-1."""
    digest = hashlib.sha1(key.encode()).hexdigest()
    blocks = [digest[i : i + _BLOCK] for i in range(0, len(digest) - _BLOCK + 1, _BLOCK)]
    return PathKey(path_name="/".join(blocks), filename=digest)


def default_path_transform(key: str) -> PathKey:
    """Use the key itself as both directory and filename."""
    return PathKey(path_name=key, filename=key)


class Store:
    """Stores files under ``root/<owner_id>/<transformed path>``."""

    def __init__(self, root: str | None = None, path_transform: PathTransform | None = None):
        self.root = root or DEFAULT_ROOT
        self.path_transform = path_transform or default_path_transform

    def _full_path(self, owner_id: str, key: str) -> Path:
        return Path(self.root, owner_id, self.path_transform(key).full_path())

    def has(self, owner_id: str, key: str) -> bool:
        """Return whether a file is stored for this owner and key."""
        return self._full_path(owner_id, key).exists()

    def clear(self) -> None:
        """Remove the whole store root."""
        shutil.rmtree(self.root, ignore_errors=False) if Path(self.root).exists() else None

    def delete(self, owner_id: str, key: str) -> None:
        """Remove the top directory holding the key's file."""
        path_key = self.path_transform(key)
        target = Path(self.root, owner_id, path_key.first_path_name())
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            elif target.exists() or target.is_symlink():
                target.unlink()
        finally:
            log.info("deleted [%s] from disk", path_key.filename)

    def _open_for_writing(self, owner_id: str, key: str) -> BinaryIO:
        path_key = self.path_transform(key)
        Path(self.root, owner_id, path_key.path_name).mkdir(parents=True, exist_ok=True)
        return open(Path(self.root, owner_id, path_key.full_path()), "wb")

    def write(self, owner_id: str, key: str, src: BinaryIO) -> int:
        """Copy ``src`` into the store; return the number of bytes written."""
        written = 0
        with self._open_for_writing(owner_id, key) as f:
            while chunk := src.read(CHUNK_SIZE):
                f.write(chunk)
                written += len(chunk)
        return written

    def write_decrypt(self, enc_key: bytes, owner_id: str, key: str, src: BinaryIO) -> int:
        """Decrypt ``src`` into the store; return the decrypted count plus the IV."""
        with self._open_for_writing(owner_id, key) as f:
            return copy_decrypt(enc_key, src, f)

    def read(self, owner_id: str, key: str) -> tuple[int, BinaryIO]:
        """Return the file's size and an open binary file; the caller closes it."""
        f = open(self._full_path(owner_id, key), "rb")
        try:
            size = Path(f.name).stat().st_size
        except OSError:
            f.close()
            raise
        return size, f