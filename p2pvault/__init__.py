"""Peer-to-peer content-addressed file storage with encrypted replication."""

__version__ = "0.1.0"