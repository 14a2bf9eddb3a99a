"""Peer and transport interfaces, the TCP transport and wire decoding."""