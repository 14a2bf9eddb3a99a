# p2pvault

A small peer-to-peer file store. Each node keeps files on its local disk in
a content-addressed layout. Nodes talk to each other over TCP. When a node
stores a file, it also streams an AES-CTR encrypted copy to every peer it
is connected to. When it lacks a file, it asks its peers for it.

## Install

```
pip install .
```

To run the tests, install the test extra:

```
pip install ".[test]"
pytest
```

## Demo

```
p2pvault
p2pvault --rounds 5
```

This starts three nodes on the local machine, listening on ports 3000,
7000 and 5000. The node on port 5000 connects to the other two. For each
round (20 unless `--rounds` says otherwise) it stores a small file named
`picture_<n>.png`, deletes it from its own disk, fetches it back from the
network and prints its contents. Each node keeps its files in a directory
named after its listen address with the colons removed, such as
`3000_network`. Progress is logged at INFO level.

## Library use

```python
import threading
from p2pvault.main import make_server

node = make_server(":4000", ":3000")   # listen on :4000, connect to :3000
threading.Thread(target=node.start, daemon=True).start()  # start() blocks

with open("notes.txt", "rb") as src:
    node.store("notes.txt", src)
with node.get("notes.txt") as f:        # an open binary file
    data = f.read()
node.stop()
```

`p2pvault.server.FileServer` is the node itself. It takes a transport plus
an optional storage root, path transform, bootstrap nodes, encryption key
and server id. If no key or id is given, it generates a random one.
`start()` listens, dials the bootstrap nodes in the background, and
handles incoming messages until `stop()` is called. It then closes the
transport.

The other parts can be used on their own:

- `p2pvault.store.Store` writes, reads, checks for (`has`), deletes and
  clears files by owner id and key. `write_decrypt` decrypts while it
  writes. `cas_path_transform` lays a key out on disk as the SHA-1 of the
  key, split into 5-character directories, with the full digest as the
  filename. `default_path_transform` uses the key as both directory and
  filename.
- `p2pvault.crypto` offers `copy_encrypt` and `copy_decrypt`, which use
  AES-CTR with the 16-byte IV written first. It also offers
  `new_encryption_key` (32 random bytes), `generate_id` (64 hex
  characters) and `hash_key` (MD5 as hex).
- `p2pvault.p2p.tcp_transport.TCPTransport` listens for and dials TCP
  peers. It reports each new peer through `on_peer`, and queues incoming
  messages for `consume(timeout)`. `consume` raises `TimeoutError` when
  nothing arrives in time.
- `p2pvault.p2p.encoding.DefaultDecoder` reads one type byte, then either
  marks a stream or takes a message payload from one read of at most 1028
  bytes.
- `p2pvault.server.encode_message` and `decode_message` convert
  `MessageStoreFile` and `MessageGetFile` to and from their compact JSON
  wire form.

## Limitations

- Peers are not authenticated. The only handshake provided,
  `nop_handshake`, accepts everyone.
- Each node generates its own encryption key in memory and never saves or
  shares it. Only the node that stored a file can decrypt the copies held
  by its peers, and only until that node restarts.
- `FileServer.get` waits a fixed half second after it asks for a file. It
  then reads a reply from every connected peer in turn, so every peer must
  hold the file.
- Apart from the three-node demo, no command runs a node. Long-running
  nodes have to be started from Python as shown above.