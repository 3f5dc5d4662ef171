# Requires `PROTOCOL=means python server.py` to be running
import socket
import struct

from protocol.message import Message
from protocol.message_types import MessageType

HOST = "127.0.0.1"
PORT = 10002

inserts = [
    Message(MessageType.INSERT, 12345, 101),
    Message(MessageType.INSERT, 12346, 102),
    Message(MessageType.INSERT, 12347, 100),
    Message(MessageType.INSERT, 40960, 5),
]
query = Message(MessageType.QUERY, 12288, 16384)

with socket.create_connection((HOST, PORT), timeout=2.0) as s:
    for msg in inserts:
        s.sendall(msg.to_bytes())
    s.sendall(query.to_bytes())

    data = b""
    while len(data) < 4:
        chunk = s.recv(4 - len(data))
        if not chunk:
            break
        data += chunk

print("mean:", struct.unpack(">i", data)[0])  # expected 101
