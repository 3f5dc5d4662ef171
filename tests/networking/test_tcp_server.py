import socket
import threading

import pytest

from networking.errors import ConnectionRejected, ListenerError
from networking.tcp_server import TcpServer, listen_and_serve


class RecordingHandler:
    """
    Connection handler used for testing.

    Records the peer of every connection and allows the test
    to wait until a given number of connections were handled.
    """

    def __init__(self, behaviour=None):
        self.peers = []
        self._lock = threading.Lock()
        self._cond = threading.Condition(self._lock)
        self._behaviour = behaviour

    def __call__(self, conn) -> None:
        with self._cond:
            self.peers.append(conn.peer)
            self._cond.notify_all()

        if self._behaviour is not None:
            self._behaviour(conn)

    def wait_for(self, count: int, timeout_s: float) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: len(self.peers) >= count, timeout_s)


def _start(handler) -> TcpServer:
    server = TcpServer(
        host="127.0.0.1",
        port=0,
        handler=handler,
        name="test",
        accept_timeout_s=0.1,
    )
    server.start()
    return server


@pytest.mark.networking
def test_tcp_server_runs_handler_per_connection():
    handler = RecordingHandler()
    server = _start(handler)
    try:
        host, port = server.address

        for _ in range(3):
            with socket.create_connection((host, port), timeout=2.0):
                pass

        assert handler.wait_for(3, 2.0) is True
        assert len(set(handler.peers)) == 3
    finally:
        server.stop()


@pytest.mark.networking
def test_tcp_server_closes_connection_after_handler_returns():
    server = _start(RecordingHandler(lambda conn: conn.write(b"bye")))
    try:
        with socket.create_connection(server.address, timeout=2.0) as s:
            data = b""
            while True:
                chunk = s.recv(16)
                if not chunk:
                    break
                data += chunk

        assert data == b"bye"
    finally:
        server.stop()


@pytest.mark.networking
@pytest.mark.parametrize("error", [RuntimeError("boom"), ConnectionRejected("nope")])
def test_handler_error_does_not_stop_server(error):
    def behaviour(conn):
        raise error

    handler = RecordingHandler(behaviour)
    server = _start(handler)
    try:
        for _ in range(2):
            with socket.create_connection(server.address, timeout=2.0) as s:
                # the failing connection is closed by the server
                assert s.recv(16) == b""

        assert handler.wait_for(2, 2.0) is True
    finally:
        server.stop()


@pytest.mark.networking
def test_handlers_run_concurrently():
    release = threading.Event()
    entered = threading.Barrier(3, timeout=2.0)

    def behaviour(conn):
        entered.wait()
        release.wait(2.0)

    server = _start(RecordingHandler(behaviour))
    clients = []
    try:
        for _ in range(2):
            clients.append(socket.create_connection(server.address, timeout=2.0))

        # both handlers are blocked at the same time
        entered.wait()
        release.set()
    finally:
        for c in clients:
            c.close()
        server.stop()


@pytest.mark.networking
def test_stop_unblocks_idle_connections():
    def behaviour(conn):
        conn.read_chunk()

    handler = RecordingHandler(behaviour)
    server = _start(handler)

    client = socket.create_connection(server.address, timeout=2.0)
    try:
        assert handler.wait_for(1, 2.0) is True
        server.stop()
        assert client.recv(16) == b""
    finally:
        client.close()


@pytest.mark.networking
def test_bind_failure_raises_listener_error():
    first = _start(RecordingHandler())
    try:
        host, port = first.address

        second = TcpServer(host=host, port=port, handler=RecordingHandler())
        # Linux refuses a second listener on an active port even with SO_REUSEADDR
        with pytest.raises(ListenerError):
            second.start()
    finally:
        first.stop()


@pytest.mark.networking
def test_address_requires_listening_server():
    server = TcpServer(host="127.0.0.1", port=0, handler=RecordingHandler())

    with pytest.raises(RuntimeError):
        server.address


@pytest.mark.networking
def test_listen_and_serve_bind_failure_is_fatal():
    first = _start(RecordingHandler())
    try:
        host, port = first.address

        with pytest.raises(ListenerError):
            listen_and_serve(host, port, RecordingHandler(), name="test")
    finally:
        first.stop()
