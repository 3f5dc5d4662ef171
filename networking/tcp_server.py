import socket
import threading
from typing import Optional, Tuple

from networking.connection import Connection, ConnHandler
from networking.errors import ConnectionRejected, ListenerError
from utils.logging import get_logger


class TcpServer:
    """
    Multi-threaded TCP server running one connection handler per client.

    Responsibilities:
    - Bind and accept incoming TCP connections, without limit.
    - Spawn one thread per connection running the handler.
    - Log handler errors; they never stop the accept loop.
    - Track active connections for graceful shutdown.

    The server does NOT interpret the bytes it carries.
    """

    def __init__(
        self,
        host: str,
        port: int,
        handler: ConnHandler,
        name: str = "server",
        accept_timeout_s: float = 0.5,
        max_frame_size: int = 1024 * 1024,
        backlog: int = 128,
    ):
        # Network binding parameters
        self._host = host
        self._port = port

        # Handler driving each accepted connection
        self._handler = handler
        self._name = name
        self._log = get_logger(__name__, name)

        # Accept polling interval and limits
        self._accept_timeout_s = accept_timeout_s
        self._max_frame_size = max_frame_size
        self._backlog = backlog

        # Shutdown coordination
        self._stop_event = threading.Event()

        # Listening socket and accept thread
        self._server_sock: Optional[socket.socket] = None
        self._accept_thread: Optional[threading.Thread] = None

        # Tracking of active connections and threads
        self._lock = threading.Lock()
        self._connections: set[Connection] = set()
        self._conn_threads: set[threading.Thread] = set()

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port). Only valid once the server is listening."""
        if self._server_sock is None:
            raise RuntimeError("Server is not listening")
        host, port = self._server_sock.getsockname()[:2]
        return host, port

    def start(self) -> None:
        """
        Start the TCP server in the background.

        Creates the listening socket and launches the accept loop
        in a dedicated daemon thread.
        """
        if self._accept_thread is not None:
            raise RuntimeError("Server already started")

        self._bind()

        t = threading.Thread(
            target=self._run_accept_thread,
            name=f"{self._name}-accept",
            daemon=True,
        )
        self._accept_thread = t
        t.start()

    def serve_forever(self) -> None:
        """
        Accept connections in the calling thread until stop() is called.

        Raises ListenerError if binding or accepting fails.
        """
        if self._accept_thread is not None:
            raise RuntimeError("Server already started in background")

        if self._server_sock is None:
            self._bind()

        self._accept_loop()

    def stop(self) -> None:
        """
        Gracefully stop the server.

        Signals all threads to stop, closes the listening socket,
        shuts down all active connections, and joins all threads.
        """
        self._stop_event.set()

        # Close listening socket to unblock accept()
        if self._server_sock is not None:
            try:
                self._server_sock.close()
            except OSError:
                pass

        # Snapshot active connections and unblock their reads
        with self._lock:
            conns = list(self._connections)

        for conn in conns:
            conn.shutdown()

        # Wait for accept thread to terminate
        if self._accept_thread is not None:
            self._accept_thread.join(timeout=5.0)
            self._accept_thread = None

        # Wait for all connection threads to terminate
        with self._lock:
            threads = list(self._conn_threads)

        for t in threads:
            t.join(timeout=5.0)

        # Cleanup internal state
        with self._lock:
            self._connections.clear()
            self._conn_threads.clear()

        self._server_sock = None

    def __enter__(self):
        """Context manager entry: start server."""
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        """Context manager exit: stop server."""
        self.stop()
        return False

    def _bind(self) -> None:
        self._stop_event.clear()

        server_sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            server_sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server_sock.bind((self._host, self._port))
            server_sock.listen(self._backlog)
        except OSError as exc:
            server_sock.close()
            raise ListenerError(
                f"failed to listen on {self._host}:{self._port}: {exc}"
            ) from exc

        # Timeout only bounds accept() so the stop flag is noticed
        server_sock.settimeout(self._accept_timeout_s)
        self._server_sock = server_sock

        host, port = self.address
        self._log.info(f"Listening on {host}:{port}")

    def _run_accept_thread(self) -> None:
        try:
            self._accept_loop()
        except ListenerError:
            self._log.critical("Accept loop terminated", exc_info=True)

    def _accept_loop(self) -> None:
        """
        Accept incoming connections and spawn one thread per connection.
        """
        assert self._server_sock is not None

        while not self._stop_event.is_set():
            try:
                sock, addr = self._server_sock.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if self._stop_event.is_set():
                    # Socket closed during shutdown
                    break
                raise ListenerError(f"accept failed: {exc}") from exc

            # Accepted sockets block without timeout
            sock.settimeout(None)

            conn = Connection(
                sock,
                peer=f"{addr[0]}:{addr[1]}",
                max_frame_size=self._max_frame_size,
            )

            with self._lock:
                self._connections.add(conn)

            t = threading.Thread(
                target=self._connection_loop,
                args=(conn,),
                name=f"{self._name}-conn-{conn.peer}",
                daemon=True,
            )
            with self._lock:
                self._conn_threads.add(t)
            t.start()

    def _connection_loop(self, conn: Connection) -> None:
        """
        Run the handler for one connection and report how it ended.
        """
        self._log.debug(f"Connection opened: {conn.peer}")
        try:
            self._handler(conn)
        except ConnectionRejected as exc:
            self._log.info(f"Connection {conn.peer} rejected: {exc}")
        except Exception as exc:
            if self._stop_event.is_set():
                self._log.debug(f"Connection {conn.peer} interrupted by shutdown: {exc}")
            else:
                self._log.warning(f"Connection {conn.peer} handler returned an error: {exc}")
        else:
            self._log.debug(f"Connection closed: {conn.peer}")
        finally:
            # Remove connection from tracking and close socket
            with self._lock:
                self._connections.discard(conn)

            conn.close()

            current = threading.current_thread()
            with self._lock:
                self._conn_threads.discard(current)


def listen_and_serve(host: str, port: int, handler: ConnHandler, name: str = "server", **kwargs) -> None:
    """
    Bind host:port and serve `handler` on every connection, forever.

    Blocks until the listener fails (ListenerError) or the calling
    thread is interrupted; live connections are shut down either way.
    """
    server = TcpServer(host=host, port=port, handler=handler, name=name, **kwargs)
    try:
        server.serve_forever()
    finally:
        server.stop()
