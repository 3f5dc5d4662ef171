import socket
import threading
from typing import Any, Callable, Optional

from networking.errors import FrameWriteError, FramingError, HandlerError, ConnectionRejected
from networking.framing import BYTE, LINE, WORD, FixedSizeSplitter, Splitter


FrameHandler = Callable[..., Optional[bytes]]
ConnHandler = Callable[["Connection"], None]
StateFactory = Callable[[], Any]


class Connection:
    """
    One accepted TCP connection.

    Owns the socket and its read buffer. Reads are only ever performed by
    the thread running the connection handler; writes may come from other
    threads (e.g. chat broadcasts) and are serialized by a lock.
    """

    def __init__(
        self,
        sock: socket.socket,
        peer: str = "?",
        recv_size: int = 4096,
        max_frame_size: int = 1024 * 1024,
    ):
        self._sock = sock
        self.peer = peer

        self._recv_size = recv_size
        self._max_frame_size = max_frame_size

        self._buf = bytearray()
        self._eof = False

        self._write_lock = threading.Lock()
        self._closed = False

    def read_frame(self, splitter: Splitter) -> Optional[bytes]:
        """
        Return the next frame according to `splitter`.

        Returns None once the peer has closed the stream and nothing is
        left in the buffer. Raises FramingError when the stream ends in the
        middle of a frame or a frame grows past max_frame_size.
        """
        while True:
            advance, frame = splitter.split(self._buf, self._eof)
            if advance:
                del self._buf[:advance]

            if frame is not None:
                return frame

            if self._eof:
                if not self._buf:
                    return None
                if advance == 0:
                    raise FramingError(
                        f"{len(self._buf)} trailing bytes do not form a {splitter.name} frame"
                    )
                continue

            if len(self._buf) > self._max_frame_size:
                raise FramingError(
                    f"{splitter.name} frame exceeds maximum size of {self._max_frame_size} bytes"
                )

            chunk = self._sock.recv(self._recv_size)
            if chunk == b"":
                # Peer closed its side
                self._eof = True
            else:
                self._buf.extend(chunk)

    def read_chunk(self) -> bytes:
        """
        Return whatever bytes are available, unframed.

        Buffered bytes are drained first. Returns b"" at end of stream.
        """
        if self._buf:
            data = bytes(self._buf)
            self._buf.clear()
            return data

        if self._eof:
            return b""

        chunk = self._sock.recv(self._recv_size)
        if chunk == b"":
            self._eof = True
        return chunk

    def write(self, data: bytes) -> None:
        with self._write_lock:
            self._sock.sendall(data)

    def shutdown(self) -> None:
        """Unblock any pending recv/send without releasing the socket."""
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        self.shutdown()
        try:
            self._sock.close()
        except OSError:
            pass

    def __repr__(self) -> str:
        return f"Connection(peer={self.peer!r})"


def serve_frames(
    conn: Connection,
    splitter: Splitter,
    handler: FrameHandler,
    state: Any = None,
) -> None:
    """
    Drive one connection until the peer closes it.

    Frames are handled strictly one at a time, in arrival order. A non-None
    handler result is written back followed by the splitter's delimiter.
    When `state` is given it is passed to every handler call.

    Raises:
    - FramingError if the stream cannot be split.
    - HandlerError if the handler raised (cause chained).
    - FrameWriteError if the response could not be written.
    - ConnectionRejected unchanged, when the handler rejects the peer.
    """
    while True:
        frame = conn.read_frame(splitter)
        if frame is None:
            return

        try:
            if state is None:
                response = handler(frame)
            else:
                response = handler(frame, state)
        except ConnectionRejected:
            raise
        except Exception as exc:
            raise HandlerError(f"handler failed on {splitter.name} frame: {exc}") from exc

        if response is None:
            continue

        try:
            conn.write(bytes(response) + splitter.delimiter)
        except OSError as exc:
            raise FrameWriteError(f"failed to write response: {exc}") from exc


def frame_conn_handler(
    splitter: Splitter,
    handler: FrameHandler,
    state_factory: Optional[StateFactory] = None,
) -> ConnHandler:
    """
    Build a connection handler running serve_frames() with `splitter`.

    state_factory, if given, is called once per connection and its result
    is handed to every handler call on that connection.
    """

    def handle(conn: Connection) -> None:
        state = state_factory() if state_factory is not None else None
        serve_frames(conn, splitter, handler, state)

    return handle


def line_conn_handler(handler: FrameHandler, state_factory: Optional[StateFactory] = None) -> ConnHandler:
    return frame_conn_handler(LINE, handler, state_factory)


def word_conn_handler(handler: FrameHandler, state_factory: Optional[StateFactory] = None) -> ConnHandler:
    return frame_conn_handler(WORD, handler, state_factory)


def byte_conn_handler(handler: FrameHandler, state_factory: Optional[StateFactory] = None) -> ConnHandler:
    return frame_conn_handler(BYTE, handler, state_factory)


def fixed_size_conn_handler(
    size: int,
    handler: FrameHandler,
    state_factory: Optional[StateFactory] = None,
) -> ConnHandler:
    return frame_conn_handler(FixedSizeSplitter(size), handler, state_factory)
