class ServerError(Exception):
    """Base class for errors raised by the connection engine."""


class ListenerError(ServerError):
    """Binding or accepting failed. No further connections can be served."""


class FramingError(ServerError):
    """The byte stream could not be split into a complete frame."""


class HandlerError(ServerError):
    """A protocol handler raised while processing a frame."""


class FrameWriteError(ServerError):
    """A response frame could not be written to the connection."""


class ConnectionRejected(Exception):
    """
    Raised by a protocol handler to close its connection on purpose.

    This is not a failure: the server logs it and closes the connection
    without treating it as an error.
    """
