from typing import Any, Callable, Dict, Optional
from protocol.message import Message
from protocol.message_types import MessageType
from utils.logging import get_logger


Handler = Callable[[Message, Any], Optional[bytes]]


class ProtocolError(Exception):
    pass


class MessageDispatcher:
    def __init__(self, server_name: str = "means"):
        self._handlers: Dict[MessageType, Handler] = {}
        self._log = get_logger(__name__, server_name)

    def register(self, msg_type: MessageType, handler: Handler) -> None:
        if not isinstance(msg_type, MessageType):
            raise TypeError("msg_type must be MessageType")

        if not callable(handler):
            raise TypeError("handler must be callable")

        if msg_type in self._handlers:
            raise ProtocolError(f"Handler already registered for {msg_type}")

        self._handlers[msg_type] = handler

    def dispatch(self, msg: Message, state: Any) -> Optional[bytes]:
        if not isinstance(msg, Message):
            raise TypeError("msg must be Message")

        handler = self._handlers.get(msg.msg_type)
        if handler is None:
            self._handle_unknown_message(msg)
            return None

        try:
            return handler(msg, state)
        except Exception as exc:
            self._handle_handler_error(msg, exc)

    def _handle_unknown_message(self, msg: Message) -> None:
        # message type known to the codec but not wired on this server:
        # log and ignore, no side effects
        self._log.debug(f"No handler for {msg.msg_type.name}, ignoring")

    def _handle_handler_error(self, msg: Message, exc: Exception) -> None:
        # bug in the handler: propagate so the connection is closed
        raise exc
