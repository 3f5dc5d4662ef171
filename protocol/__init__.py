from .message_types import MessageType
from .message import Message
from .dispatcher import MessageDispatcher, ProtocolError

__all__ = ["MessageType", "Message", "MessageDispatcher", "ProtocolError"]
