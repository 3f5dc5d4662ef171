from enum import Enum


class MessageType(Enum):
    """Tag byte opening every price protocol frame."""

    INSERT = b"I"
    QUERY = b"Q"
