import re
from dataclasses import dataclass
from typing import Protocol


_USERNAME = re.compile(rb"[A-Za-z0-9]{1,16}")

# Chat text is relayed byte for byte; undecodable bytes survive the round trip
TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "surrogateescape"


class Writer(Protocol):
    def write(self, data: bytes) -> None:
        ...


def is_valid_username(raw: bytes) -> bool:
    """1 to 16 ASCII letters or digits, nothing else."""
    return _USERNAME.fullmatch(raw) is not None


def decode_text(raw: bytes) -> str:
    return raw.decode(TEXT_ENCODING, TEXT_ERRORS)


def encode_text(text: str) -> bytes:
    return text.encode(TEXT_ENCODING, TEXT_ERRORS)


@dataclass(eq=False)
class Member:
    username: str
    conn: Writer

    def send_line(self, text: str) -> None:
        """Write one newline-terminated line. Raises OSError on failure."""
        self.conn.write(encode_text(text) + b"\n")
