import struct
from protocol.message_types import MessageType


# tag byte + two signed 32-bit big-endian integers
_FRAME = struct.Struct(">cii")
_RESPONSE = struct.Struct(">i")

FRAME_SIZE = _FRAME.size

_INT32_MIN = -(2 ** 31)
_INT32_MAX = 2 ** 31 - 1


class Message:
	def __init__(self, msg_type: MessageType, arg1: int, arg2: int):
		self.msg_type = msg_type	# MessageType enum identifying the request
		self.arg1 = arg1			# timestamp (INSERT) or range start (QUERY)
		self.arg2 = arg2			# price (INSERT) or range end (QUERY)

		self._validate()

	def _validate(self):
		# ensure msg_type is a valid MessageType enum
		if not isinstance(self.msg_type, MessageType):
			raise ValueError(f"msg_type must be MessageType, got {self.msg_type}")

		# both arguments travel as signed 32-bit integers
		for name in ("arg1", "arg2"):
			value = getattr(self, name)
			if not isinstance(value, int) or isinstance(value, bool):
				raise ValueError(f"{name} must be int, got {type(value)}")
			if not _INT32_MIN <= value <= _INT32_MAX:
				raise ValueError(f"{name} out of int32 range: {value}")

	def __eq__(self, other):
		if not isinstance(other, Message):
			return NotImplemented
		return (self.msg_type, self.arg1, self.arg2) == (other.msg_type, other.arg1, other.arg2)

	def __repr__(self):
		return f"Message({self.msg_type.name}, {self.arg1}, {self.arg2})"

	def to_bytes(self) -> bytes:
		# return the 9-byte wire representation
		return _FRAME.pack(self.msg_type.value, self.arg1, self.arg2)

	@staticmethod
	def encode(msg) -> bytes:
		# wrapper for converting Message → bytes
		return msg.to_bytes()

	@staticmethod
	def decode(frame: bytes):
		# parse one 9-byte frame into a Message instance
		if len(frame) != FRAME_SIZE:
			raise ValueError(f"frame must be {FRAME_SIZE} bytes, got {len(frame)}")

		tag, arg1, arg2 = _FRAME.unpack(frame)

		try:
			msg_type = MessageType(tag)
		except ValueError:
			raise ValueError(f"Invalid message type: {tag!r}")

		return Message(msg_type, arg1, arg2)


def encode_mean(mean: int) -> bytes:
	# query responses are a single signed 32-bit big-endian integer
	return _RESPONSE.pack(mean)
