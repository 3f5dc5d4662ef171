# protocol/setup.py
from typing import Optional

from networking.connection import ConnHandler, fixed_size_conn_handler, line_conn_handler
from protocol.dispatcher import MessageDispatcher
from protocol.message import FRAME_SIZE, Message
from protocol.message_types import MessageType
from protocol import echo, handlers, prime

from membership.room import Room
from membership.handlers import make_chat_handler
from utils.logging import get_logger


def setup_price_dispatcher(server_name: str = "means") -> MessageDispatcher:
	"""
	Dispatcher for the price protocol with INSERT and QUERY wired.
	"""
	dispatcher = MessageDispatcher(server_name=server_name)

	dispatcher.register(MessageType.INSERT, handlers.handle_insert)
	dispatcher.register(MessageType.QUERY, handlers.handle_query)

	return dispatcher


def make_price_frame_handler(dispatcher: MessageDispatcher, server_name: str = "means"):
	"""
	Create the frame handler for the price protocol.

	Frames that do not decode (short, or an unknown tag byte) are dropped
	without a response and the connection stays open.
	"""
	log = get_logger(__name__, server_name)

	def handle_price_frame(frame: bytes, prices: handlers.PriceStore) -> Optional[bytes]:
		try:
			msg = Message.decode(frame)
		except ValueError as exc:
			log.debug(f"Dropping price frame {frame!r}: {exc}")
			return None

		return dispatcher.dispatch(msg, prices)

	return handle_price_frame


def setup_protocol(protocol: str, server_name: Optional[str] = None) -> ConnHandler:
	"""
	Build the connection handler serving `protocol`.

	- echo:  raw bytes copied back unchanged
	- prime: line-delimited JSON primality queries
	- means: fixed 9-byte price frames, one PriceStore per connection
	- chat:  line-based chat sharing one Room across connections
	"""
	if server_name is None:
		server_name = protocol

	if protocol == "echo":
		return echo.handle_echo

	if protocol == "prime":
		return line_conn_handler(prime.handle_prime_request)

	if protocol == "means":
		dispatcher = setup_price_dispatcher(server_name=server_name)
		return fixed_size_conn_handler(
			FRAME_SIZE,
			make_price_frame_handler(dispatcher, server_name=server_name),
			state_factory=handlers.PriceStore,
		)

	if protocol == "chat":
		room = Room(server_name=server_name)
		return make_chat_handler(room, server_name=server_name)

	raise ValueError(f"Unsupported protocol: {protocol}")
