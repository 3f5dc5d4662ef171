# membership/handlers.py
from typing import Optional

from membership.member import Member, decode_text, is_valid_username
from membership.room import Room
from networking.connection import Connection, ConnHandler, serve_frames
from networking.errors import ConnectionRejected
from networking.framing import LINE
from utils.logging import get_logger


PROMPT = b"what's your name?\n"


class ChatSession:
	"""
	Per-connection chat state.

	The first line received is the candidate username; every later line is
	relayed to the room. Lives exactly as long as its connection.
	"""

	def __init__(self, room: Room, conn: Connection, log):
		self._room = room
		self._conn = conn
		self._log = log
		self.member: Optional[Member] = None

	@property
	def joined(self) -> bool:
		return self.member is not None

	def handle_line(self, line: bytes) -> Optional[bytes]:
		if not self.joined:
			self._join(line)
			return None

		self._room.broadcast(self.member, decode_text(line))
		return None

	def leave(self) -> None:
		if self.member is None:
			return
		self._room.leave(self.member)
		self.member = None

	def _join(self, line: bytes) -> None:
		if not is_valid_username(line):
			raise ConnectionRejected(f"invalid username {line[:32]!r}")

		member = Member(username=line.decode("ascii"), conn=self._conn)

		if not self._room.join(member):
			raise ConnectionRejected(f"username {member.username} already in use")

		self.member = member
		self._log.debug(f"{self._conn.peer} joined as {member.username}")


def make_chat_handler(room: Room, server_name: str = "chat") -> ConnHandler:
	"""
	Factory returning a connection handler bound to a shared Room.

	Each connection is prompted for a name, joins the room on a valid
	name and leaves it when the connection ends, however it ends.
	"""
	log = get_logger(__name__, server_name)

	def handle_chat(conn: Connection) -> None:
		conn.write(PROMPT)

		session = ChatSession(room, conn, log)
		try:
			serve_frames(conn, LINE, session.handle_line)
		finally:
			session.leave()

	return handle_chat
