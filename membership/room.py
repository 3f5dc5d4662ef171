import threading
from typing import Dict, List

from membership.member import Member
from utils.logging import get_logger


class Room:
    """
    Thread-safe chat room: the members currently joined and their
    connections.

    A single lock guards the membership mapping, and every join, leave and
    broadcast runs entirely under it. Joins, leaves and relayed messages are
    therefore totally ordered, and every member observes them in that order.

    Delivery is best-effort per recipient: a member whose connection fails
    on write is skipped, the sender never sees the failure.
    """

    def __init__(self, server_name: str = "chat"):
        self._lock = threading.Lock()
        self._members: Dict[str, Member] = {}
        self._log = get_logger(__name__, server_name)

    def join(self, member: Member) -> bool:
        """
        Add `member` to the room.

        In one critical section: send the new member the list of names
        already present, insert it, announce it to everyone else.

        Returns False (and does nothing) if the username is taken.
        Raises OSError if the listing cannot be written to the new member;
        the member is not inserted in that case.
        """
        with self._lock:
            if member.username in self._members:
                return False

            names = " ".join(self._members)
            member.send_line(f"* the channel contains {names}")

            self._members[member.username] = member
            self._broadcast_locked(member, f"* {member.username} has entered the room")

        self._log.info(f"{member.username} joined")
        return True

    def leave(self, member: Member) -> bool:
        """
        Remove `member` and announce its departure.

        Returns False if `member` is not the current holder of its name.
        """
        with self._lock:
            if self._members.get(member.username) is not member:
                return False

            del self._members[member.username]
            self._broadcast_locked(member, f"* {member.username} has left the room")

        self._log.info(f"{member.username} left")
        return True

    def broadcast(self, sender: Member, text: str) -> int:
        """
        Relay `text` from `sender` to every other member as "[name] text".

        Returns the number of members the line was written to.
        """
        with self._lock:
            return self._broadcast_locked(sender, f"[{sender.username}] {text}")

    def list_members(self) -> List[str]:
        """
        Return a snapshot list of joined usernames, in join order.
        """
        with self._lock:
            return list(self._members)

    def __len__(self) -> int:
        with self._lock:
            return len(self._members)

    def _broadcast_locked(self, sender: Member, line: str) -> int:
        delivered = 0

        for username, member in self._members.items():
            if member is sender:
                continue

            try:
                member.send_line(line)
            except OSError as exc:
                self._log.debug(f"Delivery to {username} failed: {exc}")
                continue

            delivered += 1

        return delivered
