# protocol/handlers.py
from typing import Dict, Optional

from protocol.message import Message, encode_mean


class PriceStore:
	"""
	Prices inserted on one connection, keyed by timestamp.

	Created per connection and never shared, so it needs no lock.
	"""

	def __init__(self):
		self._prices: Dict[int, int] = {}

	def insert(self, timestamp: int, price: int) -> None:
		# a second insert at the same timestamp replaces the first
		self._prices[timestamp] = price

	def mean(self, min_time: int, max_time: int) -> int:
		"""
		Mean of the prices whose timestamp lies in [min_time, max_time].

		The sum is unbounded and the division truncates toward zero.
		Returns 0 when no price matches, including when min_time > max_time.
		"""
		total = 0
		count = 0

		for timestamp, price in self._prices.items():
			if min_time <= timestamp <= max_time:
				total += price
				count += 1

		if count == 0:
			return 0

		# // floors, so divide the magnitude to truncate toward zero
		mean = abs(total) // count
		return mean if total >= 0 else -mean

	def __len__(self):
		return len(self._prices)


def handle_insert(msg: Message, prices: PriceStore) -> Optional[bytes]:
	prices.insert(msg.arg1, msg.arg2)
	return None


def handle_query(msg: Message, prices: PriceStore) -> Optional[bytes]:
	return encode_mean(prices.mean(msg.arg1, msg.arg2))
