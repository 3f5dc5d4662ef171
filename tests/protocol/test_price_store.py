import pytest

from protocol.handlers import PriceStore, handle_insert, handle_query
from protocol.message import Message
from protocol.message_types import MessageType
from protocol.setup import make_price_frame_handler, setup_price_dispatcher


@pytest.mark.protocol
def test_insert_then_query_single_timestamp():
    prices = PriceStore()
    prices.insert(1000, 42)

    assert prices.mean(1000, 1000) == 42


@pytest.mark.protocol
def test_query_without_matches_is_zero():
    prices = PriceStore()
    prices.insert(1000, 42)

    assert prices.mean(0, 999) == 0
    assert PriceStore().mean(-2 ** 31, 2 ** 31 - 1) == 0


@pytest.mark.protocol
def test_reversed_range_is_zero():
    prices = PriceStore()
    prices.insert(5, 10)

    assert prices.mean(10, 0) == 0


@pytest.mark.protocol
def test_second_insert_at_same_timestamp_wins():
    prices = PriceStore()
    prices.insert(1000, 1)
    prices.insert(1000, 9)

    assert len(prices) == 1
    assert prices.mean(1000, 1000) == 9


@pytest.mark.protocol
def test_mean_range_is_inclusive():
    prices = PriceStore()
    for ts, price in [(1, 10), (2, 20), (3, 30), (4, 1000)]:
        prices.insert(ts, price)

    assert prices.mean(1, 3) == 20


@pytest.mark.protocol
def test_mean_truncates_toward_zero():
    prices = PriceStore()
    prices.insert(1, -1)
    prices.insert(2, -2)

    # -1.5 truncates to -1, not -2
    assert prices.mean(1, 2) == -1


@pytest.mark.protocol
def test_mean_sum_does_not_overflow_int32():
    prices = PriceStore()
    prices.insert(1, 2 ** 31 - 1)
    prices.insert(2, 2 ** 31 - 1)

    assert prices.mean(1, 2) == 2 ** 31 - 1


@pytest.mark.protocol
def test_handlers_bind_message_arguments():
    prices = PriceStore()

    assert handle_insert(Message(MessageType.INSERT, 12345, 101), prices) is None
    assert handle_query(Message(MessageType.QUERY, 12345, 12345), prices) == b"\x00\x00\x00\x65"


@pytest.mark.protocol
def test_frame_handler_drops_undecodable_frames():
    handle = make_price_frame_handler(setup_price_dispatcher())
    prices = PriceStore()

    assert handle(b"I\x00", prices) is None
    assert handle(b"Z" + bytes(8), prices) is None
    assert len(prices) == 0

    assert handle(Message(MessageType.INSERT, 3, 4).to_bytes(), prices) is None
    assert handle(Message(MessageType.QUERY, 3, 3).to_bytes(), prices) == b"\x00\x00\x00\x04"
