import pytest
from protocol.dispatcher import MessageDispatcher, ProtocolError
from protocol.handlers import PriceStore
from protocol.message import Message
from protocol.message_types import MessageType
from protocol.setup import setup_price_dispatcher


def test_dispatch_calls_correct_handler():
    dispatcher = MessageDispatcher()
    called = {}

    def handler(msg, state):
        called["state"] = state
        return b"ok"

    dispatcher.register(MessageType.QUERY, handler)

    msg = Message(MessageType.QUERY, 1, 2)

    assert dispatcher.dispatch(msg, "state") == b"ok"
    assert called.get("state") == "state"


def test_dispatch_unknown_message_does_not_crash():
    dispatcher = MessageDispatcher()

    msg = Message(MessageType.INSERT, 1, 2)

    assert dispatcher.dispatch(msg, None) is None  # must not raise


def test_handler_exception_is_propagated():
    dispatcher = MessageDispatcher()

    def handler(msg, state):
        raise RuntimeError("boom")

    dispatcher.register(MessageType.INSERT, handler)

    msg = Message(MessageType.INSERT, 1, 2)

    with pytest.raises(RuntimeError):
        dispatcher.dispatch(msg, None)


def test_duplicate_handler_registration_fails():
    dispatcher = MessageDispatcher()

    def handler(msg, state):
        return None

    dispatcher.register(MessageType.INSERT, handler)

    with pytest.raises(ProtocolError):
        dispatcher.register(MessageType.INSERT, handler)


def test_register_rejects_non_message_type():
    dispatcher = MessageDispatcher()

    with pytest.raises(TypeError):
        dispatcher.register("I", lambda msg, state: None)


def test_price_dispatcher_wires_insert_and_query():
    dispatcher = setup_price_dispatcher()
    prices = PriceStore()

    assert dispatcher.dispatch(Message(MessageType.INSERT, 10, 7), prices) is None
    assert dispatcher.dispatch(Message(MessageType.QUERY, 0, 20), prices) == b"\x00\x00\x00\x07"
