"""Tests for the signal bus."""

import pytest

from serverquery_mcp.signals import SignalBus, SignalHandler, notify_signal


def test_emit_delivers_in_subscription_order(bus):
    calls = []
    bus.subscribe("sig", lambda x: calls.append(("a", x)))
    bus.subscribe("sig", lambda x: calls.append(("b", x)))

    bus.emit("sig", 1)

    assert calls == [("a", 1), ("b", 1)]


def test_duplicate_subscription_delivers_once(bus):
    calls = []

    def handler(value):
        calls.append(value)

    first = bus.subscribe("sig", handler)
    second = bus.subscribe("sig", handler)
    bus.emit("sig", "x")

    assert first is second
    assert calls == ["x"]
    assert len(bus.get_handlers("sig")) == 1


def test_bound_method_subscription_is_idempotent(bus):
    class Listener:
        def __init__(self):
            self.calls = 0

        def on_signal(self):
            self.calls += 1

    listener = Listener()
    bus.subscribe("sig", listener.on_signal)
    bus.subscribe("sig", listener.on_signal)
    bus.emit("sig")

    assert listener.calls == 1


def test_same_callback_on_two_signals(bus):
    calls = []
    bus.subscribe("a", calls.append)
    bus.subscribe("b", calls.append)
    bus.emit("a", 1)
    bus.emit("b", 2)
    assert calls == [1, 2]


def test_emit_returns_last_result(bus):
    bus.subscribe("sig", lambda: "first")
    bus.subscribe("sig", lambda: "last")
    assert bus.emit("sig") == "last"
    assert bus.emit_all("sig") == ["first", "last"]


def test_emit_without_handlers(bus):
    assert bus.emit("nothing", 1, 2) is None
    assert bus.emit_all("nothing") == []


def test_unsubscribe_one_handler(bus):
    calls = []
    keep = bus.subscribe("sig", lambda: calls.append("keep"))
    drop = bus.subscribe("sig", lambda: calls.append("drop"))

    bus.unsubscribe("sig", drop)
    bus.emit("sig")

    assert calls == ["keep"]
    assert bus.get_handlers("sig") == [keep]


def test_unsubscribe_all_handlers(bus):
    bus.subscribe("sig", lambda: None)
    bus.subscribe("sig", print)
    bus.unsubscribe("sig")
    assert not bus.has_handlers("sig")
    assert bus.get_signals() == []


def test_unsubscribe_unknown_is_noop(bus):
    bus.unsubscribe("missing")
    handler = bus.subscribe("sig", print)
    bus.unsubscribe("sig", SignalHandler(signal="sig", token=999, callback=print))
    assert bus.get_handlers("sig") == [handler]


def test_handler_equality_is_structural():
    a = SignalHandler(signal="sig", token=1, callback=print)
    b = SignalHandler(signal="sig", token=1, callback=len)
    assert a == b
    assert hash(a) == hash(b)
    assert a != SignalHandler(signal="sig", token=2, callback=print)


def test_introspection(bus):
    bus.subscribe("one", print)
    bus.subscribe("two", print)
    assert bus.get_signals() == ["one", "two"]
    assert bus.has_handlers("one")
    bus.clear_handlers("one")
    assert not bus.has_handlers("one")
    assert bus.get_handlers("one") == []


def test_buses_are_isolated():
    first, second = SignalBus(), SignalBus()
    calls = []
    first.subscribe("sig", calls.append)
    second.emit("sig", 1)
    assert calls == []


def test_subscribe_rejects_non_callable(bus):
    with pytest.raises(TypeError):
        bus.subscribe("sig", "not callable")


def test_notify_signal_name():
    assert notify_signal("cliententerview") == "notifyCliententerview"
    assert notify_signal("textmessage") == "notifyTextmessage"
