"""
Unit tests for duplicate listener registration policies.

Tests verify that re-registering a (class, method) slot is resolved by the
installed duplicate handler: replacing by default (last write wins), keeping the
existing registration, rejecting with an error, or collecting the duplicate,
and that the warning policies log through the standard logging module.
"""

import logging
from typing import Any
from typing import Iterator

import pytest

import amqp_listen
from amqp_listen import handlers


@pytest.fixture(autouse=True)
def reset_duplicate_policy() -> Iterator[None]:
    amqp_listen.clear()
    yield
    amqp_listen.set_duplicate_listener_handler(None)
    amqp_listen.clear()


def _make_consumer() -> type:
    class Consumer:
        @amqp_listen.listen("orders")
        def on_order(self, data: Any, control: Any) -> None:
            pass

    return Consumer


def test_default_policy_replaces_existing() -> None:
    """Test that the default policy is last write wins."""
    consumer = _make_consumer()

    amqp_listen.register_listener(consumer, "on_order", "refunds", "payments")
    listener = amqp_listen.get_listener(consumer, "on_order")

    assert listener.source == "refunds"
    assert listener.connection == "payments"
    assert len(amqp_listen.get_listeners(consumer)) == 1


def test_none_restores_default_policy() -> None:
    """Test that passing None restores the replacing policy."""
    amqp_listen.set_duplicate_listener_handler(handlers.keep_existing_listener)
    amqp_listen.set_duplicate_listener_handler(None)
    consumer = _make_consumer()

    amqp_listen.register_listener(consumer, "on_order", "refunds")

    assert amqp_listen.get_listener(consumer, "on_order").source == "refunds"


def test_default_policy_logs_debug(caplog: pytest.LogCaptureFixture) -> None:
    """Test that a silent replace still leaves a debug trace."""
    consumer = _make_consumer()

    with caplog.at_level(logging.DEBUG, logger="amqp_listen.handlers"):
        amqp_listen.register_listener(consumer, "on_order", "refunds")

    assert any("Replacing listener registration" in r.message for r in caplog.records)


def test_warn_and_overwrite_policy(caplog: pytest.LogCaptureFixture) -> None:
    """Test that the warning policy logs and then replaces."""
    amqp_listen.set_duplicate_listener_handler(
        handlers.warn_and_overwrite_duplicate_listener
    )
    consumer = _make_consumer()

    with caplog.at_level(logging.WARNING, logger="amqp_listen.handlers"):
        amqp_listen.register_listener(consumer, "on_order", "refunds")

    assert amqp_listen.get_listener(consumer, "on_order").source == "refunds"
    assert len(caplog.records) == 1
    assert caplog.records[0].levelno == logging.WARNING
    assert "Consumer.on_order on queue 'orders'" in caplog.records[0].message
    assert "Consumer.on_order on queue 'refunds'" in caplog.records[0].message


def test_keep_existing_policy(caplog: pytest.LogCaptureFixture) -> None:
    """Test that the keeping policy leaves the first registration in place."""
    amqp_listen.set_duplicate_listener_handler(handlers.keep_existing_listener)
    consumer = _make_consumer()
    first = amqp_listen.get_listener(consumer, "on_order")

    with caplog.at_level(logging.WARNING, logger="amqp_listen.handlers"):
        returned = amqp_listen.register_listener(consumer, "on_order", "refunds")

    assert returned is first
    assert amqp_listen.get_listener(consumer, "on_order") is first
    assert amqp_listen.get_listener_metadata(consumer.on_order) is first
    assert "ignored" in caplog.records[0].message


def test_reject_policy_raises() -> None:
    """Test that the rejecting policy raises and keeps the first registration."""
    amqp_listen.set_duplicate_listener_handler(handlers.reject_duplicate_listener)
    consumer = _make_consumer()
    first = amqp_listen.get_listener(consumer, "on_order")

    with pytest.raises(
        amqp_listen.DuplicateListenerError, match="already registered on queue"
    ):
        amqp_listen.register_listener(consumer, "on_order", "refunds")

    assert amqp_listen.get_listener(consumer, "on_order") is first


def test_reject_policy_allows_distinct_methods() -> None:
    """Test that the rejecting policy only applies to the same slot."""
    amqp_listen.set_duplicate_listener_handler(handlers.reject_duplicate_listener)

    class Consumer:
        @amqp_listen.listen("orders")
        def on_order(self, data: Any, control: Any) -> None:
            pass

        @amqp_listen.listen("orders")
        def on_order_audit(self, data: Any, control: Any) -> None:
            pass

    assert len(amqp_listen.get_listeners(Consumer)) == 2


def test_reject_policy_allows_same_name_on_other_class() -> None:
    """Test that slots on different classes never collide."""
    amqp_listen.set_duplicate_listener_handler(handlers.reject_duplicate_listener)

    first = _make_consumer()
    second = _make_consumer()

    assert amqp_listen.get_listener(first, "on_order") is not None
    assert amqp_listen.get_listener(second, "on_order") is not None


def test_collect_duplicate_policy() -> None:
    """Test that the collecting policy records the duplicate and replaces."""
    handlers.duplicates_caught.clear()
    amqp_listen.set_duplicate_listener_handler(handlers.collect_duplicate_listener)
    consumer = _make_consumer()

    amqp_listen.register_listener(consumer, "on_order", "refunds", "payments")

    assert len(handlers.duplicates_caught) == 1
    caught = handlers.duplicates_caught[0]
    assert caught["handler"] == "Consumer.on_order"
    assert "queue 'orders'" in caught["existing"]
    assert "connection 'payments'" in caught["incoming"]
    assert amqp_listen.get_listener(consumer, "on_order").source == "refunds"
    handlers.duplicates_caught.clear()


def test_custom_policy_receives_existing_and_incoming() -> None:
    """Test that custom policies are called with (existing, incoming)."""
    calls: list[tuple[str, str]] = []

    def only_same_connection(existing: Any, incoming: Any) -> bool:
        calls.append((existing.source, incoming.source))
        return existing.connection == incoming.connection

    amqp_listen.set_duplicate_listener_handler(only_same_connection)
    consumer = _make_consumer()

    amqp_listen.register_listener(consumer, "on_order", "other", "secondary")
    assert amqp_listen.get_listener(consumer, "on_order").source == "orders"

    amqp_listen.register_listener(consumer, "on_order", "refunds")
    assert amqp_listen.get_listener(consumer, "on_order").source == "refunds"

    assert calls == [("orders", "other"), ("orders", "refunds")]


def test_get_handler_name() -> None:
    """Test the handler description helpers."""
    consumer = _make_consumer()
    listener = amqp_listen.get_listener(consumer, "on_order")

    assert handlers.get_handler_name(listener) == "Consumer.on_order"
    assert handlers.get_handler_name(None) == "<none>"
    assert (
        handlers.describe(listener)
        == "Consumer.on_order on queue 'orders' (connection 'default')"
    )
