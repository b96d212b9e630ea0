"""
Unit tests for registry export functionality.

Tests verify that the export method correctly writes registry state to files
in JSON format.
"""

import json
from pathlib import Path
from typing import Any

import amqp_listen


class OrderDto(object):
    pass


def test_export_creates_valid_json_file(tmp_path: Path) -> None:
    """Test that export creates a valid JSON file with correct content."""
    amqp_listen.clear()

    class Consumer:
        @amqp_listen.listen("orders", {"type": OrderDto})
        def on_order(self, data: Any, control: Any) -> None:
            pass

        @amqp_listen.listen("refunds", "secondary")
        async def on_refund(self, data: Any, control: Any) -> None:
            pass

    output_file = tmp_path / "listeners.json"
    amqp_listen.export(output_file)

    # File should exist
    assert output_file.exists()

    # Should be valid JSON
    with open(output_file) as f:
        data = json.load(f)

    # Content should match to_dict()
    assert data == amqp_listen.to_dict()

    # Should contain expected connections and queues
    assert "orders" in data["default"]
    assert "refunds" in data["secondary"]


def test_export_with_string_and_path_types(tmp_path: Path) -> None:
    """Test that export accepts both string and Path objects."""
    amqp_listen.clear()

    class Consumer:
        @amqp_listen.listen("orders")
        def on_order(self, data: Any, control: Any) -> None:
            pass

    # Test with Path object
    path_file = tmp_path / "path_export.json"
    amqp_listen.export(path_file)
    assert path_file.exists()

    # Test with string
    string_file = str(tmp_path / "string_export.json")
    amqp_listen.export(string_file)
    assert Path(string_file).exists()


def test_export_includes_markers(tmp_path: Path) -> None:
    """Test that export includes async and payload type markers."""
    amqp_listen.clear()

    class Consumer:
        @amqp_listen.listen("orders", {"type": OrderDto})
        def on_order(self, data: Any, control: Any) -> None:
            pass

        @amqp_listen.listen("orders")
        async def on_order_async(self, data: Any, control: Any) -> None:
            pass

    output_file = tmp_path / "listeners.json"
    amqp_listen.export(output_file)

    with open(output_file) as f:
        data = json.load(f)

    handlers = data["default"]["orders"]

    assert len(handlers) == 2
    assert any(h.endswith("on_order [type=OrderDto]") for h in handlers)
    assert any(h.endswith("on_order_async [async]") for h in handlers)


def test_export_empty_registry(tmp_path: Path) -> None:
    """Test exporting an empty registry creates valid empty JSON."""
    amqp_listen.clear()

    output_file = tmp_path / "empty_registry.json"
    amqp_listen.export(output_file)

    assert output_file.exists()

    with open(output_file) as f:
        data = json.load(f)

    assert data == {}
