import pytest


def test_reimport_guard() -> None:
    """
    Test that reimporting the amqp_listen module results in an ImportError,
    preventing developers from wiping the registered listeners.
    """
    import importlib
    import amqp_listen

    with pytest.raises(
        ImportError,
        match="Module 'amqp_listen' has already been imported and cannot be reloaded",
    ):
        importlib.reload(amqp_listen)
