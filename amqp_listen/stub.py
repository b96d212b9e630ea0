"""
Required for static type checkers to accept these names as members of the
amqp_listen module.

This module gets imported into the amqp_listen module so stubs are accessible
through the amqp_listen namespace.

The doc strings for each function exists in the stubs for intellisense
fetching, instead of within the registry class itself because the registry
class is a module replacement at runtime, so the namespaces during inspection
are different.
"""

import os
from typing import Any
from typing import Callable
from typing import Optional
from typing import Union

from amqp_listen import handlers
from amqp_listen import registration
from amqp_listen import resolver


# -----General Stubs-----------------------------------------------------------


def clear() -> None:
    """Clears every listener registration and attached metadata."""


def to_dict() -> dict:
    """
    Convert the registry to a dictionary of
    connection -> queue -> handler descriptions.
    """


def to_string() -> str:
    """Returns a string representation of the registry."""


# noinspection PyUnusedLocal
def export(filepath: Union[str, os.PathLike]) -> None:
    """Export registry structure to filepath."""


def get_statistics() -> dict[str, object]:
    """
    Get overall registry statistics.

    Returns:
        dict[str, object]: Dictionary with registry-wide statistics.

    Example:
        {
            "total_listeners": 12,
            "total_live_listeners": 11,
            "dead_handler_references": 1,
            "total_owners": 4,
            "total_queues": 9,
            "total_connections": 2,
            "async_listeners": 7,
            "listeners_per_connection": {"default": 10, "secondary": 2},
        }
    """


# -----Metadata Stubs----------------------------------------------------------


# noinspection PyUnusedLocal
def set_metadata(key: str, value: Any, owner: type, method_name: str) -> None:
    """
    Attach a value to a method slot under key. Last write wins.

    Args:
        key (str): Metadata key.
        value (Any): The value to attach.
        owner (type): Class that declares the method.
        method_name (str): Attribute name of the method.
    """


# noinspection PyUnusedLocal
def get_metadata(key: str, owner: type, method_name: str, default: Any = None) -> Any:
    """Get the value attached under key for a method slot."""


# -----Registration Stubs------------------------------------------------------


# noinspection PyUnusedLocal
def listen(
    source: str,
    options_or_connection: resolver.OPTIONS_OR_CONNECTION = None,
    connection: Optional[str] = None,
) -> Callable[[Any], Any]:
    """
    Decorator to bind a method to a queue.

    Accepted call shapes:
        @listen(source)
        @listen(source, connection)
        @listen(source, options)
        @listen(source, options, connection)

    An explicit connection argument always wins. A string second argument is
    the connection name, a mapping second argument is the options. Unset
    values fall back to AMQP_DEFAULT_CONNECTION and empty options.

    Args:
        source (str): The queue to listen on.
        options_or_connection (str | Mapping): Connection name, or options
            such as {'type': PayloadClass}.
        connection (str): Connection name.
    Raises:
        ListenerDefinitionError: If the arguments or the decorated object have
            an unsupported shape.
    Example:
        >>> import amqp_listen
        ...
        >>> class OrderConsumer:
        ...     @amqp_listen.listen('orders', {'type': OrderDto})
        ...     async def on_order(self, data: OrderDto, control) -> None:
        ...         control.accept()
    """


# noinspection PyUnusedLocal
def register_listener(
    owner: type,
    handler_name: str,
    source: str,
    options_or_connection: resolver.OPTIONS_OR_CONNECTION = None,
    connection: Optional[str] = None,
) -> registration.ListenerRegistration:
    """
    Bind a method of an already defined class to a queue.

    Takes the same call shapes as @listen. The method must be defined on
    owner itself, not inherited from a base class.

    Args:
        owner (type): The class declaring the method.
        handler_name (str): Attribute name of the method.
        source (str): The queue to listen on.
        options_or_connection (str | Mapping): Connection name or options.
        connection (Optional[str]): Connection name.
    Returns:
        ListenerRegistration: The registration now held for the slot.
    Raises:
        ListenerDefinitionError: If owner does not define handler_name, the
            method shape is unsupported or the arguments are malformed.
        DuplicateListenerError: If the slot is taken and the rejecting
            duplicate policy is installed.
    """


# noinspection PyUnusedLocal
def unregister_listener(owner: type, handler_name: str) -> bool:
    """
    Remove the registration of a method.

    Returns:
        bool: True if a registration was removed.
    """


# noinspection PyUnusedLocal
def set_duplicate_listener_handler(
    handler: Optional[handlers.DUPLICATE_LISTENER_HANDLER],
) -> None:
    """
    Set the policy applied when a registered slot is registered again.

    Args:
        Optional[handlers.DUPLICATE_LISTENER_HANDLER]:
            Callable with signature
            (ListenerRegistration, ListenerRegistration) -> bool.
            Receives the existing and incoming registrations and returns
            True to replace, False to keep the existing one.
            Pass None to restore the default (replace).
    """


# -----Discovery Stubs---------------------------------------------------------


# noinspection PyUnusedLocal
def get_listener(
    owner: type, handler_name: str
) -> Optional[registration.ListenerRegistration]:
    """Get the registration declared by owner for a method, if any."""


# noinspection PyUnusedLocal
def get_listeners(
    owner: type, inherited: bool = True
) -> list[registration.ListenerRegistration]:
    """
    Get the registrations for a class.

    Args:
        owner (type): The class to scan.
        inherited (bool): Include listeners declared on base classes. A base
            listener is skipped when a subclass redefines the method, with
            or without its own @listen.
    Returns:
        list[registration.ListenerRegistration]: Most derived class first,
            declaration order within each class.
    """


# noinspection PyUnusedLocal
def is_listener(func: Callable) -> bool:
    """Check if a function has been registered as a listener."""


# noinspection PyUnusedLocal
def get_listener_metadata(
    func: Callable,
) -> Optional[registration.ListenerRegistration]:
    """
    Get the registration of a handler function.
    Accepts plain functions, bound methods, staticmethods and classmethods.
    """


def get_all_listeners() -> list[registration.ListenerRegistration]:
    """Get every registration of every live class."""


# noinspection PyUnusedLocal
def get_listeners_for_queue(source: str) -> list[registration.ListenerRegistration]:
    """Get every registration consuming from a queue."""


# noinspection PyUnusedLocal
def get_listeners_for_connection(
    connection: str,
) -> list[registration.ListenerRegistration]:
    """Get every registration bound to a connection."""


def get_queues() -> list[str]:
    """Get all queues with at least one listener."""


def get_connections() -> list[str]:
    """Get all connections with at least one listener."""
