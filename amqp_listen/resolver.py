"""
Argument resolution for the @listen decorator.

@listen accepts its second positional argument as either a connection name or
an options mapping. This module turns the raw call-site arguments into a single
canonical (source, options, connection) triple. Resolution is pure: nothing is
registered here and nothing about the queue or connection is checked.
"""

from collections.abc import Mapping
from typing import Any
from typing import NamedTuple
from typing import Optional
from typing import Union

from amqp_listen import constants
from amqp_listen import exceptions
from amqp_listen import options as listen_options


OPTIONS_OR_CONNECTION = Union[
    str, listen_options.ListenOptions, Mapping[str, Any], None
]
"""The overloaded second argument of @listen."""


class ResolvedListen(NamedTuple):
    """Canonical form of the arguments given to @listen."""

    source: str
    """Name of the queue to consume from."""

    options: dict[str, Any]
    """Handler options. Always a fresh dict, never the caller's mapping."""

    connection: str
    """Name of the connection the queue belongs to."""


def resolve_listen_arguments(
    source: str,
    options_or_connection: OPTIONS_OR_CONNECTION = None,
    connection: Optional[str] = None,
) -> ResolvedListen:
    """
    Resolve the overloaded @listen call shapes:

        listen(source)
        listen(source, connection)
        listen(source, options)
        listen(source, options, connection)

    An explicit third argument always names the connection. Otherwise a string
    second argument is the connection and a mapping second argument is the
    options. Whatever is left unset falls back to the default connection and
    an empty options dict. A string second argument never carries options.

    Args:
        source (str): The queue to listen on. Emptiness is not checked here.
        options_or_connection (str | Mapping | None): Connection name or
            options mapping.
        connection (Optional[str]): Connection name.
    Returns:
        ResolvedListen: The canonical (source, options, connection) triple.
    Raises:
        ListenerDefinitionError: If the third argument is not a string, or
            if it is absent and the second argument is neither a string nor
            a mapping.
    """
    if connection is not None and not isinstance(connection, str):
        raise exceptions.ListenerDefinitionError(
            f"Listener for queue '{source}' expects a connection name as third "
            f"argument, got {type(connection).__name__}"
        )

    # An explicit connection makes any non-mapping second argument irrelevant.
    if (
        connection is None
        and options_or_connection is not None
        and not isinstance(options_or_connection, (str, Mapping))
    ):
        raise exceptions.ListenerDefinitionError(
            f"Listener for queue '{source}' expects a connection name or an "
            f"options mapping as second argument, "
            f"got {type(options_or_connection).__name__}"
        )

    if connection is None and isinstance(options_or_connection, str):
        connection = options_or_connection

    if isinstance(options_or_connection, Mapping):
        options = dict(options_or_connection)
    else:
        options = {}

    if connection is None:
        connection = constants.AMQP_DEFAULT_CONNECTION

    return ResolvedListen(source=source, options=options, connection=connection)
