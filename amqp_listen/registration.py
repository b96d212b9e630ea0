"""
Listener registration data structures and type definitions.

Defines the ListenerRegistration dataclass which binds a handler method to the
queue, connection and options it was declared with, together with the identity
of the class that declares it. The declaring class and the handler are held by
weak reference: the registry describes handlers, it does not own them, so
classes created and dropped at runtime (tests, plugins) are not kept alive by
their registrations. Also defines the HANDLER type alias used throughout the
package for type hints.
"""

import inspect
import types
import weakref
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Callable
from typing import Coroutine
from typing import Mapping
from typing import Optional
from typing import Union

from amqp_listen import resolver

HANDLER = Union[Callable[..., Any], Callable[..., Coroutine[Any, Any, Any]]]
"""
The message handler a listener is bound to. Receives the decoded payload and
the message control object from the consumer layer. Can be sync or async.
"""


@dataclass(frozen=True)
class ListenerRegistration(object):
    """A queue listener declared on a class method."""

    source: str
    """The queue the handler consumes from."""

    connection: str
    """The name of the connection the queue belongs to."""

    options: Mapping[str, Any] = field(hash=False)
    """Read-only handler options, such as the payload type."""

    owner_type_name: str
    """Name of the class that declares the handler."""

    weak_owner_type: weakref.ref
    """
    The class that declares the handler.
    Weak so the registration does not keep dynamically created classes alive.
    """

    handler_name: str
    """Attribute name of the handler on the declaring class."""

    weak_handler: weakref.ref
    """The undecorated handler function. Owned by the declaring class."""

    is_async: bool
    """If the handler is a coroutine function..."""

    @classmethod
    def build(
        cls,
        resolved: resolver.ResolvedListen,
        owner: type,
        handler_name: str,
        handler: HANDLER,
    ) -> "ListenerRegistration":
        """Create a registration from resolved arguments and call-site identity."""
        return cls(
            source=resolved.source,
            connection=resolved.connection,
            options=types.MappingProxyType(dict(resolved.options)),
            owner_type_name=owner.__name__,
            weak_owner_type=weakref.ref(owner),
            handler_name=handler_name,
            weak_handler=weakref.ref(handler),
            is_async=inspect.iscoroutinefunction(handler),
        )

    @property
    def owner_type(self) -> Optional[type]:
        """Get the declaring class, or None if collected."""
        return self.weak_owner_type()

    @property
    def handler(self) -> Optional[HANDLER]:
        """Get the live handler, or None if collected."""
        return self.weak_handler()

    @property
    def payload_type(self) -> Optional[Any]:
        """The payload class from the `type` option, if one was given."""
        return self.options.get("type")
