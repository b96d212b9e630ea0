"""
# Queue Listener Registry

Herein is the listener registry itself as a module class to create a
protective closure around the process-wide metadata store.

Handler methods are bound to queues with the @listen decorator at class
definition time. Each binding is resolved into a ListenerRegistration and
attached to the metadata store for its (class, method) slot, where the consumer
bootstrap later discovers it.

A reimport protection clause exists at the top of the file to prevent the
metadata store from being lost on import.

Function stubs exist in the stubs file for static type checkers to validate
correct calls.
"""

# Remember to update doc strings in the stub.py file so static type checkers
# and intellisense can receive accurate feedback!

import sys

# -----------------------------------------------------------------------------
# Prevent module reload - the metadata store would be lost!
if "amqp_listen" in sys.modules:
    existing_module = sys.modules["amqp_listen"]
    if hasattr(existing_module, "_AMQP_LISTEN_IMPORT_GUARD"):
        raise ImportError(
            "Module 'amqp_listen' has already been imported and cannot be "
            "reloaded. Listener registrations would be lost. "
            "Restart your Python session to reimport."
        )
_AMQP_LISTEN_IMPORT_GUARD = True
# -----------------------------------------------------------------------------

import inspect
import json
import logging
from types import ModuleType

from amqp_listen.stub import *
from amqp_listen import constants
from amqp_listen import exceptions
from amqp_listen import handlers
from amqp_listen import options
from amqp_listen import registration
from amqp_listen import resolver
from amqp_listen import store


version_major = 1
version_minor = 0
version_patch = 0
__version__ = f"{version_major}.{version_minor}.{version_patch}"

logger = logging.getLogger(__name__)

AMQP_DEFAULT_CONNECTION = constants.AMQP_DEFAULT_CONNECTION
QUEUE_LISTEN_METADATA_KEY = constants.QUEUE_LISTEN_METADATA_KEY

_METADATA_STORE = store.MetadataStore()
"""
Global metadata store.
Listener registrations live under QUEUE_LISTEN_METADATA_KEY, one per
(class, method) slot.
"""

_LISTEN_METADATA_ATTR = "__listen_metadata__"
"""Attribute on handler functions that mirrors their registration."""

_LISTEN_PENDING_ATTR = "__listen_pending__"
"""Attribute on handler functions holding resolved listeners not yet published."""

_LISTEN_COLLECTOR_ATTR = "__listen_collector__"
"""Class body name the listener collector is placed under."""


# -----Exceptions--------------------------------------------------------------
ListenerError = exceptions.ListenerError
ListenerDefinitionError = exceptions.ListenerDefinitionError
DuplicateListenerError = exceptions.DuplicateListenerError


# -----------------------------------------------------------------------------


def _unwrap_handler(method: Any, label: str) -> registration.HANDLER:
    """
    Get the plain function behind a class attribute.
    Plain and async functions, staticmethods and classmethods are supported.
    """
    if isinstance(method, (staticmethod, classmethod)):
        method = method.__func__

    if not inspect.isfunction(method):
        raise ListenerDefinitionError(
            f"Cannot register '{label}' as a listener: expected a "
            f"function, staticmethod or classmethod, got {type(method).__name__}"
        )

    return method


class _ListenerCollector(object):
    """
    Placed once in a class body by the first @listen it contains.

    Python calls __set_name__ once the declaring class exists, with every
    attribute already in place. The collector removes itself from the class and
    publishes the pending listeners of its methods. A staticmethod or
    classmethod applied above @listen is unwrapped like any other attribute.
    """

    def __init__(self, registry_module: "ListenerRegistry") -> None:
        self._registry_module = registry_module

    def __set_name__(self, owner: type, name: str) -> None:
        delattr(owner, name)
        self._registry_module._publish_pending(owner)


def _class_body_namespace(frame: Any) -> Optional[dict[str, Any]]:
    """Get the namespace of a frame that is executing a class body, or None."""
    if frame is None:
        return None

    namespace = frame.f_locals
    if frame.f_globals is namespace or "__qualname__" not in namespace:
        return None

    if "__module__" not in namespace:
        return None

    return namespace


def _make_listen_decorator(registry_module: "ListenerRegistry") -> Callable:
    """
    Create a listen decorator with access to the registry module.

    This exists as a function accepting the registry module as an argument so
    the decorator can publish to the registry without referring to it using a
    python namespace and thus creating a circular reference.
    """

    def listen_(
        source: str,
        options_or_connection: resolver.OPTIONS_OR_CONNECTION = None,
        connection: Optional[str] = None,
    ) -> Callable[[Any], Any]:
        resolved = resolver.resolve_listen_arguments(
            source, options_or_connection, connection
        )

        def decorator(method: Any) -> Any:
            label = getattr(method, "__qualname__", repr(method))
            handler = _unwrap_handler(method, label)

            namespace = _class_body_namespace(inspect.currentframe().f_back)
            if namespace is None:
                raise ListenerDefinitionError(
                    f"Cannot register '{label}' as a listener on queue "
                    f"'{resolved.source}': @listen can only decorate methods "
                    f"defined in a class body. Use register_listener() instead."
                )

            if _LISTEN_COLLECTOR_ATTR not in namespace:
                namespace[_LISTEN_COLLECTOR_ATTR] = _ListenerCollector(
                    registry_module
                )

            pending = handler.__dict__.setdefault(_LISTEN_PENDING_ATTR, [])
            pending.append(resolved)
            return method

        return decorator

    return listen_


class ListenerRegistry(ModuleType):
    """
    Process-wide registry of queue listeners.

    Bind methods to queues with @listen at class definition time, or with
    register_listener() for classes that are already defined.

    Read registrations back with get_listener(), get_listeners() and
    get_all_listeners(), or by queue and connection name.

    Re-registering a (class, method) slot replaces the existing registration
    by default. Use set_duplicate_listener_handler() to change that policy.
    """

    # -----Runtime Closures----------------------------------------------------
    # ---Constants---
    __version__ = __version__
    _AMQP_LISTEN_IMPORT_GUARD = _AMQP_LISTEN_IMPORT_GUARD
    AMQP_DEFAULT_CONNECTION = AMQP_DEFAULT_CONNECTION
    QUEUE_LISTEN_METADATA_KEY = QUEUE_LISTEN_METADATA_KEY
    # Explicitly refuse to make closure for _METADATA_STORE so it stays
    # protected!

    # ---Exceptions---
    ListenerError = ListenerError
    ListenerDefinitionError = ListenerDefinitionError
    DuplicateListenerError = DuplicateListenerError

    # ---Modules---
    constants = constants
    exceptions = exceptions
    handlers = handlers
    options = options
    registration = registration
    resolver = resolver
    store = store
    # -------------------------------------------------------------------------

    def __init__(self, name: str) -> None:
        super().__init__(name)
        assert self._AMQP_LISTEN_IMPORT_GUARD is True

        self._install_decorators()

        self._duplicate_listener_handler: Optional[
            handlers.DUPLICATE_LISTENER_HANDLER
        ] = handlers.overwrite_duplicate_listener

    def _install_decorators(self) -> None:
        """Create decorator bindings."""

        self.listen = _make_listen_decorator(self)
        """
        Decorator to bind a method to a queue.

        Accepted call shapes:
            @listen(source)
            @listen(source, connection)
            @listen(source, options)
            @listen(source, options, connection)

        Args:
            source (str): The queue to listen on.
            options_or_connection (str | Mapping): Connection name, or options
                such as {'type': PayloadClass}.
            connection (str): Connection name. Wins over a string second
                argument.
        """

    @staticmethod
    def clear() -> None:
        _METADATA_STORE.clear()

    # -----Metadata Primitives-------------------------------------------------

    @staticmethod
    def set_metadata(key: str, value: Any, owner: type, method_name: str) -> None:
        """
        Attach a value to a method slot under key. Last write wins.

        Args:
            key (str): Metadata key.
            value (Any): The value to attach.
            owner (type): Class that declares the method.
            method_name (str): Attribute name of the method.
        """
        _METADATA_STORE.attach(key, value, owner, method_name)

    @staticmethod
    def get_metadata(
        key: str, owner: type, method_name: str, default: Any = None
    ) -> Any:
        """Get the value attached under key for a method slot."""
        return _METADATA_STORE.get(key, owner, method_name, default)

    # -----Registration--------------------------------------------------------

    def _publish_pending(self, owner: type) -> None:
        """
        Publish the listeners declared with @listen in the body of owner.

        A function reachable under several names (an alias in the class body)
        is published once, under the first name it was defined with.
        """
        for name, attribute in list(vars(owner).items()):
            method = attribute
            if isinstance(method, (staticmethod, classmethod)):
                method = method.__func__

            if not inspect.isfunction(method):
                continue

            pending = method.__dict__.pop(_LISTEN_PENDING_ATTR, None)
            if not pending:
                continue

            for resolved in pending:
                self._publish(resolved, owner, name, attribute)

    def _publish(
        self,
        resolved: resolver.ResolvedListen,
        owner: type,
        name: str,
        method: Any,
    ) -> registration.ListenerRegistration:
        """
        Build a registration for a resolved listener and attach it to the
        store, subject to the duplicate policy.

        Returns:
            ListenerRegistration: The registration now held for the slot.
        """
        handler = _unwrap_handler(method, f"{owner.__name__}.{name}")
        listener = registration.ListenerRegistration.build(
            resolved, owner, name, handler
        )

        existing = _METADATA_STORE.get(QUEUE_LISTEN_METADATA_KEY, owner, name)
        if existing is not None:
            policy = (
                self._duplicate_listener_handler
                or handlers.overwrite_duplicate_listener
            )
            if not policy(existing, listener):
                return existing

        _METADATA_STORE.attach(QUEUE_LISTEN_METADATA_KEY, listener, owner, name)
        setattr(handler, _LISTEN_METADATA_ATTR, listener)

        logger.debug(f"Registered listener {handlers.describe(listener)}")
        return listener

    def register_listener(
        self,
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
        if handler_name not in vars(owner):
            raise ListenerDefinitionError(
                f"Cannot register listener: '{owner.__name__}' does not define "
                f"'{handler_name}'"
            )

        resolved = resolver.resolve_listen_arguments(
            source, options_or_connection, connection
        )
        return self._publish(resolved, owner, handler_name, vars(owner)[handler_name])

    @staticmethod
    def unregister_listener(owner: type, handler_name: str) -> bool:
        """
        Remove the registration of a method.

        Returns:
            bool: True if a registration was removed.
        """
        listener = _METADATA_STORE.remove(
            QUEUE_LISTEN_METADATA_KEY, owner, handler_name
        )
        if listener is None:
            return False

        handler = listener.handler
        if getattr(handler, _LISTEN_METADATA_ATTR, None) is listener:
            delattr(handler, _LISTEN_METADATA_ATTR)

        return True

    def set_duplicate_listener_handler(
        self, handler: Optional[handlers.DUPLICATE_LISTENER_HANDLER]
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
        self._duplicate_listener_handler = handler

    # -----Discovery-----------------------------------------------------------

    @staticmethod
    def get_listener(
        owner: type, handler_name: str
    ) -> Optional[registration.ListenerRegistration]:
        """Get the registration declared by owner for a method, if any."""
        return _METADATA_STORE.get(QUEUE_LISTEN_METADATA_KEY, owner, handler_name)

    @staticmethod
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
        if not inherited:
            return [
                listener
                for _, listener in _METADATA_STORE.items(
                    QUEUE_LISTEN_METADATA_KEY, owner
                )
            ]

        mro = inspect.getmro(owner)
        seen: set[str] = set()
        listeners = []

        for klass in mro:
            for name, listener in _METADATA_STORE.items(
                QUEUE_LISTEN_METADATA_KEY, klass
            ):
                if name in seen:
                    continue
                seen.add(name)

                defining = next((c for c in mro if name in vars(c)), None)
                if defining is klass:
                    listeners.append(listener)

        return listeners

    @staticmethod
    def is_listener(func: Callable) -> bool:
        """Check if a function has been registered as a listener."""
        return ListenerRegistry.get_listener_metadata(func) is not None

    @staticmethod
    def get_listener_metadata(
        func: Callable,
    ) -> Optional[registration.ListenerRegistration]:
        """
        Get the registration of a handler function.
        Accepts plain functions, bound methods, staticmethods and classmethods.
        """
        if isinstance(func, (staticmethod, classmethod)):
            func = func.__func__

        func = getattr(func, "__func__", func)
        return getattr(func, _LISTEN_METADATA_ATTR, None)

    @staticmethod
    def get_all_listeners() -> list[registration.ListenerRegistration]:
        """Get every registration of every live class."""
        return [
            listener
            for owner in _METADATA_STORE.owners(QUEUE_LISTEN_METADATA_KEY)
            for _, listener in _METADATA_STORE.items(QUEUE_LISTEN_METADATA_KEY, owner)
        ]

    def get_listeners_for_queue(
        self, source: str
    ) -> list[registration.ListenerRegistration]:
        """Get every registration consuming from a queue."""
        return [
            listener
            for listener in self.get_all_listeners()
            if listener.source == source
        ]

    def get_listeners_for_connection(
        self, connection: str
    ) -> list[registration.ListenerRegistration]:
        """Get every registration bound to a connection."""
        return [
            listener
            for listener in self.get_all_listeners()
            if listener.connection == connection
        ]

    def get_queues(self) -> list[str]:
        """Get all queues with at least one listener."""
        return sorted({listener.source for listener in self.get_all_listeners()})

    def get_connections(self) -> list[str]:
        """Get all connections with at least one listener."""
        return sorted(
            {listener.connection for listener in self.get_all_listeners()}
        )

    # -----Introspection API---------------------------------------------------

    def get_statistics(self) -> dict[str, object]:
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
        listeners = self.get_all_listeners()
        live = [listener for listener in listeners if listener.handler is not None]

        per_connection: dict[str, int] = {}
        for listener in listeners:
            per_connection[listener.connection] = (
                per_connection.get(listener.connection, 0) + 1
            )

        return {
            "total_listeners": len(listeners),
            "total_live_listeners": len(live),
            "dead_handler_references": len(listeners) - len(live),
            "total_owners": len(_METADATA_STORE.owners(QUEUE_LISTEN_METADATA_KEY)),
            "total_queues": len({listener.source for listener in listeners}),
            "total_connections": len(per_connection),
            "async_listeners": sum(1 for listener in live if listener.is_async),
            "listeners_per_connection": dict(sorted(per_connection.items())),
        }

    @staticmethod
    def _get_listener_info(listener: registration.ListenerRegistration) -> str:
        """Returns a listener's handler and options as a string."""
        handler = listener.handler
        if handler is None:
            info = "<dead reference>"
        else:
            module = getattr(handler, "__module__", "<unknown>")
            info = f"{module}.{handler.__qualname__}"

        if listener.is_async:
            info += " [async]"

        payload_type = listener.payload_type
        if payload_type is not None:
            type_name = getattr(payload_type, "__name__", str(payload_type))
            info += f" [type={type_name}]"

        return info

    def to_dict(self) -> dict:
        """
        Convert the registry to a dictionary of
        connection -> queue -> handler descriptions.
        """
        data: dict[str, dict[str, list[str]]] = {}

        for listener in self.get_all_listeners():
            queues = data.setdefault(listener.connection, {})
            queues.setdefault(listener.source, []).append(
                self._get_listener_info(listener)
            )

        return {
            connection: {
                source: sorted(infos) for source, infos in sorted(queues.items())
            }
            for connection, queues in sorted(data.items())
        }

    def to_string(self) -> str:
        """Returns a string representation of the registry."""
        return json.dumps(self.to_dict(), indent=4)

    def export(self, filepath: Union[str, os.PathLike]) -> None:
        """Export registry structure to filepath."""
        with open(filepath, "w") as outfile:
            json.dump(self.to_dict(), outfile, indent=4)


# This is here to protect the _METADATA_STORE, creating a protective closure.
custom_module = ListenerRegistry(sys.modules[__name__].__name__)
sys.modules[__name__] = custom_module
