"""
Duplicate registration policies for the listener registry.

Registering a listener for a (class, method) slot that already carries one is
not expected in normal use. When it happens the registry asks a duplicate
handler what to do. Built-in handlers cover the common patterns: replace
quietly (overwrite_duplicate_listener, the default), replace with a warning
(warn_and_overwrite_duplicate_listener), keep the first registration
(keep_existing_listener), refuse (reject_duplicate_listener) and collect
duplicates for later inspection (collect_duplicate_listener).
"""

import logging
from typing import Callable
from typing import Optional

from amqp_listen import exceptions
from amqp_listen import registration


logger = logging.getLogger(__name__)


DUPLICATE_LISTENER_HANDLER = Callable[
    [registration.ListenerRegistration, registration.ListenerRegistration], bool
]
"""
Signature for duplicate handlers.

Duplicate handlers receive the existing registration and the incoming one, then
return True to replace the existing registration or False to keep it.
"""

REPLACE = True
KEEP = False


def get_handler_name(
    listener: Optional[registration.ListenerRegistration],
) -> str:
    """Returns 'Class.method' for a registration, or '<none>'."""
    if listener is None:
        return "<none>"

    return f"{listener.owner_type_name}.{listener.handler_name}"


def describe(listener: registration.ListenerRegistration) -> str:
    return (
        f"{get_handler_name(listener)} on queue '{listener.source}' "
        f"(connection '{listener.connection}')"
    )


def overwrite_duplicate_listener(
    existing: registration.ListenerRegistration,
    incoming: registration.ListenerRegistration,
) -> bool:
    """Replace the existing registration. Last write wins."""
    logger.debug(
        f"Replacing listener registration {describe(existing)} "
        f"with {describe(incoming)}"
    )
    return REPLACE


def warn_and_overwrite_duplicate_listener(
    existing: registration.ListenerRegistration,
    incoming: registration.ListenerRegistration,
) -> bool:
    """Log the duplicate as a warning, then replace the existing registration."""
    logger.warning(
        f"Duplicate listener registration (replacing):\n"
        f"  Existing: {describe(existing)}\n"
        f"  Incoming: {describe(incoming)}"
    )
    return REPLACE


def keep_existing_listener(
    existing: registration.ListenerRegistration,
    incoming: registration.ListenerRegistration,
) -> bool:
    """Log the duplicate as a warning and keep the first registration."""
    logger.warning(
        f"Duplicate listener registration (ignored): "
        f"{describe(incoming)} already registered as {describe(existing)}"
    )
    return KEEP


def reject_duplicate_listener(
    existing: registration.ListenerRegistration,
    incoming: registration.ListenerRegistration,
) -> bool:
    """Refuse the duplicate. The existing registration stays in place."""
    raise exceptions.DuplicateListenerError(
        f"Listener {get_handler_name(existing)} is already registered on queue "
        f"'{existing.source}' (connection '{existing.connection}'), "
        f"refusing to register it on queue '{incoming.source}' "
        f"(connection '{incoming.connection}')"
    )


duplicates_caught = []


def collect_duplicate_listener(
    existing: registration.ListenerRegistration,
    incoming: registration.ListenerRegistration,
) -> bool:
    """
    Collect duplicates for batch processing, then replace.
    This appends the duplicates to amqp_listen.handlers.duplicates_caught which
    is a list.
    Either manage the list manually or use this function as an example to create
    a more robust duplicate collector.
    """
    duplicates_caught.append(
        {
            "handler": get_handler_name(incoming),
            "existing": describe(existing),
            "incoming": describe(incoming),
        }
    )
    return REPLACE
