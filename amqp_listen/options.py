"""
Listener option data structures.

Defines the ListenOptions TypedDict that documents the option keys understood
by the bootstrap layer that turns registrations into live consumers. The
registry itself treats options as an opaque mapping: keys are neither validated
nor stripped, so consumers may carry their own extra settings.
"""

from typing import Any
from typing import TypedDict


class ListenOptions(TypedDict, total=False):
    """Options accepted by @listen."""

    type: Any
    """Payload class messages are deserialized into before reaching the handler."""

    skip_validation: bool
    """Hand the payload to the handler without validating it against `type`."""

    no_ack: bool
    """Consume in auto-acknowledge mode."""

    prefetch_count: int
    """Maximum number of unacknowledged messages delivered to this listener."""

    exclusive: bool
    """Request exclusive consumer access to the queue."""
