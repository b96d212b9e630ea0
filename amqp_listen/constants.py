"""
Well-known names shared by the listener registry and its consumers.

The connection constant is what a listener binds to when no connection name is
given at the decoration site. The metadata key namespaces listener records in
the metadata store so the bootstrap scanner can retrieve exactly these records
and ignore anything else attached to the same methods.
"""

AMQP_DEFAULT_CONNECTION = "default"
"""Connection name used when a listener does not name one."""

QUEUE_LISTEN_METADATA_KEY = "amqp:queue:listen"
"""Store key that listener registrations are attached under."""
