"""Exceptions raised while declaring or registering queue listeners."""


class ListenerError(Exception):
    """Base class for listener registry errors."""


class ListenerDefinitionError(ListenerError, TypeError):
    """
    Raised when a listener is declared with an unsupported argument or method
    shape. Always surfaces at class-definition time.
    """


class DuplicateListenerError(ListenerError):
    """Raised by the rejecting duplicate policy when a method is re-registered."""
