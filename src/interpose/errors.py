"""Custom error types for interpose."""


class InterposeError(Exception):
    """Base class for all interpose errors."""


class _KeyedError(InterposeError):
    """Error raised for one offending key."""

    key: object

    def __init__(self, key: object, message: str) -> None:
        """Initialize a keyed error.

        :param key: Key that triggered the error.
        :param message: Human-readable description.
        """
        self.key = key
        super().__init__(message)


class UnknownMemberError(_KeyedError, LookupError, AttributeError):
    """Raised when an enumeration is asked for an undeclared member."""


class PolicyViolationError(_KeyedError):
    """Raised when a write targets a key the active policy does not allow."""


class ValidationError(_KeyedError, ValueError):
    """Raised when a written value fails the predicate of its field rule."""

    message: str

    def __init__(self, key: object, message: str) -> None:
        """Initialize a validation error.

        :param key: Field that rejected the value.
        :param message: Message configured on the field rule.
        """
        self.message = message
        super().__init__(key, message)


class ImmutableError(_KeyedError, TypeError):
    """Raised for any mutation attempted on an enumeration."""


class RevokedAccessError(InterposeError):
    """Raised for any operation attempted on a revoked virtual object."""


class UnsupportedOperationError(InterposeError, TypeError):
    """Raised when the backing store cannot perform the requested operation."""
