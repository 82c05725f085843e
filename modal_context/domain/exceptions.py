"""Base exception classes for the Modal Context domain layer."""


class ModalContextError(Exception):
    """Base exception for all domain errors.

    All domain-specific exceptions MUST inherit from this class.
    This enables consistent error handling across the application.

    Subclasses live in modal_context.domain.errors:
    - InvalidTransitionError
    - RuleSourceError
    - TransactionLogError
    - ConcurrentTransitionError
    """

    def __init__(self, message: str = "") -> None:
        """Initialize the exception with an optional message.

        Args:
            message: Human-readable error description.
        """
        super().__init__(message)
