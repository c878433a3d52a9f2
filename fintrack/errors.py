class FinanceError(Exception):
    """Base class for errors raised by the finance engine."""


class InvalidInput(FinanceError, ValueError):
    pass


class NotFound(FinanceError, LookupError):
    pass


class Protected(FinanceError):
    """Raised when a default category would be edited or removed."""
