class DomainError(Exception):
    """Base class for domain-specific errors."""

    pass


class InputValidationError(DomainError):
    """Exception raised when user supplied input (e.g. a URL) is rejected."""

    pass


class StreamBusyError(DomainError):
    """Exception raised when a chat turn is started while another is active."""

    pass


class StaleDocumentError(DomainError):
    """Exception raised when a document commit lost the race to a newer load."""

    pass
