"""Custom exceptions for the casedesk application."""


class CaseDeskError(Exception):
    """Base exception for casedesk."""

    pass


class ConfigurationError(CaseDeskError):
    """Raised when configuration is invalid."""

    pass


class NotFoundError(CaseDeskError):
    """Raised when a resource is not found."""

    pass


class TransportError(CaseDeskError):
    """Raised when the backend cannot be reached or answers with a failure status."""

    pass


class ProtocolError(CaseDeskError):
    """Raised when the backend answers with a body the client cannot interpret."""

    pass
