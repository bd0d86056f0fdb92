"""Domain-specific exceptions for Finance Core.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from FinanceCoreError for easy catching.

Request errors (validation, authorization, not found) are raised before any
external call is made and are surfaced to the caller as a ``status: false``
response. Fetch and processing errors are scoped to a single establishment
and never abort sibling processing.
"""


class FinanceCoreError(Exception):
    """Base exception for all Finance Core errors."""

    pass


class ConfigError(FinanceCoreError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - Invalid configuration values are provided
    - The store file cannot be loaded or parsed
    - Stored records violate data-model constraints
    """

    pass


class RequestError(FinanceCoreError):
    """Base class for errors reported back to the requester.

    Attributes:
        code: Stable machine-readable error code.
        http_status: HTTP status the boundary layer should answer with.
    """

    code = "E_REQUEST"
    http_status = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(RequestError):
    """Raised when request parameters are missing or malformed."""

    code = "E_VALIDATION"
    http_status = 400


class AuthorizationError(RequestError):
    """Raised when the principal has no establishments it may access."""

    code = "E_UNAUTHORIZED"
    http_status = 403


class NotFoundError(RequestError):
    """Raised when no record matches the request.

    Distinct from AuthorizationError: the principal is entitled to ask,
    but nothing matches the filter or identifiers.
    """

    code = "E_NOT_FOUND"
    http_status = 404


class ExternalFetchError(FinanceCoreError):
    """Raised when a provider call fails after all attempts.

    This exception is raised when:
    - Network connection to the provider fails or times out
    - The provider answers with a non-2xx status
    - The provider returns a body that is not JSON
    """

    pass


class ProcessingError(FinanceCoreError):
    """Raised when one establishment's provider data cannot be normalized."""

    pass


class FatalError(FinanceCoreError):
    """Raised when an unexpected fault aborts a whole request."""

    pass
