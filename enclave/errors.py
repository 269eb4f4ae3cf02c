"""Request-scoped error types.

Each error carries the HTTP status the web layer answers with. None of them
are fatal to the process.
"""


class EnclaveError(Exception):
    """Base class for errors surfaced to the client."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(EnclaveError):
    """Input (form data or model output) failed validation."""

    status_code = 400


class ImportValidationError(ValidationFailed):
    """Extracted import fields did not match the declared schema."""


class Unauthorized(EnclaveError):
    """No valid session, or bad credentials."""

    status_code = 401


class Forbidden(EnclaveError):
    """The viewer may not perform this action."""

    status_code = 403


class NotFound(EnclaveError):
    """The requested record does not exist."""

    status_code = 404


class StoreError(EnclaveError):
    """The data store rejected a read or write."""

    status_code = 500


class ExtractionError(EnclaveError):
    """The language model could not be reached or refused the request."""

    status_code = 502
