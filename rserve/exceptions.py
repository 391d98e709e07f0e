"""Exceptions raised by rserve."""

from enum import Enum


class ValidationResult(str, Enum):
    """Outcome of validating a single signed request."""

    MALFORMED = "malformed"
    EXPIRED = "expired"
    BAD_SIGNATURE = "bad_signature"
    NOT_FOUND = "not_found"
    MULTIPLE_OBJECTS = "multiple_objects"
    VALID = "valid"


class RserveError(Exception):
    """Base class for all rserve errors."""


class ConfigurationError(RserveError):
    """Required configuration is missing or cannot be decoded."""


class UsageError(RserveError):
    """A command was invoked with invalid arguments."""


class ValidationError(RserveError):
    """A request failed one of the checks in the validation gate."""

    status = 400
    result = ValidationResult.MALFORMED


class RouteNotFound(ValidationError):
    """The request method or path can never name a servable file."""

    status = 404

    def __init__(self) -> None:
        super().__init__("Not Found")


class MissingParameter(ValidationError):
    """A required query parameter is absent or empty."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Expected query parameter '{name}'")
        self.name = name


class BadEncoding(ValidationError):
    """A query parameter could not be decoded."""


class LinkExpired(ValidationError):
    """The link's expiry time has passed."""

    result = ValidationResult.EXPIRED

    def __init__(self) -> None:
        super().__init__("Link is no longer valid")


class InvalidSignature(ValidationError):
    """The signature does not match the request."""

    result = ValidationResult.BAD_SIGNATURE

    def __init__(self) -> None:
        super().__init__("Signature verification failed")


class NotFound(ValidationError):
    """The signed path does not resolve to any object."""

    status = 404
    result = ValidationResult.NOT_FOUND

    def __init__(self) -> None:
        super().__init__("File not found")


class MultipleObjects(ValidationError):
    """The signed path resolves to more than one object."""

    result = ValidationResult.MULTIPLE_OBJECTS

    def __init__(self) -> None:
        super().__init__("Can only serve single files")


class DeliveryError(RserveError):
    """A validated request could not be served by the backend."""

    status = 500


class BlobStoreError(DeliveryError):
    """The blob store failed to resolve or read an object."""


class LinkCheckError(RserveError):
    """A freshly signed URL was rejected by the server."""

    def __init__(self, url: str, status: int, body: str) -> None:
        super().__init__(f"Server rejected signed URL with status {status}: {body}")
        self.url = url
        self.status = status
        self.body = body
