from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    BAD_REQUEST = "bad-request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not-found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class DomainError(Exception):
    """Base for domain errors; every error carries a kind."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_message = "internal error"

    def __init__(self, message: str | None = None, *, cause: BaseException | None = None):
        self.message = message or self.default_message
        self.cause = cause
        super().__init__(self.message)


class BadRequestError(DomainError):
    """Request payload or context is unusable."""

    kind = ErrorKind.BAD_REQUEST
    default_message = "bad request"


class NoDeviceInfoError(BadRequestError):
    """Request carries no usable IP or user agent."""

    default_message = "no device info"


class NotFoundError(DomainError):
    """Requested entity does not exist."""

    kind = ErrorKind.NOT_FOUND
    default_message = "not found"


class SigningKeyNotFoundError(NotFoundError):
    """Token references an unknown signing key."""


class CodeNotValidError(NotFoundError):
    """One-time code is absent, expired, exhausted or wrong."""

    default_message = "code is not valid"


class AlreadyExistsError(DomainError):
    """Unique constraint would be violated."""

    kind = ErrorKind.CONFLICT
    default_message = "already exists"


class UnauthorizedError(DomainError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "unauthorized"


class InvalidCredentialsError(UnauthorizedError):
    """Credential did not match."""

    default_message = "invalid credentials"


class CaptchaInvalidError(UnauthorizedError):
    """Captcha provider rejected the token."""

    default_message = "CAPTCHA validation failed"


class TokenRevokedError(UnauthorizedError):
    """Refresh token was revoked or its device is gone."""

    default_message = "token revoked"


class TokenExpiredError(UnauthorizedError):
    default_message = "token expired"


class TokenInvalidError(UnauthorizedError):
    default_message = "invalid token"


class MissingTokenError(UnauthorizedError):
    default_message = "missing token"


class ForbiddenError(DomainError):
    """Caller may not perform the operation."""

    kind = ErrorKind.FORBIDDEN
    default_message = "not authorized"


class InternalError(DomainError):
    """Unclassified failure."""


class CaptchaVerificationFailedError(InternalError):
    """Captcha provider could not be reached."""

    default_message = "CAPTCHA verification failed"


class ProviderTransportError(InternalError):
    """Identity provider endpoint could not be reached."""


class MailDeliveryError(InternalError):
    """Mail collaborator failed to send."""
