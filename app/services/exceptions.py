"""Exceptions for the short-link service layer.

Routes map these to HTTP responses; repository and transport errors are
translated into them so callers never see SQLAlchemy or Redis types.
"""


class ServiceError(Exception):
    """Base exception for all service-level errors."""
    pass


class ShortLinkError(ServiceError):
    """Base exception for short-link errors."""
    pass


class InvalidURLError(ShortLinkError):
    """The submitted URL is not a syntactically valid absolute URI."""
    pass


class ConstraintViolationError(ShortLinkError):
    """The short code is already taken by a live link."""
    pass


class ShortLinkNotFoundError(ShortLinkError):
    """No live short link matches the code or id."""
    pass


class ForbiddenError(ShortLinkError):
    """The requester does not own the short link."""
    pass


class TrackingFailedError(ServiceError):
    """Recording a click failed; the visit is lost, the redirect is not."""
    pass


class CacheUnavailableError(ServiceError):
    """A cache operation failed; callers treat it as a miss."""
    pass


class StoreUnavailableError(ServiceError):
    """The database could not complete an operation."""
    pass
