# fitsocial/core/errors.py
"""
Error types raised by the social layer.

Every error is scoped to a single user action. Store failures are translated
at the service boundary by ``translate_store_errors`` so callers only ever see
these types.
"""
import logging
from functools import wraps

from pymongo.errors import (
    AutoReconnect,
    ConnectionFailure,
    DuplicateKeyError,
    NetworkTimeout,
    ServerSelectionTimeoutError,
)

logger = logging.getLogger(__name__)


class SocialError(Exception):
    """Base class for social layer errors"""
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(SocialError):
    """Rejected before any store call"""
    status_code = 400


class SelfFollowError(ValidationError):
    def __init__(self, detail: str = "Cannot follow yourself"):
        super().__init__(detail)


class ConflictError(SocialError):
    """A uniqueness constraint rejected the write"""
    status_code = 409


class InvalidStateError(SocialError):
    """The target is not in the expected state, or is already resolved"""
    status_code = 409


class TransientError(SocialError):
    """Network or timeout failure talking to the store. Never retried."""
    status_code = 503


_TRANSIENT = (AutoReconnect, ConnectionFailure, NetworkTimeout, ServerSelectionTimeoutError)


def translate_store_errors(func):
    """Translate driver exceptions raised by an async service method."""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except DuplicateKeyError as e:
            logger.info(f"Uniqueness conflict in {func.__name__}: {e}")
            raise ConflictError("Already exists") from e
        except _TRANSIENT as e:
            logger.error(f"Store unavailable in {func.__name__}: {e}")
            raise TransientError("Service temporarily unavailable, please try again") from e
    return wrapper
