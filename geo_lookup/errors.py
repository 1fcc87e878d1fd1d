"""
Error types surfaced by the lookup service.

Every HTTP-facing failure carries the message shown to the caller and the
status it maps to. Internal details are logged, never returned.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GeoLookupError(Exception):
    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(GeoLookupError):
    status_code = 404


class BadRequestError(GeoLookupError):
    status_code = 400


class InternalError(GeoLookupError):
    status_code = 500


class StoreUnavailableError(Exception):
    """The document store could not be reached at startup."""


def lookup_failure(message: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Wrap an async route so unexpected exceptions become InternalError(message).

    GeoLookupError subclasses (NotFound, BadRequest) pass through untouched.
    The wrapper keeps the wrapped signature so FastAPI still sees the
    route's parameters.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await func(*args, **kwargs)
            except GeoLookupError:
                raise
            except Exception as e:
                logger.exception("%s: %s", message, e)
                raise InternalError(message) from e

        return wrapper

    return decorator
