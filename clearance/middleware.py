"""Helpers for guarding request handlers with policy checks.

These are framework agnostic: a *request* is any object with a ``user``
attribute and, optionally, ``path_params`` or ``params`` mappings (Starlette,
aiohttp and similar frameworks all fit).
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

from .errors import Unauthorized
from .registry import Evaluation

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[Any]]
RefGetter = Callable[[Any], Any]

HTTP_UNAUTHORIZED = 401
HTTP_INTERNAL_ERROR = 500


def _default_ref(request: Any) -> Any:
    for attribute in ("path_params", "params"):
        params = getattr(request, attribute, None)
        if isinstance(params, Mapping) and params.get("id") is not None:
            return params["id"]
    return None


def authorize(
    leaf: Evaluation, get_ref: Optional[RefGetter] = None
) -> Callable[[Handler], Handler]:
    """Wrap ``handler`` so it only runs when ``leaf`` authorizes the request.

    The subject is ``request.user`` and the request itself is passed to the
    rule as context. The object reference comes from ``get_ref(request)``
    or, by default, from an ``id`` path parameter.

    Example::

        @authorize(registry.user.can.close.account)
        async def close_account(request):
            ...
    """

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def _wrapper(request: Any) -> Any:
            ref = get_ref(request) if get_ref else _default_ref(request)
            bound = leaf.with_subject(getattr(request, "user", None))
            await bound(ref=ref, context=request)
            return await handler(request)

        return _wrapper

    return decorator


def status_for(error: BaseException) -> int:
    """Map an evaluation error to an HTTP status code."""
    if isinstance(error, Unauthorized):
        return HTTP_UNAUTHORIZED
    return HTTP_INTERNAL_ERROR


def unauthorized_error_handler(error: BaseException) -> int:
    """Return 401 for denials and re-raise everything else."""
    if isinstance(error, Unauthorized):
        logger.debug("request denied")
        return HTTP_UNAUTHORIZED
    raise error


__all__ = ["authorize", "status_for", "unauthorized_error_handler", "Handler"]
