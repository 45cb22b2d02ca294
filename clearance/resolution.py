"""Turning object references into objects through per-type resolvers."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

from .errors import ResolverFailure, ResolverMissing, Unauthorized
from .invocation import Invoker

logger = logging.getLogger(__name__)


def collect_refs(ref: Any = None, refs: Optional[Iterable[Any]] = None) -> List[Any]:
    """Build the ordered reference list: ``ref`` first, then ``refs``."""
    collected: List[Any] = []
    if ref is not None:
        collected.append(ref)
    if refs:
        collected.extend(refs)
    return collected


def _format_refs(refs: List[Any]) -> str:
    return ",".join(str(ref) for ref in refs)


async def resolve_refs(
    object_type: str,
    operation: str,
    resolver: Optional[Invoker],
    refs: List[Any],
) -> List[Any]:
    """Resolve ``refs`` into objects, positionally aligned with ``refs``.

    A resolver that returns the wrong number of objects, or ``None`` for any
    reference, denies the request instead of failing: anything it could not
    prove to exist is treated as not authorized.
    """

    if not refs:
        return []

    prefix = f"{object_type}/{operation}: object references ({_format_refs(refs)})"
    if resolver is None:
        logger.warning("%s/%s: no resolver configured", object_type, operation)
        raise ResolverMissing(
            f"{prefix} can not be resolved because no resolver is configured",
            object_type=object_type,
            operation=operation,
        )

    try:
        objects = await resolver.invoke(list(refs))
    except Unauthorized:
        raise
    except Exception as error:
        logger.warning(
            "%s/%s: resolver raised %s", object_type, operation, type(error).__name__
        )
        raise ResolverFailure(
            f"{prefix} can not be resolved because of resolver error: {error}",
            object_type=object_type,
            operation=operation,
            cause=error,
        ) from error

    if not isinstance(objects, (list, tuple)):
        raise ResolverFailure(
            f"{object_type}/{operation}: resolver must return an array of objects",
            object_type=object_type,
            operation=operation,
        )
    if len(objects) != len(refs):
        logger.debug(
            "%s/%s: resolver returned %d objects for %d references",
            object_type,
            operation,
            len(objects),
            len(refs),
        )
        raise Unauthorized()
    if any(obj is None for obj in objects):
        logger.debug("%s/%s: unresolved reference", object_type, operation)
        raise Unauthorized()
    return list(objects)


__all__ = ["collect_refs", "resolve_refs"]
