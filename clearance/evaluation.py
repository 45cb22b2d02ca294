"""Rule evaluation for a single object and for batches of objects."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterator, List, Optional, Sequence

from .config import DEFAULT_CONCURRENCY
from .errors import RuleFailure, Unauthorized
from .invocation import Invoker

logger = logging.getLogger(__name__)


async def evaluate_rule(
    object_type: str,
    operation: str,
    rule: Invoker,
    subject: Any,
    obj: Any = None,
    context: Any = None,
) -> None:
    """Run ``rule`` for one ``(subject, obj, context)`` triple.

    Returns ``None`` when the rule grants access, raises
    :class:`~clearance.errors.Unauthorized` when it does not and
    :class:`~clearance.errors.RuleFailure` when the rule itself fails.
    """

    try:
        authorized = await rule.invoke(subject, obj, context)
    except Unauthorized:
        logger.debug("%s/%s: denied by rule", object_type, operation)
        raise
    except Exception as error:
        logger.warning("%s/%s: rule raised %s", object_type, operation, type(error).__name__)
        raise RuleFailure(
            f"{object_type}/{operation}: rule failed with error: {error}",
            object_type=object_type,
            operation=operation,
            cause=error,
        ) from error

    if not authorized:
        logger.debug("%s/%s: denied", object_type, operation)
        raise Unauthorized()


def _retrieve(task: asyncio.Future) -> None:
    if not task.cancelled():
        task.exception()


async def evaluate_all(
    object_type: str,
    operation: str,
    rule: Invoker,
    subject: Any,
    objects: Sequence[Any],
    context: Any = None,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> Any:
    """Evaluate ``rule`` against every object, ``concurrency`` at a time.

    The batch is authorized only if every object is. The first failed worker
    decides the outcome, and a rule that was cancelled counts as failed. No
    new objects are started after a failure; evaluations already running are
    left to finish with their results discarded.

    Returns the object itself when exactly one was given, the full list
    otherwise, and ``None`` for an empty batch (the rule is then evaluated
    once without an object).
    """

    if not objects:
        await evaluate_rule(object_type, operation, rule, subject, None, context)
        return None

    pending: Iterator[Any] = iter(objects)
    failed = False

    async def worker() -> None:
        nonlocal failed
        for obj in pending:
            if failed:
                return
            try:
                await evaluate_rule(object_type, operation, rule, subject, obj, context)
            except BaseException:
                failed = True
                raise

    workers: List[asyncio.Task] = [
        asyncio.ensure_future(worker()) for _ in range(min(concurrency, len(objects)))
    ]
    try:
        done, _ = await asyncio.wait(workers, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for task in workers:
            task.cancel()
        raise

    first_error: Optional[BaseException] = None
    for task in workers:
        if task not in done:
            task.add_done_callback(_retrieve)
            continue
        if task.cancelled():
            # a rule raised CancelledError; its object was never decided
            error: Optional[BaseException] = RuleFailure(
                f"{object_type}/{operation}: rule failed with error: evaluation was cancelled",
                object_type=object_type,
                operation=operation,
            )
        else:
            error = task.exception()
        if error is not None and first_error is None:
            first_error = error
    if first_error is not None:
        raise first_error

    return objects[0] if len(objects) == 1 else list(objects)


__all__ = ["evaluate_rule", "evaluate_all"]
