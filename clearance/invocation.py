"""Uniform async invocation of rules and resolvers.

Rules and resolvers may be written as plain functions, as coroutine
functions, or in completion-callback style. Each is wrapped once, at
registration time, in an :class:`Invoker` so the evaluation code only ever
deals with ``await invoker.invoke(*args)``.
"""

from __future__ import annotations

import abc
import asyncio
import enum
import inspect
from typing import Any, Callable, Dict, Optional, Tuple, Type

from .errors import CallbackError

STYLE_ATTRIBUTE = "__clearance_style__"


def positional_arity(func: Callable[..., Any]) -> Optional[int]:
    """Number of positional parameters ``func`` takes, ``None`` if unbounded."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return None
    count = 0
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            count += 1
    return count


class Style(str, enum.Enum):
    """Calling convention of a rule or resolver."""

    DIRECT = "direct"
    AWAITABLE = "awaitable"
    CALLBACK = "callback"


class Invoker(abc.ABC):
    """Wraps ``func`` behind a single awaitable ``invoke`` method.

    Arguments beyond what ``func`` accepts positionally are dropped, so a
    rule that only looks at the subject can be written as ``lambda user: ...``.
    """

    style: Style

    def __init__(self, func: Callable[..., Any]) -> None:
        if not callable(func):
            raise TypeError(f"{func!r} is not callable")
        self.func = func
        self.arity = positional_arity(func)

    def _fit(self, args: Tuple[Any, ...], reserved: int = 0) -> Tuple[Any, ...]:
        if self.arity is None:
            return args
        return args[: max(self.arity - reserved, 0)]

    @abc.abstractmethod
    async def invoke(self, *args: Any) -> Any:
        """Call the wrapped function with ``args`` and return its result."""
        raise NotImplementedError

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        name = getattr(self.func, "__qualname__", None) or repr(self.func)
        return f"{type(self).__name__}({name})"


class DirectInvoker(Invoker):
    """Plain functions. An awaitable return value is awaited."""

    style = Style.DIRECT

    async def invoke(self, *args: Any) -> Any:
        result = self.func(*self._fit(args))
        if inspect.isawaitable(result):
            return await result
        return result


class AwaitableInvoker(Invoker):
    """Coroutine functions and other callables returning awaitables."""

    style = Style.AWAITABLE

    async def invoke(self, *args: Any) -> Any:
        return await self.func(*self._fit(args))


class CallbackInvoker(Invoker):
    """Functions that report through a trailing ``done(error, result)`` argument.

    A non-``None`` synchronous return value wins over the callback, and an
    awaitable return value is awaited instead of waiting on it. Only the
    first ``done`` call counts. ``done`` is safe to call from another thread.
    """

    style = Style.CALLBACK

    async def invoke(self, *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        def _settle(error: Any, result: Any) -> None:
            if future.done():
                return
            if error:
                if not isinstance(error, BaseException):
                    error = CallbackError(error)
                future.set_exception(error)
            else:
                future.set_result(result)

        def done(error: Any = None, result: Any = None) -> None:
            if not loop.is_closed():
                loop.call_soon_threadsafe(_settle, error, result)

        returned = self.func(*self._fit(args, reserved=1), done)
        if returned is None:
            return await future

        # the callback no longer matters
        future.cancel()
        if inspect.isawaitable(returned):
            return await returned
        return returned


_INVOKERS: Dict[Style, Type[Invoker]] = {
    Style.DIRECT: DirectInvoker,
    Style.AWAITABLE: AwaitableInvoker,
    Style.CALLBACK: CallbackInvoker,
}


def _declare(func: Callable[..., Any], style: Style) -> Callable[..., Any]:
    try:
        setattr(func, STYLE_ATTRIBUTE, style)
    except AttributeError as exc:
        raise TypeError(
            f"can not mark {func!r} as {style.value} style; "
            f"wrap it in {_INVOKERS[style].__name__} instead"
        ) from exc
    return func


def direct_style(func: Callable[..., Any]) -> Callable[..., Any]:
    """Declare ``func`` as a plain function."""
    return _declare(func, Style.DIRECT)


def awaitable_style(func: Callable[..., Any]) -> Callable[..., Any]:
    """Declare that ``func`` returns an awaitable."""
    return _declare(func, Style.AWAITABLE)


def callback_style(func: Callable[..., Any]) -> Callable[..., Any]:
    """Declare that ``func`` takes a trailing ``done(error, result)`` callable."""
    return _declare(func, Style.CALLBACK)


def _is_coroutine_callable(func: Any) -> bool:
    if inspect.iscoroutinefunction(func):
        return True
    call = getattr(func, "__call__", None)
    return not inspect.isroutine(func) and inspect.iscoroutinefunction(call)


def invoker_for(func: Any) -> Invoker:
    """Return the invoker matching ``func``'s calling convention.

    Explicit declarations win; otherwise coroutine functions are awaited and
    everything else is called directly. Ready-made invokers pass through.
    """

    if isinstance(func, Invoker):
        return func
    if not callable(func):
        raise TypeError(f"{func!r} is not callable")
    style = getattr(func, STYLE_ATTRIBUTE, None)
    if style is None:
        style = Style.AWAITABLE if _is_coroutine_callable(func) else Style.DIRECT
    return _INVOKERS[Style(style)](func)


__all__ = [
    "Style",
    "Invoker",
    "DirectInvoker",
    "AwaitableInvoker",
    "CallbackInvoker",
    "direct_style",
    "awaitable_style",
    "callback_style",
    "invoker_for",
]
