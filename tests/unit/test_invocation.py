"""Tests for rule and resolver invocation styles."""

import asyncio
import threading

import pytest

from clearance.errors import CallbackError
from clearance.invocation import (
    AwaitableInvoker,
    CallbackInvoker,
    DirectInvoker,
    Style,
    callback_style,
    invoker_for,
    positional_arity,
)


def test_invoker_for_selects_style_from_function():
    async def coroutine_rule(subject, obj, context):
        return True

    class AsyncCallable:
        async def __call__(self, subject):
            return True

    assert isinstance(invoker_for(lambda subject: True), DirectInvoker)
    assert isinstance(invoker_for(coroutine_rule), AwaitableInvoker)
    assert isinstance(invoker_for(AsyncCallable()), AwaitableInvoker)


def test_invoker_for_honours_declared_style():
    @callback_style
    def rule(subject, done):
        done(None, True)

    invoker = invoker_for(rule)
    assert isinstance(invoker, CallbackInvoker)
    assert invoker.style is Style.CALLBACK


def test_invoker_for_passes_invokers_through_and_rejects_non_callables():
    invoker = DirectInvoker(lambda: True)
    assert invoker_for(invoker) is invoker
    with pytest.raises(TypeError):
        invoker_for("not a rule")


def test_positional_arity():
    assert positional_arity(lambda: None) == 0
    assert positional_arity(lambda subject, obj=None: None) == 2
    assert positional_arity(lambda *args: None) is None
    assert positional_arity(lambda subject, *, flag=False: None) == 1


@pytest.mark.asyncio
async def test_direct_invoker_drops_extra_arguments():
    invoker = DirectInvoker(lambda subject: subject["role"] == "teller")
    assert await invoker.invoke({"role": "teller"}, None, None) is True


@pytest.mark.asyncio
async def test_direct_invoker_awaits_returned_awaitable():
    loop = asyncio.get_running_loop()

    def rule(subject, obj, context):
        future = loop.create_future()
        future.set_result("granted")
        return future

    assert await DirectInvoker(rule).invoke("s", "o", "c") == "granted"


@pytest.mark.asyncio
async def test_direct_invoker_propagates_exceptions():
    def rule(subject):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await DirectInvoker(rule).invoke("s", None, None)


@pytest.mark.asyncio
async def test_awaitable_invoker():
    async def rule(subject, obj):
        await asyncio.sleep(0)
        return obj == "account"

    assert await AwaitableInvoker(rule).invoke("s", "account", None) is True


@pytest.mark.asyncio
async def test_callback_invoker_waits_for_done():
    def resolver(refs, done):
        asyncio.get_running_loop().call_soon(done, None, [r * 2 for r in refs])

    assert await CallbackInvoker(resolver).invoke([1, 2]) == [2, 4]


@pytest.mark.asyncio
async def test_callback_invoker_rejects_with_error():
    def resolver(refs, done):
        done(ValueError("lookup failed"))

    with pytest.raises(ValueError, match="lookup failed"):
        await CallbackInvoker(resolver).invoke([1])


@pytest.mark.asyncio
async def test_callback_invoker_wraps_non_exception_errors():
    def rule(subject, done):
        done("nope")

    with pytest.raises(CallbackError, match="nope"):
        await CallbackInvoker(rule).invoke("s", None, None)


@pytest.mark.asyncio
async def test_callback_invoker_sync_return_wins():
    def rule(subject, done):
        done(RuntimeError("ignored"))
        return False

    assert await CallbackInvoker(rule).invoke("s", None, None) is False


@pytest.mark.asyncio
async def test_callback_invoker_only_first_done_counts():
    def rule(subject, done):
        done(None, True)
        done(RuntimeError("late"))

    assert await CallbackInvoker(rule).invoke("s", None, None) is True


@pytest.mark.asyncio
async def test_callback_invoker_accepts_done_from_thread():
    def rule(subject, done):
        threading.Thread(target=done, args=(None, "from thread")).start()

    assert await CallbackInvoker(rule).invoke("s", None, None) == "from thread"


@pytest.mark.asyncio
async def test_callback_invoker_synchronous_raise():
    def rule(subject, done):
        raise KeyError("missing")

    with pytest.raises(KeyError):
        await CallbackInvoker(rule).invoke("s", None, None)
