"""Exception taxonomy for clearance.

Evaluations end in one of three ways: the operation is authorized, it is
denied (:class:`Unauthorized`), or the policy itself is broken (a
:class:`Fault`). Callers are expected to treat the first two as normal
control flow and to surface the last one as an internal error.
"""

from __future__ import annotations

from typing import Optional


class ClearanceError(Exception):
    """Base class for all clearance errors."""


class Unauthorized(ClearanceError):
    """The subject is not allowed to perform the operation.

    Deliberately carries no message so rule internals never leak to callers.
    """

    def __init__(self) -> None:
        super().__init__()


class PolicyError(ClearanceError, ValueError):
    """A policy handed to :meth:`Registry.register` is malformed."""


class UnknownOperation(ClearanceError, AttributeError):
    """No rule is registered for the requested operation or object type."""

    def __init__(self, operation: str, object_type: Optional[str] = None) -> None:
        self.operation = operation
        self.object_type = object_type
        if object_type is None:
            message = f"unknown operation '{operation}'"
        else:
            message = f"unknown operation '{operation}' on object type '{object_type}'"
        super().__init__(message)


class CallbackError(ClearanceError):
    """Wraps a non-exception error value passed to a completion callback."""

    def __init__(self, error: object) -> None:
        self.error = error
        super().__init__(str(error))


class Fault(ClearanceError):
    """Configuration or execution failure of a rule or resolver."""

    def __init__(
        self,
        message: str,
        object_type: str,
        operation: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.object_type = object_type
        self.operation = operation
        self.cause = cause


class RuleFailure(Fault):
    """A rule raised instead of returning a decision."""


class ResolverMissing(Fault):
    """References were supplied for an object type without a resolver."""


class ResolverFailure(Fault):
    """A resolver raised or returned something other than a sequence."""


__all__ = [
    "ClearanceError",
    "Unauthorized",
    "PolicyError",
    "UnknownOperation",
    "CallbackError",
    "Fault",
    "RuleFailure",
    "ResolverMissing",
    "ResolverFailure",
]
