"""Clearance: programmatic authorization policies for Python services."""

from typing import Any, Optional

from .config import ClearanceConfig, load_config
from .errors import (
    CallbackError,
    ClearanceError,
    Fault,
    PolicyError,
    ResolverFailure,
    ResolverMissing,
    RuleFailure,
    Unauthorized,
    UnknownOperation,
)
from .invocation import (
    AwaitableInvoker,
    CallbackInvoker,
    DirectInvoker,
    Invoker,
    awaitable_style,
    callback_style,
    direct_style,
)
from .middleware import authorize, status_for, unauthorized_error_handler
from .models import Decision, EvaluationArgs, ObjectSpec, Outcome, Policy
from .registry import Checker, Evaluation, Registry


def build_registry(config: Optional[ClearanceConfig] = None) -> Registry:
    """Create an independent registry."""
    return Registry(config)


# Process-wide registry behind the module-level helpers below.  Code that
# needs isolation (tests, multi-tenant services) should build its own.
default_registry = build_registry()


def register(policy: Any) -> None:
    default_registry.register(policy)


policy = register


def check(subject: Any = None) -> Checker:
    return default_registry.check(subject)


def ask(subject: Any = None) -> Checker:
    return default_registry.ask(subject)


def user() -> Checker:
    return default_registry.user


def reset() -> None:
    default_registry.reset()


__version__ = "0.1.0"
__all__ = [
    "AwaitableInvoker",
    "CallbackError",
    "CallbackInvoker",
    "Checker",
    "ClearanceConfig",
    "ClearanceError",
    "Decision",
    "DirectInvoker",
    "Evaluation",
    "EvaluationArgs",
    "Fault",
    "Invoker",
    "ObjectSpec",
    "Outcome",
    "Policy",
    "PolicyError",
    "Registry",
    "ResolverFailure",
    "ResolverMissing",
    "RuleFailure",
    "Unauthorized",
    "UnknownOperation",
    "ask",
    "authorize",
    "awaitable_style",
    "build_registry",
    "callback_style",
    "check",
    "default_registry",
    "direct_style",
    "load_config",
    "policy",
    "register",
    "reset",
    "status_for",
    "unauthorized_error_handler",
    "user",
]
