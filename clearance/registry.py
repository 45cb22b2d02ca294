"""Policy registration and the ``checker.can.<operation>.<object_type>`` surface."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Tuple,
    Union,
)

from pydantic import ValidationError

from .config import ClearanceConfig, load_config
from .errors import Fault, PolicyError, UnknownOperation, Unauthorized
from .evaluation import evaluate_all, evaluate_rule
from .invocation import Invoker, invoker_for
from .models import Decision, EvaluationArgs, Outcome, Policy
from .resolution import collect_refs, resolve_refs

logger = logging.getLogger(__name__)

PolicyLike = Union[Policy, Mapping[str, Any]]
ArgsLike = Union[EvaluationArgs, Mapping[str, Any], None]


class DispatchEntry(NamedTuple):
    """Rule and resolver registered for one (operation, object type) pair."""

    object_type: str
    operation: str
    rule: Invoker
    resolver: Optional[Invoker]


class DispatchTable:
    """Immutable ``operation -> object_type -> DispatchEntry`` mapping."""

    def __init__(
        self, entries: Optional[Mapping[str, Mapping[str, DispatchEntry]]] = None
    ) -> None:
        self._entries: Mapping[str, Mapping[str, DispatchEntry]] = MappingProxyType(
            {
                operation: MappingProxyType(dict(by_type))
                for operation, by_type in (entries or {}).items()
            }
        )

    def __contains__(self, operation: object) -> bool:
        return operation in self._entries

    def __len__(self) -> int:
        return sum(len(by_type) for by_type in self._entries.values())

    def operations(self) -> List[str]:
        return sorted(self._entries)

    def object_types(self, operation: str) -> List[str]:
        return sorted(self._entries.get(operation, {}))

    def lookup(self, operation: str, object_type: str) -> DispatchEntry:
        try:
            return self._entries[operation][object_type]
        except KeyError:
            raise UnknownOperation(operation, object_type) from None

    def entries(self) -> Iterator[DispatchEntry]:
        for operation in self.operations():
            for object_type in self.object_types(operation):
                yield self._entries[operation][object_type]

    def merged(self, policy: Policy) -> "DispatchTable":
        """Return a new table with ``policy`` layered over this one."""
        entries: Dict[str, Dict[str, DispatchEntry]] = {
            operation: dict(by_type) for operation, by_type in self._entries.items()
        }
        for object_type, spec in policy.root.items():
            resolver = (
                invoker_for(spec.resolve_refs) if spec.resolve_refs is not None else None
            )
            for operation, rule in spec.operations.items():
                entries.setdefault(operation, {})[object_type] = DispatchEntry(
                    object_type=object_type,
                    operation=operation,
                    rule=invoker_for(rule),
                    resolver=resolver,
                )
                logger.debug("registered %s/%s", object_type, operation)
        return DispatchTable(entries)


class _Generation:
    """Holder for the current table; replaced wholesale on reset."""

    def __init__(self) -> None:
        self.table = DispatchTable()


def _coerce_args(args: ArgsLike, kwargs: Dict[str, Any]) -> EvaluationArgs:
    if isinstance(args, EvaluationArgs):
        if kwargs:
            raise TypeError("pass either EvaluationArgs or keyword arguments, not both")
        return args
    if args is None:
        return EvaluationArgs(**kwargs)
    return EvaluationArgs.model_validate({**args, **kwargs})


async def _authorize(
    entry: DispatchEntry, subject: Any, args: EvaluationArgs, concurrency: int
) -> Any:
    if not args.has_objects:
        await evaluate_rule(
            entry.object_type, entry.operation, entry.rule, subject, None, args.context
        )
        return None

    objects = await resolve_refs(
        entry.object_type,
        entry.operation,
        entry.resolver,
        collect_refs(args.ref, args.refs),
    )
    if args.object is not None:
        objects.append(args.object)
    if args.objects:
        objects.extend(args.objects)
    return await evaluate_all(
        entry.object_type,
        entry.operation,
        entry.rule,
        subject,
        objects,
        args.context,
        concurrency=concurrency,
    )


class Evaluation:
    """Leaf of the dispatch surface: ``await checker.can.open.account(...)``.

    Awaiting the leaf returns the authorized object (or list of objects),
    raises :class:`~clearance.errors.Unauthorized` on denial and re-raises
    any :class:`~clearance.errors.Fault`. Checkers created with
    :meth:`Registry.ask` return ``True``/``False`` instead.
    """

    def __init__(
        self, checker: "Checker", operation: str, object_type: str, negate: bool
    ) -> None:
        self._checker = checker
        self.operation = operation
        self.object_type = object_type
        self.negate = negate

    @property
    def subject(self) -> Any:
        return self._checker.subject

    def with_subject(self, subject: Any) -> "Evaluation":
        """Return the same leaf bound to ``subject``."""
        return Evaluation(
            self._checker.rebind(subject), self.operation, self.object_type, self.negate
        )

    async def evaluate(self, args: ArgsLike = None, **kwargs: Any) -> Outcome:
        """Evaluate and report the result as an :class:`Outcome` instead of raising."""
        arguments = _coerce_args(args, kwargs)
        # snapshot: later registrations do not affect this call
        entry = self._checker.table.lookup(self.operation, self.object_type)
        try:
            value = await _authorize(
                entry, self.subject, arguments, self._checker.concurrency
            )
        except Unauthorized:
            if self.negate:
                return Outcome(decision=Decision.AUTHORIZED)
            return Outcome(decision=Decision.DENIED)
        except Fault as error:
            return Outcome(decision=Decision.FAULT, error=error)

        if self.negate:
            return Outcome(decision=Decision.DENIED)
        return Outcome(decision=Decision.AUTHORIZED, value=value)

    async def __call__(self, args: ArgsLike = None, **kwargs: Any) -> Any:
        outcome = await self.evaluate(args, **kwargs)
        if outcome.decision is Decision.FAULT:
            raise outcome.error
        if self._checker.answer:
            return outcome.authorized
        if not outcome.authorized:
            raise Unauthorized()
        return outcome.value

    def __repr__(self) -> str:
        prefix = "can.not_" if self.negate else "can"
        return f"<Evaluation {prefix}.{self.operation}.{self.object_type}>"


class OperationNamespace:
    """``checker.can.<operation>``; attributes are object types."""

    def __init__(self, checker: "Checker", operation: str, negate: bool) -> None:
        self._checker = checker
        self._operation = operation
        self._negate = negate

    def __getattr__(self, object_type: str) -> Evaluation:
        if object_type.startswith("_"):
            raise AttributeError(object_type)
        return self[object_type]

    def __getitem__(self, object_type: str) -> Evaluation:
        self._checker.table.lookup(self._operation, object_type)
        return Evaluation(self._checker, self._operation, object_type, self._negate)

    def __dir__(self) -> List[str]:
        return self._checker.table.object_types(self._operation)


class Capability:
    """``checker.can``; attributes are operation names."""

    def __init__(self, checker: "Checker", negate: bool = False) -> None:
        self._checker = checker
        self._negate = negate

    @property
    def not_(self) -> "Capability":
        """The negated capability: ``checker.can.not_.open.account()``."""
        return Capability(self._checker, not self._negate)

    def __getattr__(self, operation: str) -> OperationNamespace:
        if operation.startswith("_"):
            raise AttributeError(operation)
        return self[operation]

    def __getitem__(self, operation: str) -> OperationNamespace:
        if operation not in self._checker.table:
            raise UnknownOperation(operation)
        return OperationNamespace(self._checker, operation, self._negate)

    def __dir__(self) -> List[str]:
        return ["not_"] + self._checker.table.operations()


class Checker:
    """A subject bound to a registry generation."""

    def __init__(
        self,
        generation: _Generation,
        subject: Any,
        concurrency: int,
        answer: bool = False,
    ) -> None:
        self._generation = generation
        self.subject = subject
        self.concurrency = concurrency
        self.answer = answer

    @property
    def table(self) -> DispatchTable:
        return self._generation.table

    @property
    def can(self) -> Capability:
        return Capability(self)

    @property
    def cannot(self) -> Capability:
        return Capability(self, negate=True)

    def rebind(self, subject: Any) -> "Checker":
        return Checker(self._generation, subject, self.concurrency, self.answer)


class Registry:
    """Accumulates policies and hands out checkers bound to subjects.

    Example::

        registry = Registry()
        registry.register({
            "account": {"operations": {"open": lambda user, *_: user["role"] == "teller"}},
        })
        await registry.check({"role": "teller"}).can.open.account()
    """

    def __init__(self, config: Optional[ClearanceConfig] = None) -> None:
        self._config = config
        self._generation = _Generation()

    @property
    def config(self) -> ClearanceConfig:
        """Explicit config, or the loaded one on first use."""
        if self._config is None:
            self._config = load_config()
        return self._config

    @property
    def concurrency(self) -> int:
        return self.config.evaluation.concurrency

    @property
    def table(self) -> DispatchTable:
        return self._generation.table

    def register(self, policy: PolicyLike) -> None:
        """Merge ``policy`` into the dispatch table.

        Raises:
            PolicyError: If the policy is malformed, e.g. a rule is not callable.
        """

        if not isinstance(policy, Policy):
            try:
                policy = Policy.model_validate(policy)
            except ValidationError as exc:
                raise PolicyError(f"invalid policy: {exc}") from exc
        generation = self._generation
        generation.table = generation.table.merged(policy)

    policy = register

    def reset(self) -> None:
        """Drop every registered policy.

        Checkers bound before the reset keep seeing the old table.
        """
        logger.debug("resetting registry with %d rules", len(self.table))
        self._generation = _Generation()

    def bind(self, subject: Any) -> Checker:
        """Checker whose evaluations raise ``Unauthorized`` on denial."""
        return Checker(self._generation, subject, self.concurrency)

    check = bind

    def ask(self, subject: Any) -> Checker:
        """Checker whose evaluations answer ``True`` or ``False``."""
        return Checker(self._generation, subject, self.concurrency, answer=True)

    @property
    def user(self) -> Checker:
        """Unbound checker; rebind leaves with :meth:`Evaluation.with_subject`."""
        return self.bind(None)

    def operations(self) -> List[Tuple[str, str, bool]]:
        """Rows of ``(operation, object_type, has_resolver)`` for the current table."""
        return [
            (entry.operation, entry.object_type, entry.resolver is not None)
            for entry in self.table.entries()
        ]


__all__ = [
    "DispatchEntry",
    "DispatchTable",
    "Evaluation",
    "OperationNamespace",
    "Capability",
    "Checker",
    "Registry",
]
