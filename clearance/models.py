"""Pydantic models describing policies and evaluation results."""

from __future__ import annotations

import enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator

from .invocation import Invoker


def _ensure_callable(value: Any, what: str) -> Any:
    if isinstance(value, Invoker) or callable(value):
        return value
    raise ValueError(f"{what} must be callable, got {type(value).__name__}")


class ObjectSpec(BaseModel):
    """Rules and optional reference resolver for one object type."""

    operations: Dict[str, Any] = Field(
        default_factory=dict, description="Operation name to rule"
    )
    resolve_refs: Optional[Any] = Field(
        default=None,
        alias="resolveRefs",
        description="Maps a list of references to a list of objects",
    )

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    @field_validator("operations")
    @classmethod
    def _check_rules(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        for name, rule in v.items():
            if not name:
                raise ValueError("operation names must be non-empty strings")
            _ensure_callable(rule, f"rule for operation '{name}'")
        return v

    @field_validator("resolve_refs")
    @classmethod
    def _check_resolver(cls, v: Any) -> Any:
        if v is None:
            return v
        return _ensure_callable(v, "resolver")


class Policy(RootModel[Dict[str, ObjectSpec]]):
    """Object type name to :class:`ObjectSpec`."""

    @field_validator("root")
    @classmethod
    def _check_names(cls, v: Dict[str, ObjectSpec]) -> Dict[str, ObjectSpec]:
        if any(not name for name in v):
            raise ValueError("object type names must be non-empty strings")
        return v


class EvaluationArgs(BaseModel):
    """Objects, references and context for one evaluation."""

    ref: Any = None
    refs: Optional[List[Any]] = None
    object: Any = None
    objects: Optional[List[Any]] = None
    context: Any = None

    model_config = ConfigDict(extra="forbid")

    @property
    def has_objects(self) -> bool:
        """``True`` when any object or reference field was supplied."""
        return any(
            value is not None
            for value in (self.ref, self.refs, self.object, self.objects)
        )


class Decision(str, enum.Enum):
    AUTHORIZED = "authorized"
    DENIED = "denied"
    FAULT = "fault"


class Outcome(BaseModel):
    """Result of an evaluation that did not raise."""

    decision: Decision
    value: Any = None
    error: Optional[BaseException] = None

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @property
    def authorized(self) -> bool:
        return self.decision is Decision.AUTHORIZED
