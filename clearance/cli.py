"""Command line interface for inspecting and trying out policies."""

from __future__ import annotations

import asyncio
import json
import sys
from importlib import import_module
from pathlib import Path
from typing import Any, Optional

import typer

from clearance import Registry
from clearance.errors import ClearanceError, Fault, Unauthorized, UnknownOperation

app = typer.Typer(help="CLI for clearance policies")

DEFAULT_POLICY_ATTRIBUTE = "POLICY"


@app.callback()
def main() -> None:
    """Clearance CLI entry point."""
    pass


def _load_policy(target: str, path: Optional[Path]) -> Any:
    """Import ``module:attribute`` (attribute defaults to ``POLICY``)."""
    if path is not None:
        search_root = str(path.expanduser().resolve())
        if search_root not in sys.path:
            sys.path.insert(0, search_root)

    module_name, _, attribute = target.partition(":")
    try:
        module = import_module(module_name)
    except ImportError as exc:
        raise typer.BadParameter(f"can not import '{module_name}': {exc}") from exc
    try:
        return getattr(module, attribute or DEFAULT_POLICY_ATTRIBUTE)
    except AttributeError as exc:
        raise typer.BadParameter(
            f"'{module_name}' has no attribute '{attribute or DEFAULT_POLICY_ATTRIBUTE}'"
        ) from exc


def _registry_for(target: str, path: Optional[Path]) -> Registry:
    registry = Registry()
    try:
        registry.register(_load_policy(target, path))
    except ClearanceError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=2)
    return registry


def _parse_json(value: Optional[str], name: str) -> Any:
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{name} is not valid JSON: {exc}") from exc


@app.command("show")
def show(
    target: str = typer.Argument(..., help="Policy as module:attribute"),
    path: Optional[Path] = typer.Option(None, help="Directory to import from"),
) -> None:
    """List the operations and object types defined by a policy."""

    registry = _registry_for(target, path)
    rows = registry.operations()
    if not rows:
        typer.echo("No operations defined.")
        return
    for operation, object_type, has_resolver in rows:
        resolver = "resolver" if has_resolver else "-"
        typer.echo(f"{operation:<20} {object_type:<20} {resolver}")


@app.command("check")
def check(
    target: str = typer.Argument(..., help="Policy as module:attribute"),
    operation: str = typer.Argument(...),
    object_type: str = typer.Argument(...),
    subject: str = typer.Option("{}", help="Subject as JSON"),
    ref: Optional[str] = typer.Option(None, help="Object reference"),
    obj: Optional[str] = typer.Option(None, "--object", help="Object as JSON"),
    context: Optional[str] = typer.Option(None, help="Context as JSON"),
    path: Optional[Path] = typer.Option(None, help="Directory to import from"),
) -> None:
    """Evaluate one operation and print the decision.

    Exits with 0 when authorized, 1 when denied and 2 on a policy fault.

    Example:
        clearance check bank.policies:POLICY open account --subject '{"role": "teller"}'
    """

    registry = _registry_for(target, path)
    checker = registry.check(_parse_json(subject, "subject"))
    try:
        leaf = checker.can[operation][object_type]
        asyncio.run(
            leaf(
                ref=ref,
                object=_parse_json(obj, "object"),
                context=_parse_json(context, "context"),
            )
        )
    except Unauthorized:
        typer.echo("denied")
        raise typer.Exit(code=1)
    except (Fault, UnknownOperation) as exc:
        typer.echo(f"fault: {exc}")
        raise typer.Exit(code=2)
    typer.echo("authorized")


if __name__ == "__main__":  # pragma: no cover - manual invocation
    app()
