"""Inspect query shapes declared by an application."""

from __future__ import annotations

import importlib
import json
import sys
from typing import Any

import click

from listquery.cli.utils import error, header, info, success
from listquery.core.exceptions import PaginationConfigError
from listquery.core.pagination.introspect import describe_shape, format_shape_summary
from listquery.core.pagination.registry import QueryShape, QueryShapeRegistry


def load_registry(target: str) -> QueryShapeRegistry:
    """Import ``module:attribute`` and return it as a registry.

    The attribute may be a ``QueryShapeRegistry``, a single ``QueryShape`` or
    an iterable of shapes.

    Raises:
        click.BadParameter: If the target cannot be imported or is not a
            shape container.
    """
    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        msg = f"Expected 'module:attribute', got {target!r}"
        raise click.BadParameter(msg, param_hint="REGISTRY")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        msg = f"Cannot import module {module_name!r}: {e}"
        raise click.BadParameter(msg, param_hint="REGISTRY") from e

    obj: Any = module
    for part in attribute.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            msg = f"Module {module_name!r} has no attribute {attribute!r}"
            raise click.BadParameter(msg, param_hint="REGISTRY") from e

    if isinstance(obj, QueryShapeRegistry):
        return obj
    if isinstance(obj, QueryShape):
        return QueryShapeRegistry([obj])
    try:
        shapes = list(obj)
    except TypeError:
        shapes = []
    if shapes and all(isinstance(shape, QueryShape) for shape in shapes):
        return QueryShapeRegistry(shapes)

    msg = f"{target!r} is not a QueryShapeRegistry, QueryShape or list of shapes"
    raise click.BadParameter(msg, param_hint="REGISTRY")


@click.group(name="shapes")
def shapes() -> None:
    """Query shape inspection commands."""


@shapes.command(name="list")
@click.argument("registry")
def list_shapes(registry: str) -> None:
    """List the shapes in REGISTRY (``module:attribute``)."""
    loaded = load_registry(registry)
    if not len(loaded):
        info("No query shapes registered")
        return

    header(f"Query shapes ({len(loaded)})")
    for shape in loaded:
        click.echo(
            f"  {shape.name:<24} mode={shape.policy.mode.value:<7} "
            f"fields={len(shape.fields)} sortable={','.join(shape.sortable_aliases) or '-'}"
        )


@shapes.command()
@click.argument("registry")
@click.argument("names", nargs=-1)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
def describe(registry: str, names: tuple[str, ...], output_format: str) -> None:
    """Describe shapes in REGISTRY (all of them unless NAMES are given)."""
    loaded = load_registry(registry)

    try:
        selected = [loaded.get(name) for name in names] if names else list(loaded)
    except PaginationConfigError as e:
        error(str(e))
        sys.exit(1)

    descriptions = [describe_shape(shape) for shape in selected]

    if output_format == "json":
        payload = [item.to_dict() for item in descriptions]
        click.echo(json.dumps(payload, indent=2, default=str))
        return

    for item in descriptions:
        click.echo(format_shape_summary(item))
        click.echo()
    success(f"Described {len(descriptions)} shape(s)")
