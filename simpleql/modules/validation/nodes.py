"""
Schema nodes for the declarative validator.

Models are written as plain Python data (``"string"``, ``["integer"]``,
``{"name": "string", "required": ["name"], "strict": True}``) and normalized
once into a closed set of node variants before validation.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Union

PRIMITIVE_TAGS = ("string", "integer", "float", "boolean", "function", "binary")
WILDCARD = "*"


@dataclass(frozen=True)
class Wildcard:
    """Accepts any defined value."""


@dataclass(frozen=True)
class Primitive:
    """A single runtime type tag."""

    tag: str


@dataclass
class ArrayOf:
    """Homogeneous array: every member matches ``element``."""

    element: "Node"


@dataclass
class ObjectOf:
    """Map of named fields."""

    fields: Dict[str, "Node"] = field(default_factory=dict)
    required: FrozenSet[str] = frozenset()
    strict: bool = False


Node = Union[Wildcard, Primitive, ArrayOf, ObjectOf]


def normalize_model(model: Any) -> Node:
    """
    Convert a declarative model into schema nodes.

    Args:
        model: Type tag string, single-element list, dict of fields, or a node

    Returns:
        The equivalent node tree

    Raises:
        ValueError: If the model uses an unknown tag or an invalid shape
    """
    if isinstance(model, (Wildcard, Primitive, ArrayOf, ObjectOf)):
        return model

    if isinstance(model, str):
        if model == WILDCARD:
            return Wildcard()
        if model not in PRIMITIVE_TAGS:
            raise ValueError(
                f"Unknown type tag {model!r}. Valid tags are: {', '.join(PRIMITIVE_TAGS)} or {WILDCARD!r}"
            )
        return Primitive(model)

    if isinstance(model, (list, tuple)):
        if len(model) != 1:
            raise ValueError(
                f"Array models must contain exactly one element schema, got {len(model)}"
            )
        return ArrayOf(normalize_model(model[0]))

    if isinstance(model, dict):
        required = frozenset(model.get("required", ()))
        strict = bool(model.get("strict", False))
        fields = {
            key: normalize_model(value)
            for key, value in model.items()
            if key not in ("required", "strict")
        }
        return ObjectOf(fields=fields, required=required, strict=strict)

    raise ValueError(f"Cannot interpret {model!r} as a schema model")
