"""
Recursive structural validator.

Data is matched against a schema node tree depth-first. The first mismatch
wins and is reported with the path where it happened (``users[2].email``).
"""

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Optional, Union

from ...errors import ConfigValidationError
from .nodes import ArrayOf, Node, ObjectOf, Primitive, Wildcard, normalize_model

logger = logging.getLogger(__name__)


class _Undefined:
    """Marker for a value that is absent."""

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()
NOTHING = "nothing"


@dataclass(frozen=True)
class ValidationError:
    """Where and how data failed to match its model."""

    expected: Union[Node, str]
    received: Any
    path: str = ""
    required: bool = False

    def prefixed(self, prefix: str) -> "ValidationError":
        return replace(self, path=_join_path(prefix, self.path))


class SchemaValidationError(ValueError):
    """Raised by validate() with the structured error attached."""

    def __init__(self, error: ValidationError):
        super().__init__(describe_error(error))
        self.error = error


def _join_path(prefix: str, inner: str) -> str:
    if not inner:
        return prefix
    if inner.startswith("["):
        return prefix + inner
    return f"{prefix}.{inner}"


def runtime_type(data: Any) -> str:
    """Name the runtime type of a primitive the way models spell it."""
    if data is None:
        return "null"
    if isinstance(data, bool):
        return "boolean"
    if isinstance(data, int):
        return "integer"
    if isinstance(data, float):
        return "integer" if data.is_integer() else "float"
    if isinstance(data, (bytes, bytearray, memoryview)):
        return "binary"
    if isinstance(data, str):
        return "string"
    if callable(data):
        return "function"
    return type(data).__name__


def _match(node: Node, data: Any) -> Optional[ValidationError]:
    if data is UNDEFINED:
        return ValidationError(node, data)

    if isinstance(node, Wildcard):
        return None

    if isinstance(data, str):
        if isinstance(node, Primitive) and node.tag == "string":
            return None
        return ValidationError(node, data)

    if isinstance(data, (list, tuple)):
        if not isinstance(node, ArrayOf):
            return ValidationError(node, data)
        for index, element in enumerate(data):
            error = _match(node.element, element)
            if error:
                return error.prefixed(f"[{index}]")
        return None

    if isinstance(data, dict):
        if not isinstance(node, ObjectOf):
            return ValidationError(node, data)
        for key, child in node.fields.items():
            value = data.get(key)
            if value is None:
                if key in node.required:
                    return ValidationError(child, UNDEFINED, key, required=True)
                continue
            error = _match(child, value)
            if error:
                return error.prefixed(key)
        if node.strict:
            for key, value in data.items():
                if key not in node.fields:
                    return ValidationError(NOTHING, value, str(key))
        return None

    if callable(data) and not isinstance(data, (bytes, bytearray, memoryview)):
        if isinstance(node, Primitive) and node.tag == "function":
            return None
        return ValidationError(node, data)

    if isinstance(node, Primitive) and node.tag == runtime_type(data):
        return None
    return ValidationError(node, data)


def validate(model: Any, data: Any = UNDEFINED) -> None:
    """
    Check that data matches the model.

    Args:
        model: Declarative model or normalized node tree
        data: Value to check. Omitting it validates an absent value.

    Raises:
        SchemaValidationError: With the first mismatch found
    """
    error = _match(normalize_model(model), data)
    if error:
        raise SchemaValidationError(error)


def check(model: Any, data: Any, name: str) -> None:
    """
    Validate configuration data and turn mismatches into boot errors.

    Args:
        model: Declarative model
        data: Configuration to check
        name: What is being checked, used in the error message

    Raises:
        ConfigValidationError: If the data does not match the model
    """
    try:
        validate(model, data)
    except SchemaValidationError as e:
        message = f"{describe_error(e.error)} in {name}"
        logger.debug(message)
        raise ConfigValidationError(message, e.error) from e


def describe_error(error: ValidationError) -> str:
    """Render a validation error as a sentence."""
    if isinstance(error.expected, str):
        expected = error.expected
    else:
        expected = format_model(error.expected)
    if error.required:
        expected += " (required)"
    location = f" for {error.path}" if error.path else ""
    return f"We expected {expected} but we received {stringify(error.received)}{location}"


def stringify(value: Any) -> str:
    """Short human readable rendering of a received value."""
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"<{len(value)} bytes>"
    if callable(value) and not isinstance(value, type):
        return f"function {getattr(value, '__name__', repr(value))}"
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return repr(value)


def format_model(model: Any, indent: int = 0) -> str:
    """
    Format a model into a human readable string.

    Object fields listed in ``required`` are annotated with ``(required)`` and
    strict objects with ``(strict)``.
    """
    node = normalize_model(model)
    if isinstance(node, Wildcard):
        return "*"
    if isinstance(node, Primitive):
        return node.tag
    if isinstance(node, ArrayOf):
        return f"[{format_model(node.element, indent)}]"

    if not node.fields:
        body = "{}"
    else:
        pad = "  " * (indent + 1)
        lines = []
        for key, child in node.fields.items():
            suffix = " (required)" if key in node.required else ""
            lines.append(f"{pad}{key}: {format_model(child, indent + 1)}{suffix}")
        body = "{\n" + ",\n".join(lines) + "\n" + "  " * indent + "}"
    return body + (" (strict)" if node.strict else "")
