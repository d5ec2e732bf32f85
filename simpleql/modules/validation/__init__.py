"""
Validation Module - Black Box Interface

Purpose: Enforce declarative contracts on configuration and request data
Interface: validate(), check(), format_model(), normalize_model()
Hidden: Node dispatch, path composition, message rendering

Any plugin can declare its contract as a model and have it checked here.
"""

from .models import DB_COLUMN, INDEX, LOGIN_OPTIONS
from .nodes import ArrayOf, Node, ObjectOf, Primitive, Wildcard, normalize_model
from .validator import (
    NOTHING,
    UNDEFINED,
    SchemaValidationError,
    ValidationError,
    check,
    describe_error,
    format_model,
    validate,
)

__all__ = [
    "ArrayOf",
    "DB_COLUMN",
    "INDEX",
    "LOGIN_OPTIONS",
    "NOTHING",
    "Node",
    "ObjectOf",
    "Primitive",
    "SchemaValidationError",
    "UNDEFINED",
    "ValidationError",
    "Wildcard",
    "check",
    "describe_error",
    "format_model",
    "normalize_model",
    "validate",
]
