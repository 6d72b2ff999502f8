"""Runtime checks shared by the frozen result dataclasses.

Private module. Each helper raises ``TypeError`` for a wrong type and
``ValueError`` for a well-typed but unusable value, naming the offending
field.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any


def validate_instance(value: Any, expected: type, name: str) -> None:
    if not isinstance(value, expected):
        raise TypeError(f"{name} must be {expected.__name__}, got {type(value).__name__}")


def validate_text(value: Any, name: str, *, allow_empty: bool = False) -> None:
    """Require a ``str`` without NUL bytes (and non-empty unless ``allow_empty``)."""
    validate_instance(value, str, name)
    if "\x00" in value:
        raise ValueError(f"{name} contains a NUL byte")
    if not value and not allow_empty:
        raise ValueError(f"{name} must not be empty")


def validate_aware_datetime(value: Any, name: str) -> None:
    validate_instance(value, datetime, name)
    if value.tzinfo is None:
        raise ValueError(f"{name} must be timezone-aware")


def validate_number(value: Any, name: str) -> None:
    # bool is an int subclass but never a measurement
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"{name} must be a number, got {type(value).__name__}")


def validate_tuple_of(value: Any, item_type: type, name: str) -> None:
    """Require a tuple whose items are all ``item_type``."""
    validate_instance(value, tuple, name)
    for index, item in enumerate(value):
        if not isinstance(item, item_type):
            raise TypeError(
                f"{name}[{index}] must be {item_type.__name__}, got {type(item).__name__}"
            )
