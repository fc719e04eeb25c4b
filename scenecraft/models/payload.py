"""
Inter-agent payload values.

A value merged into shared state is either structured data parsed from the
model's JSON, or Unstructured text when the model answered in prose.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Unstructured:
    """Model output that could not be parsed into structured data."""
    text: str

    def __str__(self) -> str:
        return self.text


def is_unstructured(value: Any) -> bool:
    return isinstance(value, Unstructured)


def to_plain(value: Any) -> Any:
    """Recursively replace Unstructured values with their text."""
    if isinstance(value, Unstructured):
        return value.text
    if isinstance(value, dict):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    return value
