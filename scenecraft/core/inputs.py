"""
Dynamic input extraction driven by a content type's inputs contract.
"""

import logging
from typing import Any, Dict, Optional

from ..models.workflow import InputsContract
from .errors import MissingInputError

logger = logging.getLogger("scenecraft.inputs")


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def get_nested_value(data: Any, path: str) -> Any:
    """Resolve a dot-separated path; None when any segment is missing."""
    current = data
    for key in path.split("."):
        if current is None:
            return None
        if isinstance(current, dict):
            current = current.get(key)
        elif isinstance(current, (list, tuple)) and key.isdigit():
            index = int(key)
            current = current[index] if index < len(current) else None
        else:
            return None
    return current


def extract_inputs(raw_inputs: Dict[str, Any], contract: Optional[InputsContract] = None) -> Dict[str, Any]:
    """
    Normalize request inputs for prompting.

    With a contract, each field is read from its dot-path key and stored under
    its label; a missing required field raises MissingInputError. Without a
    contract, non-empty top-level inputs pass through.
    """
    if not contract or not contract.fields:
        return {key: value for key, value in raw_inputs.items() if not _is_empty(value)}

    extracted: Dict[str, Any] = {}
    for field in contract.fields:
        value = get_nested_value(raw_inputs, field.key)
        if _is_empty(value):
            if field.required:
                raise MissingInputError(field.key, field.label)
            continue
        extracted[field.label or field.key] = value

    logger.debug(f"[extract_inputs] Extracted {len(extracted)} of {len(contract.fields)} fields")
    return extracted
