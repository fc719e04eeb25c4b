"""
Response coercion: untrusted model text to structured agent payloads.

The chain is strict and ordered; each step runs only if the previous failed:

1. Parse the trimmed response as JSON.
2. Strip a leading/trailing Markdown fence (``` or ```json) and parse again.
3. Extract the first top-level {...} block and parse that.
4. Use the raw text as Unstructured for every output key.

Step 4 is never an error for regular agents. The final agent has no step 4:
its response must yield an object with a non-empty imagePrompt.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from ..models.payload import Unstructured
from ..models.scene import FinalSceneOutput
from .errors import FinalAgentOutputMissing

logger = logging.getLogger("scenecraft.coercion")

_FENCE_OPEN = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\n?```\s*$")
_OBJECT_BLOCK = re.compile(r"\{[\s\S]*\}")
_ARRAY_BLOCK = re.compile(r"\[[\s\S]*\]")

# Keys a final agent sometimes wraps its scene object in
_FINAL_WRAPPER_KEYS = ("scene", "scenePlan", "scene_plan", "output", "result")


class CoercionStrategy(str, Enum):
    """Which step of the chain produced the payload."""
    DIRECT_JSON = "direct_json"
    FENCE_STRIPPED = "fence_stripped"
    EMBEDDED_OBJECT = "embedded_object"
    RAW_TEXT = "raw_text"


@dataclass
class CoercionResult:
    """Payload keyed by output key, plus how it was obtained."""
    payload: Dict[str, Any]
    strategy: CoercionStrategy
    degraded_keys: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return self.strategy == CoercionStrategy.RAW_TEXT or bool(self.degraded_keys)


def strip_code_fence(text: str) -> str:
    """Remove a leading ```/```json line and a trailing ``` fence."""
    stripped = _FENCE_OPEN.sub("", text.strip(), count=1)
    return _FENCE_CLOSE.sub("", stripped, count=1).strip()


def _loads(candidate: str, accept_arrays: bool) -> Optional[Any]:
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.debug(f"[_loads] JSON parse failed: {e}")
        return None
    if isinstance(value, dict) or (accept_arrays and isinstance(value, list)):
        return value
    logger.debug(f"[_loads] Parsed JSON is a {type(value).__name__}, not an object")
    return None


def _extract_embedded(text: str, accept_arrays: bool) -> Optional[Any]:
    patterns = [(_OBJECT_BLOCK, "{")]
    if accept_arrays:
        patterns.append((_ARRAY_BLOCK, "["))

    for pattern, start_char in patterns:
        match = pattern.search(text)
        if not match:
            continue
        result = _loads(match.group(0), accept_arrays)
        if result is not None:
            return result
        # Greedy match spans trailing braces in the noise; decode from the first brace instead
        try:
            result, _ = json.JSONDecoder().raw_decode(text[match.start():])
        except json.JSONDecodeError as e:
            logger.debug(f"[_extract_embedded] raw_decode failed for '{start_char}': {e}")
            continue
        if isinstance(result, dict) or (accept_arrays and isinstance(result, list)):
            return result
    return None


def parse_structured(text: str, accept_arrays: bool = False) -> Tuple[Optional[Any], Optional[CoercionStrategy]]:
    """
    Run the structural steps (1-3) of the chain.

    Returns (value, strategy), or (None, None) when no step produced an
    object (or, with accept_arrays, a list).
    """
    if not text or not text.strip():
        logger.debug("[parse_structured] Empty text provided")
        return None, None

    trimmed = text.strip()
    preview = trimmed[:300] + "..." if len(trimmed) > 300 else trimmed
    logger.debug(f"[parse_structured] Attempting to parse text (len={len(trimmed)}): {preview}")

    result = _loads(trimmed, accept_arrays)
    if result is not None:
        return result, CoercionStrategy.DIRECT_JSON

    if trimmed.startswith("```") or trimmed.endswith("```"):
        result = _loads(strip_code_fence(trimmed), accept_arrays)
        if result is not None:
            logger.debug("[parse_structured] Code fence extraction succeeded")
            return result, CoercionStrategy.FENCE_STRIPPED

    result = _extract_embedded(trimmed, accept_arrays)
    if result is not None:
        logger.debug("[parse_structured] Embedded block extraction succeeded")
        return result, CoercionStrategy.EMBEDDED_OBJECT

    return None, None


class ResponseCoercer:
    """
    Turns raw model text into payloads keyed by an agent's output keys.

    schemas optionally maps an output key to a pydantic model; a value that
    fails validation is kept as Unstructured(json text) and reported as
    degraded rather than silently passed through as if valid.
    """

    def __init__(self, schemas: Optional[Dict[str, Type[BaseModel]]] = None):
        self.schemas = dict(schemas or {})

    def coerce(self, text: str, output_keys: List[str]) -> CoercionResult:
        """Coerce a regular agent's response. Never raises."""
        parsed, strategy = parse_structured(text)

        if parsed is None:
            logger.warning(
                f"[coerce] Could not parse structured output for keys {output_keys}; using raw text"
            )
            raw = Unstructured(text.strip() if text else "")
            return CoercionResult(
                payload={key: raw for key in output_keys},
                strategy=CoercionStrategy.RAW_TEXT,
            )

        first_key = output_keys[0] if output_keys else None
        payload: Dict[str, Any] = {}
        degraded_keys: List[str] = []
        for key in output_keys:
            if key in parsed:
                value = parsed[key]
            elif first_key in parsed:
                value = parsed[first_key]
            else:
                value = parsed
            value, valid = self._validate(key, value)
            if not valid:
                degraded_keys.append(key)
            payload[key] = value

        return CoercionResult(payload=payload, strategy=strategy, degraded_keys=degraded_keys)

    def coerce_final(self, text: str, agent_id: str) -> FinalSceneOutput:
        """Coerce the final agent's response; raises FinalAgentOutputMissing."""
        parsed, strategy = parse_structured(text)
        if parsed is None:
            raise FinalAgentOutputMissing(agent_id, raw_response=text or "")

        candidate = self._unwrap_final(parsed)
        try:
            output = FinalSceneOutput.model_validate(candidate)
        except ValidationError as e:
            logger.debug(f"[coerce_final] Final output validation failed: {e}")
            raise FinalAgentOutputMissing(agent_id, raw_response=text) from e

        logger.debug(f"[coerce_final] Final output parsed via {strategy.value}")
        return output

    def _unwrap_final(self, parsed: Dict[str, Any]) -> Dict[str, Any]:
        if "imagePrompt" in parsed or "image_prompt" in parsed:
            return parsed
        for key in _FINAL_WRAPPER_KEYS:
            if isinstance(parsed.get(key), dict):
                return parsed[key]
        if len(parsed) == 1:
            only = next(iter(parsed.values()))
            if isinstance(only, dict):
                return only
        return parsed

    def _validate(self, key: str, value: Any) -> Tuple[Any, bool]:
        schema = self.schemas.get(key)
        if schema is None:
            return value, True
        try:
            return schema.model_validate(value).model_dump(), True
        except ValidationError as e:
            logger.warning(f"[_validate] Value for '{key}' does not match {schema.__name__}: {e.error_count()} errors")
            return Unstructured(json.dumps(value, ensure_ascii=False, default=str)), False
