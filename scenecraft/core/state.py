"""
Shared state for one scene and the session context that spans scenes.

SharedState is the per-scene blackboard agents read from and write to. It is
created fresh for every scene, seeded with an "input" key, and every write is
recorded in a change log. GenerationSessionContext carries what outlives a
scene: the run id, the optional conversational history used for cross-scene
continuity, the event callback and the tracing service.
"""

import copy
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..models.payload import to_plain
from ..services.tracing import TracingService, tracing_service


@dataclass
class SharedState:
    """Per-scene mapping from state keys to agent outputs."""

    values: Dict[str, Any] = field(default_factory=dict)
    _change_log: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def seeded(cls, inputs: Dict[str, Any]) -> "SharedState":
        return cls(values={"input": copy.deepcopy(inputs)})

    def merge(self, key: str, value: Any, source: str = "unknown") -> None:
        """Write one key, overwriting any previous value."""
        old_value = self.values.get(key)
        self.values[key] = value
        self._change_log.append({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "key": key,
            "source": source,
            "old_value_type": type(old_value).__name__,
            "new_value_type": type(value).__name__,
        })

    def merge_payload(self, payload: Dict[str, Any], source: str = "unknown") -> None:
        for key, value in payload.items():
            self.merge(key, value, source)

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def keys(self) -> List[str]:
        return list(self.values.keys())

    def view(self, keys: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """Deep copy of the whole state, or only of the given keys that exist."""
        if keys is None:
            return copy.deepcopy(self.values)
        return {key: copy.deepcopy(self.values[key]) for key in keys if key in self.values}

    def snapshot(self) -> Dict[str, Any]:
        return self.view()

    def to_prompt_json(self, keys: Optional[Iterable[str]] = None) -> str:
        return state_to_json(self.view(keys))

    def get_change_log(self) -> List[Dict[str, Any]]:
        """Get the change log for debugging."""
        return self._change_log.copy()


def state_to_json(values: Dict[str, Any]) -> str:
    """Render a state view for inclusion in a prompt."""
    return json.dumps(to_plain(values), indent=2, ensure_ascii=False, default=str)


@dataclass
class GenerationSessionContext:
    """
    Context for one generation session.

    Passed by reference into the planner and the orchestrator. reset() is the
    explicit boundary at session start; history only accumulates when
    continuity_enabled is set.
    """

    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    continuity_enabled: bool = False
    event_callback: Optional[Callable[[str, Dict[str, Any]], None]] = None
    tracing: TracingService = field(default_factory=lambda: tracing_service)
    history: List[Dict[str, str]] = field(default_factory=list)

    def reset(self) -> None:
        """Start a new session: fresh run id and empty history."""
        self.run_id = str(uuid.uuid4())
        self.history.clear()

    def record_exchange(self, user_prompt: str, response: str) -> None:
        if not self.continuity_enabled:
            return
        self.history.append({"role": "user", "content": user_prompt})
        self.history.append({"role": "assistant", "content": response})

    def history_for_call(self) -> Optional[List[Dict[str, str]]]:
        if not self.continuity_enabled or not self.history:
            return None
        return list(self.history)

    def emit_event(self, event_type: str, data: Dict[str, Any]) -> None:
        """Emit an event for UI updates."""
        if self.event_callback:
            self.event_callback(event_type, {"run_id": self.run_id, **data})

    def trace_event(self, name: str, level: str = "DEFAULT", metadata: Optional[Dict[str, Any]] = None) -> None:
        self.tracing.record_event(self.run_id, name, level=level, metadata=metadata)
