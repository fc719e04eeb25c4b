"""
Error taxonomy for the scene orchestration engine.

Every fatal condition surfaces as its own exception type so callers can tell
a misconfigured workflow apart from a model failure or an engine bug.
Soft degradations (raw text used verbatim, banned vocabulary accepted after
the retry budget) are not exceptions; they are logged and emitted as events.
"""

from typing import List, Optional


class SceneCraftError(Exception):
    """Base class for all engine errors."""
    pass


class ConfigurationError(SceneCraftError):
    """The content type or workflow configuration cannot be executed."""
    pass


class NoWorkflowConfiguredError(ConfigurationError):
    """Raised when a content type has no agents configured."""

    def __init__(self, content_type: str):
        self.content_type = content_type
        super().__init__(
            f"No agents configured for content type '{content_type}'. "
            "Configure an agent workflow or select the single-prompt strategy explicitly."
        )


class WorkflowCycleError(ConfigurationError):
    """Raised when custom-mode dependencies do not form a DAG."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__(f"Agent dependency cycle detected: {' -> '.join(cycle)}")


class MissingInputError(ConfigurationError):
    """Raised when a required dynamic input field is missing or empty."""

    def __init__(self, field_key: str, label: Optional[str] = None):
        self.field_key = field_key
        self.label = label or field_key
        super().__init__(f"Required field '{self.label}' is missing")


class PlanningFailure(SceneCraftError):
    """The scene planner response yielded zero usable scenes."""

    def __init__(self, message: str, raw_response: Optional[str] = None):
        self.raw_response = raw_response
        super().__init__(message)


class AgentInvocationError(SceneCraftError):
    """The model call for an agent failed."""

    def __init__(self, agent_id: str, message: str, scene_index: Optional[int] = None):
        self.agent_id = agent_id
        self.scene_index = scene_index
        super().__init__(f"Agent '{agent_id}' failed: {message}")


class AgentTimeoutError(AgentInvocationError):
    """The model call for an agent exceeded its deadline."""

    def __init__(self, agent_id: str, timeout_seconds: float, scene_index: Optional[int] = None):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            agent_id,
            f"timed out after {timeout_seconds}s",
            scene_index=scene_index,
        )


class FinalAgentOutputMissing(SceneCraftError):
    """The final agent response did not contain a usable imagePrompt."""

    def __init__(self, agent_id: str, raw_response: str = "", scene_index: Optional[int] = None):
        self.agent_id = agent_id
        self.raw_response = raw_response
        self.scene_index = scene_index
        preview = raw_response[:200] + "..." if len(raw_response) > 200 else raw_response
        super().__init__(
            f"Final agent '{agent_id}' did not return an object with a non-empty imagePrompt. "
            f"Response: {preview!r}"
        )


class SceneIndexIntegrityError(SceneCraftError):
    """Assembled scene indices are not exactly 1..n."""

    def __init__(self, indices: List[int]):
        self.indices = indices
        super().__init__(
            f"Scene indices must be contiguous from 1; got {indices}"
        )
