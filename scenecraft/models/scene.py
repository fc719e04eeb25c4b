"""
Scene-level models: planner output, agent contributions, final-agent output
and the generated scenes returned to callers.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .workflow import CamelModel, RenderingSpec


class GenerationStrategy(str, Enum):
    """Which generation pipeline a session runs."""
    SHARED_STATE = "shared_state"          # JSON-per-agent shared state (canonical)
    DRAFT_REFINEMENT = "draft_refinement"  # plain-text agents refining one draft
    SINGLE_PROMPT = "single_prompt"        # legacy one-call generation


class SceneInfo(BaseModel):
    """One planned scene."""
    index: int = Field(..., ge=1)
    purpose: str
    execution_input: Optional[str] = None


class AgentContribution(CamelModel):
    """Audit record of one executed agent."""
    agent_id: str
    agent_name: str
    agent_role: str
    order: int
    input: Dict[str, Any] = Field(default_factory=dict)
    output: Any = None
    degraded: bool = False


def _flatten_text(value: Any) -> Any:
    if isinstance(value, list):
        return ", ".join(str(item) for item in value if item not in (None, ""))
    return value


class FinalSceneOutput(CamelModel):
    """Validated object returned by the final agent."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    image_prompt: str
    negative_prompt: Optional[str] = None
    camera: Union[str, Dict[str, Any], None] = None
    environment: Union[Dict[str, Any], str, None] = None
    on_screen_text: Union[str, Dict[str, Any], None] = None
    composition_notes: Optional[str] = None
    notes: Optional[str] = None
    shot_type: Optional[str] = None

    @field_validator("image_prompt", mode="before")
    @classmethod
    def _require_image_prompt(cls, value: Any) -> Any:
        value = _flatten_text(value)
        if not isinstance(value, str) or not value.strip():
            raise ValueError("imagePrompt must be a non-empty string")
        return value.strip()

    @field_validator("negative_prompt", "composition_notes", "notes", "shot_type", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        value = _flatten_text(value)
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("camera", "on_screen_text", mode="before")
    @classmethod
    def _coerce_text_or_mapping(cls, value: Any) -> Any:
        value = _flatten_text(value)
        if value is None or isinstance(value, (str, dict)):
            return value
        return str(value)

    @field_validator("environment", mode="before")
    @classmethod
    def _coerce_environment(cls, value: Any) -> Any:
        if value is None or isinstance(value, (str, dict)):
            return value
        if isinstance(value, list):
            items = [item for item in value if item not in (None, "")]
            return {"items": items} if items else None
        return str(value)


class GeneratedScene(CamelModel):
    """A finished scene as returned to the caller."""
    index: int = Field(..., ge=1)
    purpose: str = ""
    shot_type: Optional[str] = None
    image_prompt: Optional[str] = None
    negative_prompt: Optional[str] = None
    camera: Optional[str] = None
    camera_details: Dict[str, str] = Field(default_factory=dict)
    environment: Optional[Dict[str, Any]] = None
    on_screen_text: Optional[str] = None
    on_screen_text_style: Optional[str] = None
    composition_notes: Optional[str] = None
    notes: Optional[str] = None
    duration_seconds: Optional[float] = None
    agent_contributions: List[AgentContribution] = Field(default_factory=list)

    @classmethod
    def from_final_output(
        cls,
        output: FinalSceneOutput,
        scene: SceneInfo,
        contributions: Optional[List[AgentContribution]] = None,
        duration_seconds: Optional[float] = None,
    ) -> "GeneratedScene":
        """Flatten the final agent's nested fields into a scene."""
        camera = output.camera
        camera_details: Dict[str, str] = {}
        if isinstance(camera, dict):
            camera_details = {
                key: str(value)
                for key, value in camera.items()
                if key != "shot" and value not in (None, "")
            }
            camera = camera.get("shot")

        environment = output.environment
        if isinstance(environment, str):
            environment = {"description": environment} if environment.strip() else None

        on_screen_text = output.on_screen_text
        on_screen_style = None
        if isinstance(on_screen_text, dict):
            on_screen_style = on_screen_text.get("styleNotes") or on_screen_text.get("style_notes")
            on_screen_text = on_screen_text.get("text")

        return cls(
            index=scene.index,
            purpose=scene.purpose,
            shot_type=output.shot_type,
            image_prompt=output.image_prompt,
            negative_prompt=output.negative_prompt or None,
            camera=str(camera) if camera else None,
            camera_details=camera_details,
            environment=environment or None,
            on_screen_text=str(on_screen_text) if on_screen_text else None,
            on_screen_text_style=on_screen_style,
            composition_notes=output.composition_notes,
            notes=output.notes,
            duration_seconds=duration_seconds,
            agent_contributions=list(contributions or []),
        )


class GenerationResult(CamelModel):
    """Outcome of one generation session."""
    run_id: str
    content_type: str
    strategy: GenerationStrategy
    scenes: List[GeneratedScene] = Field(default_factory=list)
    rendering_spec: RenderingSpec = Field(default_factory=RenderingSpec)
