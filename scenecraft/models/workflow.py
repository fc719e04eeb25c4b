"""
Pydantic models for agent workflows and content type configuration.

Configuration arrives as camelCase JSON from the content-type store, so every
model here accepts both the camelCase alias and the snake_case field name.
The `prompting` section may describe its agents in three different shapes;
they are resolved once, at load time, into a single canonical AgentWorkflow.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


FINAL_ASSEMBLER_ROLE = "final_assembler"
FINAL_SCENE_KEY = "scenePlan"

DEFAULT_CAMERA_PRESETS: List[str] = [
    "CU handheld face",
    "MS handheld",
    "WS establishing",
    "Top-down product",
    "Product macro",
    "Over-shoulder phone",
    "Mirror shot",
    "Shelf product hero",
    "Lifestyle walk-by",
    "Flatlay",
]


class CamelModel(BaseModel):
    """Base model accepting camelCase aliases and snake_case names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExecutionOrder(str, Enum):
    """How agents within one scene are scheduled."""
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    CUSTOM = "custom"


class RenderTarget(str, Enum):
    """What the generated prompts are rendered into."""
    VIDEO = "video"
    IMAGE_FIRST_FRAME = "image_first_frame"


# ============================================================================
# Agent Workflow
# ============================================================================

class AgentDefinition(CamelModel):
    """
    A single role-scoped LLM step.

    Dependencies may be declared in the legacy shape (input_from/output_to,
    naming agent ids) or the current shape (reads_from/writes_to, naming
    shared-state keys).
    """
    id: str = Field(..., min_length=1)
    role: str = Field(..., description="Open role label, custom roles allowed")
    name: str = ""
    system_prompt: Optional[str] = None
    prompt: Optional[str] = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    order: int = 0
    input_from: List[str] = Field(default_factory=list)
    output_to: List[str] = Field(default_factory=list)
    reads_from: List[str] = Field(default_factory=list)
    writes_to: List[str] = Field(default_factory=list)

    @field_validator("temperature", mode="before")
    @classmethod
    def _default_temperature(cls, value: Any) -> Any:
        return 0.7 if value is None else value

    @field_validator("input_from", "output_to", "reads_from", "writes_to", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @model_validator(mode="after")
    def _default_name(self) -> "AgentDefinition":
        if not self.name:
            self.name = self.role.replace("_", " ").title()
        return self

    def output_keys(self) -> List[str]:
        """Shared-state keys this agent's output is merged under."""
        return list(self.writes_to) if self.writes_to else [self.id]

    @property
    def declares_inputs(self) -> bool:
        return bool(self.reads_from or self.input_from)


class AgentWorkflow(CamelModel):
    """Ordered set of agents plus the execution mode."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    agents: List[AgentDefinition] = Field(..., min_length=1)
    execution_order: ExecutionOrder = ExecutionOrder.SEQUENTIAL
    final_agent_id: Optional[str] = None

    @model_validator(mode="after")
    def _check_agents(self) -> "AgentWorkflow":
        seen = set()
        for agent in self.agents:
            if agent.id in seen:
                raise ValueError(f"Duplicate agent id '{agent.id}'")
            seen.add(agent.id)
        if self.final_agent_id and self.final_agent_id not in seen:
            raise ValueError(f"Final agent '{self.final_agent_id}' is not part of the workflow")
        return self

    def sorted_agents(self) -> List[AgentDefinition]:
        """Agents in ascending order; ties keep declaration order."""
        return sorted(self.agents, key=lambda agent: agent.order)

    def get_agent(self, agent_id: str) -> Optional[AgentDefinition]:
        for agent in self.agents:
            if agent.id == agent_id:
                return agent
        return None

    def final_agent(self) -> AgentDefinition:
        """
        The agent whose output becomes the scene.

        Priority: explicit final_agent_id, then the first agent marked as an
        assembler (by role, name or a scenePlan output key), then the last
        agent by order.
        """
        ordered = self.sorted_agents()
        if self.final_agent_id:
            return self.get_agent(self.final_agent_id)
        for agent in ordered:
            if (
                agent.role == FINAL_ASSEMBLER_ROLE
                or "assembler" in agent.name.lower()
                or FINAL_SCENE_KEY in agent.writes_to
            ):
                return agent
        return ordered[-1]

    def regular_agents(self) -> List[AgentDefinition]:
        final_id = self.final_agent().id
        return [agent for agent in self.sorted_agents() if agent.id != final_id]


class WorkflowSourceKind(str, Enum):
    """The configuration shapes an agent list can arrive in."""
    AGENT_WORKFLOW = "agent_workflow"
    AGENT_OBJECTS = "agent_objects"
    AGENT_NAMES = "agent_names"
    NONE = "none"


def classify_workflow_source(agent_workflow: Any, agents: Any) -> WorkflowSourceKind:
    """Tag the prompting section's agent configuration with its shape."""
    if isinstance(agent_workflow, AgentWorkflow):
        return WorkflowSourceKind.AGENT_WORKFLOW
    if isinstance(agent_workflow, dict) and agent_workflow.get("agents"):
        return WorkflowSourceKind.AGENT_WORKFLOW
    if not agents:
        return WorkflowSourceKind.NONE
    if all(isinstance(item, str) for item in agents):
        return WorkflowSourceKind.AGENT_NAMES
    if all(isinstance(item, (dict, AgentDefinition)) for item in agents):
        return WorkflowSourceKind.AGENT_OBJECTS
    raise ValueError("'agents' must be a list of agent names or a list of agent objects, not a mix")


def resolve_workflow(
    agent_workflow: Any = None,
    agents: Any = None,
    execution_order: Any = None,
) -> Optional[AgentWorkflow]:
    """
    Resolve any supported agent configuration shape into an AgentWorkflow.

    Returns None when no agents are configured at all.
    """
    kind = classify_workflow_source(agent_workflow, agents)

    if kind == WorkflowSourceKind.NONE:
        return None

    if kind == WorkflowSourceKind.AGENT_WORKFLOW:
        return AgentWorkflow.model_validate(agent_workflow)

    if kind == WorkflowSourceKind.AGENT_OBJECTS:
        definitions = [AgentDefinition.model_validate(item) for item in agents]
    else:
        definitions = [
            AgentDefinition(
                id=f"agent-{i}",
                name=label,
                role=label.strip().lower().replace(" ", "_"),
                order=i,
            )
            for i, label in enumerate(agents)
        ]

    return AgentWorkflow(
        agents=definitions,
        execution_order=execution_order or ExecutionOrder.SEQUENTIAL,
    )


# ============================================================================
# Content Type Configuration
# ============================================================================

class ShotLibraryEntry(CamelModel):
    """A declared scene purpose, e.g. hook / demo / cta."""
    type: str = Field(..., validation_alias=AliasChoices("type", "purpose"))
    goal: Optional[str] = None
    description: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _from_label(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"type": data}
        return data


class PromptingConfig(CamelModel):
    """Prompting section of a content type, with its workflow resolved."""
    system_prompt_template: Optional[str] = None
    workflow: Optional[AgentWorkflow] = None
    shot_library: List[ShotLibraryEntry] = Field(default_factory=list)
    constraints: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _resolve_sources(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        agent_workflow = data.pop("agentWorkflow", None) or data.pop("agent_workflow", None)
        agents = data.pop("agents", None)
        execution_order = data.pop("executionOrder", None) or data.pop("execution_order", None)

        library = data.pop("sceneBlueprint", None) or data.pop("scene_blueprint", None)
        if isinstance(agent_workflow, dict) and not library:
            library = agent_workflow.get("shotLibrary") or agent_workflow.get("sceneBlueprint")
        if library and not (data.get("shotLibrary") or data.get("shot_library")):
            data["shotLibrary"] = library

        if data.get("workflow") is None:
            data["workflow"] = resolve_workflow(agent_workflow, agents, execution_order)
        return data

    def purposes(self) -> List[str]:
        return [entry.type for entry in self.shot_library]


class SceneOrderingRules(CamelModel):
    must_start_strong: bool = False
    must_end_with_closure: bool = False
    avoid_repetition: bool = False
    platform_aware_ordering: bool = False


class SceneGenerationPolicy(CamelModel):
    """Scene count bounds and ordering rules for the planner."""
    min_scenes: int = Field(default=3, ge=1)
    max_scenes: int = Field(default=6, ge=1)
    rules: SceneOrderingRules = Field(default_factory=SceneOrderingRules)
    opening_shot_type: str = "hook"


class OutputLimits(CamelModel):
    """Numeric ceilings a finished scene must satisfy."""
    image_prompt_max_chars: int = Field(default=1000, ge=1)
    camera_max_chars: int = Field(default=90, ge=1)
    negatives_max_chars: int = Field(default=160, ge=1)
    max_sentences_image_prompt: int = Field(default=20, ge=1)
    max_words_on_screen_text: int = Field(default=6, ge=1)


class GlobalDefaults(CamelModel):
    aspect_ratio: Optional[str] = None
    visual_style: Optional[str] = None
    duration_per_scene_seconds: Optional[float] = None


class OutputContract(CamelModel):
    """The output contract every generated scene is enforced against."""
    limits: OutputLimits = Field(default_factory=OutputLimits)
    camera_presets: List[str] = Field(default_factory=lambda: list(DEFAULT_CAMERA_PRESETS))
    render_target: RenderTarget = RenderTarget.VIDEO
    global_defaults: GlobalDefaults = Field(default_factory=GlobalDefaults)

    @field_validator("camera_presets", mode="before")
    @classmethod
    def _default_presets(cls, value: Any) -> Any:
        return value or list(DEFAULT_CAMERA_PRESETS)

    @property
    def is_image_first(self) -> bool:
        return self.render_target == RenderTarget.IMAGE_FIRST_FRAME


class InputField(CamelModel):
    """A dynamic input field; key is a dot-path into the request inputs."""
    key: str
    label: Optional[str] = None
    required: bool = False


class InputsContract(CamelModel):
    fields: List[InputField] = Field(default_factory=list)


class RenderingSpec(CamelModel):
    """Session-level rendering hints; missing values read as 'default'."""
    aspect_ratio: str = "default"
    style: str = "default"
    image_model_hint: str = "default"
    color_grade: str = "default"
    lighting_mood: str = "default"
    music_mood: str = "default"
    transitions: str = "default"

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value not in (None, "")}
        return data


class ContentTypeDefinition(CamelModel):
    """Everything needed to generate one content type."""
    name: str
    description: Optional[str] = None
    prompting: PromptingConfig = Field(default_factory=PromptingConfig)
    scene_generation_policy: SceneGenerationPolicy = Field(default_factory=SceneGenerationPolicy)
    output_contract: OutputContract = Field(default_factory=OutputContract)
    inputs_contract: Optional[InputsContract] = None
    rendering: RenderingSpec = Field(default_factory=RenderingSpec)

    @property
    def workflow(self) -> Optional[AgentWorkflow]:
        return self.prompting.workflow

    def rendering_spec(self) -> RenderingSpec:
        """Rendering spec with output-contract defaults applied."""
        defaults = self.output_contract.global_defaults
        update: Dict[str, Any] = {}
        if self.rendering.aspect_ratio == "default" and defaults.aspect_ratio:
            update["aspect_ratio"] = defaults.aspect_ratio
        if self.rendering.style == "default" and defaults.visual_style:
            update["style"] = defaults.visual_style
        return self.rendering.model_copy(update=update)
