"""
Prompt assembly for workflow agents.

Builds the system and user prompt for one agent in one scene. The system
portion is never empty: explicit systemPrompt, else a role-derived default,
else a generic specialist sentence.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..models.scene import SceneInfo
from ..models.workflow import AgentDefinition, ContentTypeDefinition, ExecutionOrder, OutputLimits
from ..prompts import (
    AGENT_IDENTITY_TEMPLATE,
    AGENT_ROLE_PROMPTS,
    CLOSING_SCENE_GUIDANCE,
    DRAFT_AGENT_PROMPT_TEMPLATE,
    DRAFT_AGENT_SYSTEM_TEMPLATE,
    DRAFT_EXTENSION_RULE,
    DRAFT_FINAL_PROMPT_TEMPLATE,
    FINAL_AGENT_PROMPT_TEMPLATE,
    GENERIC_AGENT_PROMPT_TEMPLATE,
    IMAGE_FIRST_FRAME_CONSTRAINTS,
    INITIAL_DRAFT_TEXT,
    JSON_ONLY_RULE,
    OPENING_SCENE_GUIDANCE,
    REGULAR_AGENT_PROMPT_TEMPLATE,
    SCENE_GUIDANCE_TEMPLATE,
    TASK_DEFAULT,
    TASK_INPUT_ONLY,
    TASK_WITH_CONTRIBUTIONS,
)
from .state import state_to_json


@dataclass(frozen=True)
class AssembledPrompt:
    """System and user portions of one model request."""
    system: str
    user: str

    @property
    def text(self) -> str:
        return f"{self.system}\n\n{self.user}"


@dataclass
class SceneContext:
    """Scene and output-contract details an agent prompt is built from."""
    scene: SceneInfo
    total_scenes: int
    limits: OutputLimits = field(default_factory=OutputLimits)
    camera_presets: List[str] = field(default_factory=list)
    constraints: List[str] = field(default_factory=list)
    system_prompt_template: Optional[str] = None
    execution_order: ExecutionOrder = ExecutionOrder.SEQUENTIAL
    image_first: bool = False

    @classmethod
    def for_scene(
        cls,
        content_type: ContentTypeDefinition,
        scene: SceneInfo,
        total_scenes: int,
    ) -> "SceneContext":
        workflow = content_type.workflow
        contract = content_type.output_contract
        return cls(
            scene=scene,
            total_scenes=total_scenes,
            limits=contract.limits,
            camera_presets=list(contract.camera_presets),
            constraints=list(content_type.prompting.constraints),
            system_prompt_template=content_type.prompting.system_prompt_template,
            execution_order=workflow.execution_order if workflow else ExecutionOrder.SEQUENTIAL,
            image_first=contract.is_image_first,
        )

    @property
    def is_opening(self) -> bool:
        return self.scene.index == 1

    @property
    def is_closing(self) -> bool:
        return self.total_scenes > 1 and self.scene.index == self.total_scenes


def format_inputs(inputs: Dict[str, Any]) -> str:
    """Render normalized inputs as '- key: value' lines."""
    lines = []
    for key, value in inputs.items():
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(item) for item in value)
        elif isinstance(value, dict):
            value = json.dumps(value, ensure_ascii=False)
        lines.append(f"- {key}: {value}")
    return "\n".join(lines) if lines else "- (no inputs provided)"


class PromptAssembler:
    """Builds prompts for regular and final agents in both pipelines."""

    def resolve_persona(self, agent: AgentDefinition) -> str:
        """agent.system_prompt, else the role library entry, else a generic sentence."""
        if agent.system_prompt and agent.system_prompt.strip():
            return agent.system_prompt.strip()
        role_key = agent.role.strip().lower().replace(" ", "_")
        if role_key in AGENT_ROLE_PROMPTS:
            return AGENT_ROLE_PROMPTS[role_key]
        role = agent.role.strip() or agent.name.strip() or "content creation"
        return GENERIC_AGENT_PROMPT_TEMPLATE.format(role=role)

    def build_system_prompt(self, agent: AgentDefinition, ctx: SceneContext) -> str:
        parts = []
        if ctx.system_prompt_template:
            parts.append(ctx.system_prompt_template.strip())
        parts.append(AGENT_IDENTITY_TEMPLATE.format(name=agent.name, role=agent.role))
        parts.append(self.resolve_persona(agent))
        parts.append(JSON_ONLY_RULE)
        return "\n\n".join(parts)

    def build(
        self,
        agent: AgentDefinition,
        visible_state: Dict[str, Any],
        ctx: SceneContext,
        is_final: bool,
        extra_constraints: Sequence[str] = (),
    ) -> AssembledPrompt:
        """Prompt for the shared-state pipeline."""
        system = self.build_system_prompt(agent, ctx)
        guidance = self._scene_guidance(ctx)
        constraints = self._constraint_lines(ctx, extra_constraints)
        state_json = state_to_json(visible_state)

        if is_final:
            limits = ctx.limits
            user = FINAL_AGENT_PROMPT_TEMPLATE.format(
                state=state_json,
                index=ctx.scene.index,
                purpose=ctx.scene.purpose,
                guidance=guidance,
                name=agent.name,
                role=agent.role,
                image_prompt_max_chars=limits.image_prompt_max_chars,
                max_sentences=limits.max_sentences_image_prompt,
                negatives_max_chars=limits.negatives_max_chars,
                max_words_on_screen_text=limits.max_words_on_screen_text,
                camera_max_chars=limits.camera_max_chars,
                camera_presets=json.dumps(ctx.camera_presets, ensure_ascii=False),
                extra_constraints=constraints,
            )
            if agent.prompt and agent.prompt.strip():
                user = f"{user}\n\nAdditional direction:\n{agent.prompt.strip()}"
            return AssembledPrompt(system=system, user=user)

        extension_rule = DRAFT_EXTENSION_RULE if ctx.execution_order == ExecutionOrder.SEQUENTIAL else ""
        user = REGULAR_AGENT_PROMPT_TEMPLATE.format(
            state=state_json,
            name=agent.name,
            role=agent.role,
            task=self._task_description(agent, visible_state),
            guidance=guidance,
            extension_rule=extension_rule,
            output_keys=json.dumps(agent.output_keys()),
            extra_constraints=constraints,
        )
        return AssembledPrompt(system=system, user=user)

    def build_draft(
        self,
        agent: AgentDefinition,
        previous_prompt: Optional[str],
        inputs: Dict[str, Any],
        ctx: SceneContext,
        is_final: bool,
        extra_constraints: Sequence[str] = (),
    ) -> AssembledPrompt:
        """Prompt for the plain-text draft refinement pipeline."""
        system_parts = []
        if ctx.system_prompt_template:
            system_parts.append(ctx.system_prompt_template.strip())
        system_parts.append(
            DRAFT_AGENT_SYSTEM_TEMPLATE.format(
                name=agent.name,
                role=agent.role,
                persona=self.resolve_persona(agent),
            )
        )
        system = "\n\n".join(system_parts)

        execution_input = f"Scene Goal: {ctx.scene.execution_input}\n" if ctx.scene.execution_input else ""
        if is_final:
            user = DRAFT_FINAL_PROMPT_TEMPLATE.format(
                previous_prompt=previous_prompt or "No previous work",
                index=ctx.scene.index,
                purpose=ctx.scene.purpose,
                execution_input=execution_input,
                inputs=format_inputs(inputs),
                image_prompt_max_chars=ctx.limits.image_prompt_max_chars,
                extra_constraints=self._constraint_lines(ctx, extra_constraints),
            )
        else:
            user = DRAFT_AGENT_PROMPT_TEMPLATE.format(
                name=agent.name,
                role=agent.role,
                previous_prompt=previous_prompt or INITIAL_DRAFT_TEXT,
                index=ctx.scene.index,
                purpose=ctx.scene.purpose,
                execution_input=execution_input,
                inputs=format_inputs(inputs),
            )
        return AssembledPrompt(system=system, user=user)

    def _task_description(self, agent: AgentDefinition, visible_state: Dict[str, Any]) -> str:
        if agent.prompt and agent.prompt.strip():
            return agent.prompt.strip()
        has_input = "input" in visible_state
        has_others = any(key != "input" for key in visible_state)
        if has_input and has_others:
            return TASK_WITH_CONTRIBUTIONS.format(role=agent.role)
        if has_input:
            return TASK_INPUT_ONLY.format(role=agent.role)
        return TASK_DEFAULT

    def _scene_guidance(self, ctx: SceneContext) -> str:
        execution_input = f"Scene Goal: {ctx.scene.execution_input}\n" if ctx.scene.execution_input else ""
        guidance = SCENE_GUIDANCE_TEMPLATE.format(
            index=ctx.scene.index,
            total=ctx.total_scenes,
            purpose=ctx.scene.purpose,
            execution_input=execution_input,
        )
        if ctx.is_opening:
            guidance += OPENING_SCENE_GUIDANCE + "\n"
        elif ctx.is_closing:
            guidance += CLOSING_SCENE_GUIDANCE + "\n"
        return guidance

    def _constraint_lines(self, ctx: SceneContext, extra_constraints: Sequence[str]) -> str:
        constraints = list(ctx.constraints)
        if ctx.image_first:
            constraints.extend(IMAGE_FIRST_FRAME_CONSTRAINTS)
        constraints.extend(extra_constraints)
        return "\n".join(f"- {item}" for item in dict.fromkeys(constraints))
