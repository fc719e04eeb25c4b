"""
Generation session: the public entry point.

A session plans the scenes once, then runs the configured agent workflow for
each scene in turn and returns every scene together with the rendering spec.
Configuration problems (no workflow, a dependency cycle, a missing required
input) are raised before any model call is made.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from ..agents.base import LLMClient, create_llm_client_from_config, invoke_with_deadline
from ..agents.executor import AgentExecutor
from ..config import LLMConfiguration
from ..models.scene import (
    FinalSceneOutput,
    GeneratedScene,
    GenerationResult,
    GenerationStrategy,
    SceneInfo,
)
from ..models.workflow import ContentTypeDefinition, RenderingSpec
from ..prompts import SINGLE_PROMPT_SYSTEM_PROMPT, SINGLE_PROMPT_USER_TEMPLATE
from .coercion import ResponseCoercer, parse_structured
from .enforcement import OutputEnforcer, RetryPolicy
from .errors import PlanningFailure, SceneCraftError
from .inputs import extract_inputs
from .orchestrator import WorkflowOrchestrator
from .planner import ScenePlanner
from .prompt_assembler import format_inputs
from .state import GenerationSessionContext
from .workflow_graph import ExecutionPlan

logger = logging.getLogger("scenecraft.session")

SINGLE_PROMPT_CALLER_ID = "single_prompt"

_DEFAULT_RETRY = object()


class GenerationSession:
    """
    Runs generation sessions against one LLM client.

    The session context is reset at the start of every generate() call, so a
    GenerationSession can be reused; it is not safe to run two generate()
    calls on the same instance concurrently.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        retry_policy: Any = _DEFAULT_RETRY,
        context: Optional[GenerationSessionContext] = None,
        timeout_seconds: Optional[float] = None,
        max_tokens: Optional[int] = None,
        planner_temperature: float = 0.7,
        coercer: Optional[ResponseCoercer] = None,
        event_callback: Optional[Callable[[str, Dict[str, Any]], None]] = None,
    ):
        self.llm_client = llm_client
        self.retry_policy: Optional[RetryPolicy] = (
            RetryPolicy() if retry_policy is _DEFAULT_RETRY else retry_policy
        )
        self.context = context or GenerationSessionContext()
        if event_callback is not None:
            self.context.event_callback = event_callback
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self.planner_temperature = planner_temperature

        self.executor = AgentExecutor(
            llm_client,
            coercer=coercer,
            timeout_seconds=timeout_seconds,
            max_tokens=max_tokens,
        )
        self.planner = ScenePlanner(
            llm_client,
            temperature=planner_temperature,
            timeout_seconds=timeout_seconds,
            max_tokens=max_tokens,
        )

    @classmethod
    def from_config(cls, config: LLMConfiguration, **kwargs) -> "GenerationSession":
        """Build a session for the configuration's default provider."""
        kwargs.setdefault("timeout_seconds", config.timeout_seconds)
        kwargs.setdefault("max_tokens", config.max_tokens)
        kwargs.setdefault("planner_temperature", config.temperature)
        return cls(create_llm_client_from_config(config), **kwargs)

    async def generate(
        self,
        content_type: Union[ContentTypeDefinition, Dict[str, Any]],
        inputs: Dict[str, Any],
        strategy: GenerationStrategy = GenerationStrategy.SHARED_STATE,
    ) -> GenerationResult:
        """
        Generate every scene for a content type.

        Args:
            content_type: A ContentTypeDefinition or its camelCase dict form
            inputs: Request inputs, read through the content type's inputs contract
            strategy: Which pipeline to run

        Returns:
            GenerationResult with scenes indexed 1..n

        Raises:
            SceneCraftError subclasses; no partial result is returned.
        """
        ctx = self.context
        ctx.reset()

        if isinstance(content_type, dict):
            content_type = ContentTypeDefinition.model_validate(content_type)
        strategy = GenerationStrategy(strategy)

        orchestrator = None
        plan = None
        if strategy != GenerationStrategy.SINGLE_PROMPT:
            orchestrator = WorkflowOrchestrator(self.executor, self.retry_policy, pipeline=strategy)
            plan = orchestrator.plan(content_type)

        normalized = extract_inputs(inputs or {}, content_type.inputs_contract)

        start_time = time.time()
        logger.info(
            f"[generate] Run {ctx.run_id}: content type '{content_type.name}', strategy={strategy.value}"
        )
        ctx.tracing.start_session(ctx.run_id, content_type.name, strategy.value)
        ctx.emit_event("session_start", {
            "content_type": content_type.name,
            "strategy": strategy.value,
        })

        try:
            if strategy == GenerationStrategy.SINGLE_PROMPT:
                scenes, rendering_spec = await self._generate_single_prompt(content_type, normalized)
            else:
                scenes = await self._generate_with_workflow(content_type, normalized, orchestrator, plan)
                rendering_spec = content_type.rendering_spec()
            OutputEnforcer.verify_indices(scenes)
        except SceneCraftError as e:
            logger.error(f"[generate] Run {ctx.run_id} failed: {e}")
            ctx.trace_event("session_failed", level="ERROR", metadata={"error": str(e)})
            ctx.tracing.end_session(ctx.run_id, error=str(e))
            raise

        latency_ms = (time.time() - start_time) * 1000
        ctx.tracing.end_session(ctx.run_id, scene_count=len(scenes), latency_ms=latency_ms)
        ctx.emit_event("session_complete", {
            "scene_count": len(scenes),
            "latency_ms": latency_ms,
        })
        logger.info(f"[generate] Run {ctx.run_id}: {len(scenes)} scenes in {latency_ms:.0f}ms")

        return GenerationResult(
            run_id=ctx.run_id,
            content_type=content_type.name,
            strategy=strategy,
            scenes=scenes,
            rendering_spec=rendering_spec,
        )

    async def _generate_with_workflow(
        self,
        content_type: ContentTypeDefinition,
        inputs: Dict[str, Any],
        orchestrator: WorkflowOrchestrator,
        plan: ExecutionPlan,
    ) -> List[GeneratedScene]:
        ctx = self.context
        scene_plan = await self.planner.plan(
            inputs,
            content_type.scene_generation_policy,
            ctx,
            shot_library=content_type.prompting.shot_library,
            system_prompt_template=content_type.prompting.system_prompt_template,
        )
        OutputEnforcer.verify_plan(scene_plan.scenes)
        total = len(scene_plan.scenes)
        ctx.emit_event("scenes_planned", {
            "scene_count": total,
            "purposes": [scene.purpose for scene in scene_plan.scenes],
            "parsed_from": scene_plan.parsed_from,
        })

        scenes: List[GeneratedScene] = []
        for info in scene_plan.scenes:
            ctx.emit_event("scene_start", {
                "scene_index": info.index,
                "purpose": info.purpose,
                "total_scenes": total,
            })
            async with ctx.tracing.scene_span(ctx.run_id, info.index, info.purpose):
                run = await orchestrator.run_scene(content_type, info, total, inputs, ctx, plan)
            scenes.append(run.scene)
            ctx.emit_event("scene_complete", {
                "scene_index": info.index,
                "final_attempts": run.final_attempts,
                "agents": len(run.contributions),
            })
        return scenes

    # ------------------------------------------------------------------
    # Single-prompt strategy
    # ------------------------------------------------------------------

    def single_prompt_scene_count(self, content_type: ContentTypeDefinition) -> int:
        policy = content_type.scene_generation_policy
        return max(policy.min_scenes, policy.max_scenes)

    async def _generate_single_prompt(
        self,
        content_type: ContentTypeDefinition,
        inputs: Dict[str, Any],
    ) -> Tuple[List[GeneratedScene], RenderingSpec]:
        """One call returns every scene; each is enforced like an agent-built scene."""
        ctx = self.context
        policy = content_type.scene_generation_policy
        contract = content_type.output_contract
        defaults = content_type.rendering_spec()
        scene_count = self.single_prompt_scene_count(content_type)

        rule_lines = [
            f"- {name.replace('_', ' ')}" for name, enabled in policy.rules.model_dump().items() if enabled
        ]
        constraint_lines = [f"- {constraint}" for constraint in content_type.prompting.constraints]
        scene_types = [entry.type for entry in content_type.prompting.shot_library]

        user_prompt = SINGLE_PROMPT_USER_TEMPLATE.format(
            scene_count=scene_count,
            inputs=format_inputs(inputs),
            content_type=content_type.name,
            system_prompt=content_type.prompting.system_prompt_template or "",
            aspect_ratio=defaults.aspect_ratio,
            visual_style=defaults.style,
            scene_types=", ".join(scene_types) if scene_types else "any",
            opening_type=policy.opening_shot_type,
            rules="\n".join(rule_lines) + "\n" if rule_lines else "",
            constraints="\n".join(constraint_lines) + "\n" if constraint_lines else "",
            image_prompt_max_chars=contract.limits.image_prompt_max_chars,
            negatives_max_chars=contract.limits.negatives_max_chars,
            camera_presets=", ".join(contract.camera_presets),
            max_words_on_screen_text=contract.limits.max_words_on_screen_text,
        )

        start_time = time.time()
        call = self.llm_client.generate(
            system_prompt=SINGLE_PROMPT_SYSTEM_PROMPT,
            user_prompt=user_prompt,
            temperature=self.planner_temperature,
            max_tokens=self.max_tokens,
            history=ctx.history_for_call(),
        )
        text = await invoke_with_deadline(SINGLE_PROMPT_CALLER_ID, call, self.timeout_seconds)
        ctx.tracing.record_generation(
            ctx.run_id,
            SINGLE_PROMPT_CALLER_ID,
            SINGLE_PROMPT_SYSTEM_PROMPT,
            user_prompt,
            text,
            latency_ms=(time.time() - start_time) * 1000,
        )

        parsed, _ = parse_structured(text)
        items = parsed.get("scenes") if isinstance(parsed, dict) else None
        items = [item for item in items if isinstance(item, dict)] if isinstance(items, list) else []
        if not items:
            raise PlanningFailure("Single-prompt response contained no scenes", raw_response=text)
        if len(items) < policy.min_scenes:
            raise PlanningFailure(
                f"Single-prompt response has {len(items)} scenes, expected at least {policy.min_scenes}",
                raw_response=text,
            )
        if all(isinstance(item.get("index"), int) for item in items):
            items = sorted(items, key=lambda item: item["index"])
        items = items[:scene_count]

        enforcer = OutputEnforcer(
            limits=contract.limits,
            camera_presets=contract.camera_presets,
            policy=policy,
            shot_library=content_type.prompting.shot_library,
        )
        duration = contract.global_defaults.duration_per_scene_seconds
        scenes = []
        for index, item in enumerate(items, start=1):
            scene = self._scene_from_item(item, index, duration)
            scenes.append(enforcer.enforce(scene))

        ctx.record_exchange(user_prompt, text)
        logger.info(f"[_generate_single_prompt] Parsed {len(scenes)} scenes from one call")
        return scenes, self._merge_rendering_spec(defaults, parsed.get("renderingSpec"))

    @staticmethod
    def _scene_from_item(item: Dict[str, Any], index: int, duration: Optional[float]) -> GeneratedScene:
        purpose = item.get("purpose") or item.get("shotType") or f"Scene {index}"
        info = SceneInfo(index=index, purpose=str(purpose))
        duration = item.get("durationSeconds") or duration
        try:
            output = FinalSceneOutput.model_validate(item)
        except ValidationError:
            # no usable imagePrompt; the enforcer fills the default
            logger.warning(f"[_scene_from_item] Scene {index} has no usable imagePrompt")
            return GeneratedScene(
                index=index,
                purpose=info.purpose,
                shot_type=item.get("shotType") if isinstance(item.get("shotType"), str) else None,
                duration_seconds=duration,
            )
        return GeneratedScene.from_final_output(output, info, duration_seconds=duration)

    @staticmethod
    def _merge_rendering_spec(defaults: RenderingSpec, returned: Any) -> RenderingSpec:
        if not isinstance(returned, dict):
            return defaults
        merged = defaults.model_dump(by_alias=True)
        merged.update({
            key: value for key, value in returned.items()
            if isinstance(value, str) and value.strip()
        })
        try:
            return RenderingSpec.model_validate(merged)
        except ValidationError as e:
            logger.warning(f"[_merge_rendering_spec] Ignoring returned rendering spec: {e}")
            return defaults
