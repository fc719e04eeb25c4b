"""
Workflow orchestration for one scene.

Runs every agent of a workflow once against a fresh SharedState:

- sequential: ascending order, each agent sees all prior outputs
- parallel: regular agents fan out against the same snapshot; merges happen
  only after all of them complete (write-after-join)
- custom: topological order over declared dependencies, each agent sees only
  the keys it declares

The final agent always runs last. Its output is flattened into a scene,
enforced against the output contract and, when the retry policy triggers,
regenerated with the policy's instruction appended.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..agents.executor import DRAFT_OUTPUT_KEY, AgentExecutor, AgentOutput
from ..models.payload import to_plain
from ..models.scene import (
    AgentContribution,
    FinalSceneOutput,
    GeneratedScene,
    GenerationStrategy,
    SceneInfo,
)
from ..models.workflow import AgentDefinition, ContentTypeDefinition, ExecutionOrder
from .enforcement import ContentPolicyViolation, OutputEnforcer, RetryPolicy
from .errors import NoWorkflowConfiguredError
from .prompt_assembler import SceneContext
from .state import GenerationSessionContext, SharedState
from .workflow_graph import ExecutionPlan, plan_execution

logger = logging.getLogger("scenecraft.orchestrator")

FinalAttempt = Callable[[List[str]], Awaitable[Tuple[FinalSceneOutput, Dict[str, Any], Any]]]


@dataclass
class SceneRun:
    """Everything produced while running one scene."""
    scene: GeneratedScene
    contributions: List[AgentContribution]
    state: SharedState
    final_attempts: int = 1
    accepted_violations: List[ContentPolicyViolation] = field(default_factory=list)


def seed_scene_input(
    inputs: Dict[str, Any],
    content_type: ContentTypeDefinition,
    scene: SceneInfo,
) -> Dict[str, Any]:
    """The 'input' value: normalized inputs plus the running scene metadata."""
    contract = content_type.output_contract
    seeded = dict(inputs)
    seeded.update({
        "sceneIndex": scene.index,
        "scenePurpose": scene.purpose,
        "executionInput": scene.execution_input,
        "shotLibrary": [entry.model_dump(exclude_none=True) for entry in content_type.prompting.shot_library],
        "constraints": list(content_type.prompting.constraints),
        "cameraPresets": list(contract.camera_presets),
        "limits": contract.limits.model_dump(by_alias=True),
    })
    return seeded


class WorkflowOrchestrator:
    """Executes a workflow's agents for one scene at a time."""

    def __init__(
        self,
        executor: AgentExecutor,
        retry_policy: Optional[RetryPolicy] = None,
        pipeline: GenerationStrategy = GenerationStrategy.SHARED_STATE,
    ):
        if pipeline == GenerationStrategy.SINGLE_PROMPT:
            raise ValueError("The single-prompt strategy does not run agent workflows")
        self.executor = executor
        self.retry_policy = retry_policy
        self.pipeline = pipeline

    def plan(self, content_type: ContentTypeDefinition) -> ExecutionPlan:
        """Resolve the execution plan; raises before any model call on bad config."""
        workflow = content_type.workflow
        if workflow is None:
            raise NoWorkflowConfiguredError(content_type.name)
        return plan_execution(workflow)

    async def run_scene(
        self,
        content_type: ContentTypeDefinition,
        scene: SceneInfo,
        total_scenes: int,
        inputs: Dict[str, Any],
        session: GenerationSessionContext,
        plan: Optional[ExecutionPlan] = None,
    ) -> SceneRun:
        plan = plan or self.plan(content_type)
        scene_ctx = SceneContext.for_scene(content_type, scene, total_scenes)
        state = SharedState.seeded(seed_scene_input(inputs, content_type, scene))
        enforcer = OutputEnforcer(
            limits=content_type.output_contract.limits,
            camera_presets=content_type.output_contract.camera_presets,
            policy=content_type.scene_generation_policy,
            shot_library=content_type.prompting.shot_library,
        )

        logger.info(
            f"[run_scene] Scene {scene.index}/{total_scenes} ({scene.purpose}): "
            f"{len(plan.ordered)} agents, mode={plan.mode.value}, pipeline={self.pipeline.value}"
        )

        if self.pipeline == GenerationStrategy.DRAFT_REFINEMENT:
            contributions, attempt_final = await self._run_draft_agents(plan, inputs, state, scene_ctx, session)
        else:
            contributions = await self._run_regular_agents(plan, state, scene_ctx, session)
            attempt_final = self._shared_state_final(plan, state, scene_ctx, session)

        generated, final_contribution, attempts, violations = await self._finalize(
            plan.final, attempt_final, enforcer, content_type, scene, state, session
        )
        contributions.append(final_contribution)

        generated = generated.model_copy(update={"agent_contributions": contributions})
        return SceneRun(
            scene=generated,
            contributions=contributions,
            state=state,
            final_attempts=attempts,
            accepted_violations=violations,
        )

    # ------------------------------------------------------------------
    # Shared-state pipeline
    # ------------------------------------------------------------------

    async def _run_regular_agents(
        self,
        plan: ExecutionPlan,
        state: SharedState,
        scene_ctx: SceneContext,
        session: GenerationSessionContext,
    ) -> List[AgentContribution]:
        contributions: List[AgentContribution] = []

        if plan.mode == ExecutionOrder.PARALLEL:
            views = [state.view() for _ in plan.regular]
            tasks = [
                asyncio.ensure_future(self.executor.execute(agent, view, scene_ctx, session))
                for agent, view in zip(plan.regular, views)
            ]
            try:
                outputs = await asyncio.gather(*tasks)
            except Exception:
                for task in tasks:
                    task.cancel()
                raise
            # write-after-join
            for view, output in zip(views, outputs):
                state.merge_payload(output.payload, source=output.agent.id)
                contributions.append(self._contribution(output.agent, view, output))
            return contributions

        for agent in plan.regular:
            view = self._visible_state(agent, state, plan)
            output = await self.executor.execute(agent, view, scene_ctx, session)
            state.merge_payload(output.payload, source=agent.id)
            contributions.append(self._contribution(agent, view, output))
        return contributions

    def _shared_state_final(
        self,
        plan: ExecutionPlan,
        state: SharedState,
        scene_ctx: SceneContext,
        session: GenerationSessionContext,
    ) -> FinalAttempt:
        final = plan.final

        async def attempt(extra_constraints: List[str]) -> Tuple[FinalSceneOutput, Dict[str, Any], Any]:
            view = self._visible_state(final, state, plan)
            result = await self.executor.execute_final(final, view, scene_ctx, session, extra_constraints)
            return result.output, view, result.output.model_dump(by_alias=True, exclude_none=True)

        return attempt

    # ------------------------------------------------------------------
    # Draft refinement pipeline
    # ------------------------------------------------------------------

    async def _run_draft_agents(
        self,
        plan: ExecutionPlan,
        inputs: Dict[str, Any],
        state: SharedState,
        scene_ctx: SceneContext,
        session: GenerationSessionContext,
    ) -> Tuple[List[AgentContribution], FinalAttempt]:
        if plan.mode == ExecutionOrder.PARALLEL:
            logger.debug("[_run_draft_agents] Draft refinement runs agents one after another")

        contributions: List[AgentContribution] = []
        for agent in plan.regular:
            previous = self._current_draft(state)
            view = state.view()
            output = await self.executor.execute_draft(agent, previous, inputs, scene_ctx, session)
            state.merge(DRAFT_OUTPUT_KEY, output.payload[DRAFT_OUTPUT_KEY], source=agent.id)
            state.merge(agent.id, output.payload, source=agent.id)
            contributions.append(self._contribution(agent, view, output))

        final = plan.final

        async def attempt(extra_constraints: List[str]) -> Tuple[FinalSceneOutput, Dict[str, Any], Any]:
            view = state.view()
            output = await self.executor.execute_draft(
                final,
                self._current_draft(state),
                inputs,
                scene_ctx,
                session,
                is_final=True,
                extra_constraints=extra_constraints,
            )
            image_prompt = to_plain(output.payload["imagePrompt"])
            return FinalSceneOutput(image_prompt=image_prompt), view, {"imagePrompt": image_prompt}

        return contributions, attempt

    @staticmethod
    def _current_draft(state: SharedState) -> Optional[str]:
        draft = state.get(DRAFT_OUTPUT_KEY)
        return to_plain(draft) if draft is not None else None

    # ------------------------------------------------------------------
    # Final agent, enforcement and retry
    # ------------------------------------------------------------------

    async def _finalize(
        self,
        final: AgentDefinition,
        attempt_final: FinalAttempt,
        enforcer: OutputEnforcer,
        content_type: ContentTypeDefinition,
        scene: SceneInfo,
        state: SharedState,
        session: GenerationSessionContext,
    ) -> Tuple[GeneratedScene, AgentContribution, int, List[ContentPolicyViolation]]:
        policy = self.retry_policy
        duration = content_type.output_contract.global_defaults.duration_per_scene_seconds
        extra_constraints: List[str] = []
        retries = 0

        while True:
            output, view, plain_output = await attempt_final(extra_constraints)
            generated = enforcer.enforce(GeneratedScene.from_final_output(output, scene, duration_seconds=duration))
            violations = policy.violations(generated) if policy else []

            if not policy or not policy.should_retry(violations, retries):
                break

            terms = sorted({violation.term for violation in violations})
            logger.info(
                f"[_finalize] Scene {scene.index}: banned terms {terms} in final output, "
                f"regenerating (retry {retries + 1}/{policy.max_attempts})"
            )
            session.emit_event("policy_retry", {
                "scene_index": scene.index,
                "agent_id": final.id,
                "terms": terms,
                "retry": retries + 1,
            })
            delay = policy.delay_for(retries)
            if delay > 0:
                await asyncio.sleep(delay)
            retries += 1
            extra_constraints = [policy.instruction]

        if violations:
            terms = sorted({violation.term for violation in violations})
            logger.warning(f"[_finalize] Scene {scene.index}: accepting output with banned terms {terms}")
            details = {"scene_index": scene.index, "agent_id": final.id, "terms": terms}
            session.emit_event("policy_violation_accepted", details)
            session.trace_event("policy_violation_accepted", level="WARNING", metadata=details)

        for key in final.output_keys():
            state.merge(key, plain_output, source=final.id)

        contribution = AgentContribution(
            agent_id=final.id,
            agent_name=final.name,
            agent_role=final.role,
            order=final.order,
            input=to_plain(view),
            output=plain_output,
        )
        return generated, contribution, retries + 1, violations

    # ------------------------------------------------------------------

    @staticmethod
    def _visible_state(agent: AgentDefinition, state: SharedState, plan: ExecutionPlan) -> Dict[str, Any]:
        if plan.mode != ExecutionOrder.CUSTOM or not agent.declares_inputs:
            return state.view()
        keys = list(agent.reads_from)
        if agent.input_from:
            producers = {candidate.id: candidate for candidate in plan.ordered}
            keys.append("input")
            for agent_id in agent.input_from:
                producer = producers.get(agent_id)
                keys.extend(producer.output_keys() if producer else [agent_id])
        return state.view(dict.fromkeys(keys))

    @staticmethod
    def _contribution(agent: AgentDefinition, view: Dict[str, Any], output: AgentOutput) -> AgentContribution:
        return AgentContribution(
            agent_id=agent.id,
            agent_name=agent.name,
            agent_role=agent.role,
            order=agent.order,
            input=to_plain(view),
            output=to_plain(output.payload),
            degraded=output.degraded,
        )
