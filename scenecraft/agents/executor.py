"""
Agent execution: one model call per agent invocation.

The executor builds the prompt, calls the LLM client (optionally under a
deadline) and coerces the response. Model failures are never swallowed:
they surface as AgentInvocationError / AgentTimeoutError.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.coercion import CoercionStrategy, ResponseCoercer, strip_code_fence
from ..core.errors import FinalAgentOutputMissing
from ..core.prompt_assembler import AssembledPrompt, PromptAssembler, SceneContext
from ..core.state import GenerationSessionContext
from ..models.payload import Unstructured
from ..models.scene import FinalSceneOutput
from ..models.workflow import AgentDefinition
from .base import LLMClient, invoke_with_deadline

logger = logging.getLogger("scenecraft.executor")

DRAFT_OUTPUT_KEY = "modified_prompt"


@dataclass
class AgentOutput:
    """Coerced output of a regular agent."""
    agent: AgentDefinition
    payload: Dict[str, Any]
    raw_text: str
    strategy: CoercionStrategy
    degraded: bool
    prompt: AssembledPrompt
    latency_ms: float = 0


@dataclass
class FinalAgentOutput:
    """Validated output of the final agent."""
    agent: AgentDefinition
    output: FinalSceneOutput
    raw_text: str
    prompt: AssembledPrompt
    latency_ms: float = 0


class AgentExecutor:
    """Runs single agents against an LLM client."""

    def __init__(
        self,
        llm_client: LLMClient,
        coercer: Optional[ResponseCoercer] = None,
        assembler: Optional[PromptAssembler] = None,
        timeout_seconds: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        self.llm_client = llm_client
        self.coercer = coercer or ResponseCoercer()
        self.assembler = assembler or PromptAssembler()
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens

    async def execute(
        self,
        agent: AgentDefinition,
        visible_state: Dict[str, Any],
        scene_ctx: SceneContext,
        session: GenerationSessionContext,
    ) -> AgentOutput:
        """Run a regular agent; the payload is keyed by its output keys."""
        prompt = self.assembler.build(agent, visible_state, scene_ctx, is_final=False)
        text, latency_ms = await self._invoke(agent, prompt, session, scene_ctx.scene.index)

        result = self.coercer.coerce(text, agent.output_keys())
        if result.degraded:
            self._report_degradation(agent, session, scene_ctx.scene.index, result.strategy, result.degraded_keys)

        return AgentOutput(
            agent=agent,
            payload=result.payload,
            raw_text=text,
            strategy=result.strategy,
            degraded=result.degraded,
            prompt=prompt,
            latency_ms=latency_ms,
        )

    async def execute_final(
        self,
        agent: AgentDefinition,
        visible_state: Dict[str, Any],
        scene_ctx: SceneContext,
        session: GenerationSessionContext,
        extra_constraints: Sequence[str] = (),
    ) -> FinalAgentOutput:
        """Run the final agent; raises FinalAgentOutputMissing without a usable imagePrompt."""
        prompt = self.assembler.build(
            agent, visible_state, scene_ctx, is_final=True, extra_constraints=extra_constraints
        )
        history = session.history_for_call()
        text, latency_ms = await self._invoke(agent, prompt, session, scene_ctx.scene.index, history)

        try:
            output = self.coercer.coerce_final(text, agent.id)
        except FinalAgentOutputMissing as e:
            e.scene_index = scene_ctx.scene.index
            logger.error(f"[execute_final] Scene {scene_ctx.scene.index}: {e}")
            raise

        session.record_exchange(prompt.user, text)
        return FinalAgentOutput(
            agent=agent,
            output=output,
            raw_text=text,
            prompt=prompt,
            latency_ms=latency_ms,
        )

    async def execute_draft(
        self,
        agent: AgentDefinition,
        previous_prompt: Optional[str],
        inputs: Dict[str, Any],
        scene_ctx: SceneContext,
        session: GenerationSessionContext,
        is_final: bool = False,
        extra_constraints: Sequence[str] = (),
    ) -> AgentOutput:
        """
        Run an agent of the plain-text draft refinement pipeline.

        Regular agents return the modified draft, the final agent returns the
        finished image prompt; both are stored as Unstructured text.
        """
        prompt = self.assembler.build_draft(
            agent, previous_prompt, inputs, scene_ctx, is_final, extra_constraints
        )
        history = session.history_for_call()
        text, latency_ms = await self._invoke(agent, prompt, session, scene_ctx.scene.index, history)
        draft = strip_code_fence(text) if text else ""

        if is_final and not draft:
            raise FinalAgentOutputMissing(agent.id, raw_response=text or "", scene_index=scene_ctx.scene.index)

        session.record_exchange(prompt.user, draft)
        key = "imagePrompt" if is_final else DRAFT_OUTPUT_KEY
        return AgentOutput(
            agent=agent,
            payload={key: Unstructured(draft)},
            raw_text=text,
            strategy=CoercionStrategy.RAW_TEXT,
            degraded=False,
            prompt=prompt,
            latency_ms=latency_ms,
        )

    async def _invoke(
        self,
        agent: AgentDefinition,
        prompt: AssembledPrompt,
        session: GenerationSessionContext,
        scene_index: int,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> Tuple[str, float]:
        logger.info(f"[_invoke] Scene {scene_index}: running agent '{agent.id}' ({agent.role})")
        session.emit_event("agent_start", {
            "scene_index": scene_index,
            "agent_id": agent.id,
            "agent_name": agent.name,
            "agent_role": agent.role,
        })

        start_time = time.time()
        call = self.llm_client.generate(
            system_prompt=prompt.system,
            user_prompt=prompt.user,
            temperature=agent.temperature,
            max_tokens=self.max_tokens,
            history=history,
        )
        text = await invoke_with_deadline(agent.id, call, self.timeout_seconds, scene_index)

        latency_ms = (time.time() - start_time) * 1000
        session.tracing.record_generation(
            session.run_id,
            agent.id,
            prompt.system,
            prompt.user,
            text,
            latency_ms=latency_ms,
            scene_index=scene_index,
            role=agent.role,
        )
        session.emit_event("agent_complete", {
            "scene_index": scene_index,
            "agent_id": agent.id,
            "latency_ms": latency_ms,
            "response_chars": len(text),
        })
        return text, latency_ms

    def _report_degradation(
        self,
        agent: AgentDefinition,
        session: GenerationSessionContext,
        scene_index: int,
        strategy: CoercionStrategy,
        degraded_keys: List[str],
    ) -> None:
        keys = degraded_keys or agent.output_keys()
        logger.warning(
            f"[execute] Scene {scene_index}: agent '{agent.id}' output degraded to raw text for keys {keys}"
        )
        details = {
            "scene_index": scene_index,
            "agent_id": agent.id,
            "strategy": strategy.value,
            "keys": keys,
        }
        session.emit_event("coercion_degraded", details)
        session.trace_event("coercion_degraded", level="WARNING", metadata=details)
