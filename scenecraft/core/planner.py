"""
Scene planning: one model call that decides scene count and purposes.
"""

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..agents.base import LLMClient, invoke_with_deadline
from ..models.scene import SceneInfo
from ..models.workflow import SceneGenerationPolicy, ShotLibraryEntry
from ..prompts import (
    ANY_PURPOSE_TEXT,
    ORDERING_RULE_TEXT,
    SCENE_PLANNER_SYSTEM_PROMPT,
    SCENE_PLANNER_USER_PROMPT_TEMPLATE,
)
from .coercion import parse_structured
from .errors import PlanningFailure
from .prompt_assembler import AssembledPrompt, format_inputs
from .state import GenerationSessionContext

logger = logging.getLogger("scenecraft.planner")

PLANNER_AGENT_ID = "scene_planner"

_SCENE_LINE = re.compile(r"Scene\s+\d+\s*[:.)\-]\s*(.+)", re.IGNORECASE)
_NUMBERED_LINE = re.compile(r"^\s*\d+\s*[.)]\s*(.+)")

PlannedEntry = Tuple[str, Optional[str]]


@dataclass
class ScenePlan:
    """Planner result plus how it was recovered."""
    scenes: List[SceneInfo]
    raw_response: str
    parsed_from: str
    padded: int = 0
    truncated: int = 0


class ScenePlanner:
    """Plans the scene list for a session."""

    def __init__(
        self,
        llm_client: LLMClient,
        temperature: float = 0.7,
        timeout_seconds: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        self.llm_client = llm_client
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens

    def build_prompt(
        self,
        inputs: Dict[str, Any],
        policy: SceneGenerationPolicy,
        shot_library: Sequence[ShotLibraryEntry] = (),
        system_prompt_template: Optional[str] = None,
    ) -> AssembledPrompt:
        rule_lines = [
            f"- {text}"
            for rule, text in ORDERING_RULE_TEXT.items()
            if getattr(policy.rules, rule)
        ]
        rules = "\nScene ordering rules:\n" + "\n".join(rule_lines) + "\n" if rule_lines else ""
        purposes = [entry.type for entry in shot_library]

        system = SCENE_PLANNER_SYSTEM_PROMPT
        if system_prompt_template:
            system = f"{system_prompt_template.strip()}\n\n{system}"

        user = SCENE_PLANNER_USER_PROMPT_TEMPLATE.format(
            min_scenes=policy.min_scenes,
            max_scenes=policy.max_scenes,
            inputs=format_inputs(inputs),
            purposes=json.dumps(purposes, ensure_ascii=False) if purposes else ANY_PURPOSE_TEXT,
            rules=rules,
        )
        return AssembledPrompt(system=system, user=user)

    async def plan(
        self,
        inputs: Dict[str, Any],
        policy: SceneGenerationPolicy,
        session: GenerationSessionContext,
        shot_library: Sequence[ShotLibraryEntry] = (),
        system_prompt_template: Optional[str] = None,
    ) -> ScenePlan:
        """Issue the planning call and normalize the result to the policy bounds."""
        prompt = self.build_prompt(inputs, policy, shot_library, system_prompt_template)
        text = await self._call(prompt, session)

        entries, parsed_from = self.parse(text)
        if not entries:
            logger.error("[plan] Planner response yielded no scenes")
            raise PlanningFailure("Scene planner returned no usable scenes", raw_response=text)

        scenes, padded, truncated = self.normalize(entries, policy)
        if padded or truncated:
            logger.info(
                f"[plan] Adjusted plan to policy bounds ({policy.min_scenes}-{policy.max_scenes}): "
                f"padded={padded} truncated={truncated}"
            )
        logger.info(f"[plan] Planned {len(scenes)} scenes from {parsed_from}: {[s.purpose for s in scenes]}")

        session.record_exchange(prompt.user, text)
        return ScenePlan(
            scenes=scenes,
            raw_response=text,
            parsed_from=parsed_from,
            padded=padded,
            truncated=truncated,
        )

    def parse(self, text: str) -> Tuple[List[PlannedEntry], str]:
        """JSON first, then a 'Scene N: purpose' line list."""
        entries = self._parse_json(text)
        if entries:
            return entries, "json"
        logger.debug("[parse] JSON plan unusable, falling back to line parsing")
        return self._parse_lines(text), "lines"

    def normalize(
        self,
        entries: List[PlannedEntry],
        policy: SceneGenerationPolicy,
    ) -> Tuple[List[SceneInfo], int, int]:
        """Pad to min_scenes, truncate to max_scenes, reindex 1..n."""
        entries = list(entries)
        padded = 0
        while len(entries) < policy.min_scenes:
            entries.append((f"Scene {len(entries) + 1}", None))
            padded += 1
        truncated = max(0, len(entries) - policy.max_scenes)
        entries = entries[:policy.max_scenes]

        scenes = [
            SceneInfo(index=i, purpose=purpose, execution_input=execution_input)
            for i, (purpose, execution_input) in enumerate(entries, start=1)
        ]
        return scenes, padded, truncated

    def _parse_json(self, text: str) -> List[PlannedEntry]:
        parsed, _ = parse_structured(text, accept_arrays=True)
        if parsed is None:
            return []
        items = parsed if isinstance(parsed, list) else parsed.get("scenes")
        if not isinstance(items, list):
            return []

        if all(isinstance(item, dict) and isinstance(item.get("index"), int) for item in items):
            items = sorted(items, key=lambda item: item["index"])

        entries: List[PlannedEntry] = []
        for item in items:
            if isinstance(item, str):
                purpose, execution_input = item, None
            elif isinstance(item, dict):
                purpose = item.get("purpose") or item.get("type") or item.get("name")
                execution_input = (
                    item.get("execution_input")
                    or item.get("executionInput")
                    or item.get("description")
                )
            else:
                continue
            if not isinstance(purpose, str) or not purpose.strip():
                continue
            entries.append((purpose.strip(), str(execution_input).strip() if execution_input else None))
        return entries

    def _parse_lines(self, text: str) -> List[PlannedEntry]:
        entries: List[PlannedEntry] = []
        for line in (text or "").splitlines():
            match = _SCENE_LINE.search(line) or _NUMBERED_LINE.match(line)
            if not match:
                continue
            purpose = match.group(1).strip().strip("*\"'` ").strip()
            if purpose:
                entries.append((purpose, None))
        return entries

    async def _call(self, prompt: AssembledPrompt, session: GenerationSessionContext) -> str:
        start_time = time.time()
        call = self.llm_client.generate(
            system_prompt=prompt.system,
            user_prompt=prompt.user,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            history=session.history_for_call(),
        )
        text = await invoke_with_deadline(PLANNER_AGENT_ID, call, self.timeout_seconds)

        session.tracing.record_generation(
            session.run_id,
            PLANNER_AGENT_ID,
            prompt.system,
            prompt.user,
            text,
            latency_ms=(time.time() - start_time) * 1000,
        )
        return text
