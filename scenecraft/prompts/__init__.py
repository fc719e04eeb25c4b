"""
SceneCraft Prompt Templates
"""

from .draft_refinement import (
    DRAFT_AGENT_PROMPT_TEMPLATE,
    DRAFT_AGENT_SYSTEM_TEMPLATE,
    DRAFT_FINAL_PROMPT_TEMPLATE,
    INITIAL_DRAFT_TEXT,
)
from .planner import (
    ANY_PURPOSE_TEXT,
    ORDERING_RULE_TEXT,
    SCENE_PLANNER_SYSTEM_PROMPT,
    SCENE_PLANNER_USER_PROMPT_TEMPLATE,
)
from .roles import (
    AGENT_IDENTITY_TEMPLATE,
    AGENT_ROLE_PROMPTS,
    GENERIC_AGENT_PROMPT_TEMPLATE,
    JSON_ONLY_RULE,
)
from .scene_agents import (
    CLOSING_SCENE_GUIDANCE,
    DRAFT_EXTENSION_RULE,
    FINAL_AGENT_PROMPT_TEMPLATE,
    IMAGE_FIRST_FRAME_CONSTRAINTS,
    NO_VIDEO_LANGUAGE_INSTRUCTION,
    OPENING_SCENE_GUIDANCE,
    REGULAR_AGENT_PROMPT_TEMPLATE,
    SCENE_GUIDANCE_TEMPLATE,
    TASK_DEFAULT,
    TASK_INPUT_ONLY,
    TASK_WITH_CONTRIBUTIONS,
)
from .single_prompt import SINGLE_PROMPT_SYSTEM_PROMPT, SINGLE_PROMPT_USER_TEMPLATE

__all__ = [
    "AGENT_IDENTITY_TEMPLATE",
    "AGENT_ROLE_PROMPTS",
    "ANY_PURPOSE_TEXT",
    "CLOSING_SCENE_GUIDANCE",
    "DRAFT_AGENT_PROMPT_TEMPLATE",
    "DRAFT_AGENT_SYSTEM_TEMPLATE",
    "DRAFT_EXTENSION_RULE",
    "DRAFT_FINAL_PROMPT_TEMPLATE",
    "FINAL_AGENT_PROMPT_TEMPLATE",
    "GENERIC_AGENT_PROMPT_TEMPLATE",
    "IMAGE_FIRST_FRAME_CONSTRAINTS",
    "INITIAL_DRAFT_TEXT",
    "JSON_ONLY_RULE",
    "NO_VIDEO_LANGUAGE_INSTRUCTION",
    "OPENING_SCENE_GUIDANCE",
    "ORDERING_RULE_TEXT",
    "REGULAR_AGENT_PROMPT_TEMPLATE",
    "SCENE_GUIDANCE_TEMPLATE",
    "SCENE_PLANNER_SYSTEM_PROMPT",
    "SCENE_PLANNER_USER_PROMPT_TEMPLATE",
    "SINGLE_PROMPT_SYSTEM_PROMPT",
    "SINGLE_PROMPT_USER_TEMPLATE",
    "TASK_DEFAULT",
    "TASK_INPUT_ONLY",
    "TASK_WITH_CONTRIBUTIONS",
]
