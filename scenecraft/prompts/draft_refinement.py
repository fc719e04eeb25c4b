"""
Draft Refinement Prompts - plain-text pipeline.

Agents argue over one evolving image prompt: each regular agent returns a
modified version of the previous draft, the final agent returns the finished
image prompt. No JSON anywhere in this pipeline.
"""

DRAFT_AGENT_SYSTEM_TEMPLATE = "You are {name}, a {role}. {persona}"

DRAFT_AGENT_PROMPT_TEMPLATE = """You are {name} ({role}). You are collaborating with other agents to refine an image prompt.

The system prompt above contains CRITICAL CONSTRAINTS. If the scene purpose below conflicts with them, the system prompt wins.

Previous agent's prompt:
{previous_prompt}

Scene {index}: {purpose}
{execution_input}
Inputs:
{inputs}

Your task:
1. Review the system prompt constraints FIRST
2. Review the previous prompt carefully
3. Argue for the changes your expertise demands
4. Keep everything in the previous prompt that still holds; extend it, do not start over
5. Return the modified prompt

Output ONLY the modified prompt as plain text. No JSON, no formatting, no titles, no explanations."""

DRAFT_FINAL_PROMPT_TEMPLATE = """You are the final agent responsible for creating the scene output.

The system prompt above contains CRITICAL CONSTRAINTS. If the scene purpose below conflicts with them, the system prompt wins.

Collaborative prompt so far:
{previous_prompt}

Scene {index}: {purpose}
{execution_input}
Inputs:
{inputs}

Your task:
1. Review the system prompt constraints FIRST
2. Review the collaborative prompt
3. Describe ONE single still image, no motion or editing language
4. Keep it under {image_prompt_max_chars} characters
{extra_constraints}
Output ONLY the image prompt text. No JSON, no formatting, no titles, no explanations. Just the prompt."""

INITIAL_DRAFT_TEXT = "This is the initial prompt - create the first version."
