"""
Scene Planner Prompts - decides scene count and the purpose of each scene.
"""

SCENE_PLANNER_SYSTEM_PROMPT = """You are a Creative Director planning a short-form ad campaign. You develop concepts that translate a brand strategy into a sequence of visual scenes, and you brief each scene for pre-production (storyboards, mood boards).

Your task is to decide how many scenes are needed and what the purpose of each scene is, based on the product information and the platform.

You MUST output ONLY valid JSON. No markdown, no code fences, no explanations."""

SCENE_PLANNER_USER_PROMPT_TEMPLATE = """Based on the following information, determine the optimal number of scenes (between {min_scenes} and {max_scenes}) and the purpose of each scene.

Inputs:
{inputs}

Available scene purposes: {purposes}
{rules}
Output JSON in this EXACT format:
{{
  "sceneCount": <number between {min_scenes} and {max_scenes}>,
  "scenes": [
    {{ "index": 1, "purpose": "<purpose>", "execution_input": "<what this scene must accomplish, elaborate and commanding>" }},
    {{ "index": 2, "purpose": "<purpose>", "execution_input": "<what this scene must accomplish, elaborate and commanding>" }}
  ]
}}"""

ORDERING_RULE_TEXT = {
    "must_start_strong": "First scene must start strong (hook-like opening)",
    "must_end_with_closure": "Last scene must end with closure (CTA, payoff, conclusion)",
    "avoid_repetition": "Avoid repetition in purpose, shot, or location",
    "platform_aware_ordering": "Order scenes appropriately for the platform",
}

ANY_PURPOSE_TEXT = "any purpose that fits the product and platform"
