"""
Single-Prompt Generation Prompts - legacy strategy.
One model call writes every scene; selected explicitly, never as a silent fallback.
"""

SINGLE_PROMPT_SYSTEM_PROMPT = """You are a video script generator for short-form ads.

You MUST output ONLY valid JSON. No markdown, no code blocks, no explanations."""

SINGLE_PROMPT_USER_TEMPLATE = """Generate a {scene_count}-scene content plan based on the following:

Inputs:
{inputs}

CONTENT TYPE: {content_type}
{system_prompt}
OUTPUT REQUIREMENTS:
- Scene Count: exactly {scene_count}
- Aspect Ratio: {aspect_ratio}
- Visual Style: {visual_style}
- Scene types to use: {scene_types}
- Scene 1 shotType MUST be "{opening_type}"
{rules}{constraints}
Generate a JSON response with this EXACT structure:
{{
  "scenes": [
    {{
      "index": 1,
      "purpose": "<purpose of the scene>",
      "shotType": "{opening_type}",
      "imagePrompt": "<detailed visual description, max {image_prompt_max_chars} characters>",
      "negativePrompt": "<what to avoid in the image, max {negatives_max_chars} characters>",
      "camera": "<one of: {camera_presets}>",
      "onScreenText": "<optional, max {max_words_on_screen_text} words>",
      "notes": "<optional production notes>"
    }}
  ],
  "renderingSpec": {{
    "aspectRatio": "{aspect_ratio}",
    "style": "{visual_style}",
    "musicMood": "<mood for background music>",
    "transitions": "<transition style between scenes>"
  }}
}}

CRITICAL: Return ONLY valid JSON with exactly {scene_count} scenes indexed 1 to {scene_count}."""
