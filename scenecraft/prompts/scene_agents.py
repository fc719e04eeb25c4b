"""
Scene Agent Prompts - shared-state pipeline.

Regular agents write JSON under their output keys; the final agent
synthesizes every contribution into one renderer-ready scene object.
"""

TASK_INPUT_ONLY = (
    'Analyze the product information in the "input" object. Based on your role as {role}, provide '
    "insights, recommendations, or analysis that will help create engaging visual content. "
    "Be specific and actionable."
)

TASK_WITH_CONTRIBUTIONS = (
    'Review the product information in "input" and any previous agent contributions. As {role}, '
    "synthesize this information and add your expert perspective to improve the content strategy."
)

TASK_DEFAULT = "Analyze the shared state and produce your output."

SCENE_GUIDANCE_TEMPLATE = """
CURRENT SCENE CONTEXT:
You are generating content for Scene {index} of {total} with purpose: "{purpose}"
{execution_input}
CRITICAL: Focus your recommendations specifically on this scene's purpose ("{purpose}").
Your output should help create the image prompt for THIS specific scene.
"""

OPENING_SCENE_GUIDANCE = "This is the opening scene: it must stop the scroll with a strong, hook-like first impression."

CLOSING_SCENE_GUIDANCE = "This is the closing scene: it must land the payoff or call to action."

DRAFT_EXTENSION_RULE = (
    "- Previous agents' contributions are the working draft: extend and refine them, "
    "never discard or contradict what they established"
)

REGULAR_AGENT_PROMPT_TEMPLATE = """Shared state (JSON):
{state}

Your task as {name} ({role}):
{task}
{guidance}
IMPORTANT:
- The "input" object contains the product and campaign details
- Analyze this information thoroughly based on your role
- Provide specific, actionable insights relevant to your expertise
{extension_rule}
Output JSON with exactly these top-level keys:
{output_keys}

Each key should contain structured data relevant to your role.

Constraints:
- All strings must be concise and specific
- No prose outside the JSON, no markdown, no headings, no bullet points
- Output ONLY valid JSON
- Provide actual analysis, not "No data to analyze"
{extra_constraints}"""

FINAL_AGENT_PROMPT_TEMPLATE = """Shared state (JSON):
{state}

YOU ARE THE FINAL ASSEMBLER FOR SCENE {index} (purpose: "{purpose}").
{guidance}
ABSOLUTE VISUAL RULE:
Describe ONE single still image only.
No motion, no action verbs, no transitions, no before/after, no cinematic progression.
The image must represent a frozen moment that can exist as a photograph.

Your task as {name} ({role}):
1. Review ALL previous agent outputs in the shared state
2. Synthesize their insights into one comprehensive imagePrompt
3. Combine product details from input, every agent insight, the scene purpose, and the visual style (colors, lighting, composition, setting)

Your output MUST be a JSON object with these EXACT keys:
{{
  "imagePrompt": "<renderer-ready image description, max {image_prompt_max_chars} characters and {max_sentences} sentences>",
  "negativePrompt": "<what to avoid in the image, max {negatives_max_chars} characters>",
  "camera": {{
    "shot": "<one of: {camera_presets}>",
    "lens": "<optional>",
    "movement": "<optional>"
  }},
  "environment": {{
    "location": "<location>",
    "timeOfDay": "<time of day>",
    "lighting": "<lighting>"
  }},
  "onScreenText": {{
    "text": "<optional, max {max_words_on_screen_text} words>",
    "styleNotes": "<style notes for the text>"
  }},
  "compositionNotes": "<composition notes>"
}}

Limits (hard ceilings):
- imagePrompt: at most {image_prompt_max_chars} characters and {max_sentences} sentences
- negativePrompt: at most {negatives_max_chars} characters
- onScreenText.text: at most {max_words_on_screen_text} words
- camera description: at most {camera_max_chars} characters, shot chosen from the list above

Constraints:
- No markdown, no headings, no bullet points
- Output ONLY valid JSON
- imagePrompt must be renderer-ready, not an explanation
{extra_constraints}"""

IMAGE_FIRST_FRAME_CONSTRAINTS = [
    "Output is IMAGE prompts for the FIRST FRAME only (no motion/editing instructions)",
    "Never use headings (###), Objective, Key Elements, Recommendations, or bullet lists in any field.",
    "imagePrompt must be renderer-ready, not an explanation.",
]

NO_VIDEO_LANGUAGE_INSTRUCTION = (
    "CRITICAL: Remove all video language. This is for static image generation only."
)
