"""
Output contract enforcement for generated scenes.

OutputEnforcer fills policy defaults and truncates fields to their ceilings;
it never fails a scene for being too long or missing a camera. BannedTermScan
and RetryPolicy decide whether the final agent gets another attempt when
motion/editing vocabulary leaks into an image prompt.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..models.scene import GeneratedScene, SceneInfo
from ..models.workflow import OutputLimits, SceneGenerationPolicy, ShotLibraryEntry
from ..prompts import NO_VIDEO_LANGUAGE_INSTRUCTION
from .errors import SceneIndexIntegrityError

logger = logging.getLogger("scenecraft.enforcement")

# A sentence end within this many characters of the limit is preferred over a word boundary
SENTENCE_BOUNDARY_WINDOW = 20

_SENTENCE_SPLIT = re.compile(r"[\s\S]*?[.!?]+(?=\s|$)|[\s\S]+$")

VIDEO_LANGUAGE_TERMS: List[str] = [
    "pan", "pans", "panning", "panned",
    "zoom", "zooms", "zooming", "zoomed",
    "transition", "transitions",
    "montage", "montages",
    "cut", "cuts", "cutting",
    "voiceover", "voice-over", "voiceovers",
    "music",
    "beat", "beats",
    "scene structure",
    "objective", "objectives",
    "recommendations",
    "###",
    "heading", "headings",
    "bullet", "bullets",
]

SCANNED_FIELDS = ("image_prompt", "negative_prompt", "notes", "composition_notes")


# ============================================================================
# Text Helpers
# ============================================================================

def split_sentences(text: str) -> List[str]:
    """Sentences with their terminal punctuation; a trailing fragment counts as one."""
    return [match.group(0) for match in _SENTENCE_SPLIT.finditer(text) if match.group(0).strip()]


def truncate_sentences(text: str, max_sentences: int) -> str:
    sentences = split_sentences(text)
    if len(sentences) <= max_sentences:
        return text
    return "".join(sentences[:max_sentences]).strip()


def truncate_at_word(text: str, limit: int) -> str:
    """Cut to at most limit chars at a word boundary (hard cut only for a single overlong word)."""
    if len(text) <= limit:
        return text
    if text[limit].isspace():
        return text[:limit].rstrip()
    window = text[:limit]
    last_space = max(window.rfind(" "), window.rfind("\n"), window.rfind("\t"))
    if last_space > 0:
        return window[:last_space].rstrip()
    return window


def truncate_chars(text: str, limit: int, window: int = SENTENCE_BOUNDARY_WINDOW) -> str:
    """
    Cut to at most limit chars, preferring a sentence end within the
    trailing window, else the last word boundary.
    """
    if len(text) <= limit:
        return text
    head = text[:limit]
    last_end = -1
    for i in range(len(head) - 1, -1, -1):
        if head[i] in ".!?" and (i + 1 == len(text) or text[i + 1].isspace()):
            last_end = i
            break
    if last_end >= 0 and last_end >= limit - window:
        return head[:last_end + 1].rstrip()
    return truncate_at_word(text, limit)


def truncate_words(text: str, max_words: int) -> str:
    words = text.split()
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words])


# ============================================================================
# Banned Vocabulary
# ============================================================================

@dataclass(frozen=True)
class ContentPolicyViolation:
    """A banned term found in a scene field."""
    field: str
    term: str


class BannedTermScan:
    """Whole-word scan for motion, editing and markdown-heading vocabulary."""

    def __init__(self, terms: Optional[Sequence[str]] = None, fields: Sequence[str] = SCANNED_FIELDS):
        self.terms = list(terms if terms is not None else VIDEO_LANGUAGE_TERMS)
        self.fields = tuple(fields)
        self._patterns = [(term, self._compile(term)) for term in self.terms]

    @staticmethod
    def _compile(term: str) -> "re.Pattern[str]":
        escaped = r"\s+".join(re.escape(part) for part in term.split())
        if term[0].isalnum() and term[-1].isalnum():
            return re.compile(rf"\b{escaped}\b", re.IGNORECASE)
        return re.compile(escaped, re.IGNORECASE)

    def scan(self, scene: GeneratedScene) -> List[ContentPolicyViolation]:
        violations = []
        for field_name in self.fields:
            value = getattr(scene, field_name, None)
            if not value:
                continue
            for term, pattern in self._patterns:
                if pattern.search(value):
                    violations.append(ContentPolicyViolation(field=field_name, term=term))
        return violations

    def __call__(self, scene: GeneratedScene) -> List[ContentPolicyViolation]:
        return self.scan(scene)


@dataclass
class RetryPolicy:
    """
    Bounded regeneration of the final agent.

    trigger returns the violations for a scene; while any remain and
    attempts are left, the final agent runs again with instruction appended
    to its constraints.
    """
    max_attempts: int = 1
    trigger: BannedTermScan = field(default_factory=BannedTermScan)
    instruction: str = NO_VIDEO_LANGUAGE_INSTRUCTION
    backoff_seconds: float = 0.0
    backoff_multiplier: float = 2.0

    def violations(self, scene: GeneratedScene) -> List[ContentPolicyViolation]:
        return self.trigger(scene)

    def should_retry(self, violations: List[ContentPolicyViolation], attempt: int) -> bool:
        """attempt counts retries already made."""
        return bool(violations) and attempt < self.max_attempts

    def delay_for(self, attempt: int) -> float:
        return self.backoff_seconds * (self.backoff_multiplier ** attempt)


# ============================================================================
# Enforcer
# ============================================================================

class OutputEnforcer:
    """Deterministically brings a scene within the output contract."""

    def __init__(
        self,
        limits: Optional[OutputLimits] = None,
        camera_presets: Optional[Sequence[str]] = None,
        policy: Optional[SceneGenerationPolicy] = None,
        shot_library: Optional[Sequence[ShotLibraryEntry]] = None,
    ):
        self.limits = limits or OutputLimits()
        self.camera_presets = list(camera_presets or [])
        self.policy = policy or SceneGenerationPolicy()
        self.shot_library = list(shot_library or [])
        self._preset_lookup: Dict[str, str] = {
            preset.strip().lower(): preset for preset in self.camera_presets
        }

    def enforce(self, scene: GeneratedScene) -> GeneratedScene:
        """Return a compliant copy of the scene; compliant input comes back unchanged."""
        update = {}
        limits = self.limits

        shot_type = self._shot_type(scene)
        if shot_type != scene.shot_type:
            update["shot_type"] = shot_type

        camera = self._camera(scene.camera)
        if camera != scene.camera:
            update["camera"] = camera

        image_prompt = scene.image_prompt
        if not image_prompt or not image_prompt.strip():
            image_prompt = self._default_image_prompt(scene)
        image_prompt = truncate_sentences(image_prompt, limits.max_sentences_image_prompt)
        image_prompt = truncate_chars(image_prompt, limits.image_prompt_max_chars)
        if image_prompt != scene.image_prompt:
            update["image_prompt"] = image_prompt

        if scene.negative_prompt:
            negative = truncate_at_word(scene.negative_prompt, limits.negatives_max_chars)
            if negative != scene.negative_prompt:
                update["negative_prompt"] = negative

        if scene.on_screen_text:
            text = truncate_words(scene.on_screen_text, limits.max_words_on_screen_text)
            if text != scene.on_screen_text:
                update["on_screen_text"] = text

        if not update:
            return scene

        logger.debug(f"[enforce] Scene {scene.index}: adjusted {sorted(update)}")
        return scene.model_copy(update=update)

    def _shot_type(self, scene: GeneratedScene) -> str:
        if scene.index == 1:
            return self.policy.opening_shot_type
        if scene.shot_type:
            return scene.shot_type
        types = [entry.type for entry in self.shot_library]
        purpose = (scene.purpose or "").strip().lower()
        for shot_type in types:
            if shot_type.lower() == purpose:
                return shot_type
        if types:
            return types[(scene.index - 1) % len(types)]
        return "general"

    def _camera(self, camera: Optional[str]) -> Optional[str]:
        if not self.camera_presets:
            return camera
        if camera:
            match = self._preset_lookup.get(camera.strip().lower())
            if match:
                return match
        return self.camera_presets[0]

    def _default_image_prompt(self, scene: GeneratedScene) -> str:
        goal = None
        for entry in self.shot_library:
            if entry.type.lower() == (scene.purpose or "").lower():
                goal = entry.goal
                break
        return f"{goal or scene.purpose or 'Show product'} scene with clear composition and good lighting"

    @staticmethod
    def verify_indices(scenes: Sequence[GeneratedScene]) -> None:
        """Indices must be exactly 1..n in order."""
        indices = [scene.index for scene in scenes]
        if indices != list(range(1, len(scenes) + 1)):
            raise SceneIndexIntegrityError(indices)

    @staticmethod
    def verify_plan(scenes: Sequence[SceneInfo]) -> None:
        indices = [scene.index for scene in scenes]
        if indices != list(range(1, len(scenes) + 1)):
            raise SceneIndexIntegrityError(indices)
