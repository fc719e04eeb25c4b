"""
Pytest configuration and fixtures for SceneCraft tests.

This module provides:
- Network blocking fixture to prevent accidental API calls in CI
- A scripted LLM client that records every call
- Content type fixtures for the common workflow shapes
"""

import asyncio
import json
import socket
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import patch

import pytest

from scenecraft.agents.base import LLMClient
from scenecraft.core.state import GenerationSessionContext
from scenecraft.services.tracing import TracingService

PLANNER_MARKER = "planning a short-form ad campaign"
FINAL_MARKER = "YOU ARE THE FINAL ASSEMBLER"


class NetworkBlockedError(Exception):
    """Raised when a test attempts to make a network connection."""
    pass


def _block_socket_connect(*args, **kwargs):
    """Block all socket connections to prevent accidental API calls."""
    raise NetworkBlockedError(
        "Network access is blocked in unit tests. "
        "If you need to test network functionality, use mocks. "
        "This prevents accidental OpenAI/Anthropic/Gemini API calls that cost money."
    )


@pytest.fixture(autouse=True)
def block_network():
    """
    Automatically block all network connections in tests.

    If a test needs to make real network calls (integration tests),
    it should be marked with @pytest.mark.integration and run separately.
    """
    with patch.object(socket.socket, 'connect', _block_socket_connect):
        with patch.object(socket, 'create_connection', _block_socket_connect):
            yield


class ScriptedLLMClient(LLMClient):
    """
    LLM client returning canned responses.

    responder(system_prompt, user_prompt) picks the response; without one,
    responses are consumed in order. A returned exception is raised and a
    returned coroutine is awaited, so failures and slow calls can be scripted.
    """

    def __init__(
        self,
        responder: Optional[Callable[[str, str], Any]] = None,
        responses: Optional[List[Any]] = None,
    ):
        self.responder = responder
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> str:
        self.calls.append({
            "system": system_prompt,
            "user": user_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "history": list(history) if history else None,
        })
        if self.responder is not None:
            result = self.responder(system_prompt, user_prompt)
        else:
            result = self.responses.pop(0)
        if asyncio.iscoroutine(result):
            result = await result
        if isinstance(result, BaseException):
            raise result
        return result

    def calls_matching(self, marker: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if marker in call["system"] or marker in call["user"]]

    @property
    def final_calls(self) -> List[Dict[str, Any]]:
        return self.calls_matching(FINAL_MARKER)

    @property
    def planner_calls(self) -> List[Dict[str, Any]]:
        return self.calls_matching(PLANNER_MARKER)


def plan_response(purposes: List[str]) -> str:
    return json.dumps({
        "sceneCount": len(purposes),
        "scenes": [
            {"index": i, "purpose": purpose, "execution_input": f"Show the {purpose} moment"}
            for i, purpose in enumerate(purposes, start=1)
        ],
    })


def final_response(image_prompt: str = "A glass serum bottle on a marble counter in soft morning light.",
                   shot: str = "Product macro") -> str:
    return json.dumps({
        "imagePrompt": image_prompt,
        "negativePrompt": "blurry, distorted hands",
        "camera": {"shot": shot, "lens": "50mm"},
        "environment": {"location": "bathroom", "lighting": "soft daylight"},
        "onScreenText": {"text": "Glow in seven days", "styleNotes": "bold sans"},
        "compositionNotes": "Bottle centered, rule of thirds",
    })


def default_responder(purposes: Optional[List[str]] = None) -> Callable[[str, str], str]:
    purposes = purposes or ["hook", "demo", "cta"]

    def respond(system_prompt: str, user_prompt: str) -> str:
        if PLANNER_MARKER in system_prompt:
            return plan_response(purposes)
        if FINAL_MARKER in user_prompt:
            return final_response()
        return json.dumps({"insights": {"angle": "morning routine", "benefit": "hydration"}})

    return respond


def build_content_type(
    agents: Optional[List[Any]] = None,
    execution_order: str = "sequential",
    min_scenes: int = 3,
    max_scenes: int = 3,
    **extra: Any,
) -> Dict[str, Any]:
    """camelCase content type definition as stored in the content-type store."""
    if agents is None:
        agents = [
            {"id": "strategist", "role": "strategist", "order": 1},
            {"id": "assembler", "role": "final_assembler", "order": 2},
        ]
    data = {
        "name": "ugc_ad",
        "description": "UGC-style product ad",
        "prompting": {
            "systemPromptTemplate": "You create UGC-style product ads for skincare brands.",
            "agentWorkflow": {"agents": agents, "executionOrder": execution_order},
            "sceneBlueprint": [
                {"type": "hook", "goal": "Stop the scroll"},
                {"type": "demo", "goal": "Show the product in use"},
                {"type": "cta", "goal": "Drive the purchase"},
            ],
            "constraints": ["Keep the product label readable"],
        },
        "sceneGenerationPolicy": {"minScenes": min_scenes, "maxScenes": max_scenes},
        "outputContract": {
            "globalDefaults": {
                "aspectRatio": "9:16",
                "visualStyle": "ugc",
                "durationPerSceneSeconds": 3,
            },
        },
    }
    data.update(extra)
    return data


@pytest.fixture
def scripted_client():
    """Factory for ScriptedLLMClient instances."""
    return ScriptedLLMClient


@pytest.fixture
def content_type_factory():
    """Factory for camelCase content type dicts."""
    return build_content_type


@pytest.fixture
def product_inputs():
    return {
        "productName": "Dew Serum",
        "productDescription": "Hydrating hyaluronic serum",
        "platform": "tiktok",
    }


@pytest.fixture
def session_context():
    """Fresh session context with tracing disabled (safe for unit tests)."""
    return GenerationSessionContext(tracing=TracingService())


@pytest.fixture
def recorded_events():
    """List plus callback that appends (event_type, data) pairs to it."""
    events: List[Any] = []

    def callback(event_type: str, data: Dict[str, Any]) -> None:
        events.append((event_type, data))

    return events, callback
