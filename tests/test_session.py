"""
End-to-end tests for GenerationSession.

Tests cover:
- The shared-state strategy from planning to the rendering spec
- Configuration errors raised before any model call
- Session context reset and continuity history
- The draft refinement and single-prompt strategies
"""

import json

import pytest

from conftest import FINAL_MARKER, PLANNER_MARKER, default_responder, final_response, plan_response
from scenecraft import GenerationSession
from scenecraft.core.errors import (
    MissingInputError,
    NoWorkflowConfiguredError,
    PlanningFailure,
    WorkflowCycleError,
)
from scenecraft.models import DEFAULT_CAMERA_PRESETS, GenerationStrategy


def _session(client, session_context, **kwargs) -> GenerationSession:
    return GenerationSession(client, context=session_context, **kwargs)


class TestSharedStateSession:
    """Tests for the canonical shared-state strategy."""

    @pytest.mark.asyncio
    async def test_three_scene_end_to_end(self, scripted_client, content_type_factory,
                                          product_inputs, session_context):
        """Test policy {3,3} with one regular and one final agent."""
        client = scripted_client(default_responder())
        session = _session(client, session_context)

        result = await session.generate(content_type_factory(), product_inputs)

        assert len(result.scenes) == 3
        assert [s.index for s in result.scenes] == [1, 2, 3]
        assert result.scenes[0].shot_type == "hook"
        for scene in result.scenes:
            assert scene.image_prompt
            assert scene.camera in DEFAULT_CAMERA_PRESETS
            assert [c.agent_id for c in scene.agent_contributions] == ["strategist", "assembler"]
        assert len(client.planner_calls) == 1
        assert len(client.calls) == 1 + 3 * 2
        assert result.strategy == GenerationStrategy.SHARED_STATE
        assert result.content_type == "ugc_ad"
        assert result.run_id == session_context.run_id

    @pytest.mark.asyncio
    async def test_rendering_spec_defaults(self, scripted_client, content_type_factory,
                                           product_inputs, session_context):
        """Test that the rendering spec takes the output-contract defaults."""
        client = scripted_client(default_responder())

        result = await _session(client, session_context).generate(content_type_factory(), product_inputs)
        spec = result.rendering_spec.model_dump(by_alias=True)

        assert spec["aspectRatio"] == "9:16"
        assert spec["style"] == "ugc"
        assert spec["musicMood"] == "default"

    @pytest.mark.asyncio
    async def test_scene_count_clamped(self, scripted_client, content_type_factory,
                                       product_inputs, session_context):
        """Test that an oversized plan is cut to max_scenes."""
        client = scripted_client(default_responder(["hook", "demo", "proof", "offer", "cta"]))

        result = await _session(client, session_context).generate(
            content_type_factory(min_scenes=2, max_scenes=3), product_inputs
        )

        assert [s.purpose for s in result.scenes] == ["hook", "demo", "proof"]

    @pytest.mark.asyncio
    async def test_events_in_order(self, scripted_client, content_type_factory,
                                   product_inputs, session_context, recorded_events):
        """Test the session-level event sequence."""
        events, callback = recorded_events
        client = scripted_client(default_responder())
        session = _session(client, session_context, event_callback=callback)

        await session.generate(content_type_factory(), product_inputs)
        names = [name for name, _ in events]

        assert names[0] == "session_start"
        assert names[1] == "scenes_planned"
        assert names[-1] == "session_complete"
        assert names.count("scene_start") == 3
        assert names.count("scene_complete") == 3
        assert names.count("agent_start") == 6
        assert all(data["run_id"] == session_context.run_id for _, data in events)

    @pytest.mark.asyncio
    async def test_camel_case_dump(self, scripted_client, content_type_factory,
                                   product_inputs, session_context):
        """Test the camelCase payload returned to callers."""
        client = scripted_client(default_responder())

        result = await _session(client, session_context).generate(content_type_factory(), product_inputs)
        payload = result.model_dump(by_alias=True)

        assert "imagePrompt" in payload["scenes"][0]
        assert "agentContributions" in payload["scenes"][0]
        assert "renderingSpec" in payload


class TestConfigurationErrors:
    """Tests for errors raised before any model call."""

    @pytest.mark.asyncio
    async def test_no_workflow(self, scripted_client, product_inputs, session_context):
        """Test that a content type without agents is rejected, never silently downgraded."""
        client = scripted_client(default_responder())
        content_type = {"name": "bare", "prompting": {"systemPromptTemplate": "x"}}

        with pytest.raises(NoWorkflowConfiguredError) as exc_info:
            await _session(client, session_context).generate(content_type, product_inputs)

        assert exc_info.value.content_type == "bare"
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_cycle(self, scripted_client, content_type_factory, product_inputs, session_context):
        """Test that a cyclic custom workflow is rejected."""
        client = scripted_client(default_responder())
        agents = [
            {"id": "a", "role": "x", "order": 1, "readsFrom": ["b_out"], "writesTo": ["a_out"]},
            {"id": "b", "role": "y", "order": 2, "readsFrom": ["a_out"], "writesTo": ["b_out"]},
            {"id": "final", "role": "final_assembler", "order": 3},
        ]

        with pytest.raises(WorkflowCycleError):
            await _session(client, session_context).generate(
                content_type_factory(agents=agents, execution_order="custom"), product_inputs
            )

        assert client.calls == []

    @pytest.mark.asyncio
    async def test_missing_required_input(self, scripted_client, content_type_factory, session_context):
        """Test that a missing required field is rejected."""
        client = scripted_client(default_responder())
        content_type = content_type_factory(
            inputsContract={"fields": [{"key": "product.name", "label": "Product", "required": True}]}
        )

        with pytest.raises(MissingInputError) as exc_info:
            await _session(client, session_context).generate(content_type, {"product": {}})

        assert exc_info.value.label == "Product"
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_planning_failure(self, scripted_client, content_type_factory,
                                    product_inputs, session_context):
        """Test that an unusable plan fails the session with no partial result."""
        client = scripted_client(responses=["No idea, sorry."])

        with pytest.raises(PlanningFailure):
            await _session(client, session_context).generate(content_type_factory(), product_inputs)

        assert len(client.calls) == 1


class TestSessionContext:
    """Tests for the explicit session boundary."""

    @pytest.mark.asyncio
    async def test_reset_between_runs(self, scripted_client, content_type_factory,
                                      product_inputs, session_context):
        """Test that every generate() starts a new run with empty history."""
        session_context.continuity_enabled = True
        client = scripted_client(default_responder())
        session = _session(client, session_context)

        first = await session.generate(content_type_factory(), product_inputs)
        history_after_first = len(session_context.history)
        second = await session.generate(content_type_factory(), product_inputs)

        assert first.run_id != second.run_id
        # planner exchange plus one final exchange per scene
        assert history_after_first == 2 * (1 + 3)
        assert len(session_context.history) == history_after_first

    @pytest.mark.asyncio
    async def test_continuity_history_sent(self, scripted_client, content_type_factory,
                                           product_inputs, session_context):
        """Test that later final agents receive earlier exchanges."""
        session_context.continuity_enabled = True
        client = scripted_client(default_responder())

        await _session(client, session_context).generate(content_type_factory(), product_inputs)
        final_calls = client.final_calls

        assert client.planner_calls[0]["history"] is None
        assert len(final_calls[0]["history"]) == 2
        assert len(final_calls[2]["history"]) == 6

    @pytest.mark.asyncio
    async def test_history_off_by_default(self, scripted_client, content_type_factory,
                                          product_inputs, session_context):
        """Test that no history is kept or sent unless enabled."""
        client = scripted_client(default_responder())

        await _session(client, session_context).generate(content_type_factory(), product_inputs)

        assert session_context.history == []
        assert all(call["history"] is None for call in client.calls)


class TestDraftRefinementSession:
    """Tests for the draft refinement strategy."""

    @pytest.mark.asyncio
    async def test_draft_scenes(self, scripted_client, content_type_factory,
                                product_inputs, session_context):
        """Test that plain-text drafts become enforced scenes."""
        def respond(system, user):
            if PLANNER_MARKER in system:
                return plan_response(["hook", "demo", "cta"])
            if "final agent responsible" in user:
                return "Serum bottle on a white sink in morning light."
            return "Serum bottle on a sink."

        client = scripted_client(respond)

        result = await _session(client, session_context).generate(
            content_type_factory(), product_inputs, strategy=GenerationStrategy.DRAFT_REFINEMENT
        )

        assert len(result.scenes) == 3
        assert all(s.image_prompt == "Serum bottle on a white sink in morning light." for s in result.scenes)
        assert result.scenes[0].shot_type == "hook"
        assert result.strategy == GenerationStrategy.DRAFT_REFINEMENT


class TestSinglePromptSession:
    """Tests for the single-prompt strategy."""

    SCENES = {
        "scenes": [
            {
                "index": 1,
                "purpose": "hook",
                "shotType": "demo",
                "imagePrompt": "Dry skin close-up under harsh bathroom light.",
                "camera": "CU handheld face",
                "onScreenText": "Dry skin every single morning again",
            },
            {"index": 2, "purpose": "demo", "camera": "Drone swoop"},
            {"index": 3, "purpose": "cta", "imagePrompt": "Serum bottle on a shelf.", "camera": "Flatlay"},
        ],
        "renderingSpec": {"musicMood": "upbeat", "transitions": "hard"},
    }

    @pytest.mark.asyncio
    async def test_one_call_enforced_scenes(self, scripted_client, content_type_factory,
                                            product_inputs, session_context):
        """Test that a single call yields enforced scenes and a merged rendering spec."""
        client = scripted_client(responses=[f"```json\n{json.dumps(self.SCENES)}\n```"])

        result = await _session(client, session_context).generate(
            content_type_factory(), product_inputs, strategy=GenerationStrategy.SINGLE_PROMPT
        )
        scenes = result.scenes

        assert len(client.calls) == 1
        assert [s.index for s in scenes] == [1, 2, 3]
        assert scenes[0].shot_type == "hook"
        assert scenes[0].on_screen_text == "Dry skin every single morning again"
        assert scenes[1].image_prompt == "Show the product in use scene with clear composition and good lighting"
        assert scenes[1].camera == DEFAULT_CAMERA_PRESETS[0]
        assert scenes[2].camera == "Flatlay"
        assert result.rendering_spec.music_mood == "upbeat"
        assert result.rendering_spec.aspect_ratio == "9:16"

    @pytest.mark.asyncio
    async def test_works_without_workflow(self, scripted_client, product_inputs, session_context):
        """Test that the single-prompt strategy needs no agents."""
        client = scripted_client(responses=[json.dumps(self.SCENES)])
        content_type = {
            "name": "bare",
            "sceneGenerationPolicy": {"minScenes": 3, "maxScenes": 3},
        }

        result = await _session(client, session_context).generate(
            content_type, product_inputs, strategy=GenerationStrategy.SINGLE_PROMPT
        )

        assert len(result.scenes) == 3
        assert "exactly 3" in client.calls[0]["user"]

    @pytest.mark.asyncio
    async def test_too_few_scenes(self, scripted_client, content_type_factory,
                                  product_inputs, session_context):
        """Test that fewer scenes than min_scenes is a PlanningFailure."""
        client = scripted_client(responses=[json.dumps({"scenes": self.SCENES["scenes"][:1]})])

        with pytest.raises(PlanningFailure):
            await _session(client, session_context).generate(
                content_type_factory(), product_inputs, strategy=GenerationStrategy.SINGLE_PROMPT
            )

    @pytest.mark.asyncio
    async def test_prose_response(self, scripted_client, content_type_factory,
                                  product_inputs, session_context):
        """Test that a prose response is a PlanningFailure."""
        client = scripted_client(responses=["Scene 1: a hook. Scene 2: a demo."])

        with pytest.raises(PlanningFailure):
            await _session(client, session_context).generate(
                content_type_factory(), product_inputs, strategy=GenerationStrategy.SINGLE_PROMPT
            )
