"""
Unit tests for the scene planner.

Tests cover:
- JSON and line-list parsing
- Normalization to the policy bounds
- Prompt contents
- Failure modes
"""

import json

import pytest

from scenecraft.core.errors import AgentInvocationError, PlanningFailure
from scenecraft.core.planner import PLANNER_AGENT_ID, ScenePlanner
from scenecraft.models import SceneGenerationPolicy, SceneOrderingRules, ShotLibraryEntry


class TestParse:
    """Tests for ScenePlanner.parse."""

    def test_json_scenes_sorted_by_index(self, scripted_client):
        """Test that JSON scenes are ordered by their index."""
        planner = ScenePlanner(scripted_client())
        text = json.dumps({"scenes": [
            {"index": 2, "purpose": "demo", "executionInput": "Apply the serum"},
            {"index": 1, "purpose": "hook", "execution_input": "Open on dry skin"},
        ]})

        entries, parsed_from = planner.parse(text)

        assert parsed_from == "json"
        assert entries == [("hook", "Open on dry skin"), ("demo", "Apply the serum")]

    def test_json_list_of_strings(self, scripted_client):
        """Test a bare list of purposes."""
        entries, parsed_from = ScenePlanner(scripted_client()).parse('["hook", "cta"]')

        assert parsed_from == "json"
        assert entries == [("hook", None), ("cta", None)]

    def test_fenced_json(self, scripted_client):
        """Test that a fenced plan is accepted."""
        text = '```json\n{"scenes": [{"index": 1, "purpose": "hook"}]}\n```'

        entries, _ = ScenePlanner(scripted_client()).parse(text)

        assert entries == [("hook", None)]

    def test_line_fallback(self, scripted_client):
        """Test 'Scene N: purpose' lines when no JSON is present."""
        text = "Here is my plan:\nScene 1: Hook\nScene 2 - Demo\n3) **CTA**"

        entries, parsed_from = ScenePlanner(scripted_client()).parse(text)

        assert parsed_from == "lines"
        assert entries == [("Hook", None), ("Demo", None), ("CTA", None)]

    def test_prose_yields_nothing(self, scripted_client):
        """Test that unnumbered prose produces no entries."""
        entries, _ = ScenePlanner(scripted_client()).parse("I think three scenes would work well.")

        assert entries == []


class TestNormalize:
    """Tests for ScenePlanner.normalize."""

    def test_pads_to_minimum(self, scripted_client):
        """Test that short plans are padded with generic scenes."""
        policy = SceneGenerationPolicy(min_scenes=3, max_scenes=5)

        scenes, padded, truncated = ScenePlanner(scripted_client()).normalize([("hook", None)], policy)

        assert [s.purpose for s in scenes] == ["hook", "Scene 2", "Scene 3"]
        assert [s.index for s in scenes] == [1, 2, 3]
        assert (padded, truncated) == (2, 0)

    def test_truncates_to_maximum(self, scripted_client):
        """Test that long plans are cut to max_scenes."""
        policy = SceneGenerationPolicy(min_scenes=1, max_scenes=2)
        entries = [("hook", None), ("demo", None), ("proof", None), ("cta", None)]

        scenes, padded, truncated = ScenePlanner(scripted_client()).normalize(entries, policy)

        assert [s.purpose for s in scenes] == ["hook", "demo"]
        assert (padded, truncated) == (0, 2)


class TestBuildPrompt:
    """Tests for the planning prompt."""

    def test_prompt_contents(self, scripted_client):
        """Test that bounds, inputs, purposes and enabled rules are included."""
        policy = SceneGenerationPolicy(
            min_scenes=2,
            max_scenes=4,
            rules=SceneOrderingRules(must_start_strong=True),
        )

        prompt = ScenePlanner(scripted_client()).build_prompt(
            {"productName": "Dew Serum"},
            policy,
            shot_library=[ShotLibraryEntry(type="hook"), ShotLibraryEntry(type="cta")],
            system_prompt_template="Brand voice: playful.",
        )

        assert "between 2 and 4" in prompt.user
        assert "- productName: Dew Serum" in prompt.user
        assert '["hook", "cta"]' in prompt.user
        assert "First scene must start strong" in prompt.user
        assert "closure" not in prompt.user
        assert prompt.system.startswith("Brand voice: playful.")


class TestPlan:
    """Tests for the planning call."""

    @pytest.mark.asyncio
    async def test_plan_within_bounds(self, scripted_client, session_context):
        """Test a normal planning call."""
        client = scripted_client(responses=[json.dumps({"scenes": [
            {"index": 1, "purpose": "hook"},
            {"index": 2, "purpose": "demo"},
            {"index": 3, "purpose": "cta"},
        ]})])
        policy = SceneGenerationPolicy(min_scenes=3, max_scenes=3)

        plan = await ScenePlanner(client).plan({"productName": "Dew Serum"}, policy, session_context)

        assert [s.purpose for s in plan.scenes] == ["hook", "demo", "cta"]
        assert plan.parsed_from == "json"
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_zero_scenes_raises(self, scripted_client, session_context):
        """Test that an unusable response is a PlanningFailure."""
        client = scripted_client(responses=["Sorry, I can't help with that."])

        with pytest.raises(PlanningFailure) as exc_info:
            await ScenePlanner(client).plan({}, SceneGenerationPolicy(), session_context)

        assert exc_info.value.raw_response == "Sorry, I can't help with that."

    @pytest.mark.asyncio
    async def test_model_failure_raises(self, scripted_client, session_context):
        """Test that a failing call surfaces as AgentInvocationError."""
        client = scripted_client(responses=[RuntimeError("rate limited")])

        with pytest.raises(AgentInvocationError) as exc_info:
            await ScenePlanner(client).plan({}, SceneGenerationPolicy(), session_context)

        assert exc_info.value.agent_id == PLANNER_AGENT_ID
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_continuity_records_exchange(self, scripted_client, session_context):
        """Test that the planning exchange joins the history when continuity is on."""
        session_context.continuity_enabled = True
        client = scripted_client(responses=['["hook", "demo", "cta"]'])

        await ScenePlanner(client).plan({}, SceneGenerationPolicy(), session_context)

        assert [turn["role"] for turn in session_context.history] == ["user", "assistant"]
        assert session_context.history[1]["content"] == '["hook", "demo", "cta"]'

    @pytest.mark.asyncio
    async def test_no_history_without_continuity(self, scripted_client, session_context):
        """Test that history stays empty by default."""
        client = scripted_client(responses=['["hook", "demo", "cta"]'])

        await ScenePlanner(client).plan({}, SceneGenerationPolicy(), session_context)

        assert session_context.history == []
        assert client.calls[0]["history"] is None
