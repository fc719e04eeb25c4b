"""
SceneCraft Data Models Module
Pydantic schemas for workflows, content types and generated scenes.
"""

from .payload import Unstructured, is_unstructured, to_plain
from .scene import (
    AgentContribution,
    FinalSceneOutput,
    GeneratedScene,
    GenerationResult,
    GenerationStrategy,
    SceneInfo,
)
from .workflow import (
    DEFAULT_CAMERA_PRESETS,
    AgentDefinition,
    AgentWorkflow,
    ContentTypeDefinition,
    ExecutionOrder,
    GlobalDefaults,
    InputField,
    InputsContract,
    OutputContract,
    OutputLimits,
    PromptingConfig,
    RenderingSpec,
    RenderTarget,
    SceneGenerationPolicy,
    SceneOrderingRules,
    ShotLibraryEntry,
    WorkflowSourceKind,
    classify_workflow_source,
    resolve_workflow,
)

__all__ = [
    "DEFAULT_CAMERA_PRESETS",
    "AgentContribution",
    "AgentDefinition",
    "AgentWorkflow",
    "ContentTypeDefinition",
    "ExecutionOrder",
    "FinalSceneOutput",
    "GeneratedScene",
    "GenerationResult",
    "GenerationStrategy",
    "GlobalDefaults",
    "InputField",
    "InputsContract",
    "OutputContract",
    "OutputLimits",
    "PromptingConfig",
    "RenderingSpec",
    "RenderTarget",
    "SceneGenerationPolicy",
    "SceneInfo",
    "SceneOrderingRules",
    "ShotLibraryEntry",
    "WorkflowSourceKind",
    "Unstructured",
    "classify_workflow_source",
    "is_unstructured",
    "resolve_workflow",
    "to_plain",
]
