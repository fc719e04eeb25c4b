"""
SceneCraft
Multi-agent scene generation: a planner decides the scenes, a configurable
agent workflow writes each one, and the output contract is enforced on every
scene before it is returned.
"""

import logging

from .config import LLMConfiguration, LLMProvider, create_default_config_from_env
from .core.enforcement import BannedTermScan, ContentPolicyViolation, OutputEnforcer, RetryPolicy
from .core.errors import (
    AgentInvocationError,
    AgentTimeoutError,
    ConfigurationError,
    FinalAgentOutputMissing,
    MissingInputError,
    NoWorkflowConfiguredError,
    PlanningFailure,
    SceneCraftError,
    SceneIndexIntegrityError,
    WorkflowCycleError,
)
from .core.state import GenerationSessionContext, SharedState
from .models import (
    AgentDefinition,
    AgentWorkflow,
    ContentTypeDefinition,
    ExecutionOrder,
    GeneratedScene,
    GenerationResult,
    GenerationStrategy,
    RenderingSpec,
)
from .core.session import GenerationSession

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach a stream handler to the scenecraft logger unless one exists."""
    logger = logging.getLogger("scenecraft")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger


__all__ = [
    "AgentDefinition",
    "AgentInvocationError",
    "AgentTimeoutError",
    "AgentWorkflow",
    "BannedTermScan",
    "ConfigurationError",
    "ContentPolicyViolation",
    "ContentTypeDefinition",
    "ExecutionOrder",
    "FinalAgentOutputMissing",
    "GeneratedScene",
    "GenerationResult",
    "GenerationSession",
    "GenerationSessionContext",
    "GenerationStrategy",
    "LLMConfiguration",
    "LLMProvider",
    "MissingInputError",
    "NoWorkflowConfiguredError",
    "OutputEnforcer",
    "PlanningFailure",
    "RenderingSpec",
    "RetryPolicy",
    "SceneCraftError",
    "SceneIndexIntegrityError",
    "SharedState",
    "WorkflowCycleError",
    "configure_logging",
    "create_default_config_from_env",
]
