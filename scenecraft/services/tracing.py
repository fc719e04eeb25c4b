"""
Langfuse tracing for generation sessions.

One trace per session run, keyed by run id. Each scene gets a span, each
model call (planner, agents, single prompt) a generation, and soft
degradations an event. Without Langfuse keys every method is a no-op.
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from langfuse import Langfuse

logger = logging.getLogger("scenecraft.tracing")

SESSION_TRACE_NAME = "scene_generation"


class TracingService:
    """Session-scoped view over a Langfuse client."""

    def __init__(self):
        self._client: Optional[Langfuse] = None
        self._active: Dict[str, Any] = {}  # run_id -> langfuse trace

    def initialize(
        self,
        public_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        host: Optional[str] = None,
    ) -> bool:
        """
        Connect to Langfuse.

        Keys and host fall back to LANGFUSE_PUBLIC_KEY, LANGFUSE_SECRET_KEY and
        LANGFUSE_HOST. Returns False, leaving tracing off, when either key is
        missing.
        """
        public_key = public_key or os.getenv("LANGFUSE_PUBLIC_KEY")
        secret_key = secret_key or os.getenv("LANGFUSE_SECRET_KEY")
        host = host or os.getenv("LANGFUSE_HOST", "https://cloud.langfuse.com")

        if not (public_key and secret_key):
            logger.info("[initialize] No Langfuse keys, session tracing stays off")
            return False

        self._client = Langfuse(public_key=public_key, secret_key=secret_key, host=host)
        logger.info(f"[initialize] Session tracing on, sending to {host}")
        return True

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def _trace(self, run_id: str) -> Optional[Any]:
        return self._active.get(run_id) if self.enabled else None

    def start_session(self, run_id: str, content_type: str, strategy: str) -> Optional[Any]:
        """Open the trace for one generate() run; None when tracing is off."""
        if not self.enabled:
            return None
        try:
            trace = self._client.trace(
                id=run_id,
                name=SESSION_TRACE_NAME,
                metadata={"content_type": content_type, "strategy": strategy},
            )
        except Exception as e:
            logger.warning(f"[start_session] Run {run_id}: could not open trace: {e}")
            return None
        self._active[run_id] = trace
        return trace

    def end_session(
        self,
        run_id: str,
        scene_count: Optional[int] = None,
        latency_ms: Optional[float] = None,
        error: Optional[str] = None,
    ) -> None:
        """Close the run's trace with its outcome and flush."""
        trace = self._active.pop(run_id, None) if self.enabled else None
        if trace is None:
            return
        output = {"error": error} if error else {"scene_count": scene_count}
        try:
            trace.update(output=output, metadata={"latency_ms": latency_ms})
            self._client.flush()
        except Exception as e:
            logger.warning(f"[end_session] Run {run_id}: could not close trace: {e}")

    @asynccontextmanager
    async def scene_span(self, run_id: str, scene_index: int, purpose: str) -> AsyncIterator[Optional[Any]]:
        """Span covering every agent call of one scene."""
        trace = self._trace(run_id)
        if trace is None:
            yield None
            return

        started = time.time()
        span = trace.span(name=f"scene_{scene_index}", input={"purpose": purpose})
        try:
            yield span
        except Exception as e:
            span.update(level="ERROR", status_message=str(e))
            raise
        finally:
            span.end(metadata={"scene_index": scene_index, "latency_ms": (time.time() - started) * 1000})

    def record_generation(
        self,
        run_id: str,
        caller: str,
        system_prompt: str,
        user_prompt: str,
        output: str,
        latency_ms: float = 0,
        scene_index: Optional[int] = None,
        role: Optional[str] = None,
    ) -> None:
        """One model call by the planner, an agent, or the single-prompt strategy."""
        trace = self._trace(run_id)
        if trace is None:
            return
        name = f"scene_{scene_index}_{caller}" if scene_index is not None else caller
        metadata = {"latency_ms": latency_ms}
        if role:
            metadata["agent_role"] = role
        if scene_index is not None:
            metadata["scene_index"] = scene_index
        try:
            trace.generation(
                name=name,
                input=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                output=output,
                metadata=metadata,
            )
        except Exception as e:
            logger.warning(f"[record_generation] Run {run_id}: could not record '{name}': {e}")

    def record_event(
        self,
        run_id: str,
        name: str,
        level: str = "DEFAULT",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Point-in-time event such as coercion_degraded; level is a Langfuse level name."""
        trace = self._trace(run_id)
        if trace is None:
            return
        try:
            trace.event(name=name, level=level, metadata=metadata or {})
        except Exception as e:
            logger.warning(f"[record_event] Run {run_id}: could not record '{name}': {e}")

    def shutdown(self) -> None:
        """Flush pending data and turn tracing off."""
        if self._client is not None:
            self._client.flush()
            self._client.shutdown()
        self._client = None
        self._active.clear()


# Process-wide instance used when a session context is created without one
tracing_service = TracingService()
