"""
Langfuse tracing integration for expense imports.

This module provides utilities to trace the upload, preview and commit
steps of an import session for monitoring and debugging. Tracing is only
enabled when LANGFUSE_PUBLIC_KEY is set, and a tracing failure never
interrupts the import itself.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from langfuse import Langfuse
from langfuse.types import TraceContext

logger = logging.getLogger(__name__)


@dataclass
class TraceHandle:
    """Lightweight wrapper for Langfuse trace context."""

    client: Any
    trace_context: TraceContext
    root_span: Optional[object] = None

    def end(self):
        """End the root span if it is still open."""
        if self.root_span:
            try:
                self.root_span.end()
            except Exception:
                logger.warning("Failed to end root span", exc_info=True)
            finally:
                self.root_span = None


class ImportTracer:
    """Wrapper for the Langfuse client with import-specific configuration."""

    def __init__(self):
        """Initialize the tracer from environment variables."""
        self.enabled = os.getenv("LANGFUSE_PUBLIC_KEY") is not None
        self.client = None

        if self.enabled:
            try:
                self.client = Langfuse(
                    public_key=os.getenv("LANGFUSE_PUBLIC_KEY"),
                    secret_key=os.getenv("LANGFUSE_SECRET_KEY"),
                    host=os.getenv("LANGFUSE_HOST", "http://localhost:3001"),
                    debug=os.getenv("LANGFUSE_DEBUG", "false").lower() == "true",
                )
                logger.info(
                    "Langfuse client initialized with host: %s",
                    os.getenv("LANGFUSE_HOST"),
                )
            except Exception:
                logger.warning("Failed to initialize Langfuse", exc_info=True)
                self.enabled = False

    def is_enabled(self) -> bool:
        """Check if Langfuse tracing is enabled and available."""
        return self.enabled

    def create_trace(
        self,
        name: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[TraceHandle]:
        """
        Create a new trace for one import step.

        Args:
            name: Name of the step (e.g., "import_commit")
            metadata: Optional metadata dictionary

        Returns:
            TraceHandle or None if tracing is disabled
        """
        if not self.enabled or not self.client:
            return None

        try:
            trace_id = self.client.create_trace_id()
            trace_context = TraceContext(trace_id=trace_id, user_id="system")
            root_span = self.client.start_span(
                trace_context=trace_context,
                name=name,
                metadata=metadata or {},
            )
            return TraceHandle(
                client=self.client, trace_context=trace_context, root_span=root_span
            )
        except Exception:
            logger.warning("Failed to create trace %s", name, exc_info=True)
            return None

    def add_span(
        self,
        trace: Optional[TraceHandle],
        name: str,
        input_text: Optional[str] = None,
        output_text: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log a span to the trace.

        Args:
            trace: Handle from create_trace()
            name: Name of the span (e.g., "expand_rows")
            input_text: Optional input data
            output_text: Optional output data
            metadata: Optional additional metadata
        """
        if not trace or not self.client:
            return

        try:
            span = self.client.start_span(
                trace_context=trace.trace_context,
                name=name,
                input=input_text or "",
                metadata=metadata or {},
            )
            if output_text:
                span.update(output=output_text)
            span.end()
        except Exception:
            logger.warning("Failed to add span %s to trace", name, exc_info=True)

    def end_trace(self, trace: Optional[TraceHandle]) -> None:
        """Finalize a trace and flush so all events are sent."""
        if not trace:
            return
        try:
            trace.end()
            if self.client:
                self.client.flush()
        except Exception:
            logger.warning("Failed to end trace", exc_info=True)


# Global instance
_tracer = None


def get_tracer() -> ImportTracer:
    """Get or create the global tracer instance."""
    global _tracer
    if _tracer is None:
        _tracer = ImportTracer()
    return _tracer


def initialize_tracing():
    """Initialize Langfuse tracing (call this at app startup)."""
    tracer = get_tracer()
    if tracer.is_enabled():
        logger.info("Langfuse tracing enabled")
    else:
        logger.info("Langfuse tracing disabled (LANGFUSE_PUBLIC_KEY not set)")
