"""Langfuse tracing for the meal pipeline.

When ``LANGFUSE_PUBLIC_KEY`` and ``LANGFUSE_SECRET_KEY`` are set (and the
``observability`` extra is installed) pipeline steps and LLM calls are
traced. Otherwise every decorator here is a no-op.

Usage:
    from meal_parser.observability import observe, langfuse_context

    @observe(name="meal_log")
    async def log(...):
        langfuse_context.update_current_trace(metadata={"mentions": 3})
"""

import logging
import os
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

# ── Check if Langfuse is configured ─────────────────────────────────

_LANGFUSE_ENABLED = bool(
    os.getenv("LANGFUSE_PUBLIC_KEY") and os.getenv("LANGFUSE_SECRET_KEY")
)

if _LANGFUSE_ENABLED:
    try:
        from langfuse import get_client as _lf_get_client
        from langfuse import observe as _lf_observe

        _lf_get_client()
        logger.info(
            "Langfuse tracing enabled (host=%s)",
            os.getenv("LANGFUSE_HOST", "http://localhost:3000"),
        )
    except ImportError:
        logger.warning("Langfuse keys set but package not installed — tracing disabled")
        _LANGFUSE_ENABLED = False
    except Exception as e:
        logger.warning(f"Langfuse initialization failed: {e} — tracing disabled")
        _LANGFUSE_ENABLED = False


def observe(name: Optional[str] = None, **kwargs) -> Callable:
    """Langfuse ``@observe()`` when tracing is enabled, otherwise a no-op."""
    if _LANGFUSE_ENABLED:
        return _lf_observe(name=name, **kwargs)

    def noop_decorator(fn: Callable) -> Callable:
        return fn
    return noop_decorator


class _NoOpContext:
    def update_current_trace(self, **kwargs: Any) -> None:
        pass


class _LangfuseContext:
    """Trace updates through the v3 client; tracing errors never reach callers."""

    def update_current_trace(self, **kwargs: Any) -> None:
        try:
            _lf_get_client().update_current_trace(**kwargs)
        except Exception as e:
            logger.debug(f"Langfuse trace update failed: {e}")


langfuse_context = _LangfuseContext() if _LANGFUSE_ENABLED else _NoOpContext()


def get_async_openai_class():
    """AsyncOpenAI class, instrumented by Langfuse when tracing is enabled."""
    if _LANGFUSE_ENABLED:
        try:
            from langfuse.openai import AsyncOpenAI as LangfuseAsyncOpenAI
            return LangfuseAsyncOpenAI
        except ImportError:
            logger.warning("langfuse.openai not available — using plain AsyncOpenAI")

    from openai import AsyncOpenAI
    return AsyncOpenAI
