"""AI Agents package."""

from mali.agents.advice_agent import (
    ADVICE_EMPTY,
    ADVICE_NO_SESSION,
    ADVICE_NOT_CONFIGURED,
    ADVICE_SERVICE_ERROR,
    AdviceAgent,
    build_prompt,
    build_snapshot,
)

__all__ = [
    "ADVICE_EMPTY",
    "ADVICE_NO_SESSION",
    "ADVICE_NOT_CONFIGURED",
    "ADVICE_SERVICE_ERROR",
    "AdviceAgent",
    "build_prompt",
    "build_snapshot",
]
