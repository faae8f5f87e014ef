"""
AI Advice Agent for the Mali ledger

Turns the current ledger position into a short piece of prose using
Gemini.

CRITICAL BOUNDARIES:
- CAN: Summarize totals and a small sample of pending entries
- CANNOT: Write ledger state
- CANNOT: See more than the bounded snapshot (totals + 5 entries)
- NEVER raises: every failure becomes a fixed, displayable message

The advice is a convenience. If Gemini is missing, slow or broken the
ledger keeps working and the user sees a polite message instead.
"""

import asyncio
import json
from typing import Any, Iterable, Optional

import google.generativeai as genai
import structlog

from mali.audit import AuditLogger
from mali.config import GeminiSettings, get_settings
from mali.ledger import summarize
from mali.models.ledger import (
    AdviceSampleItem,
    AdviceSnapshot,
    EntryDirection,
    EntryStatus,
    LedgerEntry,
)


ADVICE_NOT_CONFIGURED = "Sorry, the advice service API key is not configured."
ADVICE_SERVICE_ERROR = "An error occurred while contacting the smart assistant."
ADVICE_EMPTY = "Could not generate advice at this time."
ADVICE_NO_SESSION = "Please log in to get advice on your ledger."

DEFAULT_SAMPLE_SIZE = 5

logger = structlog.get_logger(__name__)


def build_snapshot(
    entries: Iterable[LedgerEntry],
    display_name: str,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> AdviceSnapshot:
    """
    Bounded view of the ledger for the advice prompt.

    Totals are pending-only remaining balances, summed across
    currencies without conversion.
    """
    pending = [e for e in entries if e.status == EntryStatus.PENDING]
    summary = summarize(pending)

    sample = [
        AdviceSampleItem(
            direction=e.direction,
            total=e.amount,
            paid=e.paid_amount,
            remaining=e.remaining,
            currency=e.currency,
            counterparty=e.counterparty,
        )
        for e in pending[:sample_size]
    ]

    return AdviceSnapshot(
        display_name=display_name,
        pending_count=len(pending),
        total_debt_remaining=summary.total_debt,
        total_credit_remaining=summary.total_credit,
        sample=sample,
    )


def build_prompt(snapshot: AdviceSnapshot) -> str:
    """Render the snapshot into the Gemini prompt."""
    sample = [
        {
            "type": "debt they owe" if item.direction == EntryDirection.DEBT else "owed to them",
            "total_amount": str(item.total),
            "paid_so_far": str(item.paid),
            "remaining": str(item.remaining),
            "currency": item.currency,
            "person": item.counterparty,
        }
        for item in snapshot.sample
    ]

    return f"""You are a smart financial advisor for the personal debt ledger app "Mali". The user's name is {snapshot.display_name}.

Current financial position (remaining amounts):
- Total remaining debts they owe: {snapshot.total_debt_remaining} (approximately).
- Total remaining amounts owed to them: {snapshot.total_credit_remaining} (approximately).
- Number of pending entries: {snapshot.pending_count}.

Some of the pending entries (with currencies and partial payments):
{json.dumps(sample, ensure_ascii=False)}

Required:
1. Give a quick summary of their financial position.
2. If there are partially paid debts, encourage them to complete them.
3. Suggest a practical tip for handling different currencies if there are any.

Keep the answer short and useful, within 200 words."""


class AdviceAgent:
    """
    AI agent producing a natural-language summary of the ledger.

    RESPONSIBILITIES:
    - Build the bounded snapshot
    - Call Gemini with a timeout
    - Collapse every failure into a fixed string

    BOUNDARIES:
    - NEVER writes ledger data
    - NEVER raises (cancellation excepted, so callers can abandon it)
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
        audit_logger: Optional[AuditLogger] = None,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
    ):
        """
        Args:
            settings: Gemini settings; read from the environment if None
            model: Anything with ``generate_content_async(prompt)``.
                   Built from settings when None and a key is configured.
            audit_logger: Optional audit trail for advice outcomes
            sample_size: How many pending entries the prompt may include
        """
        self._settings = settings or get_settings().gemini
        self._audit_logger = audit_logger
        self._sample_size = sample_size
        self._model = model
        if self._model is None and self._settings.is_configured:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @property
    def is_available(self) -> bool:
        return self._model is not None

    def _fail(self, reason: str, message: str, error: Optional[str] = None) -> str:
        logger.warning("advice_unavailable", reason=reason, error=error)
        if self._audit_logger:
            self._audit_logger.log_advice_failed(reason, error)
        return message

    async def request_advice(
        self,
        entries: Iterable[LedgerEntry],
        display_name: str,
    ) -> str:
        """
        Ask Gemini for a short summary of the user's position.

        Always returns displayable text. If the awaiting task is
        cancelled the cancellation propagates and nothing is returned.
        """
        if not self.is_available:
            return self._fail("not_configured", ADVICE_NOT_CONFIGURED)

        snapshot = build_snapshot(entries, display_name, self._sample_size)
        prompt = build_prompt(snapshot)

        try:
            response = await asyncio.wait_for(
                self._model.generate_content_async(prompt),
                timeout=self._settings.request_timeout_seconds,
            )
            text = (response.text or "").strip()
        except asyncio.TimeoutError:
            if self._audit_logger:
                self._audit_logger.log_external_service_error("gemini", "timeout")
            return self._fail("timeout", ADVICE_SERVICE_ERROR, "timeout")
        except Exception as e:
            # response.text itself raises when the reply was blocked
            if self._audit_logger:
                self._audit_logger.log_external_service_error("gemini", str(e))
            return self._fail("service_error", ADVICE_SERVICE_ERROR, str(e))

        if not text:
            return self._fail("empty_response", ADVICE_EMPTY)

        if self._audit_logger:
            self._audit_logger.log_advice_generated(display_name, snapshot.pending_count)
        return text
