"""OpenAI client wrapper for chat completions."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

import openai
from openai import OpenAI  # type: ignore

from ..utils import Spinner
from .models import SYSTEM_PROMPT, Model
from .session import Turn

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """The completion request failed or produced no usable answer."""


class OpenAIClientWrapper:
    """Thin wrapper around the OpenAI Python SDK hiding request details."""

    def __init__(self, client: OpenAI):
        self.client = client

    @staticmethod
    def build_messages(turns: Sequence[Turn]) -> List[Dict[str, Any]]:
        """Return the chat payload: system prompt first, then every turn."""
        messages: List[Dict[str, Any]] = [{"role": "system", "content": SYSTEM_PROMPT}]
        messages.extend(turn.to_message() for turn in turns)
        return messages

    def complete(self, messages: Sequence[Turn], model: Model, temperature: float) -> str:
        """Send *messages* to the Chat Completions API and return the reply.

        Any SDK failure is re-raised as :class:`TransportError` with the SDK's
        message untouched.
        """
        params: Dict[str, Any] = {
            "model": model.value,
            "messages": self.build_messages(messages),
            "temperature": temperature,
        }
        logger.debug(
            "Requesting completion: model=%s temperature=%s turns=%d",
            model.value,
            temperature,
            len(messages),
        )

        try:
            with Spinner(prefix=f"{model.value} "):
                response = self.client.chat.completions.create(**params)  # type: ignore[arg-type]
        except openai.OpenAIError as e:
            raise TransportError(f"OpenAI API error: {e}") from e

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content:
            raise TransportError("OpenAI API returned an empty response.")
        return content
