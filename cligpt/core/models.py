"""Supported models and the request size budget derived from them."""

from enum import Enum
from typing import Dict

from .session import Role, Turn, estimate_size

# A single, persistent system message ensures the model is aware that it is
# interacting in a terminal context and should optimise readability for that
# form factor. It is sent with every request but never stored in the session.
SYSTEM_PROMPT = (
    "You are an AI assistant running in a terminal (CLI) environment. "
    "Optimise all answers for 80-column readability, prefer plain text, "
    "ASCII art or concise bullet lists over heavy markup, and wrap code "
    "snippets in fenced blocks when helpful. Do not emit trailing spaces or "
    "control characters."
)

# Estimated tokens kept free for the reply.
REPLY_RESERVE = 4096


class Model(str, Enum):
    DEFAULT = "gpt-4o-mini"
    ALTERNATE = "gpt-4o"

    @classmethod
    def parse(cls, value: str) -> "Model":
        """Accept either the API name or the ``default``/``alternate`` alias."""
        normalized = value.strip().lower()
        for model in cls:
            if normalized in (model.value, model.name.lower()):
                return model
        choices = ", ".join(cls.choices())
        raise ValueError(f"unsupported model '{value}' (choose from {choices})")

    @classmethod
    def choices(cls) -> list:
        return [model.name.lower() for model in cls] + [model.value for model in cls]


CONTEXT_WINDOWS: Dict[Model, int] = {
    Model.DEFAULT: 128_000,
    Model.ALTERNATE: 128_000,
}


def budget_for(model: Model, reserve: int = REPLY_RESERVE) -> int:
    """Estimated size a conversation may occupy when sent to *model*."""
    # The system prompt is framed like any other message.
    system_cost = estimate_size([Turn(role=Role.USER, content=SYSTEM_PROMPT)])
    return max(0, CONTEXT_WINDOWS[model] - reserve - system_cost)
