from .session import (
    Conversation,
    CorruptSession,
    InvalidTurnOrder,
    Role,
    SessionError,
    SessionStore,
    Turn,
    append,
    estimate_size,
    truncate_for_budget,
)
from .models import Model, SYSTEM_PROMPT, budget_for
# client module will be imported lazily to avoid heavy dependencies when not needed.

__all__ = [
    "Conversation",
    "CorruptSession",
    "InvalidTurnOrder",
    "Role",
    "SessionError",
    "SessionStore",
    "Turn",
    "append",
    "estimate_size",
    "truncate_for_budget",
    "Model",
    "SYSTEM_PROMPT",
    "budget_for",
]
