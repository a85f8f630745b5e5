"""Command line client for OpenAI chat models with a persistent conversation.

Features
--------
1. Session persistence: the conversation is stored on disk and resumed on the next call.
2. Context truncation: the oldest question/answer pairs are dropped before each request
   so the history fits the model's context window.
3. Model switching: pick the default or the alternate model with `--model`.

Run `python -m cligpt` or use the `cligpt` console script as the entry point.
"""
__version__ = "0.3.0"

# Re-export useful symbols for convenience
from .core import (
    Conversation,
    CorruptSession,
    InvalidTurnOrder,
    Model,
    Role,
    SessionError,
    SessionStore,
    Turn,
    append,
    truncate_for_budget,
)
from .core.client import OpenAIClientWrapper, TransportError
from .cli import ChatCLI, run_cli

__all__ = [
    "Conversation",
    "CorruptSession",
    "InvalidTurnOrder",
    "Model",
    "Role",
    "SessionError",
    "SessionStore",
    "Turn",
    "append",
    "truncate_for_budget",
    "OpenAIClientWrapper",
    "TransportError",
    "ChatCLI",
    "run_cli",
]
