"""Command line entry point: ask a question, show or clear the session.

Every invocation is one round trip. The persisted conversation is loaded,
the new prompt appended, the history truncated to the model's budget, the
reply fetched, and the result written back before the reply is printed.
"""
from __future__ import annotations

import argparse
import logging
import os
import re
import sys
from pathlib import Path
from typing import IO, Optional, Sequence

from openai import OpenAI  # type: ignore
from rich.text import Text

from . import __version__
from .core import (
    CorruptSession,
    Model,
    Role,
    SessionError,
    SessionStore,
    Turn,
    append,
    budget_for,
    truncate_for_budget,
)
from .core.client import OpenAIClientWrapper, TransportError
from .utils import (
    ASSISTANT_LABEL,
    ERROR_LABEL,
    USER_LABEL,
    WARNING_LABEL,
    console,
    err_console,
    init_logger,
)

logger = logging.getLogger(__name__)

COMMANDS = ("show", "clear")


# ---------------------------------------------------------------------------
# Helper classes
# ---------------------------------------------------------------------------


class ChatCLI:
    """High-level orchestration of a single invocation."""

    def __init__(self, store: SessionStore, client_wrapper: Optional[OpenAIClientWrapper] = None):
        self.store = store
        self.client = client_wrapper

    @staticmethod
    def _print_turn(turn: Turn) -> None:
        label = USER_LABEL if turn.role is Role.USER else ASSISTANT_LABEL
        console.print(Text.assemble(Text.from_markup(f"{label}> "), turn.content), soft_wrap=True)

    def show(self) -> None:
        """Print the persisted conversation without touching it."""
        conversation = self.store.load()
        if not conversation:
            console.print("(empty session)")
            return
        for turn in conversation:
            self._print_turn(turn)

    def clear(self) -> None:
        if self.store.clear():
            console.print("[session cleared]", markup=False)
        else:
            console.print("(no saved session)")

    def ask(
        self,
        prompt: str,
        model: Model = Model.DEFAULT,
        temperature: float = 0.0,
        budget: Optional[int] = None,
    ) -> str:
        """Run one round trip and return the assistant's reply.

        Nothing is persisted when the completion request fails.
        """
        if self.client is None:
            raise RuntimeError("A completion client is required to ask questions.")

        conversation = self.store.load()
        conversation = append(conversation, Turn(role=Role.USER, content=prompt))

        limit = budget_for(model) if budget is None else budget
        conversation = truncate_for_budget(conversation, limit)

        reply = self.client.complete(conversation, model=model, temperature=temperature)
        conversation = append(conversation, Turn(role=Role.ASSISTANT, content=reply))
        self.store.save(conversation)

        # Printed verbatim: no markup, emoji codes or hard wrapping.
        console.print(reply, markup=False, highlight=False, emoji=False, soft_wrap=True)
        return reply


# ---------------------------------------------------------------------------
# Entrypoint helpers (keeping it separate simplifies __main__ handling)
# ---------------------------------------------------------------------------


def read_prompt(
    words: Sequence[str], stdin: Optional[IO[str]] = None, use_stdin: bool = True
) -> str:
    """Join the positional *words* and piped standard input with single spaces.

    Standard input is read to EOF whenever it is not a terminal, so callers
    whose stdin stays open (cron, some CI runners) must pass
    ``use_stdin=False``.
    """
    if stdin is None:
        stdin = sys.stdin
    parts = [word.strip() for word in words]
    if use_stdin and stdin is not None and not stdin.isatty():
        parts.append(stdin.read().strip())
    return " ".join(part for part in parts if part)


def _model_type(value: str) -> Model:
    try:
        return Model.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _temperature_type(value: str) -> float:
    try:
        temperature = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid temperature '{value}'") from exc
    if not 0.0 <= temperature <= 2.0:
        raise argparse.ArgumentTypeError("temperature must be between 0 and 2")
    return temperature


def _budget_type(value: str) -> int:
    try:
        budget = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid budget '{value}'") from exc
    if budget < 0:
        raise argparse.ArgumentTypeError("budget must not be negative")
    return budget


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cligpt",
        description="Talk to OpenAI chat models from the terminal, one question at a time.",
        epilog=(
            "commands: 'cligpt show' prints the saved conversation, "
            "'cligpt clear' deletes it."
        ),
    )
    parser.add_argument("message", nargs="*", help="Message to send (also read from piped stdin)")
    parser.add_argument("--api-key", "-k", help="OpenAI API key (default: $OPENAI_API_KEY)")
    parser.add_argument(
        "--model",
        "-m",
        type=_model_type,
        help=f"Model to use: {', '.join(Model.choices())} (default: $OPENAI_DEFAULT_MODEL or 'default')",
    )
    parser.add_argument(
        "--temperature",
        "-t",
        type=_temperature_type,
        default=0.0,
        help="Sampling temperature between 0 and 2 (default: 0)",
    )
    parser.add_argument(
        "--budget",
        type=_budget_type,
        help="Estimated token budget for the history sent (default: derived from the model)",
    )
    parser.add_argument(
        "--no-stdin",
        "-n",
        dest="use_stdin",
        action="store_false",
        help="Do not read the prompt from standard input (for cron or CI jobs)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output to stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    args = _build_parser().parse_args(argv)
    args.command = None
    if len(args.message) == 1 and args.message[0] in COMMANDS:
        args.command = args.message.pop()
    return args


def _default_model() -> Model:
    configured = os.getenv("OPENAI_DEFAULT_MODEL")
    if not configured:
        return Model.DEFAULT
    try:
        return Model.parse(configured)
    except ValueError:
        err_console.print(
            f"{WARNING_LABEL}: model '{configured}' is not supported. "
            f"Falling back to '{Model.DEFAULT.value}'."
        )
        return Model.DEFAULT


def _resolve_api_key(explicit: Optional[str] = None) -> Optional[str]:
    """Return the API key from the flag, the environment or ``~/.zshrc``."""
    if explicit:
        return explicit
    api_key = os.getenv("OPENAI_API_KEY")
    if api_key:
        return api_key

    # Fallback: attempt to read from ~/.zshrc (convenience for macOS users)
    zshrc_path = Path.home() / ".zshrc"
    if zshrc_path.exists():
        pattern = re.compile(r"(?:export\s+)?OPENAI_API_KEY\s*=\s*['\"]?([^'\"\n]+)['\"]?")
        match = pattern.search(zshrc_path.read_text())
        if match:
            logger.debug("Using OPENAI_API_KEY found in %s", zshrc_path)
            return match.group(1).strip()
    return None


def _report_error(exc: BaseException) -> None:
    err_console.print(Text.assemble(Text.from_markup(f"{ERROR_LABEL}: "), str(exc)))
    if isinstance(exc, CorruptSession):
        err_console.print("Run 'cligpt clear' to discard it and start over.")


def run_cli(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)

    try:
        init_logger(verbose=args.verbose)
        store = SessionStore()
        if args.command == "show":
            ChatCLI(store).show()
            return
        if args.command == "clear":
            ChatCLI(store).clear()
            return

        prompt = read_prompt(args.message, use_stdin=args.use_stdin)
        if not prompt:
            err_console.print("usage: cligpt [options] MESSAGE ... (or pipe text on stdin)")
            sys.exit(2)

        api_key = _resolve_api_key(args.api_key)
        if not api_key:
            err_console.print(
                f"{ERROR_LABEL}: OPENAI_API_KEY environment variable is not set.\n"
                "(Tried --api-key, the environment and ~/.zshrc)"
            )
            sys.exit(1)

        client_kwargs = {"api_key": api_key}
        base_url = os.getenv("OPENAI_BASE_URL")
        if base_url:
            client_kwargs["base_url"] = base_url
        wrapper = OpenAIClientWrapper(OpenAI(**client_kwargs))  # type: ignore[arg-type]

        ChatCLI(store, wrapper).ask(
            prompt,
            model=args.model or _default_model(),
            temperature=args.temperature,
            budget=args.budget,
        )
    except (SessionError, TransportError, OSError) as exc:
        logger.debug("Invocation failed", exc_info=True)
        _report_error(exc)
        sys.exit(1)
    except KeyboardInterrupt:
        err_console.print("\n[interrupted]", markup=False)
        sys.exit(130)


if __name__ == "__main__":  # pragma: no cover
    run_cli()
