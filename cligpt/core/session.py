"""Session persistence and context truncation for the single chat slot."""

import contextlib
import json
import logging
import math
import os
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from platformdirs import user_data_dir

logger = logging.getLogger(__name__)

# Rough token approximation: every turn costs a fixed framing overhead plus
# one token per started block of four characters.
TURN_OVERHEAD = 4
CHARS_PER_TOKEN = 4


class SessionError(Exception):
    """Base class for problems with the persisted conversation."""


class CorruptSession(SessionError):
    """The session file exists but its contents cannot be understood."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Session file '{path}' is corrupt: {reason}")
        self.path = path
        self.reason = reason


class InvalidTurnOrder(SessionError):
    """A turn would break the strict user/assistant alternation."""


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    """One role-tagged message of the conversation."""

    role: Role
    content: str

    def to_message(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


# Chronologically ordered, oldest first.
Conversation = Tuple[Turn, ...]


def _expected_role(position: int) -> Role:
    return Role.USER if position % 2 == 0 else Role.ASSISTANT


def append(conversation: Conversation, turn: Turn) -> Conversation:
    """Return a new conversation with *turn* added at the end.

    Raises :class:`InvalidTurnOrder` when *turn* does not continue the
    alternation that starts with a user turn.
    """
    expected = _expected_role(len(conversation))
    if turn.role is not expected:
        raise InvalidTurnOrder(
            f"Expected a {expected.value} turn at position {len(conversation)}, "
            f"got {turn.role.value}."
        )
    return tuple(conversation) + (turn,)


def estimate_turn(turn: Turn) -> int:
    return TURN_OVERHEAD + math.ceil(len(turn.content) / CHARS_PER_TOKEN)


def estimate_size(conversation: Iterable[Turn]) -> int:
    """Approximate token count of *conversation*; additive over turns."""
    return sum(estimate_turn(turn) for turn in conversation)


def truncate_for_budget(conversation: Conversation, budget: int) -> Conversation:
    """Drop the oldest complete user/assistant pairs until within *budget*.

    Turns are never edited or reordered, and nothing but whole leading pairs
    is ever removed. The result is therefore a suffix of *conversation*. When
    even a lone trailing user turn exceeds the budget it is kept anyway: the
    request is left to fail on the remote side instead of being emptied here.
    """
    remaining = tuple(conversation)
    size = estimate_size(remaining)
    dropped = 0
    while (
        size > budget
        and len(remaining) >= 2
        and remaining[0].role is Role.USER
        and remaining[1].role is Role.ASSISTANT
    ):
        size -= estimate_turn(remaining[0]) + estimate_turn(remaining[1])
        remaining = remaining[2:]
        dropped += 1

    if dropped:
        logger.info(
            "Dropped %d oldest pair(s) to fit budget %d (estimated size now %d)",
            dropped,
            budget,
            size,
        )
    return remaining


def _parse_turn(path: Path, position: int, item: Any) -> Turn:
    if not isinstance(item, dict):
        raise CorruptSession(path, f"message {position} is not an object")
    try:
        role = Role(item.get("role"))
    except ValueError as exc:
        raise CorruptSession(
            path, f"message {position} has unknown role {item.get('role')!r}"
        ) from exc
    content = item.get("content")
    if not isinstance(content, str):
        raise CorruptSession(path, f"message {position} has no text content")
    return Turn(role=role, content=content)


class SessionStore:
    """The single on-disk conversation slot.

    There is no locking: when two processes write concurrently the last
    writer wins.
    """

    FILENAME = "chat.json"
    SESSION_DIR = Path(user_data_dir("cligpt"))

    def __init__(self, path: Optional[Path] = None) -> None:
        if path is None:
            override = os.getenv("CLIGPT_SESSION_FILE")
            path = Path(override) if override else self.SESSION_DIR / self.FILENAME
        self.path = Path(path)

    def load(self) -> Conversation:
        """Read the persisted conversation, empty if nothing was saved yet."""
        if not self.path.exists():
            logger.debug("No session at %s, starting empty", self.path)
            return ()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise CorruptSession(self.path, str(exc)) from exc

        if not isinstance(data, dict) or not isinstance(data.get("messages"), list):
            raise CorruptSession(self.path, "expected an object with a 'messages' list")

        conversation: Conversation = ()
        for position, item in enumerate(data["messages"]):
            turn = _parse_turn(self.path, position, item)
            try:
                conversation = append(conversation, turn)
            except InvalidTurnOrder as exc:
                raise CorruptSession(self.path, str(exc)) from exc

        logger.debug("Loaded %d turn(s) from %s", len(conversation), self.path)
        return conversation

    def save(self, conversation: Conversation) -> None:
        """Replace the persisted conversation with *conversation*."""
        checked: Conversation = ()
        for turn in conversation:
            checked = append(checked, turn)

        data = {
            "messages": [turn.to_message() for turn in checked],
            "updated_at": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        try:
            tmp_path.write_text(
                json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8"
            )
            tmp_path.replace(self.path)
        except OSError:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise
        logger.debug("Saved %d turn(s) to %s", len(checked), self.path)

    def clear(self) -> bool:
        """Delete the session file. Return whether there was one."""
        if not self.path.exists():
            return False
        self.path.unlink()
        logger.info("Cleared session at %s", self.path)
        return True
