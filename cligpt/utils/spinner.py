"""Spinner shown while waiting for the completion endpoint."""
from __future__ import annotations

from typing import Optional

from yaspin import yaspin

from .ansi import console


class Spinner:
    """Display a small yaspin spinner next to a prefix while work is done.

    The spinner only draws when stdout is an interactive terminal so that
    piping the reply into another program never captures spinner frames.
    """

    def __init__(self, prefix: str = "", enabled: Optional[bool] = None):
        self._enabled = console.is_terminal if enabled is None else enabled
        self._started = False
        # spinner after the text so prefix stays at the start
        self._spinner = yaspin(text=prefix, side="right") if self._enabled else None

    def start(self) -> None:
        if self._started or self._spinner is None:
            return
        self._spinner.start()
        self._started = True

    def stop(self) -> None:
        if not self._started:
            return
        self._spinner.stop()
        self._started = False

    def __enter__(self) -> "Spinner":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
