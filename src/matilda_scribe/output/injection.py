#!/usr/bin/env python3
"""Text injection sinks.

The keyboard injector types into whichever window has focus using pynput.
pynput cannot be imported on headless systems, so it is checked once here and
callers check PYNPUT_AVAILABLE before choosing the keyboard sink.
"""

import logging
from typing import Protocol

from rich.console import Console
from rich.markup import escape

try:
    from pynput.keyboard import Controller, Key

    PYNPUT_AVAILABLE = True
except ImportError:
    PYNPUT_AVAILABLE = False
    Controller = None  # type: ignore[assignment]
    Key = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


class TextSink(Protocol):
    def inject_text(self, text: str, replace: str | None = None) -> None: ...


class KeyboardTextInjector:
    """Types text into the focused application."""

    def __init__(self, add_trailing_space: bool = False, controller=None):
        if controller is None:
            if not PYNPUT_AVAILABLE:
                raise RuntimeError("pynput is required for keyboard text injection")
            controller = Controller()
        self._controller = controller
        self.add_trailing_space = add_trailing_space
        self.injected_count = 0

    def inject_text(self, text: str, replace: str | None = None) -> None:
        if replace:
            # Erase the previously injected value before typing its replacement
            erase = len(replace) + (1 if self.add_trailing_space else 0)
            backspace = Key.backspace if Key is not None else "\b"
            for _ in range(erase):
                self._controller.press(backspace)
                self._controller.release(backspace)

        payload = text + " " if self.add_trailing_space else text
        self._controller.type(payload)
        self.injected_count += 1
        logger.debug(f"Injected {len(payload)} chars (replaced {len(replace or '')})")


class ConsoleTextSink:
    """Writes transcripts to stdout; replacements are shown as a corrected line."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()
        self.history: list[str] = []

    def inject_text(self, text: str, replace: str | None = None) -> None:
        if replace:
            self.console.print(f"[dim strike]{escape(replace)}[/dim strike]")
            if self.history and self.history[-1] == replace:
                self.history.pop()
        self.console.print(text, markup=False, highlight=False)
        self.history.append(text)


__all__ = ["TextSink", "KeyboardTextInjector", "ConsoleTextSink", "PYNPUT_AVAILABLE"]
