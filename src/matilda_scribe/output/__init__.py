"""Output boundaries: text injection and user notifications."""

from .clipboard import PYPERCLIP_AVAILABLE, copy_to_clipboard
from .injection import PYNPUT_AVAILABLE, ConsoleTextSink, KeyboardTextInjector, TextSink
from .notifications import NotificationBoundary, NotificationManager

__all__ = [
    "TextSink",
    "KeyboardTextInjector",
    "ConsoleTextSink",
    "PYNPUT_AVAILABLE",
    "copy_to_clipboard",
    "PYPERCLIP_AVAILABLE",
    "NotificationBoundary",
    "NotificationManager",
]
