"""Clipboard access for copying finished transcripts.

pyperclip is optional like pynput; without it copying reports failure instead
of raising.
"""

import logging

try:
    import pyperclip

    PYPERCLIP_AVAILABLE = True
except ImportError:
    PYPERCLIP_AVAILABLE = False
    pyperclip = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


def copy_to_clipboard(text: str) -> bool:
    """Put ``text`` on the system clipboard. Returns False when that is not possible."""
    if not text:
        return False
    if not PYPERCLIP_AVAILABLE:
        logger.warning("pyperclip is not installed, cannot copy to the clipboard")
        return False
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        logger.warning(f"Clipboard unavailable: {e}")
        return False
    logger.info(f"Copied transcript to clipboard ({len(text)} chars)")
    return True


__all__ = ["copy_to_clipboard", "PYPERCLIP_AVAILABLE"]
