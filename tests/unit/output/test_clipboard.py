"""Tests for clipboard copying."""

from unittest.mock import MagicMock

import pytest

from matilda_scribe.output import clipboard


class _ClipboardError(Exception):
    pass


@pytest.fixture
def fake_pyperclip(monkeypatch):
    fake = MagicMock()
    fake.PyperclipException = _ClipboardError
    monkeypatch.setattr(clipboard, "pyperclip", fake)
    monkeypatch.setattr(clipboard, "PYPERCLIP_AVAILABLE", True)
    return fake


class TestCopyToClipboard:
    def test_copies_text(self, fake_pyperclip):
        assert clipboard.copy_to_clipboard("Hello world") is True
        fake_pyperclip.copy.assert_called_once_with("Hello world")

    def test_empty_text_not_copied(self, fake_pyperclip):
        assert clipboard.copy_to_clipboard("") is False
        fake_pyperclip.copy.assert_not_called()

    def test_clipboard_failure_returns_false(self, fake_pyperclip):
        fake_pyperclip.copy.side_effect = _ClipboardError("no display")

        assert clipboard.copy_to_clipboard("Hello world") is False

    def test_missing_pyperclip(self, monkeypatch):
        monkeypatch.setattr(clipboard, "PYPERCLIP_AVAILABLE", False)

        assert clipboard.copy_to_clipboard("Hello world") is False
