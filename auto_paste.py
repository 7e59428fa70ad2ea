"""Delivers submitted chat messages by pasting them into the focused app."""

from __future__ import annotations

import logging
import sys
import time

from errors import NO_ACTIVE_TARGET
from models import ComposedMessage, PasteResult

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

try:
    from pynput.keyboard import Controller, Key
except Exception:  # pragma: no cover
    Controller = None  # type: ignore
    Key = None  # type: ignore

logger = logging.getLogger(__name__)


class ClipboardPasteService:
    def __init__(self, restore_delay_s: float = 0.1, submit_with_enter: bool = True) -> None:
        self._restore_delay_s = restore_delay_s
        self._submit_with_enter = submit_with_enter

    def submit_message(self, message: ComposedMessage) -> PasteResult:
        if message.files:
            logger.warning(
                "Paste target cannot receive attachments, dropping %d file(s)", len(message.files)
            )
        result = self.paste_text(message.text)
        if not result.success:
            logger.warning("Paste failed: %s", result.reason)
        return result

    def paste_text(self, text: str) -> PasteResult:
        if not text.strip():
            return PasteResult(success=False, reason="empty text", clipboard_restored=True)
        if pyperclip is None or Controller is None or Key is None:
            return PasteResult(
                success=False,
                reason="clipboard/keyboard dependency missing",
                clipboard_restored=False,
            )

        modifier = Key.cmd if sys.platform == "darwin" else Key.ctrl
        old_clip: str | None = None
        try:
            old_clip = pyperclip.paste()
            pyperclip.copy(text)
            keyboard = Controller()
            with keyboard.pressed(modifier):
                keyboard.press("v")
                keyboard.release("v")
            if self._submit_with_enter:
                keyboard.press(Key.enter)
                keyboard.release(Key.enter)
            time.sleep(self._restore_delay_s)
            pyperclip.copy(old_clip)
            return PasteResult(success=True, reason="ok", clipboard_restored=True)
        except Exception as exc:
            restored = False
            if old_clip is not None:
                try:
                    pyperclip.copy(old_clip)
                    restored = True
                except Exception:
                    logger.exception("Could not restore clipboard")
            return PasteResult(
                success=False,
                reason=f"{NO_ACTIVE_TARGET}: {exc}",
                clipboard_restored=restored,
            )
