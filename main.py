"""Application entrypoint."""

from __future__ import annotations

import logging
import sys

from attachments import AttachmentValidator
from auto_paste import ClipboardPasteService
from chat_input import ChatInputOrchestrator
from chat_window import ChatInputWindow
from config import JsonConfigStore
from hotkey import GlobalHotkeyAdapter
from models import ComposedMessage, VoiceStatus
from recorder import AudioCaptureSession
from session_controller import VoiceSessionController
from transcriber import TranscriptionClient

try:
    from PySide6.QtCore import QObject, QTimer, Signal
    from PySide6.QtWidgets import QApplication
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger(__name__)


class UIBridge(QObject):
    refresh_signal = Signal()
    error_signal = Signal(str)
    trigger_signal = Signal()
    submit_signal = Signal(object)
    schedule_signal = Signal(float, object)


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.config_store = JsonConfigStore()
        logging.basicConfig(
            level=self.config_store.get_log_level(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        self.ui = UIBridge()
        self.paste_service = ClipboardPasteService()
        self.transcriber = TranscriptionClient(
            base_url=self.config_store.get_api_base_url(),
            timeout_s=self.config_store.get_request_timeout_s(),
        )

        self.orchestrator = ChatInputOrchestrator(
            on_submit=self._on_submit,
            on_text_change=lambda _text: self.ui.refresh_signal.emit(),
            on_error=self._on_error,
            file_processor=AttachmentValidator(),
            voice_factory=self._build_voice_session,
            auto_submit_voice=self.config_store.get_auto_submit_voice(),
            schedule=self._schedule,
            single_line=True,
        )
        self.window = ChatInputWindow(self.orchestrator)
        self.hotkey = GlobalHotkeyAdapter(hotkey_name=self.config_store.get_hotkey())

        self.ui.refresh_signal.connect(self.window.refresh)
        self.ui.error_signal.connect(self.window.show_error)
        self.ui.trigger_signal.connect(self._on_hotkey_ui)
        self.ui.submit_signal.connect(self._deliver)
        self.ui.schedule_signal.connect(
            lambda delay_s, task: QTimer.singleShot(int(delay_s * 1000), task)
        )

    def _build_voice_session(self, on_transcription) -> VoiceSessionController:  # noqa: ANN001
        return VoiceSessionController(
            capture=AudioCaptureSession(),
            transcriber=self.transcriber,
            strip_timestamps=self.config_store.get_remove_timestamps(),
            on_transcription=on_transcription,
            on_status_change=self._on_status_change,
            on_error=self._on_error,
        )

    # ------------------------------------------------------------------
    # Callbacks (may run on worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_status_change(self, status: VoiceStatus) -> None:
        self.ui.refresh_signal.emit()

    def _on_error(self, code: str, message: str) -> None:
        logger.warning("%s: %s", code, message)
        self.ui.error_signal.emit(message)

    def _on_submit(self, message: ComposedMessage) -> None:
        self.ui.submit_signal.emit(message)

    def _schedule(self, delay_s: float, task) -> None:  # noqa: ANN001
        self.ui.schedule_signal.emit(delay_s, task)

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _deliver(self, message: ComposedMessage) -> None:
        # Hand focus back to the previous app before pasting.
        self.window.hide()
        QTimer.singleShot(150, lambda: self._paste_and_restore(message))

    def _paste_and_restore(self, message: ComposedMessage) -> None:
        result = self.paste_service.submit_message(message)
        self.window.show()
        if not result.success:
            self.window.show_error(result.reason)
        self.window.refresh()

    def _on_hotkey_ui(self) -> None:
        self.orchestrator.trigger_primary_action()
        self.window.refresh()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        self.window.show()
        try:
            self.hotkey.start(on_trigger=self.ui.trigger_signal.emit)
        except Exception as exc:
            self.window.show_error(f"Hotkey disabled: {exc}")
        try:
            return self.app.exec()
        finally:
            self.quit()

    def quit(self) -> None:
        self.hotkey.stop()
        session = self.orchestrator.voice_session
        if session is not None:
            session.reset()
        self.transcriber.close()


def main() -> int:
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
