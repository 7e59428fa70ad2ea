"""Compact single-line chat input window bound to a ChatInputOrchestrator."""

from __future__ import annotations

from pathlib import Path

from attachments import describe_path
from chat_input import ChatInputOrchestrator
from models import SessionState, SubmitIntent, VoiceStatus

try:
    from PySide6.QtCore import Qt
    from PySide6.QtWidgets import (
        QFileDialog,
        QHBoxLayout,
        QLabel,
        QLineEdit,
        QListWidget,
        QPushButton,
        QVBoxLayout,
        QWidget,
    )
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QFileDialog = None  # type: ignore
    QHBoxLayout = object  # type: ignore
    QLabel = object  # type: ignore
    QLineEdit = object  # type: ignore
    QListWidget = object  # type: ignore
    QPushButton = object  # type: ignore
    QVBoxLayout = object  # type: ignore
    QWidget = object  # type: ignore

BUTTON_LABELS = {
    SubmitIntent.SUBMIT: "➤",
    SubmitIntent.START_RECORDING: "🎙️",
    SubmitIntent.STOP_RECORDING: "■",
}

ERROR_STYLE = "color: #FF6B6B;"
INFO_STYLE = "color: #888888;"


def describe_status(status: VoiceStatus | None) -> str:
    if status is None:
        return ""
    if status.state == SessionState.RECORDING:
        return "🎙️ Recording..."
    if status.state in (SessionState.CAPTURED, SessionState.TRANSCRIBING):
        if status.attempt > 1:
            return f"Transcribing... (attempt {status.attempt}/{status.max_attempts})"
        return "Transcribing..."
    if status.state == SessionState.FAILED and not status.terminal:
        return f"Retrying transcription ({status.attempt}/{status.max_attempts} failed)"
    return status.message


class ChatInputWindow(QWidget):
    def __init__(self, orchestrator: ChatInputOrchestrator, placeholder: str = "Type a message...") -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self._orchestrator = orchestrator
        self.setWindowTitle("Voice Chat Input")
        self.setWindowFlags(Qt.WindowStaysOnTopHint | Qt.Tool)
        self.setMinimumWidth(520)

        self._input = QLineEdit()
        self._input.setPlaceholderText(placeholder)
        self._input.textEdited.connect(orchestrator.set_text)
        self._input.returnPressed.connect(lambda: orchestrator.handle_enter())

        self._attach_button = QPushButton("+")
        self._attach_button.clicked.connect(self._choose_files)
        self._primary_button = QPushButton()
        self._primary_button.clicked.connect(self._on_primary)
        self._retry_button = QPushButton("Retry")
        self._retry_button.clicked.connect(orchestrator.retry_transcription)
        self._retry_button.hide()

        self._files = QListWidget()
        self._files.setMaximumHeight(60)
        self._files.itemDoubleClicked.connect(
            lambda item: self._remove_file(self._files.row(item))
        )
        self._status = QLabel("")

        row = QHBoxLayout()
        row.addWidget(self._attach_button)
        row.addWidget(self._input)
        row.addWidget(self._primary_button)
        status_row = QHBoxLayout()
        status_row.addWidget(self._status, 1)
        status_row.addWidget(self._retry_button)

        layout = QVBoxLayout()
        layout.addWidget(self._files)
        layout.addLayout(row)
        layout.addLayout(status_row)
        self.setLayout(layout)
        self.refresh()

    def refresh(self) -> None:
        """Re-render every widget from the orchestrator's current state."""
        snapshot = self._orchestrator.snapshot()
        if self._input.text() != snapshot.text_value:
            self._input.setText(snapshot.text_value)

        affordance = self._orchestrator.affordance()
        self._primary_button.setText(BUTTON_LABELS[affordance.intent])
        self._primary_button.setEnabled(not affordance.disabled)
        voice = snapshot.voice
        processing = voice is not None and voice.is_processing
        self._input.setEnabled(not self._orchestrator.disabled and not processing)

        self._files.clear()
        for f in snapshot.attached_files:
            self._files.addItem(f"📎 {f.name}")
        self._files.setVisible(bool(snapshot.attached_files))

        failed = voice is not None and voice.state == SessionState.FAILED and voice.terminal
        if self._orchestrator.file_error:
            self.show_error(self._orchestrator.file_error)
        elif failed:
            self.show_error(voice.message)
        else:
            self._status.setStyleSheet(INFO_STYLE)
            self._status.setText(describe_status(voice))
        self._retry_button.setVisible(voice is not None and voice.can_retry)

    def show_error(self, text: str) -> None:
        self._status.setStyleSheet(ERROR_STYLE)
        self._status.setText(f"⚠️ {text}")

    def _on_primary(self) -> None:
        self._orchestrator.trigger_primary_action()
        self.refresh()

    def _choose_files(self) -> None:
        names, _ = QFileDialog.getOpenFileNames(
            self, "Attach files", "", "Documents and images (*.pdf *.jpg *.jpeg *.png *.webp)"
        )
        if not names:
            return
        self._orchestrator.handle_file_select([describe_path(Path(n)) for n in names])
        self.refresh()

    def _remove_file(self, index: int) -> None:
        self._orchestrator.handle_remove_file(index)
        self.refresh()
