"""Chat input orchestration shared by the chat surfaces.

One ``ChatInputOrchestrator`` backs each input surface (full chat panel,
start page, compact single-line input).  It owns the composed text and the
attachment list, and binds exactly one set of voice controls: either its own
``VoiceSessionController`` or controls forwarded from a parent surface.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Sequence

from errors import ValidationFailed
from interfaces import FileProcessor, VoiceControls
from models import (
    ButtonAffordance,
    ComposedInputState,
    ComposedMessage,
    FileDescriptor,
    SubmitIntent,
    VoiceStatus,
)
from session_controller import VoiceSessionController
from submit_affordance import derive_affordance

logger = logging.getLogger(__name__)

SubmitCallback = Callable[[ComposedMessage], None]
TextCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]
Schedule = Callable[[float, Callable[[], None]], None]
VoiceFactory = Callable[[TextCallback], VoiceSessionController]

AUTO_SUBMIT_DELAY_S = 0.1


def merge_transcription(value: str, text: str) -> str:
    """Append ``text`` to ``value`` with one space, or replace an empty value."""
    if not text:
        return value
    if value:
        return f"{value} {text}".strip()
    return text


def schedule_timer(delay_s: float, task: Callable[[], None]) -> None:
    timer = threading.Timer(delay_s, task)
    timer.daemon = True
    timer.start()


class ForwardedVoiceControls:
    """Voice controls owned by a parent surface and forwarded to a child."""

    def __init__(
        self,
        is_recording: Callable[[], bool],
        is_processing: Callable[[], bool],
        start_recording: Callable[[], None],
        stop_recording: Callable[[], None],
    ) -> None:
        self._is_recording = is_recording
        self._is_processing = is_processing
        self._start = start_recording
        self._stop = stop_recording

    @classmethod
    def from_controls(cls, controls: VoiceControls) -> "ForwardedVoiceControls":
        return cls(
            is_recording=lambda: controls.is_recording,
            is_processing=lambda: controls.is_processing,
            start_recording=controls.start_recording,
            stop_recording=controls.stop_recording,
        )

    @property
    def is_recording(self) -> bool:
        return bool(self._is_recording())

    @property
    def is_processing(self) -> bool:
        return bool(self._is_processing())

    def start_recording(self) -> None:
        self._start()

    def stop_recording(self) -> None:
        self._stop()


class ChatInputOrchestrator:
    def __init__(
        self,
        on_submit: Optional[SubmitCallback] = None,
        on_text_change: Optional[TextCallback] = None,
        on_transcription: Optional[TextCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        file_processor: Optional[FileProcessor] = None,
        voice_controls: Optional[VoiceControls] = None,
        voice_factory: Optional[VoiceFactory] = None,
        auto_submit_voice: bool = True,
        auto_submit_delay_s: float = AUTO_SUBMIT_DELAY_S,
        schedule: Optional[Schedule] = None,
        single_line: bool = False,
        disabled: bool = False,
    ) -> None:
        self._on_submit = on_submit
        self._on_text_change = on_text_change
        self._on_transcription = on_transcription
        self._on_error = on_error
        self._file_processor = file_processor
        self._auto_submit_voice = auto_submit_voice
        self._auto_submit_delay_s = auto_submit_delay_s
        self._schedule = schedule or schedule_timer
        self.single_line = single_line
        self.disabled = disabled

        self._lock = threading.RLock()
        self._text_value = ""
        self._attached_files: list[FileDescriptor] = []
        self.file_error: str | None = None

        # Parent-supplied controls win; the internal session is then never built.
        self._voice_session: VoiceSessionController | None = None
        if voice_controls is not None:
            self._voice: VoiceControls | None = voice_controls
        elif voice_factory is not None:
            self._voice_session = voice_factory(self.on_transcription_complete)
            self._voice = self._voice_session
        else:
            self._voice = None

    @property
    def text_value(self) -> str:
        return self._text_value

    @property
    def attached_files(self) -> list[FileDescriptor]:
        return list(self._attached_files)

    @property
    def voice(self) -> VoiceControls | None:
        return self._voice

    @property
    def voice_session(self) -> VoiceSessionController | None:
        """The internally owned session, or None when controls are forwarded."""
        return self._voice_session

    @property
    def uses_parent_voice(self) -> bool:
        return self._voice is not None and self._voice_session is None

    def set_text(self, value: str) -> None:
        with self._lock:
            if value == self._text_value:
                return
            self._text_value = value
        if self._on_text_change:
            self._on_text_change(value)

    def clear(self) -> None:
        self.set_text("")

    def on_transcription_complete(self, text: str) -> None:
        if not text:
            return
        with self._lock:
            merged = merge_transcription(self._text_value, text)
        self.set_text(merged)

        if self._auto_submit_voice and self._on_submit:
            logger.info("Auto-submitting voice transcription (%d chars)", len(merged))
            self._schedule(self._auto_submit_delay_s, lambda: self._auto_submit(merged))

        if self._on_transcription:
            self._on_transcription(text)

    def _auto_submit(self, text: str) -> None:
        if self._on_submit is None:
            return
        self._on_submit(ComposedMessage(text=text, files=tuple(self._attached_files)))
        self.clear()

    def submit(self) -> bool:
        with self._lock:
            text = self._text_value
            files = tuple(self._attached_files)
        if self.disabled or not text.strip():
            return False
        if self._on_submit:
            self._on_submit(ComposedMessage(text=text, files=files))
        return True

    def handle_enter(self, shift: bool = False) -> bool:
        """Enter submits; multi-line surfaces keep Shift+Enter for a newline."""
        if shift and not self.single_line:
            return False
        return self.submit()

    def handle_file_select(self, files: Sequence[FileDescriptor]) -> None:
        if not files:
            return
        logger.debug("Files selected: %s", [f.name for f in files])
        try:
            prepared = (
                self._file_processor.process(files) if self._file_processor else list(files)
            )
        except ValidationFailed as exc:
            logger.warning("File validation failed: %s", exc.message)
            self.file_error = exc.message
            if self._on_error:
                self._on_error(exc.code, exc.message)
            return
        with self._lock:
            self._attached_files = list(prepared)
            self.file_error = None

    def handle_remove_file(self, index: int) -> None:
        with self._lock:
            if 0 <= index < len(self._attached_files):
                del self._attached_files[index]

    def affordance(self) -> ButtonAffordance:
        voice = self._voice
        return derive_affordance(
            self._text_value,
            is_recording=bool(voice and voice.is_recording),
            is_transcribing=bool(voice and voice.is_processing),
            disabled=self.disabled or (voice is None and not self._text_value.strip()),
        )

    def trigger_primary_action(self) -> SubmitIntent | None:
        affordance = self.affordance()
        if affordance.disabled:
            return None
        if affordance.intent == SubmitIntent.SUBMIT:
            self.submit()
        elif self._voice is not None and affordance.intent == SubmitIntent.STOP_RECORDING:
            self._voice.stop_recording()
        elif self._voice is not None:
            self._voice.start_recording()
        return affordance.intent

    def retry_transcription(self) -> None:
        if self._voice_session is not None:
            self._voice_session.retry_transcription()

    def snapshot(self) -> ComposedInputState:
        status: VoiceStatus | None = None
        if self._voice_session is not None:
            status = self._voice_session.status
        with self._lock:
            return ComposedInputState(
                text_value=self._text_value,
                attached_files=list(self._attached_files),
                voice=status,
            )
