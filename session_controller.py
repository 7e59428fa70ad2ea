"""State-machine based recording session orchestration."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from errors import (
    CAPTURE_FAILED,
    ERROR_MESSAGES,
    TRANSCRIPTION_FAILED,
    CaptureFailed,
    DeviceUnavailable,
    TranscriptionFailed,
)
from interfaces import Transcriber
from models import AudioBlob, SessionState, TranscriptionResult, VoiceStatus
from recorder import AudioCaptureSession
from retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

StatusCallback = Callable[[VoiceStatus], None]
TranscriptionCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]
Dispatch = Callable[[Callable[[], None]], None]

NO_AUDIO_MESSAGE = "No audio was captured."


def spawn_thread(task: Callable[[], None]) -> None:
    threading.Thread(target=task, daemon=True).start()


class VoiceSessionController:
    """Internally owned voice controls: record, transcribe, retry.

    Each recording gets a new generation; results that arrive for an older
    generation are dropped so a stale transcription never reaches the input.
    """

    def __init__(
        self,
        capture: AudioCaptureSession,
        transcriber: Transcriber,
        strip_timestamps: bool = True,
        retry_policy: Optional[RetryPolicy] = None,
        dispatch: Optional[Dispatch] = None,
        on_transcription: Optional[TranscriptionCallback] = None,
        on_status_change: Optional[StatusCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._capture = capture
        self._transcriber = transcriber
        self._strip_timestamps = strip_timestamps
        self._policy = retry_policy or RetryPolicy()
        self._dispatch = dispatch or spawn_thread
        self.on_transcription = on_transcription
        self._on_status_change = on_status_change
        self._on_error = on_error

        self._lock = threading.RLock()
        self._generation = 0
        self._blob: AudioBlob | None = None
        self._status = VoiceStatus(max_attempts=self._policy.max_attempts)

    @property
    def status(self) -> VoiceStatus:
        return self._status

    @property
    def is_recording(self) -> bool:
        return self._status.is_recording

    @property
    def is_processing(self) -> bool:
        return self._status.is_processing

    @property
    def attempt_count(self) -> int:
        return self._policy.attempt_count

    @property
    def has_failed_terminally(self) -> bool:
        return self._status.state == SessionState.FAILED and self._status.terminal

    def start_recording(self) -> None:
        with self._lock:
            if self._status.state == SessionState.RECORDING:
                return
            self._generation += 1
            self._blob = None
            self._policy.reset()
            try:
                self._capture.start()
            except DeviceUnavailable as exc:
                logger.warning("Microphone unavailable: %s", exc.detail or exc.message)
                self._transition(SessionState.IDLE, message=exc.message)
                self._emit_error(exc.code, exc.message)
                return
            self._transition(SessionState.RECORDING)

    def stop_recording(self) -> None:
        with self._lock:
            if self._status.state != SessionState.RECORDING:
                return
            try:
                blob = self._capture.stop()
            except CaptureFailed as exc:
                logger.warning("Finalizing recording failed: %s", exc.detail or exc.message)
                self._transition(SessionState.IDLE, message=exc.message)
                self._emit_error(exc.code, exc.message)
                return
            if blob is None or not blob.data:
                self._capture.discard()
                self._transition(SessionState.IDLE, message=NO_AUDIO_MESSAGE)
                self._emit_error(CAPTURE_FAILED, NO_AUDIO_MESSAGE)
                return
            self._blob = blob
            self._transition(SessionState.CAPTURED)
            self._begin_attempt(self._generation, blob)

    def retry_transcription(self) -> None:
        with self._lock:
            if self._blob is None:
                return
            if self._status.state in (SessionState.RECORDING, SessionState.TRANSCRIBING):
                return
            logger.info("Manual retry of transcription")
            self._policy.reset()
            self._begin_attempt(self._generation, self._blob)

    def reset(self) -> None:
        with self._lock:
            self._generation += 1
            self._capture.discard()
            self._blob = None
            self._policy.reset()
            self._transition(SessionState.IDLE)

    def _begin_attempt(self, generation: int, blob: AudioBlob) -> None:
        self._transition(SessionState.TRANSCRIBING, attempt=self._policy.attempt_count + 1)
        self._dispatch(lambda: self._run_transcription(generation, blob))

    def _run_transcription(self, generation: int, blob: AudioBlob) -> None:
        try:
            result = self._transcriber.transcribe(blob, strip_timestamps=self._strip_timestamps)
        except TranscriptionFailed as exc:
            self._handle_failure(generation, blob, exc)
            return
        except Exception as exc:
            logger.exception("Unexpected transcription error")
            self._handle_failure(generation, blob, TranscriptionFailed(detail=str(exc)))
            return
        self._handle_success(generation, result)

    def _handle_success(self, generation: int, result: TranscriptionResult) -> None:
        with self._lock:
            if generation != self._generation:
                logger.info("Discarding transcription of a superseded session")
                return
            attempt = self._status.attempt
            self._policy.record_success()
            self._transition(SessionState.SUCCEEDED, attempt=attempt)
            try:
                if self.on_transcription:
                    self.on_transcription(result.cleaned_text)
            except Exception:
                logger.exception("Transcription consumer failed")
                self._emit_error(TRANSCRIPTION_FAILED, ERROR_MESSAGES[TRANSCRIPTION_FAILED])
            finally:
                self._blob = None
                self._transition(SessionState.IDLE)

    def _handle_failure(
        self, generation: int, blob: AudioBlob, exc: TranscriptionFailed
    ) -> None:
        with self._lock:
            if generation != self._generation:
                logger.info("Discarding failed transcription of a superseded session")
                return
            terminal = self._policy.record_failure()
            attempt = self._policy.attempt_count
            logger.warning(
                "Transcription attempt %d/%d failed: %s",
                attempt,
                self._policy.max_attempts,
                exc.detail or exc.message,
            )
            self._transition(
                SessionState.FAILED, attempt=attempt, terminal=terminal, message=exc.message
            )
            if terminal:
                self._emit_error(exc.code, exc.message)
                return
            self._begin_attempt(generation, blob)

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            self._on_error(code, message)

    def _transition(
        self,
        to_state: SessionState,
        attempt: int = 0,
        terminal: bool = False,
        message: str = "",
    ) -> None:
        status = VoiceStatus(
            state=to_state,
            attempt=attempt,
            max_attempts=self._policy.max_attempts,
            terminal=terminal,
            message=message,
            has_audio=self._blob is not None,
        )
        if status == self._status:
            return
        logger.debug("Voice session %s -> %s", self._status.state.value, to_state.value)
        self._status = status
        if self._on_status_change:
            self._on_status_change(status)
