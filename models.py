"""Core data models for voice chat input."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

MAX_TRANSCRIPTION_ATTEMPTS = 3


class SessionState(str, Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    CAPTURED = "CAPTURED"
    TRANSCRIBING = "TRANSCRIBING"
    FAILED = "FAILED"
    SUCCEEDED = "SUCCEEDED"


class SubmitIntent(str, Enum):
    SUBMIT = "submit"
    START_RECORDING = "start_recording"
    STOP_RECORDING = "stop_recording"


@dataclass
class AudioFrame:
    pcm16_bytes: bytes
    sample_rate: int = 48000
    channels: int = 1
    timestamp_ms: int = 0


@dataclass(frozen=True)
class AudioBlob:
    data: bytes
    mime_type: str

    @property
    def extension(self) -> str:
        container = self.mime_type.split(";", 1)[0].strip().lower()
        if container.endswith("/ogg"):
            return "ogg"
        return "webm"

    @property
    def filename(self) -> str:
        return f"recording.{self.extension}"

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class TranscriptionResult:
    raw_text: str
    cleaned_text: str


@dataclass(frozen=True)
class VoiceStatus:
    """Snapshot of one recording session.

    ``terminal`` is only meaningful in FAILED: it marks that automatic
    attempts are exhausted and a manual retry is required.
    """

    state: SessionState = SessionState.IDLE
    attempt: int = 0
    max_attempts: int = MAX_TRANSCRIPTION_ATTEMPTS
    terminal: bool = False
    message: str = ""
    has_audio: bool = False

    @property
    def is_recording(self) -> bool:
        return self.state == SessionState.RECORDING

    @property
    def is_processing(self) -> bool:
        return self.state == SessionState.TRANSCRIBING

    @property
    def can_retry(self) -> bool:
        return self.state == SessionState.FAILED and self.terminal and self.has_audio


@dataclass(frozen=True)
class FileDescriptor:
    name: str
    media_type: str
    size: int
    path: Path | None = None


@dataclass(frozen=True)
class ComposedMessage:
    text: str
    files: tuple[FileDescriptor, ...] = ()


@dataclass
class ComposedInputState:
    text_value: str = ""
    attached_files: list[FileDescriptor] = field(default_factory=list)
    voice: VoiceStatus | None = None


@dataclass(frozen=True)
class ButtonAffordance:
    intent: SubmitIntent
    disabled: bool


@dataclass
class PasteResult:
    success: bool
    reason: str
    clipboard_restored: bool
