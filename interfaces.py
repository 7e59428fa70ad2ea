"""Protocol interfaces used between the voice input components."""

from __future__ import annotations

from typing import Callable, Protocol, Sequence

from models import AudioBlob, AudioFrame, FileDescriptor, PasteResult, TranscriptionResult


class MicrophoneStream(Protocol):
    def open(self, on_frame: Callable[[AudioFrame], None]) -> None: ...

    def close(self) -> None: ...


class Transcriber(Protocol):
    def transcribe(self, blob: AudioBlob, strip_timestamps: bool = False) -> TranscriptionResult: ...


class VoiceControls(Protocol):
    """Capability shared by the internal session and parent-supplied controls."""

    @property
    def is_recording(self) -> bool: ...

    @property
    def is_processing(self) -> bool: ...

    def start_recording(self) -> None: ...

    def stop_recording(self) -> None: ...


class FileProcessor(Protocol):
    def process(self, files: Sequence[FileDescriptor]) -> list[FileDescriptor]: ...


class PasteService(Protocol):
    def paste_text(self, text: str) -> PasteResult: ...


class ConfigStore(Protocol):
    def get_api_base_url(self) -> str: ...

    def set_api_base_url(self, url: str) -> None: ...

    def get_hotkey(self) -> str: ...

    def set_hotkey(self, hotkey: str) -> None: ...

    def get_auto_submit_voice(self) -> bool: ...

    def get_remove_timestamps(self) -> bool: ...

    def get_request_timeout_s(self) -> float: ...
