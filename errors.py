"""Shared error codes, user-facing messages and exceptions."""

from __future__ import annotations

DEVICE_UNAVAILABLE = "DEVICE_UNAVAILABLE"
CAPTURE_FAILED = "CAPTURE_FAILED"
TRANSCRIPTION_FAILED = "TRANSCRIPTION_FAILED"
VALIDATION_FAILED = "VALIDATION_FAILED"
NO_ACTIVE_TARGET = "NO_ACTIVE_TARGET"

ERROR_MESSAGES = {
    DEVICE_UNAVAILABLE: (
        "Microphone could not be activated. "
        "Please allow microphone access and check that an input device is connected."
    ),
    CAPTURE_FAILED: "The recording could not be finalized.",
    TRANSCRIPTION_FAILED: "Transcription failed, please retry.",
    VALIDATION_FAILED: "The selected files could not be attached.",
    NO_ACTIVE_TARGET: "No active input target, message kept in clipboard.",
}


class VoiceInputError(Exception):
    """Base class for errors surfaced to the user as a code plus message."""

    code = "VOICE_INPUT_ERROR"

    def __init__(self, message: str = "", detail: str = "") -> None:
        self.message = message or ERROR_MESSAGES.get(self.code, "Unexpected error.")
        self.detail = detail
        super().__init__(self.message)


class DeviceUnavailable(VoiceInputError):
    """Microphone permission denied or no input device present."""

    code = DEVICE_UNAVAILABLE


class CaptureFailed(VoiceInputError):
    """Recorded chunks could not be encoded into a blob."""

    code = CAPTURE_FAILED


class TranscriptionFailed(VoiceInputError):
    """Network/service failure or an empty transcription result."""

    code = TRANSCRIPTION_FAILED


class ValidationFailed(VoiceInputError):
    """Attachments rejected by the file validation collaborator."""

    code = VALIDATION_FAILED
