"""Primary button intent, derived from the current input state."""

from __future__ import annotations

from models import ButtonAffordance, SubmitIntent


def derive_affordance(
    text_value: str,
    is_recording: bool,
    is_transcribing: bool,
    disabled: bool = False,
) -> ButtonAffordance:
    if text_value.strip():
        intent = SubmitIntent.SUBMIT
    elif is_recording:
        intent = SubmitIntent.STOP_RECORDING
    else:
        intent = SubmitIntent.START_RECORDING
    return ButtonAffordance(intent=intent, disabled=disabled or is_transcribing)
