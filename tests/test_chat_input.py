from __future__ import annotations

from chat_input import ChatInputOrchestrator, ForwardedVoiceControls, merge_transcription
from errors import VALIDATION_FAILED, ValidationFailed
from models import ComposedMessage, FileDescriptor, SessionState, SubmitIntent
from session_controller import VoiceSessionController

from fakes import BLOB, FakeCapture, FakeTranscriber

PDF = FileDescriptor(name="antrag.pdf", media_type="application/pdf", size=1200)
PNG = FileDescriptor(name="bild.png", media_type="image/png", size=800)


class ManualScheduler:
    """Collects scheduled tasks so tests decide when the delay has elapsed."""

    def __init__(self) -> None:
        self.tasks: list[tuple[float, object]] = []

    def __call__(self, delay_s: float, task) -> None:  # noqa: ANN001
        self.tasks.append((delay_s, task))

    def run_all(self) -> None:
        tasks, self.tasks = self.tasks, []
        for _, task in tasks:
            task()


class FakeParentControls:
    def __init__(self) -> None:
        self.is_recording = False
        self.is_processing = False
        self.calls: list[str] = []

    def start_recording(self) -> None:
        self.calls.append("start")
        self.is_recording = True

    def stop_recording(self) -> None:
        self.calls.append("stop")
        self.is_recording = False


def _voice_factory(capture: FakeCapture, transcriber: FakeTranscriber):  # noqa: ANN202
    def build(on_transcription) -> VoiceSessionController:  # noqa: ANN001
        return VoiceSessionController(
            capture=capture,
            transcriber=transcriber,
            dispatch=lambda task: task(),
            on_transcription=on_transcription,
        )

    return build


def _orchestrator(**kwargs):  # noqa: ANN202
    submitted: list[ComposedMessage] = []
    scheduler = ManualScheduler()
    kwargs.setdefault("schedule", scheduler)
    orchestrator = ChatInputOrchestrator(on_submit=submitted.append, **kwargs)
    return orchestrator, submitted, scheduler


# ---------------------------------------------------------------
# merge_transcription
# ---------------------------------------------------------------

def test_merge_appends_with_single_space() -> None:
    assert merge_transcription("Hallo", "Welt") == "Hallo Welt"


def test_merge_replaces_empty_value() -> None:
    assert merge_transcription("", "Welt") == "Welt"


def test_merge_with_empty_text_keeps_value() -> None:
    assert merge_transcription("Hallo", "") == "Hallo"


def test_merge_over_whitespace_only_value_is_trimmed() -> None:
    assert merge_transcription("   ", "Welt") == "Welt"


# ---------------------------------------------------------------
# Transcription merge and auto-submit
# ---------------------------------------------------------------

def test_transcription_appends_to_typed_text_without_auto_submit() -> None:
    observed: list[str] = []
    orchestrator, submitted, scheduler = _orchestrator(
        auto_submit_voice=False, on_transcription=observed.append
    )
    orchestrator.set_text("Bitte")

    orchestrator.on_transcription_complete("zusammenfassen")

    assert orchestrator.text_value == "Bitte zusammenfassen"
    assert submitted == []
    assert scheduler.tasks == []
    assert observed == ["zusammenfassen"]


def test_auto_submit_submits_then_clears() -> None:
    changes: list[str] = []
    orchestrator, submitted, scheduler = _orchestrator(on_text_change=changes.append)

    orchestrator.on_transcription_complete("Hallo Welt")

    assert orchestrator.text_value == "Hallo Welt"
    assert submitted == []
    assert scheduler.tasks[0][0] == 0.1

    scheduler.run_all()

    assert submitted == [ComposedMessage(text="Hallo Welt")]
    assert orchestrator.text_value == ""
    assert changes == ["Hallo Welt", ""]


def test_auto_submit_includes_attachments() -> None:
    orchestrator, submitted, scheduler = _orchestrator()
    orchestrator.handle_file_select([PDF])

    orchestrator.on_transcription_complete("siehe Anhang")
    scheduler.run_all()

    assert submitted == [ComposedMessage(text="siehe Anhang", files=(PDF,))]


def test_observer_receives_raw_text_even_with_auto_submit() -> None:
    observed: list[str] = []
    orchestrator, _, _ = _orchestrator(on_transcription=observed.append)
    orchestrator.set_text("vorher")

    orchestrator.on_transcription_complete("nachher")

    assert observed == ["nachher"]


def test_empty_transcription_is_ignored() -> None:
    orchestrator, submitted, scheduler = _orchestrator()
    orchestrator.set_text("Hallo")

    orchestrator.on_transcription_complete("")

    assert orchestrator.text_value == "Hallo"
    assert scheduler.tasks == []


# ---------------------------------------------------------------
# Manual submit
# ---------------------------------------------------------------

def test_submit_sends_composed_message() -> None:
    orchestrator, submitted, _ = _orchestrator()
    orchestrator.handle_file_select([PDF, PNG])
    orchestrator.set_text("Frage")

    assert orchestrator.submit() is True
    assert submitted == [ComposedMessage(text="Frage", files=(PDF, PNG))]


def test_submit_blank_or_disabled_is_noop() -> None:
    orchestrator, submitted, _ = _orchestrator()
    orchestrator.set_text("   ")
    assert orchestrator.submit() is False

    orchestrator.set_text("Frage")
    orchestrator.disabled = True
    assert orchestrator.submit() is False
    assert submitted == []


def test_enter_handling_per_surface() -> None:
    multi, multi_submitted, _ = _orchestrator(single_line=False)
    multi.set_text("a")
    assert multi.handle_enter(shift=True) is False
    assert multi.handle_enter() is True

    single, single_submitted, _ = _orchestrator(single_line=True)
    single.set_text("b")
    assert single.handle_enter(shift=True) is True
    assert len(multi_submitted) == len(single_submitted) == 1


# ---------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------

class RejectingProcessor:
    def process(self, files):  # noqa: ANN001, ANN201
        raise ValidationFailed("Too many files (9). Maximum: 5.")


def test_file_select_stores_validated_files() -> None:
    orchestrator, _, _ = _orchestrator()

    orchestrator.handle_file_select([PDF, PNG])

    assert orchestrator.attached_files == [PDF, PNG]
    assert orchestrator.file_error is None


def test_file_validation_error_is_surfaced_and_voice_untouched() -> None:
    errors: list[tuple[str, str]] = []
    capture = FakeCapture()
    orchestrator, _, _ = _orchestrator(
        file_processor=RejectingProcessor(),
        on_error=lambda c, m: errors.append((c, m)),
        voice_factory=_voice_factory(capture, FakeTranscriber()),
    )
    orchestrator.voice.start_recording()

    orchestrator.handle_file_select([PDF])

    assert orchestrator.attached_files == []
    assert orchestrator.file_error == "Too many files (9). Maximum: 5."
    assert errors == [(VALIDATION_FAILED, "Too many files (9). Maximum: 5.")]
    assert orchestrator.voice.is_recording is True


def test_remove_file_by_index() -> None:
    orchestrator, _, _ = _orchestrator()
    orchestrator.handle_file_select([PDF, PNG, PDF])

    orchestrator.handle_remove_file(1)
    orchestrator.handle_remove_file(7)

    assert orchestrator.attached_files == [PDF, PDF]


# ---------------------------------------------------------------
# Voice control modes
# ---------------------------------------------------------------

def test_parent_controls_disable_internal_session() -> None:
    built: list[object] = []
    parent = FakeParentControls()

    def factory(on_transcription):  # noqa: ANN001, ANN202
        built.append(on_transcription)
        raise AssertionError("internal session must not be built")

    orchestrator, _, _ = _orchestrator(voice_controls=parent, voice_factory=factory)

    assert built == []
    assert orchestrator.uses_parent_voice is True
    assert orchestrator.voice_session is None
    assert orchestrator.trigger_primary_action() == SubmitIntent.START_RECORDING
    assert orchestrator.trigger_primary_action() == SubmitIntent.STOP_RECORDING
    assert parent.calls == ["start", "stop"]


def test_forwarded_controls_wrap_parent_callables() -> None:
    parent = FakeParentControls()
    forwarded = ForwardedVoiceControls.from_controls(parent)

    forwarded.start_recording()

    assert forwarded.is_recording is True
    assert forwarded.is_processing is False
    assert parent.calls == ["start"]


def test_no_voice_and_no_text_disables_button() -> None:
    orchestrator, _, _ = _orchestrator()

    assert orchestrator.affordance().disabled is True
    assert orchestrator.trigger_primary_action() is None


# ---------------------------------------------------------------
# End-to-end scenarios
# ---------------------------------------------------------------

def test_scenario_record_stop_transcribe_merges_text() -> None:
    capture = FakeCapture()
    transcriber = FakeTranscriber(["neuer Text"])
    orchestrator, submitted, _ = _orchestrator(
        auto_submit_voice=False, voice_factory=_voice_factory(capture, transcriber)
    )
    orchestrator.set_text("Alter")

    orchestrator.set_text("")
    assert orchestrator.trigger_primary_action() == SubmitIntent.START_RECORDING
    assert orchestrator.affordance().intent == SubmitIntent.STOP_RECORDING
    assert orchestrator.trigger_primary_action() == SubmitIntent.STOP_RECORDING

    assert len(transcriber.calls) == 1
    assert orchestrator.text_value == "neuer Text"
    assert orchestrator.snapshot().voice.state == SessionState.IDLE
    assert submitted == []


def test_scenario_three_failures_show_retry_and_keep_text() -> None:
    transcriber = FakeTranscriber()
    orchestrator, _, _ = _orchestrator(voice_factory=_voice_factory(FakeCapture(), transcriber))
    orchestrator.set_text("getippt")

    orchestrator.voice.start_recording()
    orchestrator.voice.stop_recording()

    snapshot = orchestrator.snapshot()
    assert len(transcriber.calls) == 3
    assert snapshot.voice.can_retry is True
    assert snapshot.text_value == "getippt"


def test_scenario_manual_retry_uses_captured_blob() -> None:
    transcriber = FakeTranscriber()
    capture = FakeCapture()
    orchestrator, _, _ = _orchestrator(
        auto_submit_voice=False, voice_factory=_voice_factory(capture, transcriber)
    )
    orchestrator.voice.start_recording()
    orchestrator.voice.stop_recording()
    transcriber.outcomes = ["zweiter Anlauf"]

    orchestrator.retry_transcription()

    assert len(transcriber.calls) == 4
    assert transcriber.calls[-1][0] is BLOB
    assert capture.starts == 1
    assert orchestrator.text_value == "zweiter Anlauf"


def test_scenario_auto_submit_clears_after_submission() -> None:
    transcriber = FakeTranscriber(["sofort senden"])
    orchestrator, submitted, scheduler = _orchestrator(
        voice_factory=_voice_factory(FakeCapture(), transcriber)
    )

    orchestrator.voice.start_recording()
    orchestrator.voice.stop_recording()

    assert orchestrator.text_value == "sofort senden"
    assert submitted == []
    scheduler.run_all()
    assert submitted == [ComposedMessage(text="sofort senden")]
    assert orchestrator.text_value == ""


def test_affordance_disabled_while_transcribing() -> None:
    parent = FakeParentControls()
    parent.is_processing = True
    orchestrator, _, _ = _orchestrator(voice_controls=parent)

    affordance = orchestrator.affordance()

    assert affordance.intent == SubmitIntent.START_RECORDING
    assert affordance.disabled is True
    assert orchestrator.trigger_primary_action() is None
    assert parent.calls == []
