"""Microphone capture: codec negotiation, sounddevice stream and capture session."""

from __future__ import annotations

import io
import logging
import threading
import time
from dataclasses import dataclass
from fractions import Fraction
from typing import Any, Callable, Optional

from errors import CaptureFailed, DeviceUnavailable
from interfaces import MicrophoneStream
from models import AudioBlob, AudioFrame, SessionState

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

try:
    import soundfile as sf
except Exception:  # pragma: no cover
    sf = None  # type: ignore

try:
    import av
except Exception:  # pragma: no cover
    av = None  # type: ignore

logger = logging.getLogger(__name__)

# Ordered by preference; the last entry is the unconditional fallback.
MIME_TYPE_PREFERENCES = (
    "audio/webm;codecs=opus",
    "audio/ogg;codecs=opus",
    "audio/webm",
)

# libsndfile writes the ogg container; WebM goes through FFmpeg via PyAV.
_SOUNDFILE_FORMATS = {
    "audio/ogg;codecs=opus": ("OGG", "OPUS"),
}
_AV_FORMATS = {
    "audio/webm;codecs=opus": ("webm", "libopus"),
    "audio/webm": ("webm", "libopus"),
}


@dataclass(frozen=True)
class CaptureConstraints:
    sample_rate: int = 48000
    channels: int = 1
    echo_cancellation: bool = True
    noise_suppression: bool = True


def is_type_supported(mime_type: str) -> bool:
    """Report whether ``mime_type`` can be encoded with the installed libraries."""
    if mime_type in _SOUNDFILE_FORMATS:
        return sf is not None and bool(sf.check_format(*_SOUNDFILE_FORMATS[mime_type]))
    if mime_type in _AV_FORMATS:
        if av is None:
            return False
        container_format, codec_name = _AV_FORMATS[mime_type]
        return container_format in av.formats_available and codec_name in av.codecs_available
    return False


def negotiate_mime_type(supported: Callable[[str], bool] = is_type_supported) -> str:
    for mime_type in MIME_TYPE_PREFERENCES:
        try:
            if supported(mime_type):
                return mime_type
        except Exception as exc:
            logger.warning("Codec probe failed for %s: %s", mime_type, exc)
    return MIME_TYPE_PREFERENCES[-1]


def encode_pcm16(pcm: bytes, mime_type: str, sample_rate: int, channels: int) -> bytes:
    """Encode interleaved PCM16 samples into the container named by ``mime_type``."""
    if not pcm:
        return b""
    if mime_type in _SOUNDFILE_FORMATS:
        if sf is None or np is None:
            raise CaptureFailed(detail="soundfile/numpy is not installed")
        fmt = _SOUNDFILE_FORMATS[mime_type]
        samples = np.frombuffer(pcm, dtype=np.int16).reshape(-1, channels)
        buf = io.BytesIO()
        try:
            sf.write(buf, samples, sample_rate, format=fmt[0], subtype=fmt[1])
        except Exception as exc:
            raise CaptureFailed(detail=str(exc)) from exc
        return buf.getvalue()
    if mime_type in _AV_FORMATS:
        if av is None or np is None:
            raise CaptureFailed(detail="av/numpy is not installed")
        try:
            return _mux_with_av(pcm, *_AV_FORMATS[mime_type], sample_rate, channels)
        except Exception as exc:
            raise CaptureFailed(detail=str(exc)) from exc
    raise CaptureFailed(detail=f"no encoder available for {mime_type}")


def _mux_with_av(
    pcm: bytes, container_format: str, codec_name: str, sample_rate: int, channels: int
) -> bytes:
    layout = "mono" if channels == 1 else "stereo"
    # Packed s16 frames are a single plane of interleaved samples.
    samples = np.frombuffer(pcm, dtype=np.int16).reshape(1, -1)
    frame = av.AudioFrame.from_ndarray(samples, format="s16", layout=layout)
    frame.sample_rate = sample_rate
    frame.pts = 0
    frame.time_base = Fraction(1, sample_rate)

    buf = io.BytesIO()
    with av.open(buf, mode="w", format=container_format) as container:
        stream = container.add_stream(codec_name, rate=sample_rate)
        stream.codec_context.layout = layout
        for packet in stream.encode(frame):
            container.mux(packet)
        for packet in stream.encode(None):
            container.mux(packet)
    return buf.getvalue()


class SoundDeviceMicrophone:
    def __init__(
        self,
        constraints: CaptureConstraints | None = None,
        chunk_ms: int = 100,
    ) -> None:
        self.constraints = constraints or CaptureConstraints()
        self.chunk_ms = chunk_ms
        self._stream: Any = None
        self._on_frame: Optional[Callable[[AudioFrame], None]] = None
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._stream is not None

    def open(self, on_frame: Callable[[AudioFrame], None]) -> None:
        with self._lock:
            if self._stream is not None:
                return
            if sd is None:
                raise DeviceUnavailable(detail="sounddevice is not installed")
            c = self.constraints
            # PortAudio has no AEC/NS switch; the request is recorded for the log only.
            logger.debug(
                "Opening microphone rate=%d channels=%d aec=%s ns=%s",
                c.sample_rate,
                c.channels,
                c.echo_cancellation,
                c.noise_suppression,
            )
            blocksize = int(c.sample_rate * (self.chunk_ms / 1000.0))
            try:
                sd.query_devices(kind="input")
                stream = sd.InputStream(
                    samplerate=c.sample_rate,
                    channels=c.channels,
                    dtype="int16",
                    blocksize=blocksize,
                    callback=self._on_audio,
                )
            except Exception as exc:
                raise DeviceUnavailable(detail=str(exc)) from exc
            self._on_frame = on_frame
            try:
                stream.start()
            except Exception as exc:
                self._on_frame = None
                stream.close()
                raise DeviceUnavailable(detail=str(exc)) from exc
            self._stream = stream

    def close(self) -> None:
        with self._lock:
            stream, self._stream = self._stream, None
            self._on_frame = None
            if stream is None:
                return
            try:
                stream.stop()
            finally:
                stream.close()

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        on_frame = self._on_frame
        if on_frame is None or np is None:
            return
        if status:
            logger.debug("Input stream status: %s", status)
        payload = np.asarray(indata, dtype=np.int16).tobytes()
        on_frame(
            AudioFrame(
                pcm16_bytes=payload,
                sample_rate=self.constraints.sample_rate,
                channels=self.constraints.channels,
                timestamp_ms=int(time.time() * 1000),
            )
        )


class AudioCaptureSession:
    """One microphone recording at a time, finalized into a single blob."""

    def __init__(
        self,
        microphone: MicrophoneStream | None = None,
        constraints: CaptureConstraints | None = None,
        supported: Callable[[str], bool] = is_type_supported,
    ) -> None:
        self.constraints = constraints or CaptureConstraints()
        self._microphone = microphone or SoundDeviceMicrophone(self.constraints)
        self._supported = supported
        self._lock = threading.RLock()
        self._frames_lock = threading.Lock()
        self._frames: list[AudioFrame] = []
        self._active: MicrophoneStream | None = None
        self._state = SessionState.IDLE
        self.mime_type = ""

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state == SessionState.RECORDING

    def start(self) -> None:
        with self._lock:
            if self._state == SessionState.RECORDING:
                return
            mime_type = negotiate_mime_type(self._supported)
            with self._frames_lock:
                self._frames = []
                self._state = SessionState.RECORDING
            self.mime_type = mime_type
            try:
                self._microphone.open(self._collect)
            except Exception:
                self._state = SessionState.IDLE
                raise
            self._active = self._microphone
            logger.debug("Recording started as %s", mime_type)

    def stop(self) -> AudioBlob | None:
        """Release the microphone and return the finalized blob.

        Returns ``None`` when not recording.
        """
        with self._lock:
            if self._state != SessionState.RECORDING:
                return None
            try:
                self._release_microphone()
            finally:
                with self._frames_lock:
                    frames, self._frames = self._frames, []
                self._state = SessionState.IDLE
            blob = self._finalize(frames)
            self._state = SessionState.CAPTURED
            logger.debug("Recording captured: %d frames, %d bytes", len(frames), len(blob))
            return blob

    def discard(self) -> None:
        with self._lock:
            self._release_microphone()
            with self._frames_lock:
                self._frames = []
            self._state = SessionState.IDLE

    def _collect(self, frame: AudioFrame) -> None:
        with self._frames_lock:
            if self._state == SessionState.RECORDING:
                self._frames.append(frame)

    def _finalize(self, frames: list[AudioFrame]) -> AudioBlob:
        pcm = b"".join(f.pcm16_bytes for f in frames)
        sample_rate = frames[-1].sample_rate if frames else self.constraints.sample_rate
        channels = frames[-1].channels if frames else self.constraints.channels
        candidates = [self.mime_type] + [m for m in MIME_TYPE_PREFERENCES if m != self.mime_type]
        failures: list[CaptureFailed] = []
        for mime_type in candidates:
            try:
                data = encode_pcm16(pcm, mime_type, sample_rate, channels)
            except CaptureFailed as exc:
                logger.warning("Encoding as %s failed: %s", mime_type, exc.detail)
                failures.append(exc)
                continue
            self.mime_type = mime_type
            return AudioBlob(data=data, mime_type=mime_type)
        raise failures[0]

    def _release_microphone(self) -> None:
        microphone, self._active = self._active, None
        if microphone is None:
            return
        try:
            microphone.close()
        except Exception:
            logger.exception("Failed to release microphone stream")
