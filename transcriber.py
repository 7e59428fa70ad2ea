"""Transcription client for the ``/api/voice/transcribe`` endpoint.

The endpoint accepts one multipart upload (field ``audio``) and answers with
``{"success": true, "text": "..."}``.  Any transport error, non-2xx status,
``success: false`` or missing text is reported as ``TranscriptionFailed``;
retry accounting is left to the caller.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

import httpx

from errors import TranscriptionFailed
from models import AudioBlob, TranscriptionResult

logger = logging.getLogger(__name__)

TRANSCRIBE_PATH = "/api/voice/transcribe"

_TIMESTAMP_PATTERNS = (
    # [00:00:01.000 --> 00:00:04.500]
    re.compile(r"\[\s*\d{1,2}:\d{2}:\d{2}\.\d{3}\s*-->\s*\d{1,2}:\d{2}:\d{2}\.\d{3}\s*\]"),
    # [00:01.000]
    re.compile(r"\[\s*\d{1,2}:\d{2}\.\d{3}\s*\]"),
    # 00:00:01 - 00:00:04
    re.compile(r"\b\d{1,2}:\d{2}:\d{2}\s*-\s*\d{1,2}:\d{2}:\d{2}\b"),
    # 00:01 - 00:04
    re.compile(r"\b\d{1,2}:\d{2}\s*-\s*\d{1,2}:\d{2}\b"),
    # (00:01)
    re.compile(r"\(\s*\d{1,2}:\d{2}\s*\)"),
)
_WHITESPACE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    """Shrink each whitespace run to its first character and trim the ends."""
    return _WHITESPACE.sub(lambda m: m.group(0)[0], text).strip()


def strip_timestamps(text: str) -> str:
    """Remove timestamp markers and normalize whitespace.

    Only deletes characters; the result is always a subsequence of ``text``.
    """
    for pattern in _TIMESTAMP_PATTERNS:
        text = pattern.sub("", text)
    return collapse_whitespace(text)


class TranscriptionClient:
    def __init__(
        self,
        base_url: str,
        path: str = TRANSCRIBE_PATH,
        timeout_s: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._path = path
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout_s)

    def transcribe(self, blob: AudioBlob, strip_timestamps: bool = False) -> TranscriptionResult:
        params = {"removeTimestamps": "true"} if strip_timestamps else None
        files = {"audio": (blob.filename, blob.data, blob.mime_type)}
        try:
            response = self._client.post(self._path, files=files, params=params)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise TranscriptionFailed(
                "Transcription timed out, please retry.", detail=str(exc)
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise TranscriptionFailed(
                detail=f"HTTP {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TranscriptionFailed(detail=f"Network error: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise TranscriptionFailed(detail="response is not JSON") from exc
        return self._to_result(payload, strip_timestamps)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "TranscriptionClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _to_result(self, payload: object, strip: bool) -> TranscriptionResult:
        if not isinstance(payload, dict) or payload.get("success") is not True:
            error = payload.get("error") if isinstance(payload, dict) else None
            raise TranscriptionFailed(detail=f"service reported failure: {error or payload!r}")
        text = payload.get("text")
        if not isinstance(text, str) or not text.strip():
            raise TranscriptionFailed("No speech was recognized.", detail="empty text")

        raw_text = collapse_whitespace(text)
        # Stripped locally as well, whatever the server already did.
        cleaned_text = strip_timestamps(raw_text) if strip else raw_text
        if not cleaned_text:
            raise TranscriptionFailed("No speech was recognized.", detail="only timestamps")
        logger.debug("Transcribed %d chars (cleaned %d)", len(raw_text), len(cleaned_text))
        return TranscriptionResult(raw_text=raw_text, cleaned_text=cleaned_text)
