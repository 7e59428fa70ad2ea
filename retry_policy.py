"""Bounded transcription attempts with a manual-retry reset."""

from __future__ import annotations

import threading

from models import MAX_TRANSCRIPTION_ATTEMPTS


class RetryPolicy:
    def __init__(self, max_attempts: int = MAX_TRANSCRIPTION_ATTEMPTS) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self._lock = threading.Lock()
        self._attempt_count = 0

    @property
    def attempt_count(self) -> int:
        return self._attempt_count

    @property
    def has_failed_terminally(self) -> bool:
        return self._attempt_count >= self.max_attempts

    @property
    def can_attempt(self) -> bool:
        return not self.has_failed_terminally

    def record_failure(self) -> bool:
        """Count one failed attempt and return True once attempts are exhausted."""
        with self._lock:
            if self._attempt_count < self.max_attempts:
                self._attempt_count += 1
            return self._attempt_count >= self.max_attempts

    def record_success(self) -> None:
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._attempt_count = 0
