"""Simple JSON-based config store."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "http://localhost:3001"
DEFAULT_HOTKEY = "Key.alt_l"
DEFAULT_REQUEST_TIMEOUT_S = 30.0


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "voice_chat_input" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_base_url(self) -> str:
        return str(self._get("api_base_url", DEFAULT_API_BASE_URL))

    def set_api_base_url(self, url: str) -> None:
        self._set("api_base_url", url.rstrip("/"))

    def get_hotkey(self) -> str:
        return str(self._get("hotkey", DEFAULT_HOTKEY))

    def set_hotkey(self, hotkey: str) -> None:
        self._set("hotkey", hotkey)

    def get_auto_submit_voice(self) -> bool:
        return bool(self._get("auto_submit_voice", True))

    def set_auto_submit_voice(self, enabled: bool) -> None:
        self._set("auto_submit_voice", bool(enabled))

    def get_remove_timestamps(self) -> bool:
        return bool(self._get("remove_timestamps", True))

    def set_remove_timestamps(self, enabled: bool) -> None:
        self._set("remove_timestamps", bool(enabled))

    def get_request_timeout_s(self) -> float:
        value = self._get("request_timeout_s", DEFAULT_REQUEST_TIMEOUT_S)
        try:
            timeout = float(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid request_timeout_s=%r", value)
            return DEFAULT_REQUEST_TIMEOUT_S
        return timeout if timeout > 0 else DEFAULT_REQUEST_TIMEOUT_S

    def get_log_level(self) -> str:
        return str(self._get("log_level", "INFO")).upper()

    def _get(self, key: str, default: Any) -> Any:
        return self._read_all().get(key, default)

    def _set(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Config file %s unreadable, using defaults: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
