from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path


logger = logging.getLogger(__name__)


class CredentialMissingError(RuntimeError):
    """Raised when a search is attempted without both API keys."""


@dataclass(frozen=True)
class Credentials:
    gemini_key: str | None = None
    openweather_key: str | None = None

    @property
    def has_keys(self) -> bool:
        return bool(self.gemini_key) and bool(self.openweather_key)


@dataclass
class CredentialStore:
    """File-backed holder for the Gemini and OpenWeather keys."""

    path: Path
    _credentials: Credentials = field(default_factory=Credentials, init=False)

    @property
    def current(self) -> Credentials:
        return self._credentials

    def load(self, *, fallback: Credentials | None = None) -> Credentials:
        stored = self._read()
        if stored.has_keys:
            self._credentials = stored
        elif fallback is not None and fallback.has_keys:
            self._credentials = fallback
        else:
            self._credentials = Credentials()
        return self._credentials

    def update(self, gemini_key: str, openweather_key: str) -> Credentials:
        credentials = Credentials(gemini_key=gemini_key.strip(), openweather_key=openweather_key.strip())
        if not credentials.has_keys:
            raise ValueError("Both the Gemini and OpenWeather keys are required.")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps({"gemini_key": credentials.gemini_key, "openweather_key": credentials.openweather_key}),
            encoding="utf-8",
        )
        self._credentials = credentials
        return credentials

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
        self._credentials = Credentials()

    def require(self) -> Credentials:
        if not self._credentials.has_keys:
            raise CredentialMissingError("API keys are missing. Please enter both the Gemini and OpenWeather keys.")
        return self._credentials

    def _read(self) -> Credentials:
        if not self.path.exists():
            return Credentials()
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable credentials file %s: %s", self.path, exc)
            return Credentials()
        if not isinstance(payload, dict):
            return Credentials()
        return Credentials(
            gemini_key=str(payload.get("gemini_key") or "") or None,
            openweather_key=str(payload.get("openweather_key") or "") or None,
        )
