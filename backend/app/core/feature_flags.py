"""Process-wide runtime flags.

The reCAPTCHA switch is the only state shared between concurrent requests.
It is seeded from ``RECAPTCHA_ENABLED`` and flipped by the admin toggle
endpoint; reads and writes go through a lock.
"""

from __future__ import annotations

import enum
from threading import Lock
from typing import Optional

from app.core.config import Settings, get_settings


class CaptchaState(str, enum.Enum):
    ENABLED = "ENABLED"
    DISABLED_BY_TOGGLE = "DISABLED_BY_TOGGLE"
    BYPASSED_LAB_MODE = "BYPASSED_LAB_MODE"

    @property
    def verifies(self) -> bool:
        return self is CaptchaState.ENABLED


class RuntimeFlag:
    def __init__(self, name: str, initial: Optional[bool] = None) -> None:
        self.name = name
        self._value = initial
        self._lock = Lock()

    def get(self, default: bool) -> bool:
        with self._lock:
            if self._value is None:
                self._value = bool(default)
            return self._value

    def set(self, value: bool) -> bool:
        with self._lock:
            self._value = bool(value)
            return self._value

    def toggle(self, default: bool) -> bool:
        with self._lock:
            current = bool(default) if self._value is None else self._value
            self._value = not current
            return self._value

    def reset(self) -> None:
        with self._lock:
            self._value = None


recaptcha_flag = RuntimeFlag("recaptcha_enabled")


def is_recaptcha_enabled(settings: Optional[Settings] = None) -> bool:
    settings = settings or get_settings()
    return recaptcha_flag.get(settings.recaptcha_enabled)


def toggle_recaptcha(settings: Optional[Settings] = None) -> bool:
    settings = settings or get_settings()
    return recaptcha_flag.toggle(settings.recaptcha_enabled)


def resolve_captcha_state(settings: Optional[Settings] = None) -> CaptchaState:
    settings = settings or get_settings()
    if settings.is_lab_mode and settings.lab_bypass_recaptcha:
        return CaptchaState.BYPASSED_LAB_MODE
    if not is_recaptcha_enabled(settings):
        return CaptchaState.DISABLED_BY_TOGGLE
    return CaptchaState.ENABLED
