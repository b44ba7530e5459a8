"""
Banner state shared by a page and its forms.

A success banner clears itself after a few seconds; an error banner stays
until it is dismissed or the next success replaces it.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass
class Banner:
    level: str  # "success" | "error"
    text: str
    shown_at: float


class BannerState:
    def __init__(self, success_seconds: float = 3.0, clock: Callable[[], float] = time.monotonic):
        self.success_seconds = success_seconds
        self._clock = clock
        self._banner: Optional[Banner] = None

    def success(self, text: str) -> None:
        self._banner = Banner("success", text, self._clock())

    def error(self, text: str) -> None:
        self._banner = Banner("error", text, self._clock())

    def dismiss(self) -> None:
        self._banner = None

    @property
    def current(self) -> Optional[Banner]:
        banner = self._banner
        if banner and banner.level == "success":
            if self._clock() - banner.shown_at >= self.success_seconds:
                self._banner = None
                return None
        return banner

    @property
    def error_text(self) -> Optional[str]:
        banner = self.current
        return banner.text if banner and banner.level == "error" else None

    @property
    def success_text(self) -> Optional[str]:
        banner = self.current
        return banner.text if banner and banner.level == "success" else None
