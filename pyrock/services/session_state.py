"""Mutable record of the single browser session owned by the process."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from playwright.async_api import Browser, Page

__all__ = ["SessionState"]


@dataclass
class SessionState:
    """Process-wide browser session state.

    Created once at startup, owned by the SessionManager and shared by reference
    with every component that needs to look at the session.

    Invariants:
    - ``page`` always belongs to ``browser`` when both are set.
    - ``ready`` and ``recovering`` are never both True.
    """

    browser: Browser | None = None
    page: Page | None = None
    ready: bool = False
    recovering: bool = False
    last_health_check_at: datetime | None = None
    initialized_at: datetime | None = None
    recovery_attempts: int = 0

    def has_handles(self) -> bool:
        """Check if both browser and page handles are present."""
        return self.browser is not None and self.page is not None

    def clear(self) -> None:
        """Drop the session handles and mark the session not ready."""
        self.browser = None
        self.page = None
        self.ready = False

    def snapshot(self) -> dict[str, Any]:
        """Get a loggable view of the state.

        Returns:
            Dict with handle presence, flags and timestamps
        """
        return {
            "has_browser": self.browser is not None,
            "has_page": self.page is not None,
            "ready": self.ready,
            "recovering": self.recovering,
            "recovery_attempts": self.recovery_attempts,
            "last_health_check_at": (
                self.last_health_check_at.isoformat() if self.last_health_check_at else None
            ),
            "initialized_at": self.initialized_at.isoformat() if self.initialized_at else None,
        }
