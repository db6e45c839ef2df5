"""
Transient alert presenter.

Only one alert is visible at a time: showing a new one first hides the
current one. Alerts hide themselves after `hide_after` seconds when an event
loop is running; without a loop they stay until `hide_alert()` is called.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Literal, Optional

from markupsafe import Markup

logger = logging.getLogger(__name__)

AlertType = Literal["success", "error"]

HIDE_AFTER_SECONDS = 5.0


@dataclass(frozen=True)
class Alert:
    type: AlertType
    message: str

    @property
    def markup(self) -> Markup:
        return Markup('<div class="alert alert--{}">{}</div>').format(self.type, self.message)


class AlertPresenter:
    """
    Args:
        hide_after: Seconds before an alert hides itself
        on_change:  Called with the visible alert (or None) after every change
    """

    def __init__(
        self,
        hide_after: float = HIDE_AFTER_SECONDS,
        on_change: Optional[Callable[[Optional[Alert]], None]] = None,
    ):
        self.hide_after = hide_after
        self.on_change = on_change
        self.current: Optional[Alert] = None
        self._hide_handle: Optional[asyncio.TimerHandle] = None

    def show_alert(self, type: AlertType, message: str) -> Alert:
        self.hide_alert()
        alert = Alert(type=type, message=message)
        self.current = alert
        logger.debug("Alert shown: %s %s", type, message)
        self._notify()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            self._hide_handle = loop.call_later(self.hide_after, self.hide_alert)
        return alert

    def hide_alert(self) -> None:
        if self._hide_handle is not None:
            self._hide_handle.cancel()
            self._hide_handle = None
        if self.current is None:
            return
        self.current = None
        self._notify()

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.current)
