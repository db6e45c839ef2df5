"""
Signup submitter.

One POST to /api/v1/users/signup per call. On {"status": "success"} it
shows "Sign up successfully!" and navigates to "/" after 1.5 seconds; on any
failure it shows the server's message (or the transport error) as an error
alert. No retries and no timeout beyond the HTTP client's own.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from natours.client.alerts import AlertPresenter

logger = logging.getLogger(__name__)

SIGNUP_PATH = "/api/v1/users/signup"
SUCCESS_MESSAGE = "Sign up successfully!"
REDIRECT_TO = "/"
REDIRECT_DELAY_SECONDS = 1.5


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase


class SignupSubmitter:
    """
    Args:
        http:            Client with base_url pointing at the site; its cookie
                         jar keeps whatever the server sets
        alerts:          Where outcomes are shown
        navigate:        Called with the target URL when redirecting
        redirect_delay:  Seconds between the success alert and navigation
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        alerts: AlertPresenter,
        navigate: Callable[[str], Any],
        redirect_delay: float = REDIRECT_DELAY_SECONDS,
    ):
        self.http = http
        self.alerts = alerts
        self.navigate = navigate
        self.redirect_delay = redirect_delay
        self.pending_redirect: Optional[asyncio.TimerHandle] = None

    async def signup(self, data: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Submit the form; returns the success body, or None on failure."""
        try:
            response = await self.http.post(SIGNUP_PATH, json=dict(data))
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            message = _error_message(exc.response)
            logger.info("Signup rejected (%d): %s", exc.response.status_code, message)
            self.alerts.show_alert("error", message)
            return None
        except httpx.RequestError as exc:
            logger.warning("Signup request failed: %s", exc)
            self.alerts.show_alert("error", str(exc) or type(exc).__name__)
            return None

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict) or body.get("status") != "success":
            self.alerts.show_alert("error", _error_message(response))
            return None

        self.alerts.show_alert("success", SUCCESS_MESSAGE)
        loop = asyncio.get_running_loop()
        self.pending_redirect = loop.call_later(
            self.redirect_delay, self.navigate, REDIRECT_TO
        )
        return body
