"""FoisClient — fetches the live RTIS loco report over HTTP."""

from __future__ import annotations

import logging

import httpx

from loco_tracker.exceptions import TelemetryUnavailable

_logger = logging.getLogger(__name__)


class FoisClient:
    """Fetches raw telemetry for one loco from the FOIS RTIS endpoint.

    Args:
        base_url: Endpoint URL (without query string).
        timeout: Request timeout in seconds.  A timeout is reported as
            :class:`TelemetryUnavailable`.
        http: Optional ``httpx.Client``; injected in tests.  When omitted a
            client is created and owned by this instance.
    """

    BASE_URL = "https://fois.indianrail.gov.in/foisweb/GG_AjaxInteraction"
    OPTION = "RTIS_CURRENT_LOCO_RPTG"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 15.0,
        http: httpx.Client | None = None,
    ) -> None:
        self._url = base_url
        self._owns_http = http is None
        self._http = http if http is not None else httpx.Client(timeout=timeout)
        self._timeout = timeout

    def fetch(self, loco_id: str) -> object:
        """POST the loco query and return the decoded JSON body.

        Raises
        ------
        TelemetryUnavailable
            On network errors, timeouts, non-2xx responses or invalid JSON.
        """
        params = {"Optn": self.OPTION, "Loco": loco_id}
        _logger.debug("POST %s loco=%s", self._url, loco_id)
        try:
            resp = self._http.post(self._url, params=params, timeout=self._timeout)
        except httpx.TimeoutException as exc:
            _logger.warning("FOIS request for loco %s timed out", loco_id)
            raise TelemetryUnavailable(f"FOIS API timed out after {self._timeout}s") from exc
        except httpx.HTTPError as exc:
            _logger.warning("FOIS request for loco %s failed: %s", loco_id, exc)
            raise TelemetryUnavailable(f"FOIS API request failed: {exc}") from exc

        if not resp.is_success:
            _logger.warning("FOIS returned HTTP %d for loco %s", resp.status_code, loco_id)
            raise TelemetryUnavailable(
                f"FOIS API failed: {resp.status_code}", status_code=resp.status_code
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise TelemetryUnavailable(f"Invalid JSON from FOIS: {resp.text[:200]}") from exc

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http:
            self._http.close()
