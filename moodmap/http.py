"""HTTP client with retry/backoff and request metrics."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

import requests

from .errors import SearchCancelled, TransportFailure

logger = logging.getLogger(__name__)


@dataclass
class RequestMetrics:
    network_requests: int = 0
    retries: int = 0
    transport_errors: int = 0
    backoff_seconds: float = 0.0

    def inc_network(self) -> None:
        self.network_requests += 1

    def inc_retry(self, delay: float) -> None:
        self.retries += 1
        self.backoff_seconds += delay


class HttpClient:
    """Sends POST requests, retrying gateway timeouts, rate limits and transport errors.

    At most ``retry_max`` extra attempts are made. The delay before retry *n*
    is ``initial_delay * 2 ** (n - 1)`` and elapses in full. When the budget
    runs out the last response is returned as-is (callers decide what a
    non-OK status means) or the last transport error is raised as
    ``TransportFailure``. Any other status is returned without retrying.
    """

    def __init__(
        self,
        timeout: float = 60,
        retry_max: int = 2,
        initial_delay: float = 2.0,
        retry_statuses: Iterable[int] = (429, 504),
        user_agent: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
        metrics: Optional[RequestMetrics] = None,
    ) -> None:
        self.timeout = timeout
        self.retry_max = retry_max
        self.initial_delay = initial_delay
        self.retry_statuses = frozenset(retry_statuses)
        self.sleep = sleep
        self.metrics = metrics
        self.session = requests.Session()
        if user_agent:
            self.session.headers["User-Agent"] = user_agent

    def post_form(
        self,
        url: str,
        data: str,
        extra_headers: Optional[Dict[str, str]] = None,
        cancel: Optional[threading.Event] = None,
    ) -> requests.Response:
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        if extra_headers:
            headers.update(extra_headers)
        return self._post_with_retry(url, data, headers, cancel)

    def post_json(
        self,
        url: str,
        payload: str,
        extra_headers: Optional[Dict[str, str]] = None,
        cancel: Optional[threading.Event] = None,
    ) -> requests.Response:
        headers = {"Content-Type": "application/json"}
        if extra_headers:
            headers.update(extra_headers)
        return self._post_with_retry(url, payload, headers, cancel)

    def _post_with_retry(
        self,
        url: str,
        data: str,
        headers: Dict[str, str],
        cancel: Optional[threading.Event],
    ) -> requests.Response:
        delay = self.initial_delay
        attempts = self.retry_max + 1
        for attempt in range(1, attempts + 1):
            _check_cancelled(cancel)
            if self.metrics is not None:
                self.metrics.inc_network()
            try:
                resp = self.session.post(url, data=data, headers=headers, timeout=self.timeout)
            except requests.RequestException as exc:
                if self.metrics is not None:
                    self.metrics.transport_errors += 1
                if attempt >= attempts:
                    raise TransportFailure(f"Request to {url} failed: {exc}") from exc
                logger.warning(
                    "Network error from %s, retrying in %.1fs (%s/%s): %s",
                    url, delay, attempt, self.retry_max, exc,
                )
                delay = self._backoff(delay, cancel)
                continue

            status = resp.status_code
            if status in self.retry_statuses and attempt < attempts:
                logger.warning(
                    "HTTP %s from %s, retrying in %.1fs (%s/%s)",
                    status, url, delay, attempt, self.retry_max,
                )
                delay = self._backoff(delay, cancel)
                continue

            if status in self.retry_statuses:
                logger.error("HTTP %s from %s, retries exhausted", status, url)
            elif not resp.ok:
                logger.error("HTTP %s from %s", status, url)
            return resp

        raise RuntimeError("Unexpected HTTP retry loop exit")

    def _backoff(self, delay: float, cancel: Optional[threading.Event]) -> float:
        if self.metrics is not None:
            self.metrics.inc_retry(delay)
        self.sleep(delay)
        _check_cancelled(cancel)
        return delay * 2


def _check_cancelled(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise SearchCancelled("Search was superseded by a newer one")


def decode_json(resp: requests.Response) -> Any:
    """Decode a response body; ValueError when it is not JSON."""
    try:
        return resp.json()
    except ValueError:
        logger.error("Non-JSON response from %s", getattr(resp, "url", "?"))
        raise
