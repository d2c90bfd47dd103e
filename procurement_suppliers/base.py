"""
SupplierApiClient -- shared HTTP mechanics for supplier integrations.

Responsibility:
    Builds authenticated JSON requests on a ``requests.Session``, applies the
    bounded retry policy, and turns terminal failures into
    ``SupplierRequestFailedError``.

Architecture position:
    Suppliers -- outbound I/O boundary.  Imports the kernel's exceptions and
    logging only.

Invariants enforced:
    - Only HTTP 5xx and connection/timeout errors are retried; a 4xx is
      raised on the first attempt.
    - At most ``retry_attempts`` requests are sent per call.
    - Access tokens and api keys are never logged.

Failure modes:
    - SupplierRequestFailedError(status_code=None) when the supplier could
      not be reached on any attempt.
    - SupplierRequestFailedError(status_code=N) for a terminal non-2xx
      response or a 2xx body that is not JSON.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import requests

from procurement_kernel.exceptions import SupplierRequestFailedError
from procurement_kernel.logging_config import get_logger
from procurement_suppliers.types import SupplierResponse

logger = get_logger("suppliers.http")

# Response bodies are truncated in errors and logs
_MAX_BODY_LENGTH = 1000


class SupplierApiClient:
    """
    Base class for one supplier's API.

    Subclasses set ``supplier_name`` and override ``_authorization``.
    ``session`` and ``sleep`` are injectable so tests never hit the network
    or wait.
    """

    supplier_name = "supplier"

    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        api_key: str | None = None,
        retry_attempts: int = 3,
        retry_delay_seconds: float = 0.0,
        timeout_seconds: float | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")
        self.base_url = base_url
        self._access_token = access_token
        self._api_key = api_key
        self._retry_attempts = retry_attempts
        self._retry_delay_seconds = retry_delay_seconds
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._sleep = sleep

    def _authorization(self) -> str | None:
        return self._access_token

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        authorization = self._authorization()
        if authorization:
            headers["Authorization"] = authorization
        if self._api_key:
            headers["x-api-key"] = self._api_key
        return headers

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def request(
        self, method: str, path: str, json: Any | None = None,
    ) -> SupplierResponse:
        """Send one logical request, retrying transient failures."""
        url = self._url(path)
        failure = SupplierRequestFailedError(
            self.supplier_name, None, "no attempt completed",
        )

        for attempt in range(1, self._retry_attempts + 1):
            if attempt > 1 and self._retry_delay_seconds > 0:
                self._sleep(self._retry_delay_seconds)

            try:
                response = self._session.request(
                    method,
                    url,
                    json=json,
                    headers=self._headers(),
                    timeout=self._timeout,
                )
            except (requests.ConnectionError, requests.Timeout) as exc:
                failure = SupplierRequestFailedError(
                    self.supplier_name, None, str(exc)[:_MAX_BODY_LENGTH],
                )
                self._log_retry(method, path, attempt, None)
                continue

            status = response.status_code
            if status >= 500:
                failure = SupplierRequestFailedError(
                    self.supplier_name, status, response.text[:_MAX_BODY_LENGTH],
                )
                self._log_retry(method, path, attempt, status)
                continue

            if not 200 <= status < 300:
                logger.warning(
                    "supplier_request_rejected",
                    extra={
                        "supplier": self.supplier_name,
                        "method": method,
                        "path": path,
                        "status_code": status,
                    },
                )
                raise SupplierRequestFailedError(
                    self.supplier_name, status, response.text[:_MAX_BODY_LENGTH],
                )

            try:
                payload = response.json()
            except ValueError:
                raise SupplierRequestFailedError(
                    self.supplier_name, status, "response body is not valid JSON",
                )

            logger.debug(
                "supplier_request_succeeded",
                extra={
                    "supplier": self.supplier_name,
                    "method": method,
                    "path": path,
                    "status_code": status,
                    "attempt": attempt,
                },
            )
            return SupplierResponse(status_code=status, payload=payload)

        logger.error(
            "supplier_request_exhausted",
            extra={
                "supplier": self.supplier_name,
                "method": method,
                "path": path,
                "attempts": self._retry_attempts,
                "status_code": failure.status_code,
            },
        )
        raise failure

    def _log_retry(
        self, method: str, path: str, attempt: int, status: int | None,
    ) -> None:
        logger.warning(
            "supplier_request_retryable_failure",
            extra={
                "supplier": self.supplier_name,
                "method": method,
                "path": path,
                "attempt": attempt,
                "max_attempts": self._retry_attempts,
                "status_code": status,
            },
        )
