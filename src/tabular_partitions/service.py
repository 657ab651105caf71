"""Execution service interface and its Azure Analysis Services client."""
from __future__ import annotations

import json
import logging
import time
from typing import Callable, Optional, Protocol, Type

import httpx

from .auth import ClientCredentialsAuth, load_client_credentials
from .config import SessionSettings
from .errors import ConnectionFailure, ExecutionFailure, ProcessingFailure
from .processing import ProcessingRequest

logger = logging.getLogger(__name__)

REGION_URL = "https://{location}.asazure.windows.net"
REFRESH_PATH = "/servers/{server}/models/{database}/refreshes"

_TERMINAL_FAILURES = ("failed", "cancelled", "timedOut")


class ExecutionService(Protocol):
    """Remote collaborator that runs TMSL documents and refresh requests."""

    def is_connected(self) -> bool:
        """Return True once ``connect`` succeeded."""

    def connect(self, tenant: str, credential: str, location: str) -> None:
        """Authenticate; raises ConnectionFailure."""

    def execute(self, document: str) -> None:
        """Run a TMSL document; raises ExecutionFailure on rejection."""

    def process(self, request: ProcessingRequest) -> None:
        """Run a refresh to completion; raises ProcessingFailure on failure."""


class AnalysisServicesClient:
    """httpx-backed ExecutionService.

    Refreshes go through the asynchronous refresh REST API and are polled to a
    terminal state so callers observe a blocking call. TMSL documents are
    posted to ``tmsl_endpoint``, a gateway that forwards them to the XMLA
    endpoint.
    """

    def __init__(
        self,
        tmsl_endpoint: Optional[str] = None,
        timeout_seconds: float = 600.0,
        poll_interval_seconds: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.tmsl_endpoint = tmsl_endpoint
        self.timeout_seconds = timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self._transport = transport
        self._sleep = sleep
        self._clock = clock
        self._client: Optional[httpx.Client] = None
        self._auth: Optional[ClientCredentialsAuth] = None
        self._base_url: Optional[str] = None

    @classmethod
    def from_settings(
        cls, settings: SessionSettings, transport: Optional[httpx.BaseTransport] = None
    ) -> "AnalysisServicesClient":
        return cls(
            tmsl_endpoint=settings.tmsl_endpoint,
            timeout_seconds=settings.timeout_seconds,
            poll_interval_seconds=settings.poll_interval_seconds,
            transport=transport,
        )

    def is_connected(self) -> bool:
        return self._auth is not None and self._auth.authenticated

    def connect(self, tenant: str, credential: str, location: str) -> None:
        credentials = load_client_credentials(tenant, prefix=credential)
        self.close()
        self._base_url = REGION_URL.format(location=location)
        self._client = httpx.Client(timeout=self.timeout_seconds, transport=self._transport)
        auth = ClientCredentialsAuth(credentials, clock=self._clock)
        auth(self._client)
        self._auth = auth
        logger.info("Connected to %s", self._base_url)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._auth = None

    def execute(self, document: str) -> None:
        if not self.tmsl_endpoint:
            raise ConnectionFailure("No TMSL endpoint configured (session.tmsl_endpoint)")
        response = self._send(
            "POST",
            self.tmsl_endpoint,
            content=document.encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )
        if not response.is_success:
            raise ExecutionFailure(
                f"TMSL execution failed with HTTP {response.status_code}",
                detail=response.text,
            )

    def process(self, request: ProcessingRequest) -> None:
        if self._base_url is None:
            raise ConnectionFailure("Not connected to the execution service")
        url = self._base_url + REFRESH_PATH.format(
            server=request.server, database=request.database
        )
        body: dict = {
            "Type": request.refresh_mode,
            "CommitMode": "transactional",
            "MaxParallelism": 2,
            "RetryCount": 0,
        }
        objects = request.objects()
        if objects:
            body["Objects"] = objects
        response = self._send("POST", url, failure=ProcessingFailure, json=body)
        if response.status_code == 200:
            return
        if response.status_code != 202:
            raise ProcessingFailure(
                f"Refresh of {request.target} rejected with HTTP {response.status_code}",
                detail=response.text,
            )
        location = response.headers.get("Location")
        if not location:
            raise ProcessingFailure(
                f"Refresh of {request.target} accepted without a Location to poll"
            )
        self._wait_for_refresh(location, request)

    def _wait_for_refresh(self, location: str, request: ProcessingRequest) -> None:
        deadline = self._clock() + self.timeout_seconds
        while True:
            response = self._send("GET", location, failure=ProcessingFailure)
            if not response.is_success:
                raise ProcessingFailure(
                    f"Refresh status of {request.target} unavailable (HTTP {response.status_code})",
                    detail=response.text,
                )
            try:
                payload = response.json()
            except ValueError as exc:
                raise ProcessingFailure(
                    f"Refresh status of {request.target} is not JSON",
                    detail=response.text,
                ) from exc
            status = payload.get("status")
            logger.debug("Refresh of %s status=%s", request.target, status)
            if status == "succeeded":
                return
            if status in _TERMINAL_FAILURES:
                raise ProcessingFailure(
                    f"Refresh of {request.target} ended with status {status}",
                    detail=json.dumps(payload.get("messages", [])),
                )
            if self._clock() >= deadline:
                raise ProcessingFailure(
                    f"Refresh of {request.target} still {status} after {self.timeout_seconds}s"
                )
            self._sleep(self.poll_interval_seconds)

    def _send(
        self,
        method: str,
        url: str,
        failure: Type[ExecutionFailure] = ExecutionFailure,
        **kwargs,
    ) -> httpx.Response:
        """Send one request; transport errors are raised as ``failure``.

        The token is renewed when it nears expiry, and once more on a 401.
        Only authentication problems raise ``ConnectionFailure``.
        """
        if self._client is None or self._auth is None or not self.is_connected():
            raise ConnectionFailure("Not connected to the execution service")
        if self._auth.expired():
            logger.info("Access token about to expire, re-authenticating")
            self._auth(self._client)
        response = self._request(method, url, failure, **kwargs)
        if response.status_code == 401:
            logger.warning("%s %s unauthorized, re-authenticating once", method, url)
            self._auth(self._client)
            response = self._request(method, url, failure, **kwargs)
            if response.status_code == 401:
                raise ConnectionFailure(f"{method} {url} unauthorized: {response.text}")
        return response

    def _request(
        self, method: str, url: str, failure: Type[ExecutionFailure], **kwargs
    ) -> httpx.Response:
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise failure(f"{method} {url} failed: {exc}") from exc


__all__ = ["AnalysisServicesClient", "ExecutionService"]
