"""
Diagnostics API Client

REST client for the diagnostics backend (``http://<host>:<port>/api/v1``):

    POST /diagnostics                  submit a HardwareSnapshot
    GET  /diagnostics                  list stored records
    GET  /diagnostics/{id}             fetch one record
    GET  /diagnostics/serial/{serial}  list records for one machine
    GET  /statistics                   aggregate statistics
    GET  /health                       liveness probe

Failures surface as the typed errors in ``hwdiag.errors``, except
health_check(), which reports any failure as False.

Usage:
    with DiagnosticsAPIClient() as client:
        result = client.submit(snapshot)
"""

import json
import logging
import threading
from typing import Dict, Any, List, Optional
from urllib.parse import quote, urlparse

import requests

from . import __version__
from .errors import (
    DecodingError,
    EncodingError,
    HTTPError,
    InvalidRequestError,
    InvalidResponseError,
    NetworkError,
    ServerError,
)
from .models import AggregateStatistics, HardwareSnapshot, RemoteRecord, UploadResult
from .utils import get_default_config

logger = logging.getLogger("hwdiag.api")


def _is_success(status_code: int) -> bool:
    return 200 <= status_code <= 299


class DiagnosticsAPIClient:
    """
    Client for the diagnostics backend.

    One requests.Session is created at construction and shared by every
    call; its configuration is never changed afterwards.

    Timeouts are passed to requests as ``(connect, read)``: ``api.request_timeout``
    bounds connection setup and ``api.resource_timeout`` bounds each wait for
    response data. Neither bounds the total duration of a request.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: API root, e.g. ``http://localhost:8080/api/v1``;
                defaults to ``api.base_url`` from the config
            config: Configuration dictionary
            session: Preconfigured session (tests inject a mock here)
        """
        self.config = config or get_default_config()
        api_config = self.config.get("api", {})

        self.base_url = (base_url or api_config.get("base_url", "")).rstrip("/")
        # requests applies the read timeout to each wait for data, not to
        # the whole request, so a slowly streaming response can exceed it
        self.timeout = (
            float(api_config.get("request_timeout", 30)),
            float(api_config.get("resource_timeout", 60)),
        )
        self.health_timeout = float(api_config.get("health_timeout", 5))

        self._session = session or requests.Session()
        self._session.headers.update({
            "Accept": "application/json",
            "User-Agent": f"hwdiag/{__version__}",
        })

    # -------------------------------------------------------------------------
    # Request plumbing
    # -------------------------------------------------------------------------

    def _url(self, *segments: Any) -> str:
        """Build an endpoint URL, percent-encoding each path segment."""
        path = "/".join(quote(str(segment), safe="") for segment in segments)
        url = f"{self.base_url}/{path}"
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidRequestError(url)
        return url

    @staticmethod
    def _decode_json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise DecodingError(f"Response is not valid JSON: {e}") from e

    @staticmethod
    def _unwrap(payload: Any, key: str) -> Any:
        """Accept both a bare payload and the backend's ``{key: payload}`` envelope."""
        if isinstance(payload, dict) and key in payload:
            return payload[key]
        return payload

    def _get_json(self, *segments: Any, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET an endpoint; any transport failure or non-2xx is an invalid response."""
        url = self._url(*segments)
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"GET {url} failed: {e}")
            raise InvalidResponseError(f"Request to {url} failed: {e}") from e

        logger.debug(f"GET {url} -> {response.status_code}")
        if not _is_success(response.status_code):
            raise InvalidResponseError(
                f"Invalid response from server (HTTP {response.status_code})",
                status_code=response.status_code,
            )
        return self._decode_json(response)

    def _records(self, payload: Any) -> List[RemoteRecord]:
        payload = self._unwrap(payload, "diagnostics")
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise DecodingError(f"Expected a list of diagnostics, got {type(payload).__name__}")
        return [RemoteRecord.from_dict(item) for item in payload]

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def submit(self, snapshot: HardwareSnapshot) -> UploadResult:
        """
        Send a snapshot to the backend.

        Returns:
            The server-assigned UploadResult

        Raises:
            InvalidRequestError: the endpoint URL is malformed
            EncodingError: the snapshot cannot be serialized
            NetworkError: the request did not complete
            ServerError: non-2xx with an ``{"error": ...}`` body
            HTTPError: non-2xx with any other body
            DecodingError: 2xx with a body that is not an UploadResult
        """
        url = self._url("diagnostics")

        try:
            body = json.dumps(snapshot.to_dict(), allow_nan=False)
        except (TypeError, ValueError, AttributeError) as e:
            raise EncodingError(f"Failed to encode diagnostic: {e}") from e

        logger.debug(f"Sending diagnostic: {body}")

        try:
            response = self._session.post(
                url,
                data=body.encode("utf-8"),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"POST {url} failed: {e}")
            raise NetworkError(f"Network error - check that the backend is running ({e})") from e

        logger.debug(f"POST {url} -> {response.status_code}")

        if not _is_success(response.status_code):
            try:
                payload = response.json()
            except ValueError:
                payload = None
            if isinstance(payload, dict) and isinstance(payload.get("error"), str):
                details = payload.get("details")
                raise ServerError(
                    payload["error"],
                    details=details if isinstance(details, str) else None,
                    status_code=response.status_code,
                )
            raise HTTPError(response.status_code)

        result = UploadResult.from_dict(self._decode_json(response))
        logger.info(f"Diagnostic sent - ID: {result.id}")
        return result

    def list_all(self, limit: Optional[int] = None) -> List[RemoteRecord]:
        """
        List stored diagnostics.

        Args:
            limit: Maximum number of records, newest first, at least 1;
                None returns every record
        """
        if limit is not None and limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        params = {"limit": int(limit)} if limit is not None else None
        records = self._records(self._get_json("diagnostics", params=params))
        logger.info(f"{len(records)} diagnostics retrieved")
        return records

    def list_by_serial(self, serial_number: str) -> List[RemoteRecord]:
        """List stored diagnostics for one machine; empty when none match."""
        records = self._records(self._get_json("diagnostics", "serial", serial_number))
        logger.info(f"{len(records)} diagnostics found for {serial_number}")
        return records

    def get(self, record_id: int) -> RemoteRecord:
        """Fetch one stored diagnostic by its server ID."""
        payload = self._unwrap(self._get_json("diagnostics", int(record_id)), "diagnostic")
        return RemoteRecord.from_dict(payload)

    def get_statistics(self) -> AggregateStatistics:
        """Fetch backend-wide statistics."""
        payload = self._unwrap(self._get_json("statistics"), "statistics")
        stats = AggregateStatistics.from_dict(payload)
        logger.info("Statistics retrieved")
        return stats

    def health_check(self) -> bool:
        """
        Probe the backend with a short timeout.

        Returns:
            True on a 2xx answer; False on any failure, never raises
        """
        try:
            url = self._url("health")
            response = self._session.get(url, timeout=self.health_timeout)
        except (InvalidRequestError, requests.RequestException) as e:
            logger.info(f"Backend unavailable: {e}")
            return False

        healthy = _is_success(response.status_code)
        logger.info("Backend connected" if healthy else f"Backend unavailable (HTTP {response.status_code})")
        return healthy

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


# Process-wide client, created on first use
_client: Optional[DiagnosticsAPIClient] = None
_client_lock = threading.Lock()


def get_client(config: Optional[Dict[str, Any]] = None) -> DiagnosticsAPIClient:
    """
    Get or create the shared DiagnosticsAPIClient.

    ``config`` is only used by the call that creates the client; later
    calls return the existing client and log a warning if given a
    different config.
    """
    global _client
    with _client_lock:
        if _client is None:
            _client = DiagnosticsAPIClient(config=config)
        elif config is not None and config != _client.config:
            logger.warning("get_client: client already created, ignoring new config")
        return _client
